"""Run configuration for book generation and revision."""

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError


@dataclass
class RetryPolicy:
    """Timing and retry limits shared by every provider call."""
    max_attempts: int = 5
    retry_delay: float = 10.0      # seconds between retry attempts
    post_call_delay: float = 1.0   # mandatory pause after each successful call
    poll_interval: float = 1.0     # job status polling interval
    max_polls: Optional[int] = None
    max_rewrites: int = 3          # provider rewrite proposals per match


@dataclass
class ProviderSettings:
    """Settings for one generation backend."""
    model: str
    api_key_env: str
    temperature: float = 0.7
    max_tokens: int = 8192
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    cache_ttl: int = 3600  # seconds, for providers with server-side caches

    def resolve_api_key(self) -> str:
        key = self.api_key or os.getenv(self.api_key_env)
        if not key:
            raise ConfigurationError(
                f"{self.api_key_env} environment variable or api_key setting is required"
            )
        return key


DEFAULT_PROVIDERS: Dict[str, ProviderSettings] = {
    "openai": ProviderSettings(model="gpt-4o", api_key_env="OPENAI_API_KEY", max_tokens=16000),
    "anthropic": ProviderSettings(model="claude-opus-4-20250514", api_key_env="ANTHROPIC_API_KEY", max_tokens=32000),
    "xai": ProviderSettings(model="grok-3", api_key_env="XAI_API_KEY", base_url="https://api.x.ai/v1"),
    "google": ProviderSettings(model="gemini-1.5-pro-002", api_key_env="GEMINI_API_KEY"),
}


@dataclass
class TargetPattern:
    """A phrase or category the revision scan looks for."""
    name: str
    description: str = ""
    kind: str = "bad_pattern"  # bad_pattern | duplicate

    def __post_init__(self):
        if self.kind not in ("bad_pattern", "duplicate"):
            raise ConfigurationError(f"Unknown pattern kind: {self.kind}")
        if not self.description:
            self.description = f'Any use of the phrase or idea "{self.name}", including close variations.'


DEFAULT_BAD_PHRASES = [
    "Mind (raced)",
    "Shiver, spine",
    "something you need to see",
    "heart (raced, pounded, etc)",
    "discovered",
    "changes everything",
    "eerie", "the air", "weight", "truth", "justice", "tension", "burst", "lion",
]


def _default_patterns() -> List[TargetPattern]:
    patterns = [TargetPattern(name=phrase) for phrase in DEFAULT_BAD_PHRASES]
    patterns.append(TargetPattern(
        name="duplicate content",
        description="Sentences that repeat content, imagery or events already described earlier in the chapter.",
        kind="duplicate",
    ))
    return patterns


@dataclass
class BookConfig:
    """Book generation parameters."""
    num_chapters: int = 12
    chapter_fragments: int = 7       # fragments per chapter; larger values = more words
    chapter_fragment_words: int = 3000
    use_memory: bool = True

    initial_prompt: str = "Generate the first portion of the current chapter of the story."
    continue_prompt: str = (
        "Continue generating the current chapter of the story, starting from where we left off. "
        "Do NOT repeat any previously generated material."
    )
    corrective_prompt: str = (
        "Avoid repeating the input. Continue writing the chapter content instead."
    )
    chapter_prompt: str = (
        "Generate a fragment of chapter {chapter} of the book, referring to the outline already supplied. "
        "Utilize as much output length as possible when returning content."
    )
    prompt: str = (
        "For the chapter title and content, refer EXPLICITLY to the outline, and if included, the prior "
        "chapter summary and current chapter summary. Refer to your context for memory of prior content, "
        "as well. Chapter title should be an H1 element SPECIFICALLY (# character in markdown) followed by "
        "the chapter name. Chapter titles must match those in the outline EXACTLY. "
        "Generate AT LEAST {words} words."
    )
    post_prompt: str = "Make SURE to include the chapter number with the chapter title."
    command_code: str = (
        "The response should FIRST contain the chapter content, THEN, delineated with 3 dashes (markdown "
        "horizontal line), a summary of the current chapter fragment. Delineation of the summary MUST be "
        "3 dashes SPECIFICALLY."
    )
    meta_prompt: str = (
        "Maintain continuity and do NOT repeat any previously generated material. Generate as much content "
        "as possible. AVOID commentary to the user; just produce book content. AVOID exposition, i.e. "
        '"telling" instead of "showing". AVOID explaining what is going on at the end of a fragment or '
        'chapter, like "the stage was set" or "the chapter closed". AVOID repeating phrases or elements that '
        'have already been used, such as "shivers went down her spine" and "the air was thick with tension". '
        "AVOID cliches, platitudes, and trite phraseology."
    )
    reference_prompt: str = (
        "The following text is the outline for a {genre} novel I am about to generate. Use it as reference "
        "when processing future requests, and refer to it explicitly when generating each chapter of the "
        "book:\n\n{outline}"
    )

    patterns: List[TargetPattern] = field(default_factory=_default_patterns)
    rules: Optional[List[Dict[str, Any]]] = None  # None = built-in default rule chain
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    providers: Dict[str, ProviderSettings] = field(
        default_factory=lambda: {name: replace(settings) for name, settings in DEFAULT_PROVIDERS.items()}
    )

    def __post_init__(self):
        if self.chapter_fragments < 1:
            raise ConfigurationError("chapter_fragments must be at least 1")
        if self.num_chapters < 1:
            raise ConfigurationError("num_chapters must be at least 1")

    def content_prompt(self, chapter_number: int) -> str:
        """The caller-supplied content prompt for one chapter."""
        return " ".join([
            self.chapter_prompt.format(chapter=chapter_number),
            self.prompt.format(words=self.chapter_fragment_words),
            self.post_prompt,
            self.command_code,
            self.meta_prompt,
        ])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookConfig":
        """Build a config from a plain mapping (as read from YAML)."""
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        try:
            if "retry" in data:
                data["retry"] = RetryPolicy(**data["retry"])
            if "patterns" in data:
                data["patterns"] = [
                    TargetPattern(name=p) if isinstance(p, str) else TargetPattern(**p)
                    for p in data["patterns"]
                ]
            if "providers" in data:
                providers = {name: replace(settings) for name, settings in DEFAULT_PROVIDERS.items()}
                for name, overrides in data["providers"].items():
                    if name in providers:
                        providers[name] = replace(providers[name], **overrides)
                    else:
                        providers[name] = ProviderSettings(**overrides)
                data["providers"] = providers
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
