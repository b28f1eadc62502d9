"""Multi-provider scan of a finished chapter for target patterns."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from ..ai.base import ProviderAdapter, RawMatch
from ..core.config import TargetPattern
from ..core.errors import ConfigurationError, FatalGenerationError, MalformedResponseError
from .sentences import Sentence, index_sentences, segment_sentences

logger = logging.getLogger(__name__)

RESPONSE_FORMAT = (
    'Return ONLY a JSON list. Each element must be an object with the keys "match" (the exact '
    'matching text), "sentence" (the full sentence, without its bracketed index) and '
    '"sentence_index" (the integer in brackets before that sentence). Return [] if nothing matches.'
)

STRICT_REMINDER = (
    "\n\nIMPORTANT: your previous answer was not valid JSON. Emit ONLY the JSON list, with no "
    "commentary, no markdown and no code fences."
)


def build_scan_prompt(pattern: TargetPattern, indexed_text: str) -> str:
    if pattern.kind == "duplicate":
        task = (
            "Find every sentence that repeats content, imagery or events already present earlier in "
            f"the text. {pattern.description} Report the later, repeating sentence; for \"match\" give "
            "the repeated portion."
        )
    else:
        task = f'Find every occurrence of the pattern "{pattern.name}". {pattern.description}'
    return (
        "Analyze the following chapter text. Every sentence is on its own line, prefixed with its index "
        f"in square brackets.\n\n{task}\n\n{RESPONSE_FORMAT}\n\nTEXT:\n{indexed_text}"
    )


@dataclass
class ScanResult:
    """Sentences of the scanned text and the raw findings per provider and pattern."""

    sentences: List[Sentence]
    reports: Dict[str, Dict[str, List[RawMatch]]] = field(default_factory=dict)
    failures: List[Tuple[str, str]] = field(default_factory=list)  # (provider, pattern)

    @property
    def raw_match_count(self) -> int:
        return sum(len(found) for by_pattern in self.reports.values() for found in by_pattern.values())


class PatternScanner:
    """Sends one analysis prompt per pattern to each provider, in sequence.

    Sentence indices are fixed when ``scan`` segments the text and are the
    indices every provider sees, so their ``sentence_index`` values can be
    used directly by the merger and the revision engine.
    """

    def __init__(
        self,
        providers: Sequence[ProviderAdapter],
        patterns: Sequence[TargetPattern],
        split_exceptions: bool = True,
    ):
        if not providers:
            raise ConfigurationError("No providers configured")
        self.providers = list(providers)
        self.patterns = list(patterns)
        self.split_exceptions = split_exceptions

    def scan(self, text: str) -> ScanResult:
        sentences = segment_sentences(text, exceptions=self.split_exceptions)
        result = ScanResult(sentences=sentences)
        if not sentences:
            return result

        indexed = index_sentences(sentences)
        logger.info(f"Scanning {len(sentences)} sentences for {len(self.patterns)} patterns "
                    f"with {len(self.providers)} providers")
        for provider in self.providers:
            by_pattern = result.reports.setdefault(provider.name, {})
            for pattern in self.patterns:
                found = self._scan_one(provider, pattern, indexed, result)
                by_pattern.setdefault(pattern.name, []).extend(found)
                logger.debug(f"{provider.name}: {len(found)} raw findings for '{pattern.name}'")
        return result

    def _scan_one(self, provider: ProviderAdapter, pattern: TargetPattern, indexed: str,
                  result: ScanResult) -> List[RawMatch]:
        prompt = build_scan_prompt(pattern, indexed)
        try:
            try:
                return provider.scan_patterns(prompt)
            except MalformedResponseError as e:
                logger.warning(f"{provider.name}: malformed scan output for '{pattern.name}', retrying: {e}")
                return provider.scan_patterns(prompt + STRICT_REMINDER)
        except MalformedResponseError as e:
            logger.warning(f"{provider.name}: giving up on '{pattern.name}' after malformed output: {e}")
        except FatalGenerationError as e:
            logger.error(f"{provider.name}: scan for '{pattern.name}' failed: {e}")
        result.failures.append((provider.name, pattern.name))
        return []
