"""Token, word and timing tallies for a generation run."""

import time
from dataclasses import dataclass, field
from typing import List, Optional


def word_count(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split()) if text else 0


@dataclass
class RunMetrics:
    """Process-wide, append-only statistics for one run."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cached_tokens: int = 0
    word_counts: List[int] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)

    def record_usage(
        self,
        prompt_tokens: Optional[int] = 0,
        completion_tokens: Optional[int] = 0,
        cached_tokens: Optional[int] = 0,
    ) -> None:
        """Add token usage reported by a provider. ``None`` counts as zero."""
        self.prompt_tokens += prompt_tokens or 0
        self.completion_tokens += completion_tokens or 0
        self.cached_tokens += cached_tokens or 0

    def record_chapter(self, words: int) -> None:
        self.word_counts.append(words)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def total_words(self) -> int:
        return sum(self.word_counts)

    @property
    def cached_percentage(self) -> float:
        if not self.prompt_tokens:
            return 0.0
        return round(self.cached_tokens / self.prompt_tokens * 100, 2)

    def elapsed_minutes(self, now: Optional[float] = None) -> float:
        now = time.monotonic() if now is None else now
        return round((now - self.started_at) / 60, 1)

    def summary(self, now: Optional[float] = None) -> str:
        """Human-readable run report."""
        lines = [
            f"Successfully generated {len(self.word_counts)} chapters, "
            f"for a total of {self.total_words} words.",
            "",
            "Total token usage:",
            "",
            f"- Prompt tokens used: {self.prompt_tokens}",
            f"- Completion tokens used: {self.completion_tokens}",
            f"- Total tokens used: {self.total_tokens}",
            f"- Cached tokens used: {self.cached_tokens}",
            f"- Cached token percentage: {self.cached_percentage}%",
            "",
            f"Elapsed time: {self.elapsed_minutes(now)} minutes.",
            "Words by chapter:",
        ]
        for i, words in enumerate(self.word_counts, 1):
            lines.append(f"Chapter {i}: {words} words")
        return "\n".join(lines)
