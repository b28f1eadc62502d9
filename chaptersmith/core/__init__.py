"""Core domain models for ChapterSmith."""

from .book import Book, Chapter, Fragment, RunContext
from .config import BookConfig, ProviderSettings, RetryPolicy, TargetPattern
from .metrics import RunMetrics, word_count

__all__ = [
    "Book",
    "Chapter",
    "Fragment",
    "RunContext",
    "BookConfig",
    "ProviderSettings",
    "RetryPolicy",
    "TargetPattern",
    "RunMetrics",
    "word_count",
]
