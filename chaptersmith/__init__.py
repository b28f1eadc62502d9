"""
ChapterSmith - fragment-by-fragment book generation with multi-provider revision.
"""

__version__ = "0.1.0"

from .core import Book, BookConfig, Chapter, Fragment, RunContext, RunMetrics
from .ai import BookGenerator, FragmentOrchestrator, ProviderAdapter, create_provider
from .editor import PatternScanner, ResponseParser, RevisionEngine, merge_reports

__all__ = [
    "Book",
    "BookConfig",
    "Chapter",
    "Fragment",
    "RunContext",
    "RunMetrics",
    "BookGenerator",
    "FragmentOrchestrator",
    "ProviderAdapter",
    "create_provider",
    "PatternScanner",
    "ResponseParser",
    "RevisionEngine",
    "merge_reports",
]
