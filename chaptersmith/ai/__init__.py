"""Provider adapters and generation drivers for ChapterSmith."""

from .base import ProviderAdapter, ProviderSession
from .memory import MemoryContext
from .polling import wait_for_completion
from .factory import PROVIDER_NAMES, create_provider, create_providers
from .fragment_orchestrator import FragmentOrchestrator
from .book_generator import BookGenerator, run_revision_pass
from .categorizer import categorize_items

__all__ = [
    "ProviderAdapter",
    "ProviderSession",
    "MemoryContext",
    "wait_for_completion",
    "PROVIDER_NAMES",
    "create_provider",
    "create_providers",
    "FragmentOrchestrator",
    "BookGenerator",
    "run_revision_pass",
    "categorize_items",
]
