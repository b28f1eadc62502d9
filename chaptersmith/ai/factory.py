"""Provider construction by name."""

from typing import Dict, List, Optional, Sequence, Type

from ..core.config import BookConfig
from ..core.errors import ConfigurationError
from ..core.metrics import RunMetrics
from .base import ProviderAdapter


def _provider_classes() -> Dict[str, Type[ProviderAdapter]]:
    # Imported lazily so a missing vendor SDK only matters when it is used
    from .claude_client import ClaudeClient
    from .gemini_client import GeminiClient
    from .grok_client import GrokClient
    from .openai_client import ChatGPTClient

    return {
        "openai": ChatGPTClient,
        "anthropic": ClaudeClient,
        "xai": GrokClient,
        "google": GeminiClient,
    }


PROVIDER_NAMES = ("openai", "anthropic", "xai", "google")


def create_provider(name: str, config: BookConfig, metrics: Optional[RunMetrics] = None) -> ProviderAdapter:
    """Build the adapter for ``name`` using the config's settings and retry policy."""
    if name not in PROVIDER_NAMES:
        raise ConfigurationError(f"Unknown provider: {name}. Available: {list(PROVIDER_NAMES)}")
    settings = config.providers.get(name)
    if settings is None:
        raise ConfigurationError(f"No settings configured for provider '{name}'")
    cls = _provider_classes()[name]
    return cls(settings=settings, retry_policy=config.retry, metrics=metrics)


def create_providers(names: Sequence[str], config: BookConfig, metrics: Optional[RunMetrics] = None) -> List[ProviderAdapter]:
    if not names:
        raise ConfigurationError("No providers configured")
    return [create_provider(name, config, metrics) for name in names]
