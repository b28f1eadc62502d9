"""Exception hierarchy for ChapterSmith.

Provider adapters translate vendor SDK exceptions into these classes so the
orchestrator, scanner and revision engine never see transport details.
"""

from typing import Optional


class ChapterSmithError(Exception):
    """Base exception for ChapterSmith."""
    pass


class ConfigurationError(ChapterSmithError):
    """Invalid or missing configuration (API keys, rule chains, providers)."""
    pass


class ProviderError(ChapterSmithError):
    """Base exception for failures raised at the provider boundary."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider

    def __str__(self) -> str:
        message = super().__str__()
        if self.provider:
            return f"{message} (provider={self.provider})"
        return message


class TransientProviderError(ProviderError):
    """Network failure, timeout or rate limit. Retryable."""
    pass


class MalformedResponseError(ProviderError):
    """Null, empty or unparseable payload. Retryable."""
    pass


class EchoedResponseError(ProviderError):
    """The provider returned the prompt verbatim instead of new content."""
    pass


class FatalGenerationError(ChapterSmithError):
    """Retries were exhausted or no provider could serve the call.

    Carries the stage (``generate``, ``scan``, ``session`` ...) and provider
    so the run can report where it stopped.
    """

    def __init__(self, message: str, stage: str = "", provider: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.provider = provider

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.stage:
            parts.append(f"stage={self.stage}")
        if self.provider:
            parts.append(f"provider={self.provider}")
        return " ".join(parts)


class InvalidDecisionError(ChapterSmithError):
    """The operator picked an undefined option or an incomplete decision."""
    pass


# Errors the adapter retry loop recovers from
RETRYABLE_ERRORS = (TransientProviderError, MalformedResponseError)
