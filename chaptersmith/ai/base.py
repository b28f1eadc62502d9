"""Uniform capability interface over heterogeneous generation backends.

Every backend implements two primitives, a stateless completion and a
completion that uses a ``ProviderSession``. The public ``generate``,
``generate_with_memory`` and ``scan_patterns`` calls wrap them with the
shared retry policy, empty-output detection and the post-call delay, so the
orchestrator and scanner are written once against this class.
"""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..core.config import RetryPolicy
from ..core.errors import (
    FatalGenerationError,
    MalformedResponseError,
    RETRYABLE_ERRORS,
)
from ..core.metrics import RunMetrics
from .memory import MemoryContext

logger = logging.getLogger(__name__)

# A provider's unvalidated finding; the merger discards anything that is not a dict
RawMatch = Union[Dict[str, Any], Any]

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class ProviderSession:
    """One provider's context for one chapter."""

    provider: str
    memory: MemoryContext
    reference: str = ""
    instructions: str = ""
    cache_name: Optional[str] = None
    expires_at: Optional[float] = None
    closed: bool = False

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= self.expires_at


def extract_json_list(text: str, provider: Optional[str] = None) -> List[RawMatch]:
    """Parse a JSON list from model output.

    Accepts a bare list, a list wrapped in a markdown code fence or in
    surrounding prose, or an object with a ``matches`` key.
    """
    cleaned = _CODE_FENCE.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("["), cleaned.rfind("]")
        if start == -1 or end <= start:
            raise MalformedResponseError("No JSON list found in response", provider=provider)
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Invalid JSON in response: {e}", provider=provider) from e

    if isinstance(data, dict) and isinstance(data.get("matches"), list):
        data = data["matches"]
    if not isinstance(data, list):
        raise MalformedResponseError(
            f"Expected a JSON list, got {type(data).__name__}", provider=provider
        )
    return data


class ProviderAdapter(ABC):
    """Base interface for generation providers."""

    name = "provider"

    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        metrics: Optional[RunMetrics] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.retry_policy = retry_policy or RetryPolicy()
        self.metrics = metrics
        self._sleep = sleep

    # Backend primitives

    @abstractmethod
    def _complete(self, prompt: str) -> str:
        """Send one stateless request and return the text output."""
        ...

    @abstractmethod
    def _complete_with_memory(self, prompt: str, session: ProviderSession) -> str:
        """Send one request in the context of ``session``."""
        ...

    # Session lifecycle

    def open_session(self, reference: str, instructions: str = "") -> ProviderSession:
        """Create a chapter session with explicit transcript memory."""
        return ProviderSession(
            provider=self.name,
            memory=MemoryContext(provider=self.name),
            reference=reference,
            instructions=instructions,
        )

    def close_session(self, session: ProviderSession) -> None:
        """Invalidate a session. Providers with server-side state override this."""
        session.closed = True

    # Public capability interface

    def generate(self, prompt: str, fragment_index: int = 0) -> str:
        logger.debug(f"{self.name}: generating fragment {fragment_index}")
        return self._call("generate", self._complete, prompt)

    def generate_with_memory(self, prompt: str, session: ProviderSession) -> str:
        if session.closed:
            raise FatalGenerationError("Session already closed", stage="generate", provider=self.name)
        if session.provider != self.name:
            raise FatalGenerationError(
                f"Session belongs to provider '{session.provider}'", stage="generate", provider=self.name
            )
        return self._call("generate", self._complete_with_memory, prompt, session)

    def scan_patterns(self, prompt: str) -> List[RawMatch]:
        """Run an analysis prompt and parse its JSON list of findings.

        Transport failures are retried here; a response that is not valid
        JSON raises ``MalformedResponseError`` for the caller to handle.
        """
        text = self._call("scan", self._complete, prompt)
        return extract_json_list(text, provider=self.name)

    # Helpers

    def _call(self, stage: str, func: Callable[..., str], *args: Any) -> str:
        policy = self.retry_policy

        def attempt() -> str:
            text = func(*args)
            if text is None or not str(text).strip():
                raise MalformedResponseError("Empty or null output received", provider=self.name)
            return text

        retrying = Retrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_fixed(policy.retry_delay),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            text = retrying(attempt)
        except RETRYABLE_ERRORS as e:
            logger.error(f"{self.name}: {stage} failed after {policy.max_attempts} attempts: {e}")
            raise FatalGenerationError(
                f"Exceeded maximum retries: {e}", stage=stage, provider=self.name
            ) from e

        if policy.post_call_delay:
            self._sleep(policy.post_call_delay)
        return text

    def _record_usage(self, prompt_tokens=0, completion_tokens=0, cached_tokens=0) -> None:
        if self.metrics is not None:
            self.metrics.record_usage(prompt_tokens, completion_tokens, cached_tokens)

    def _reference_block(self, session: ProviderSession) -> str:
        """Reference material plus the transcript, for providers without native memory."""
        parts = []
        if session.reference:
            parts.append(session.reference)
        if not session.memory.is_empty():
            parts.append("Previously generated content for this chapter:\n\n" + session.memory.transcript)
        return "\n\n".join(parts)
