"""Google Gemini provider."""

import datetime
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai import caching

from ..core.config import DEFAULT_PROVIDERS, ProviderSettings
from ..core.errors import FatalGenerationError, MalformedResponseError, TransientProviderError
from .base import ProviderAdapter, ProviderSession
from .memory import MemoryContext

logger = logging.getLogger(__name__)

_TRANSIENT = (
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)


@contextmanager
def gemini_errors(provider: str) -> Iterator[None]:
    try:
        yield
    except _TRANSIENT as e:
        logger.warning(f"Gemini request failed: {type(e).__name__}: {e}")
        raise TransientProviderError(str(e), provider=provider) from e
    except google_exceptions.GoogleAPICallError as e:
        logger.error(f"Gemini rejected the request: {e}")
        raise FatalGenerationError(str(e), stage="request", provider=provider) from e


class GeminiClient(ProviderAdapter):
    """Gemini adapter.

    The outline goes into server-side cached content for the lifetime of a
    chapter session. When the cache cannot be created (content below the
    provider's minimum size, unsupported model) the outline is sent inline
    with each request instead. An expired cache is recreated on next use.
    """

    name = "google"

    def __init__(self, settings: Optional[ProviderSettings] = None, model: Any = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or DEFAULT_PROVIDERS["google"]
        if model is None:
            genai.configure(api_key=self.settings.resolve_api_key())
            model = genai.GenerativeModel(self.settings.model)
        self.model = model
        self._caches: Dict[str, Any] = {}

    @property
    def generation_config(self):
        return genai.types.GenerationConfig(
            temperature=self.settings.temperature,
            max_output_tokens=self.settings.max_tokens,
        )

    def _complete(self, prompt: str) -> str:
        return self._generate(self.model, prompt)

    def open_session(self, reference: str, instructions: str = "") -> ProviderSession:
        session = ProviderSession(
            provider=self.name,
            memory=MemoryContext(provider=self.name),
            reference=reference,
            instructions=instructions,
        )
        self._create_cache(session)
        return session

    def close_session(self, session: ProviderSession) -> None:
        session.closed = True
        cache = self._caches.pop(session.cache_name, None) if session.cache_name else None
        if cache is None:
            return
        try:
            with gemini_errors(self.name):
                cache.delete()
        except (TransientProviderError, FatalGenerationError) as e:
            logger.warning(f"Could not delete cached content {session.cache_name}: {e}")

    def _create_cache(self, session: ProviderSession) -> None:
        if not session.reference:
            return
        ttl = self.settings.cache_ttl
        try:
            cache = caching.CachedContent.create(
                model=f"models/{self.settings.model}",
                display_name="book outline",
                system_instruction=session.instructions or None,
                contents=[session.reference],
                ttl=datetime.timedelta(seconds=ttl),
            )
        except google_exceptions.GoogleAPICallError as e:
            logger.warning(f"Context caching unavailable, sending outline inline: {e}")
            return
        self._caches[cache.name] = cache
        session.cache_name = cache.name
        session.expires_at = time.time() + ttl
        logger.info(f"Cached outline as {cache.name} (ttl {ttl}s)")

    def _complete_with_memory(self, prompt: str, session: ProviderSession) -> str:
        if session.cache_name and session.is_expired():
            logger.info(f"Cached content {session.cache_name} expired, recreating")
            self._caches.pop(session.cache_name, None)
            session.cache_name = None
            session.expires_at = None
            self._create_cache(session)

        if session.cache_name:
            model = genai.GenerativeModel.from_cached_content(cached_content=self._caches[session.cache_name])
            parts = []
            if not session.memory.is_empty():
                parts.append("Previously generated content for this chapter:\n\n" + session.memory.transcript)
            parts.append(prompt)
            return self._generate(model, "\n\n".join(parts))

        reference = self._reference_block(session)
        full_prompt = f"{reference}\n\n{prompt}" if reference else prompt
        if session.instructions:
            full_prompt = f"{session.instructions}\n\n{full_prompt}"
        return self._generate(self.model, full_prompt)

    def _generate(self, model: Any, prompt: str) -> str:
        with gemini_errors(self.name):
            response = model.generate_content(prompt, generation_config=self.generation_config)

        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            self._record_usage(
                getattr(usage, "prompt_token_count", 0),
                getattr(usage, "candidates_token_count", 0),
                getattr(usage, "cached_content_token_count", 0),
            )
        try:
            return response.text
        except ValueError as e:
            # Raised when the candidate was blocked or carries no parts
            raise MalformedResponseError(f"Gemini response has no text: {e}", provider=self.name) from e
