"""Anthropic Claude provider."""

import logging
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import Anthropic

from ..core.config import DEFAULT_PROVIDERS, ProviderSettings
from ..core.errors import FatalGenerationError, MalformedResponseError, TransientProviderError
from .base import ProviderAdapter, ProviderSession

logger = logging.getLogger(__name__)


class ClaudeClient(ProviderAdapter):
    """Claude adapter with explicit transcript memory.

    Claude has no server-side threads, so the outline and the chapter's
    transcript travel with every request. The outline block is marked for
    prompt caching since it is identical across all fragments.
    """

    name = "anthropic"

    def __init__(self, settings: Optional[ProviderSettings] = None, client: Optional[Anthropic] = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or DEFAULT_PROVIDERS["anthropic"]
        self.client = client or Anthropic(
            api_key=self.settings.resolve_api_key(),
            timeout=600.0,  # 10 minute timeout for long operations
            max_retries=0,  # retries are handled by ProviderAdapter
        )
        self.model = self.settings.model
        self.max_tokens = self.settings.max_tokens
        # Long generations must stream or the SDK refuses the request
        self.use_streaming = self.max_tokens > 10000

    def _complete(self, prompt: str) -> str:
        messages = [{"role": "user", "content": prompt}]
        return self._make_request(messages)

    def _complete_with_memory(self, prompt: str, session: ProviderSession) -> str:
        content: List[Dict[str, Any]] = []
        if session.reference:
            content.append({
                "type": "text",
                "text": session.reference,
                "cache_control": {"type": "ephemeral"},
            })
        if not session.memory.is_empty():
            content.append({
                "type": "text",
                "text": "Previously generated content for this chapter:\n\n" + session.memory.transcript,
            })
        content.append({"type": "text", "text": prompt})
        return self._make_request([{"role": "user", "content": content}], system=session.instructions)

    def _make_request(self, messages: List[Dict[str, Any]], system: str = "") -> str:
        """Make a request to Claude, streaming for long operations."""
        params: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.settings.temperature,
            "messages": messages,
        }
        if system:
            params["system"] = system

        try:
            if self.use_streaming:
                with self.client.messages.stream(**params) as stream:
                    response = stream.get_final_message()
            else:
                response = self.client.messages.create(**params)
        except (anthropic.APIConnectionError, anthropic.RateLimitError, anthropic.InternalServerError) as e:
            logger.warning(f"Claude request failed: {type(e).__name__}: {e}")
            raise TransientProviderError(str(e), provider=self.name) from e
        except anthropic.APIStatusError as e:
            logger.error(f"Claude rejected the request: {e}")
            raise FatalGenerationError(str(e), stage="request", provider=self.name) from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            self._record_usage(
                getattr(usage, "input_tokens", 0),
                getattr(usage, "output_tokens", 0),
                getattr(usage, "cache_read_input_tokens", 0),
            )

        blocks = getattr(response, "content", None) or []
        text = "".join(getattr(block, "text", "") for block in blocks if getattr(block, "type", "text") == "text")
        if not text:
            raise MalformedResponseError("Claude returned no text content", provider=self.name)
        return text
