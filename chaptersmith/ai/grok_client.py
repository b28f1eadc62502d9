"""xAI Grok provider (OpenAI-compatible chat completions)."""

import logging
from typing import Dict, List, Optional

from openai import OpenAI

from ..core.config import DEFAULT_PROVIDERS, ProviderSettings
from ..core.errors import MalformedResponseError
from .base import ProviderAdapter, ProviderSession
from .openai_client import openai_errors

logger = logging.getLogger(__name__)


class GrokClient(ProviderAdapter):
    """Grok adapter with explicit transcript memory and an optional system prompt."""

    name = "xai"

    def __init__(self, settings: Optional[ProviderSettings] = None, client: Optional[OpenAI] = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or DEFAULT_PROVIDERS["xai"]
        self.client = client or OpenAI(
            api_key=self.settings.resolve_api_key(),
            base_url=self.settings.base_url,
            max_retries=0,
        )

    def _complete(self, prompt: str) -> str:
        return self._chat([{"role": "user", "content": prompt}])

    def _complete_with_memory(self, prompt: str, session: ProviderSession) -> str:
        messages: List[Dict[str, str]] = []
        if session.instructions:
            messages.append({"role": "system", "content": session.instructions})
        reference = self._reference_block(session)
        if reference:
            messages.append({"role": "user", "content": reference})
        messages.append({"role": "user", "content": prompt})
        return self._chat(messages)

    def _chat(self, messages: List[Dict[str, str]]) -> str:
        with openai_errors(self.name):
            response = self.client.chat.completions.create(
                model=self.settings.model,
                temperature=self.settings.temperature,
                stream=False,
                messages=messages,
            )
        usage = getattr(response, "usage", None)
        if usage is not None:
            self._record_usage(usage.prompt_tokens, usage.completion_tokens)
        if not response.choices:
            raise MalformedResponseError(f"Empty choices received: {response!r}", provider=self.name)
        return response.choices[0].message.content
