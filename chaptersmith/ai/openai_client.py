"""OpenAI ChatGPT provider."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import openai
from openai import OpenAI

from ..core.config import DEFAULT_PROVIDERS, ProviderSettings
from ..core.errors import FatalGenerationError, MalformedResponseError, TransientProviderError
from .base import ProviderAdapter, ProviderSession
from .memory import MemoryContext
from .polling import wait_for_completion

logger = logging.getLogger(__name__)


@contextmanager
def openai_errors(provider: str) -> Iterator[None]:
    """Map OpenAI SDK exceptions onto the provider error hierarchy."""
    try:
        yield
    except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
        logger.warning(f"{provider} request failed: {type(e).__name__}: {e}")
        raise TransientProviderError(str(e), provider=provider) from e
    except openai.APIStatusError as e:
        logger.error(f"{provider} rejected the request: {e}")
        raise FatalGenerationError(str(e), stage="request", provider=provider) from e


class ChatGPTClient(ProviderAdapter):
    """ChatGPT adapter.

    Stateless calls use chat completions. Memory uses an Assistants thread:
    the outline is posted once when the session opens, every fragment prompt
    is added to the thread and a run is polled until it reaches a terminal
    state.
    """

    name = "openai"

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        client: Optional[OpenAI] = None,
        assistant_name: str = "AI Book generator",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.settings = settings or DEFAULT_PROVIDERS["openai"]
        self.client = client or OpenAI(api_key=self.settings.resolve_api_key(), max_retries=0)
        self.assistant_name = assistant_name
        self.assistant_id: Optional[str] = None
        self._posted_prompt: Optional[tuple] = None

    def _complete(self, prompt: str) -> str:
        with openai_errors(self.name):
            response = self.client.chat.completions.create(
                model=self.settings.model,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )

        usage = getattr(response, "usage", None)
        if usage is not None:
            details = getattr(usage, "prompt_tokens_details", None)
            self._record_usage(
                usage.prompt_tokens,
                usage.completion_tokens,
                getattr(details, "cached_tokens", 0) if details else 0,
            )

        if not response.choices:
            raise MalformedResponseError("No choices in response", provider=self.name)
        return response.choices[0].message.content

    def open_session(self, reference: str, instructions: str = "") -> ProviderSession:
        """Create a thread and post the outline for future reference."""
        assistant_id = self._ensure_assistant(instructions)
        with openai_errors(self.name):
            thread = self.client.beta.threads.create()
            if reference:
                self.client.beta.threads.messages.create(thread_id=thread.id, role="user", content=reference)
        logger.info(f"Opened thread {thread.id} on assistant {assistant_id}")
        return ProviderSession(
            provider=self.name,
            memory=MemoryContext(provider=self.name, thread_id=thread.id),
            reference=reference,
            instructions=instructions,
        )

    def close_session(self, session: ProviderSession) -> None:
        thread_id = session.memory.thread_id
        session.closed = True
        if not thread_id:
            return
        try:
            with openai_errors(self.name):
                self.client.beta.threads.delete(thread_id)
        except (TransientProviderError, FatalGenerationError) as e:
            # The thread expires server-side anyway; a failed delete must not fail the chapter
            logger.warning(f"Could not delete thread {thread_id}: {e}")

    def _ensure_assistant(self, instructions: str) -> str:
        """Reuse an assistant with our name, or create one."""
        if self.assistant_id:
            return self.assistant_id
        with openai_errors(self.name):
            for assistant in self.client.beta.assistants.list(limit=100).data:
                if assistant.name == self.assistant_name:
                    self.assistant_id = assistant.id
                    return assistant.id
            assistant = self.client.beta.assistants.create(
                model=self.settings.model,
                name=self.assistant_name,
                instructions=instructions or None,
            )
        logger.info(f"Created assistant {assistant.id}")
        self.assistant_id = assistant.id
        return assistant.id

    def _complete_with_memory(self, prompt: str, session: ProviderSession) -> str:
        thread_id = session.memory.thread_id
        if not thread_id:
            raise FatalGenerationError("Session has no thread", stage="generate", provider=self.name)
        assistant_id = self._ensure_assistant(session.instructions)
        threads = self.client.beta.threads

        with openai_errors(self.name):
            # A retried attempt reuses the prompt already in the thread
            if self._posted_prompt != (thread_id, prompt):
                threads.messages.create(thread_id=thread_id, role="user", content=prompt)
                self._posted_prompt = (thread_id, prompt)

            run = threads.runs.create(thread_id=thread_id, assistant_id=assistant_id)
            run = wait_for_completion(
                lambda: threads.runs.retrieve(run.id, thread_id=thread_id),
                interval=self.retry_policy.poll_interval,
                max_polls=self.retry_policy.max_polls,
                sleep=self._sleep,
                provider=self.name,
            )

        if run.status != "completed":
            raise TransientProviderError(f"Run {run.status}: {run.last_error}", provider=self.name)
        self._posted_prompt = None

        usage = getattr(run, "usage", None)
        if usage is not None:
            self._record_usage(usage.prompt_tokens, usage.completion_tokens)

        with openai_errors(self.name):
            messages = threads.messages.list(thread_id=thread_id, run_id=run.id, order="asc", limit=100)
        replies = [m for m in messages.data if m.role == "assistant"]
        if not replies:
            raise MalformedResponseError(f"Run {run.id} produced no assistant message", provider=self.name)
        return "".join(part.text.value for part in replies[-1].content if part.type == "text")
