"""Shared fixtures: scripted providers with no network and no sleeping."""

from typing import Callable, List, Optional, Sequence, Union

import pytest

from chaptersmith.ai.base import ProviderAdapter, ProviderSession
from chaptersmith.core.config import BookConfig, RetryPolicy
from chaptersmith.core.metrics import RunMetrics

Response = Union[str, Exception, Callable[[str], str]]


class FakeProvider(ProviderAdapter):
    """Replays scripted responses; an Exception entry is raised instead."""

    def __init__(self, responses: Sequence[Response] = (), name: str = "fake",
                 default: Optional[str] = None, **kwargs):
        kwargs.setdefault("retry_policy", fast_policy())
        kwargs.setdefault("sleep", lambda seconds: None)
        super().__init__(**kwargs)
        self.name = name
        self.responses: List[Response] = list(responses)
        self.default = default
        self.prompts: List[str] = []
        self.sessions: List[ProviderSession] = []
        self.closed_sessions: List[ProviderSession] = []

    def _next(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            if self.default is None:
                raise AssertionError(f"{self.name}: no scripted response left")
            return self.default
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response

    def _complete(self, prompt):
        return self._next(prompt)

    def _complete_with_memory(self, prompt, session):
        self.sessions.append(session)
        return self._next(prompt)

    def close_session(self, session):
        super().close_session(session)
        self.closed_sessions.append(session)


def fast_policy(**overrides) -> RetryPolicy:
    values = dict(retry_delay=0, post_call_delay=0, poll_interval=0)
    values.update(overrides)
    return RetryPolicy(**values)


@pytest.fixture
def metrics():
    return RunMetrics()


@pytest.fixture
def config():
    return BookConfig(num_chapters=2, chapter_fragments=3, retry=fast_policy())


@pytest.fixture
def make_provider():
    def factory(responses=(), name="fake", **kwargs):
        return FakeProvider(responses, name=name, **kwargs)
    return factory
