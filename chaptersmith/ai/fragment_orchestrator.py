"""Fragment-by-fragment generation of one chapter."""

import logging
from enum import Enum
from typing import Optional, Sequence, Tuple

from ..core.book import Book, Chapter, Fragment
from ..core.config import BookConfig
from ..core.errors import EchoedResponseError
from ..core.metrics import RunMetrics
from ..editor.response_parser import parse_response
from ..editor.rules import Rule, TitleState, default_rules
from .base import ProviderAdapter, ProviderSession

logger = logging.getLogger(__name__)


class ChapterState(Enum):
    INIT = "init"
    GENERATING = "generating"
    DONE = "done"


def is_echo(response: str, prompt: str) -> bool:
    return response.strip() == prompt.strip()


class FragmentOrchestrator:
    """Drives ``Init -> Generating(1..N) -> Done`` for one chapter at a time.

    The provider session (and with it the memory context) lives exactly as
    long as one ``generate_chapter`` call. The title state of the rule chain
    is passed in and handed back, never kept here.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        config: Optional[BookConfig] = None,
        rules: Optional[Sequence[Rule]] = None,
        metrics: Optional[RunMetrics] = None,
    ):
        self.provider = provider
        self.config = config or BookConfig()
        self.rules = list(default_rules() if rules is None else rules)
        self.metrics = metrics
        self.state = ChapterState.INIT

    def build_prompt(self, fragment_index: int, content_prompt: str, preamble: str = "") -> str:
        framing = self.config.initial_prompt if fragment_index == 1 else self.config.continue_prompt
        prompt = f"{framing} {content_prompt}".strip()
        return f"{preamble}\n\n{prompt}" if preamble else prompt

    def reference_for(self, book: Book) -> str:
        return self.config.reference_prompt.format(genre=book.genre or "fiction", outline=book.outline)

    def preamble_for(self, book: Book) -> str:
        """Outline and instructions, sent with every request when there is no session."""
        return "\n\n".join(part for part in (self.reference_for(book), book.instructions) if part)

    def generate_chapter(
        self,
        chapter_number: int,
        content_prompt: str,
        book: Book,
        seen_titles: TitleState = frozenset(),
    ) -> Tuple[Chapter, TitleState]:
        """Generate exactly ``config.chapter_fragments`` fragments."""
        self.state = ChapterState.INIT
        total = self.config.chapter_fragments
        chapter = Chapter(number=chapter_number, max_fragments=total)

        session: Optional[ProviderSession] = None
        if self.config.use_memory:
            session = self.provider.open_session(self.reference_for(book), book.instructions)
        preamble = "" if session is not None else self.preamble_for(book)

        try:
            self.state = ChapterState.GENERATING
            for index in range(1, total + 1):
                logger.info(f"Generating fragment {index}/{total} of chapter {chapter_number} "
                            f"with {self.provider.name}")
                prompt = self.build_prompt(index, content_prompt, preamble)
                try:
                    raw = self._request(prompt, index, session)
                except EchoedResponseError as e:
                    logger.error(f"{e}; accepting an empty fragment")
                    chapter.add_fragment(Fragment(index=index, echoed=True))
                    continue

                parsed = parse_response(raw, self.rules, seen_titles)
                seen_titles = parsed.state
                chapter.add_fragment(Fragment(index=index, content=parsed.fragment, summary=parsed.summary))
                if session is not None:
                    session.memory.append(index, raw)
        finally:
            if session is not None:
                self.provider.close_session(session)

        chapter.seal()
        self.state = ChapterState.DONE
        if self.metrics is not None:
            self.metrics.record_chapter(chapter.word_count)
        if chapter.echoed_fragments:
            logger.warning(f"Chapter {chapter_number}: fragments {chapter.echoed_fragments} accepted empty "
                           "after repeated echoes")
        logger.info(f"Chapter {chapter_number} done: {chapter.word_count} words")
        return chapter, seen_titles

    def _request(self, prompt: str, index: int, session: Optional[ProviderSession]) -> str:
        """Call the provider; one corrective request if it echoes the prompt back."""
        raw = self._call(prompt, index, session)
        if not is_echo(raw, prompt):
            return raw

        logger.warning(f"{self.provider.name} echoed the prompt for fragment {index}, sending corrective prompt")
        corrective = self.config.corrective_prompt
        raw = self._call(corrective, index, session)
        if is_echo(raw, prompt) or is_echo(raw, corrective):
            raise EchoedResponseError(f"Fragment {index} echoed twice", provider=self.provider.name)
        return raw

    def _call(self, prompt: str, index: int, session: Optional[ProviderSession]) -> str:
        if session is None:
            return self.provider.generate(prompt, index)
        return self.provider.generate_with_memory(prompt, session)
