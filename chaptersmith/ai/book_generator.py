"""Book-level driver: chapters in sequence, then optional revision."""

import logging
from typing import Optional, Sequence

from ..core.book import RunContext
from ..core.config import BookConfig
from ..editor.match_merger import merge_reports
from ..editor.pattern_scanner import PatternScanner
from ..editor.revision_engine import RevisionEngine, RevisionResult
from ..editor.rules import Rule, build_rules, default_rules
from .base import ProviderAdapter
from .fragment_orchestrator import FragmentOrchestrator

logger = logging.getLogger(__name__)

REVISION_PROMPT = (
    "Please revise the following chapter content:\n\n{chapter}\n\nREVISIONS:\n{recommendations}\n"
    "Do NOT change the chapter title or number; it must remain the same as the original and must "
    "accurately reflect the outline.\n\nReturn ONLY the revised chapter content."
)


def rules_for(config: BookConfig) -> Sequence[Rule]:
    """The configured rule chain, or the default one."""
    if config.rules is None:
        return default_rules()
    return build_rules(config.rules)


class BookGenerator:
    """Generates a book chapter by chapter with one provider.

    Every call takes a ``RunContext`` and returns the next one; nothing about
    the run is stored on the generator.
    """

    def __init__(self, provider: ProviderAdapter, config: Optional[BookConfig] = None,
                 rules: Optional[Sequence[Rule]] = None):
        self.provider = provider
        self.config = config or BookConfig()
        self.rules = list(rules_for(self.config) if rules is None else rules)

    def generate(self, context: RunContext, number_of_chapters: Optional[int] = None) -> RunContext:
        total = number_of_chapters or self.config.num_chapters
        orchestrator = FragmentOrchestrator(self.provider, self.config, self.rules, context.metrics)
        first = len(context.book.chapters) + 1
        logger.info(f"Generating chapters {first}-{first + total - 1} with {self.provider.name}")

        for number in range(first, first + total):
            chapter, seen_titles = orchestrator.generate_chapter(
                number,
                self.config.content_prompt(number),
                context.book,
                context.seen_titles,
            )
            context = context.advance(chapter, seen_titles)
        return context

    def revise_chapter(self, chapter_text: str, recommendations: str) -> str:
        """Rewrite a whole chapter against free-text recommendations."""
        logger.info("Revising chapter against recommendations")
        prompt = REVISION_PROMPT.format(chapter=chapter_text, recommendations=recommendations)
        return self.provider.generate(prompt).strip()


def run_revision_pass(text: str, scanner: PatternScanner, engine: RevisionEngine) -> RevisionResult:
    """Scan, merge and revise one chapter against a single sentence indexing."""
    scan = scanner.scan(text)
    if scan.failures:
        logger.warning(f"{len(scan.failures)} provider/pattern scans contributed nothing")
    groups = merge_reports(scan.reports, scan.sentences)
    return engine.revise(text, groups, scan.sentences)
