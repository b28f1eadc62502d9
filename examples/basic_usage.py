"""Basic usage example for ChapterSmith."""

from dataclasses import replace

from chaptersmith import Book, BookConfig, BookGenerator, RunContext, RunMetrics, create_provider
from chaptersmith.ai import run_revision_pass
from chaptersmith.editor import PatternScanner, RevisionEngine
from chaptersmith.editor.decisions import Operation, PolicyDecisionSource, fixed_policy


def main():
    """Generate one short chapter, then rewrite anything clichéd in it."""

    config = replace(BookConfig(), num_chapters=1, chapter_fragments=2, chapter_fragment_words=800)
    metrics = RunMetrics()

    # Requires ANTHROPIC_API_KEY in the environment
    provider = create_provider("anthropic", config, metrics)
    book = Book(
        outline="Chapter 1: The Discovery - Sarah finds a time machine in her grandmother's attic.",
        instructions="Write in close third person, present tense.",
        genre="science fiction",
    )

    context = BookGenerator(provider, config).generate(RunContext(book=book, metrics=metrics))
    chapter = context.book.chapters[0]

    scanner = PatternScanner([provider], config.patterns)
    engine = RevisionEngine(
        PolicyDecisionSource(fixed_policy(Operation.CHANGE, "Say it plainly, without the cliché.")),
        provider=provider,
    )
    result = run_revision_pass(chapter.content, scanner, engine)

    print(result.text)
    print()
    print(metrics.summary())


if __name__ == "__main__":
    main()
