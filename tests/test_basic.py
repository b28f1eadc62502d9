"""Basic tests for ChapterSmith models."""

import pytest
from chaptersmith.core import Book, Chapter, Fragment, RunContext


def test_fragment_creation():
    """Test fragment creation."""
    fragment = Fragment(index=1, content="This is a test fragment.", summary="A test.")
    assert fragment.index == 1
    assert fragment.summary == "A test."
    assert fragment.word_count == 5
    assert not fragment.echoed


def test_chapter_creation():
    """Test chapter creation."""
    chapter = Chapter(number=1, max_fragments=2)
    chapter.add_fragment(Fragment(index=1, content="One two."))
    chapter.add_fragment(Fragment(index=2, content="Three."))
    assert chapter.content == "One two.\n\nThree."
    assert chapter.word_count == 3


def test_chapter_rejects_extra_fragments():
    """A chapter never holds more than its configured fragments."""
    chapter = Chapter(number=1, max_fragments=1)
    chapter.add_fragment(Fragment(index=1, content="Only."))
    with pytest.raises(ValueError):
        chapter.add_fragment(Fragment(index=2, content="Extra."))


def test_sealed_chapter_is_closed():
    chapter = Chapter(number=1, max_fragments=3)
    chapter.seal()
    with pytest.raises(ValueError):
        chapter.add_fragment(Fragment(index=1))


def test_chapter_round_trip():
    chapter = Chapter(number=2, max_fragments=2)
    chapter.add_fragment(Fragment(index=1, content="Text.", summary="Sum.", echoed=False))
    chapter.add_fragment(Fragment(index=2, echoed=True))
    restored = Chapter.from_dict(chapter.to_dict())
    assert restored.number == 2
    assert restored.echoed_fragments == [2]
    assert restored.content == "Text."


def test_run_context_advance_is_pure():
    """Advancing returns a new context and leaves the old one alone."""
    context = RunContext(book=Book(outline="Outline"))
    chapter = Chapter(number=1, max_fragments=1)
    advanced = context.advance(chapter, frozenset({"# chapter 1: x"}))
    assert context.book.chapters == ()
    assert context.seen_titles == frozenset()
    assert advanced.book.chapters == (chapter,)
    assert advanced.metrics is context.metrics
