"""Book, chapter and fragment models."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, FrozenSet, List

from .metrics import RunMetrics, word_count


@dataclass
class Fragment:
    """One generation call's normalized output."""

    index: int
    content: str = ""
    summary: str = ""
    echoed: bool = False  # accepted empty after a repeated echo
    word_count: int = field(init=False)

    def __post_init__(self):
        """Calculate word count after initialization."""
        self.word_count = word_count(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "content": self.content,
            "summary": self.summary,
            "echoed": self.echoed,
            "word_count": self.word_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fragment":
        return cls(
            index=data["index"],
            content=data.get("content", ""),
            summary=data.get("summary", ""),
            echoed=data.get("echoed", False),
        )


@dataclass
class Chapter:
    """An ordered sequence of fragments, sealed once generation is done."""

    number: int
    max_fragments: int
    fragments: List[Fragment] = field(default_factory=list)
    sealed: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def add_fragment(self, fragment: Fragment) -> None:
        if self.sealed:
            raise ValueError(f"Chapter {self.number} is sealed")
        if len(self.fragments) >= self.max_fragments:
            raise ValueError(
                f"Chapter {self.number} already holds {self.max_fragments} fragments"
            )
        self.fragments.append(fragment)

    def seal(self) -> None:
        self.sealed = True

    @property
    def content(self) -> str:
        """Fragment texts joined into the chapter body."""
        return "\n\n".join(f.content for f in self.fragments if f.content)

    @property
    def word_count(self) -> int:
        return sum(f.word_count for f in self.fragments)

    @property
    def echoed_fragments(self) -> List[int]:
        return [f.index for f in self.fragments if f.echoed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "max_fragments": self.max_fragments,
            "fragments": [f.to_dict() for f in self.fragments],
            "sealed": self.sealed,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chapter":
        chapter = cls(
            number=data["number"],
            max_fragments=data["max_fragments"],
            fragments=[Fragment.from_dict(f) for f in data.get("fragments", [])],
            sealed=data.get("sealed", False),
        )
        if "created_at" in data:
            chapter.created_at = datetime.fromisoformat(data["created_at"])
        return chapter


@dataclass(frozen=True)
class Book:
    """Reference material and generated chapters.

    Outline and instructions are fixed for the run; adding a chapter returns
    a new ``Book``.
    """

    outline: str
    instructions: str = ""
    genre: str = ""
    chapters: tuple = ()

    def with_chapter(self, chapter: Chapter) -> "Book":
        return replace(self, chapters=self.chapters + (chapter,))


@dataclass(frozen=True)
class RunContext:
    """Everything one stage hands to the next.

    ``seen_titles`` is the chapter-title dedup state of the rule chain; it is
    threaded through every parse call instead of living in a closure.
    """

    book: Book
    metrics: RunMetrics = field(default_factory=RunMetrics)
    seen_titles: FrozenSet[str] = frozenset()

    def advance(self, chapter: Chapter, seen_titles: FrozenSet[str]) -> "RunContext":
        return replace(self, book=self.book.with_chapter(chapter), seen_titles=seen_titles)
