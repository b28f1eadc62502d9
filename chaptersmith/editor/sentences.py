"""Sentence segmentation with stable 1-based indices."""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from nltk.tokenize.punkt import PunktParameters, PunktSentenceTokenizer

ABBREVIATIONS = frozenset({
    "mr", "mrs", "ms", "dr", "st", "jr", "sr", "prof", "vs", "etc",
    "e.g", "i.e", "mt", "lt", "col", "gen", "capt", "sgt",
})

_LINE = re.compile(r"^.*$", re.MULTILINE)
# Terminal punctuation, optionally followed by closing quotes or brackets
_SENTENCE_END = re.compile(r"[.!?…]+[\"'”’)\]]*(?=\s|$)")


@dataclass(frozen=True)
class Sentence:
    index: int  # 1-based
    text: str
    start: int
    end: int


def _punkt_tokenizer() -> PunktSentenceTokenizer:
    # Built from explicit parameters so segmentation needs no downloaded nltk_data
    params = PunktParameters()
    params.abbrev_types = set(ABBREVIATIONS)
    return PunktSentenceTokenizer(params)


_PUNKT = _punkt_tokenizer()


def _blocks(text: str) -> Iterator[Tuple[int, int]]:
    """Paragraph spans: runs of non-blank lines, with headings standing alone."""
    start: Optional[int] = None
    end = 0
    for line in _LINE.finditer(text):
        content = line.group(0)
        heading = content.lstrip().startswith("#")
        if not content.strip() or heading:
            if start is not None:
                yield start, end
                start = None
            if heading:
                yield line.start(), line.end()
            continue
        if start is None:
            start = line.start()
        end = line.end()
    if start is not None:
        yield start, end


def _plain_spans(block: str) -> Iterator[Tuple[int, int]]:
    start = 0
    for end in _SENTENCE_END.finditer(block):
        yield start, end.end()
        start = end.end()
    yield start, len(block)


def _append(sentences: List[Sentence], text: str, start: int, end: int) -> None:
    segment = text[start:end]
    stripped = segment.strip()
    if not stripped:
        return
    start += len(segment) - len(segment.lstrip())
    sentences.append(Sentence(len(sentences) + 1, stripped, start, start + len(stripped)))


def segment_sentences(text: str, exceptions: bool = True) -> List[Sentence]:
    """Split ``text`` into sentences.

    Blank lines and heading lines separate paragraphs; a single line break
    inside a paragraph is ordinary whitespace. Within a paragraph the Punkt
    tokenizer ends sentences on ``.``, ``!`` or ``?`` but not after a known
    abbreviation, an initial or an ellipsis. With ``exceptions`` off every
    run of terminal punctuation followed by whitespace ends a sentence.
    """
    sentences: List[Sentence] = []
    for base, stop in _blocks(text):
        block = text[base:stop]
        spans = _PUNKT.span_tokenize(block) if exceptions else _plain_spans(block)
        for start, end in spans:
            _append(sentences, text, base + start, base + end)
    return sentences


def flat(text: str) -> str:
    """Collapse internal whitespace, as for a sentence wrapped over lines."""
    return " ".join(text.split())


_QUOTES = frozenset("\"'“”‘’«»")
_TRAILING = ".!?…,;: "


def loosely_equal(a: str, b: str) -> bool:
    """Same sentence up to case, spacing, quote marks and trailing punctuation."""
    return _loose(a) == _loose(b)


def _loose(text: str) -> str:
    unquoted = "".join(ch for ch in text if ch not in _QUOTES)
    return flat(unquoted.casefold()).rstrip(_TRAILING)


def index_sentences(sentences: Sequence[Sentence]) -> str:
    """Render sentences one per line, each tagged with its index."""
    return "\n".join(f"[{s.index}] {flat(s.text)}" for s in sentences)


def sentence_at(sentences: Sequence[Sentence], index: int) -> Optional[Sentence]:
    if 1 <= index <= len(sentences):
        return sentences[index - 1]
    return None
