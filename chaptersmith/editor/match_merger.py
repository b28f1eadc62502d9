"""Consensus merge of match reports from several providers."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .sentences import Sentence, loosely_equal, sentence_at

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Match:
    pattern: str
    match: str
    sentence: str
    sentence_index: int
    provider: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "match": self.match,
            "sentence": self.sentence,
            "sentence_index": self.sentence_index,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class MatchGroup:
    """All findings for one pattern, ordered by sentence index."""

    pattern: str
    matches: Tuple[Match, ...] = ()

    def __iter__(self):
        return iter(self.matches)

    def __len__(self) -> int:
        return len(self.matches)


def _normalize(text: str) -> str:
    return " ".join(text.casefold().split())


def _sentence_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        index = value
    elif isinstance(value, str) and value.strip().isdigit():
        index = int(value.strip())
    else:
        return None
    return index if index >= 1 else None


def to_match(raw: Any, pattern: str, provider: str,
             sentences: Optional[Sequence[Sentence]] = None) -> Optional[Match]:
    """Validate one raw finding; ``None`` when it is not a usable finding object."""
    if not isinstance(raw, dict):
        return None
    index = _sentence_index(raw.get("sentence_index"))
    if index is None:
        return None
    sentence = str(raw.get("sentence") or "").strip()
    if sentences is not None:
        known = sentence_at(sentences, index)
        if known is None:
            return None
        if not sentence or loosely_equal(sentence, known.text):
            # Reported text is a loose copy of the indexed sentence
            sentence = known.text
    return Match(
        pattern=pattern,
        match=str(raw.get("match") or "").strip(),
        sentence=sentence,
        sentence_index=index,
        provider=provider,
    )


def collect(reports: Mapping[str, Mapping[str, Iterable[Any]]],
            sentences: Optional[Sequence[Sentence]] = None) -> List[Match]:
    """Flatten ``{provider: {pattern: [raw, ...]}}`` into matches, dropping stray values."""
    matches = []
    discarded = 0
    for provider, by_pattern in reports.items():
        for pattern, raws in by_pattern.items():
            for raw in raws:
                match = to_match(raw, pattern, provider, sentences)
                if match is None:
                    discarded += 1
                else:
                    matches.append(match)
    if discarded:
        logger.info(f"Discarded {discarded} malformed findings")
    return matches


def same_finding(a: Match, b: Match) -> bool:
    """Whether two matches for one pattern describe the same occurrence.

    Both must point at the same sentence index, and then either the matched
    text or the sentence text must agree. A provider reports each occurrence
    once, so two entries from one provider at one index also collapse.
    """
    if a.sentence_index != b.sentence_index:
        return False
    return (
        a.provider == b.provider
        or _normalize(a.match) == _normalize(b.match)
        or _normalize(a.sentence) == _normalize(b.sentence)
    )


def merge(matches: Iterable[Match]) -> List[MatchGroup]:
    """Deduplicate per pattern, keeping the first instance of each finding.

    Groups come out in the order their patterns first appear and are sorted
    by sentence index. Merging an already merged set returns it unchanged.
    """
    kept: Dict[str, List[Match]] = {}
    for match in matches:
        group = kept.setdefault(match.pattern, [])
        if any(same_finding(match, other) for other in group):
            continue
        group.append(match)
    return [
        MatchGroup(pattern, tuple(sorted(group, key=lambda m: m.sentence_index)))
        for pattern, group in kept.items()
    ]


def flatten(groups: Iterable[MatchGroup]) -> List[Match]:
    return [match for group in groups for match in group]


def merge_reports(reports: Mapping[str, Mapping[str, Iterable[Any]]],
                  sentences: Optional[Sequence[Sentence]] = None) -> List[MatchGroup]:
    groups = merge(collect(reports, sentences))
    logger.info(f"Merged findings into {len(groups)} groups, "
                f"{sum(len(g) for g in groups)} matches")
    return groups
