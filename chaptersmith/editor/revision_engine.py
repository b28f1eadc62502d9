"""Apply keep/change/delete decisions to a merged match set."""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..ai.base import ProviderAdapter
from ..core.errors import ConfigurationError, InvalidDecisionError
from .decisions import (
    DecisionContext,
    DecisionSource,
    Operation,
    RevisionDecision,
    RewriteProposal,
    RewriteVerdict,
    Scope,
)
from .match_merger import Match, MatchGroup, flatten
from .sentences import Sentence, loosely_equal, segment_sentences

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedEdit:
    match: Match
    operation: Operation
    applied: bool
    original: str = ""
    replacement: Optional[str] = None  # None for deletions and skipped edits


@dataclass
class RevisionResult:
    text: str
    edits: List[AppliedEdit] = field(default_factory=list)
    sentences: List[Sentence] = field(default_factory=list)  # re-segmented revised text

    @property
    def applied(self) -> List[AppliedEdit]:
        return [e for e in self.edits if e.applied and e.operation is not Operation.KEEP]


def build_rewrite_prompt(match: Match, original: str, before: str, after: str,
                         instruction: str, rejected: Sequence[str]) -> str:
    parts = [
        f'Rewrite the following sentence from a novel so that it no longer contains the pattern '
        f'"{match.pattern}" (flagged text: "{match.match}").',
        f"Instruction: {instruction}",
    ]
    if before:
        parts.append(f"Preceding sentence: {before}")
    parts.append(f"Sentence to rewrite: {original}")
    if after:
        parts.append(f"Following sentence: {after}")
    if rejected:
        parts.append("Do not reuse these rejected rewrites:\n" + "\n".join(f"- {r}" for r in rejected))
    parts.append("Return ONLY the rewritten sentence.")
    return "\n\n".join(parts)


def _newlines(gap: str) -> int:
    return gap.count("\n")


def render(text: str, sentences: Sequence[Sentence], current: Dict[int, Optional[str]]) -> str:
    """Rebuild ``text`` with sentences replaced or removed.

    Whitespace between kept sentences is preserved. Around a removed
    sentence the gap with more line breaks survives, so paragraphs stay
    apart and no doubled spaces are left behind.
    """
    if not sentences:
        return text
    out: List[str] = []
    carry: Optional[str] = None
    prev_end = 0
    for sentence in sentences:
        gap = text[prev_end:sentence.start]
        prev_end = sentence.end
        if carry is not None and _newlines(gap) <= _newlines(carry):
            gap = carry
        if not out:
            gap = text[:sentences[0].start]
        new_text = current.get(sentence.index, sentence.text)
        if new_text is None:
            carry = gap
            continue
        out.append(gap)
        out.append(new_text)
        carry = None
    out.append(text[prev_end:])
    return "".join(out)


class RevisionEngine:
    """Walks the match set with a ``DecisionSource`` and edits the chapter.

    Decisions are gathered first, then applied in original sentence order
    against the sentence indices of the scan. Each edit touches exactly one
    sentence; a match whose sentence was already changed, or whose text no
    longer agrees with the indexed sentence, is skipped.
    """

    def __init__(self, decisions: DecisionSource, provider: Optional[ProviderAdapter] = None,
                 max_rewrites: int = 3, max_invalid: int = 3, split_exceptions: bool = True):
        self.decisions = decisions
        self.provider = provider
        self.max_rewrites = max_rewrites
        self.max_invalid = max_invalid
        self.split_exceptions = split_exceptions

    def revise(self, text: str, groups: Sequence[MatchGroup],
               sentences: Optional[Sequence[Sentence]] = None) -> RevisionResult:
        if sentences is None:
            sentences = segment_sentences(text, exceptions=self.split_exceptions)
        groups = [g for g in groups if len(g)]
        if not groups:
            return RevisionResult(text=text, sentences=list(sentences))

        scope = self.decisions.choose_scope(groups)
        logger.info(f"Revising {sum(len(g) for g in groups)} matches, scope {scope.value}")
        plan = self._plan(scope, groups)
        current, edits = self._apply(plan, sentences)
        revised = render(text, sentences, current)
        return RevisionResult(
            text=revised,
            edits=edits,
            sentences=segment_sentences(revised, exceptions=self.split_exceptions),
        )

    # Decision gathering

    def _ask(self, context: DecisionContext) -> RevisionDecision:
        for attempt in range(self.max_invalid):
            try:
                return self.decisions.next_decision(replace(context, attempt=attempt)).validate()
            except InvalidDecisionError as e:
                logger.warning(f"Invalid decision, asking again: {e}")
        raise InvalidDecisionError(f"No valid decision after {self.max_invalid} attempts")

    def _plan(self, scope: Scope, groups: Sequence[MatchGroup]) -> List[Tuple[Match, RevisionDecision]]:
        if scope is Scope.GLOBAL:
            decision = self._ask(DecisionContext(Scope.GLOBAL, groups))
            return [(match, decision) for match in flatten(groups)]

        plan = []
        sticky: Optional[RevisionDecision] = None  # a decision widened to every remaining match
        for group in groups:
            if scope is Scope.GROUP:
                decision = sticky or self._ask(DecisionContext(Scope.GROUP, groups, group=group))
                if decision.scope is Scope.GLOBAL:
                    sticky = decision
                plan.extend((match, decision) for match in group)
                continue

            group_decision: Optional[RevisionDecision] = None
            for match in group:
                decision = sticky or group_decision or self._ask(
                    DecisionContext(Scope.SINGLE_MATCH, groups, group=group, match=match)
                )
                if decision.scope is Scope.GLOBAL:
                    sticky = decision
                elif decision.scope is Scope.GROUP:
                    group_decision = decision
                plan.append((match, decision))
        return plan

    # Application

    def _locate(self, match: Match, sentences: Sequence[Sentence],
                current: Dict[int, Optional[str]]) -> Optional[Sentence]:
        """The indexed sentence a match refers to, if it is still unedited."""
        if 1 <= match.sentence_index <= len(sentences):
            sentence = sentences[match.sentence_index - 1]
            if not match.sentence or loosely_equal(match.sentence, sentence.text):
                return sentence if sentence.index not in current else None
        # Index and text disagree: take the nearest unedited sentence with that text
        candidates = [s for s in sentences if loosely_equal(s.text, match.sentence) and s.index not in current]
        if not candidates:
            return None
        return min(candidates, key=lambda s: abs(s.index - match.sentence_index))

    def _apply(self, plan: List[Tuple[Match, RevisionDecision]],
               sentences: Sequence[Sentence]) -> Tuple[Dict[int, Optional[str]], List[AppliedEdit]]:
        current: Dict[int, Optional[str]] = {}
        edits: List[AppliedEdit] = []
        for match, decision in sorted(plan, key=lambda item: item[0].sentence_index):
            if decision.operation is Operation.KEEP:
                edits.append(AppliedEdit(match, Operation.KEEP, applied=True, original=match.sentence))
                continue

            sentence = self._locate(match, sentences, current)
            if sentence is None:
                logger.info(f"Sentence {match.sentence_index} no longer present, skipping '{match.pattern}'")
                edits.append(AppliedEdit(match, decision.operation, applied=False, original=match.sentence))
                continue

            if decision.operation is Operation.DELETE:
                current[sentence.index] = None
                edits.append(AppliedEdit(match, Operation.DELETE, applied=True, original=sentence.text))
                continue

            if decision.replacement is not None:
                new_text = decision.replacement.strip()
            else:
                new_text = self._rewrite(match, sentence, sentences, current, decision.instruction)
            if new_text is None:
                edits.append(AppliedEdit(match, Operation.KEEP, applied=True, original=sentence.text))
                continue
            current[sentence.index] = new_text
            edits.append(AppliedEdit(match, Operation.CHANGE, applied=True,
                                     original=sentence.text, replacement=new_text))
        return current, edits

    def _neighbour(self, sentences: Sequence[Sentence], current: Dict[int, Optional[str]], index: int) -> str:
        if not 1 <= index <= len(sentences):
            return ""
        text = current.get(index, sentences[index - 1].text)
        return text or ""

    def _rewrite(self, match: Match, sentence: Sentence, sentences: Sequence[Sentence],
                 current: Dict[int, Optional[str]], instruction: str) -> Optional[str]:
        """Proposed -> Accepted | Rejected -> Proposed | KeptOriginal.

        Returns the accepted text, or ``None`` to keep the original.
        """
        if self.provider is None:
            raise ConfigurationError("A provider is required for rewrite instructions")
        rejected: List[str] = []
        for attempt in range(1, self.max_rewrites + 1):
            prompt = build_rewrite_prompt(
                match,
                sentence.text,
                self._neighbour(sentences, current, sentence.index - 1),
                self._neighbour(sentences, current, sentence.index + 1),
                instruction,
                rejected,
            )
            proposal = self.provider.generate(prompt).strip()
            verdict = self.decisions.review_rewrite(RewriteProposal(match, sentence.text, proposal, attempt))
            if verdict is RewriteVerdict.ACCEPT:
                return proposal
            if verdict is RewriteVerdict.KEEP_ORIGINAL:
                return None
            rejected.append(proposal)
        logger.info(f"No rewrite accepted for sentence {sentence.index} after {self.max_rewrites} proposals, "
                    "keeping original")
        return None
