"""Revision decisions and the sources that supply them."""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

import click

from ..core.errors import InvalidDecisionError
from .match_merger import Match, MatchGroup


class Operation(Enum):
    KEEP = "keep"
    CHANGE = "change"
    DELETE = "delete"


class Scope(Enum):
    SINGLE_MATCH = "single-match"
    GROUP = "group"
    GLOBAL = "global"


class RewriteVerdict(Enum):
    ACCEPT = "accept"
    RETRY = "retry"
    KEEP_ORIGINAL = "keep-original"


@dataclass(frozen=True)
class RevisionDecision:
    """What to do with a match.

    ``scope`` widens a decision taken at a narrower level: a per-match
    decision with ``GROUP`` scope also covers the rest of its group, one with
    ``GLOBAL`` scope covers every remaining match.
    """

    operation: Operation
    scope: Scope = Scope.SINGLE_MATCH
    replacement: Optional[str] = None
    instruction: Optional[str] = None

    def validate(self) -> "RevisionDecision":
        if self.operation is Operation.CHANGE:
            if self.replacement is None and not (self.instruction or "").strip():
                raise InvalidDecisionError("A change needs a replacement or a rewrite instruction")
            if self.replacement is not None and self.instruction:
                raise InvalidDecisionError("A change takes a replacement or an instruction, not both")
            if self.replacement is not None and not self.replacement.strip():
                raise InvalidDecisionError("An empty replacement is a deletion; choose delete instead")
        return self

    @classmethod
    def keep(cls, scope: Scope = Scope.SINGLE_MATCH) -> "RevisionDecision":
        return cls(Operation.KEEP, scope)

    @classmethod
    def delete(cls, scope: Scope = Scope.SINGLE_MATCH) -> "RevisionDecision":
        return cls(Operation.DELETE, scope)

    @classmethod
    def change(cls, replacement: Optional[str] = None, instruction: Optional[str] = None,
               scope: Scope = Scope.SINGLE_MATCH) -> "RevisionDecision":
        return cls(Operation.CHANGE, scope, replacement=replacement, instruction=instruction)


@dataclass(frozen=True)
class DecisionContext:
    """What a decision is being asked for: all groups, one group, or one match."""

    scope: Scope
    groups: Sequence[MatchGroup]
    group: Optional[MatchGroup] = None
    match: Optional[Match] = None
    attempt: int = 0  # re-asks after an invalid decision


@dataclass(frozen=True)
class RewriteProposal:
    match: Match
    original: str
    proposal: str
    attempt: int


class DecisionSource(ABC):
    """Supplies revision decisions, interactively or from a script or policy."""

    @abstractmethod
    def choose_scope(self, groups: Sequence[MatchGroup]) -> Scope:
        ...

    @abstractmethod
    def next_decision(self, context: DecisionContext) -> RevisionDecision:
        ...

    @abstractmethod
    def review_rewrite(self, proposal: RewriteProposal) -> RewriteVerdict:
        ...


class ScriptedDecisionSource(DecisionSource):
    """Replays queued decisions and rewrite verdicts in order.

    Running out of verdicts keeps the original sentence; running out of
    decisions is an invalid decision.
    """

    def __init__(self, decisions: Iterable[RevisionDecision] = (), scope: Scope = Scope.SINGLE_MATCH,
                 verdicts: Iterable[RewriteVerdict] = ()):
        self.scope = scope
        self.decisions = deque(decisions)
        self.verdicts = deque(verdicts)
        self.contexts: List[DecisionContext] = []
        self.proposals: List[RewriteProposal] = []

    def choose_scope(self, groups):
        return self.scope

    def next_decision(self, context):
        self.contexts.append(context)
        if not self.decisions:
            raise InvalidDecisionError("No scripted decisions left")
        return self.decisions.popleft()

    def review_rewrite(self, proposal):
        self.proposals.append(proposal)
        if not self.verdicts:
            return RewriteVerdict.KEEP_ORIGINAL
        return self.verdicts.popleft()


class PolicyDecisionSource(DecisionSource):
    """Decides with a callable, for unattended runs."""

    def __init__(self, policy: Callable[[DecisionContext], RevisionDecision], scope: Scope = Scope.GLOBAL,
                 reviewer: Optional[Callable[[RewriteProposal], RewriteVerdict]] = None):
        self.policy = policy
        self.scope = scope
        self.reviewer = reviewer or (lambda proposal: RewriteVerdict.ACCEPT)

    def choose_scope(self, groups):
        return self.scope

    def next_decision(self, context):
        return self.policy(context)

    def review_rewrite(self, proposal):
        return self.reviewer(proposal)


def fixed_policy(operation: Operation, instruction: Optional[str] = None) -> Callable[[DecisionContext], RevisionDecision]:
    """A policy that gives the same answer for everything."""
    decision = RevisionDecision(operation, instruction=instruction).validate()
    return lambda context: decision


SCOPE_CHOICES = {"g": Scope.GLOBAL, "p": Scope.GROUP, "m": Scope.SINGLE_MATCH}
OPERATION_CHOICES = {"k": Operation.KEEP, "c": Operation.CHANGE, "d": Operation.DELETE}
VERDICT_CHOICES = {"a": RewriteVerdict.ACCEPT, "r": RewriteVerdict.RETRY, "k": RewriteVerdict.KEEP_ORIGINAL}


def parse_choice(value: str, choices: dict):
    key = (value or "").strip().lower()[:1]
    if key not in choices:
        raise InvalidDecisionError(f"'{value}' is not one of {', '.join(sorted(choices))}")
    return choices[key]


class ConsoleDecisionSource(DecisionSource):
    """Asks the operator through click prompts, re-prompting on invalid input."""

    def __init__(self, prompt: Callable[..., str] = click.prompt, echo: Callable[..., None] = click.echo):
        self.prompt = prompt
        self.echo = echo

    def _ask(self, text: str, choices: dict):
        while True:
            try:
                return parse_choice(self.prompt(text), choices)
            except InvalidDecisionError as e:
                self.echo(f"Invalid choice: {e}", err=True)

    def choose_scope(self, groups):
        total = sum(len(g) for g in groups)
        self.echo(f"\n{total} matches in {len(groups)} pattern groups")
        for group in groups:
            self.echo(f"  {group.pattern}: {len(group)}")
        return self._ask("Decide [g]lobally, per [p]attern group, or per [m]atch", SCOPE_CHOICES)

    def next_decision(self, context):
        if context.match is not None:
            match = context.match
            self.echo(f"\n[{match.sentence_index}] {match.sentence}")
            self.echo(f"  pattern: {match.pattern}  match: {match.match!r}  (via {match.provider})")
        elif context.group is not None:
            self.echo(f"\nPattern '{context.group.pattern}' ({len(context.group)} matches):")
            for match in context.group:
                self.echo(f"  [{match.sentence_index}] {match.sentence}")
        else:
            self.echo("\nOne decision for every match")

        operation = self._ask("[k]eep, [c]hange or [d]elete", OPERATION_CHOICES)
        if operation is not Operation.CHANGE:
            return RevisionDecision(operation)
        how = self._ask("[l]iteral replacement or [r]ewrite by provider", {"l": "literal", "r": "rewrite"})
        if how == "literal":
            return RevisionDecision.change(replacement=self.prompt("Replacement sentence"))
        return RevisionDecision.change(instruction=self.prompt("Rewrite instruction"))

    def review_rewrite(self, proposal):
        self.echo(f"\nOriginal: {proposal.original}")
        self.echo(f"Proposed ({proposal.attempt}): {proposal.proposal}")
        return self._ask("[a]ccept, [r]etry or [k]eep original", VERDICT_CHOICES)
