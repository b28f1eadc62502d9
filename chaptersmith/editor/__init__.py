"""Parsing, scanning and revision modules."""

from .rules import Deletion, StatefulRule, Substitution, apply_rules, build_rules, default_rules
from .response_parser import ParseResult, ResponseParser, parse_response
from .sentences import Sentence, segment_sentences
from .pattern_scanner import PatternScanner, ScanResult
from .match_merger import Match, MatchGroup, merge, merge_reports
from .decisions import (
    ConsoleDecisionSource,
    DecisionSource,
    Operation,
    PolicyDecisionSource,
    RevisionDecision,
    Scope,
    ScriptedDecisionSource,
)
from .revision_engine import RevisionEngine, RevisionResult

__all__ = [
    "Deletion",
    "StatefulRule",
    "Substitution",
    "apply_rules",
    "build_rules",
    "default_rules",
    "ParseResult",
    "ResponseParser",
    "parse_response",
    "Sentence",
    "segment_sentences",
    "PatternScanner",
    "ScanResult",
    "Match",
    "MatchGroup",
    "merge",
    "merge_reports",
    "ConsoleDecisionSource",
    "DecisionSource",
    "Operation",
    "PolicyDecisionSource",
    "RevisionDecision",
    "Scope",
    "ScriptedDecisionSource",
    "RevisionEngine",
    "RevisionResult",
]
