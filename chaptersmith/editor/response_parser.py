"""Split raw model output into fragment and summary, then normalize it."""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from .rules import Rule, TitleState, apply_rules, default_rules

# Unicode dash punctuation (category Pd)
DASHES = (
    "-֊־᐀᠆‐‑‒–—―"
    "⸗⸚⸺⸻⹀〜〰゠︱︲﹘﹣－"
)

# A short run of dashes or emphasis markers alone on its own line
SUMMARY_DELIMITER = re.compile(
    r"^[ \t]*(?:[" + re.escape(DASHES) + r"]{1,3}|\*{1,3})[ \t]*$",
    re.MULTILINE,
)


@dataclass(frozen=True)
class ParseResult:
    fragment: str
    summary: str
    state: TitleState


def split_summary(raw_text: str):
    """Return ``(fragment, summary)`` split on the first summary delimiter."""
    parts = SUMMARY_DELIMITER.split(raw_text, maxsplit=1)
    if len(parts) < 2:
        return raw_text.strip(), ""
    return parts[0].strip(), parts[1].strip()


def parse_response(
    raw_text: str,
    rules: Optional[Sequence[Rule]] = None,
    state: TitleState = frozenset(),
) -> ParseResult:
    """Split ``raw_text`` and run the rule chain over the fragment half."""
    fragment, summary = split_summary(raw_text)
    if rules:
        fragment, state = apply_rules(fragment, rules, state)
    return ParseResult(fragment=fragment, summary=summary, state=state)


class ResponseParser:
    """A parser bound to one rule chain."""

    def __init__(self, rules: Optional[Sequence[Rule]] = None):
        self.rules = list(default_rules() if rules is None else rules)

    def parse(self, raw_text: str, state: TitleState = frozenset()) -> ParseResult:
        return parse_response(raw_text, self.rules, state)
