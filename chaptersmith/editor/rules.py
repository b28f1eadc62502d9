"""Normalization rules applied to generated fragments.

A rule chain is an ordered list of three rule kinds:

* ``Substitution`` replaces every match with a literal (backreferences allowed);
* ``StatefulRule`` hands each match and the current state to a function that
  returns the replacement and the new state;
* ``Deletion`` removes every match.

State is explicit: ``apply_rules`` takes it and returns the updated value,
so a caller that wants titles remembered across fragments and chapters keeps
the returned state and passes it back in.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Pattern, Sequence, Tuple, Union

from ..core.errors import ConfigurationError

TitleState = FrozenSet[str]
StateFunction = Callable[[str, TitleState], Tuple[str, TitleState]]


@dataclass(frozen=True)
class Substitution:
    name: str
    pattern: Pattern[str]
    replacement: str

    def apply(self, text: str, state: TitleState) -> Tuple[str, TitleState]:
        return self.pattern.sub(self.replacement, text), state


@dataclass(frozen=True)
class StatefulRule:
    name: str
    pattern: Pattern[str]
    func: StateFunction

    def apply(self, text: str, state: TitleState) -> Tuple[str, TitleState]:
        pieces: List[str] = []
        last = 0
        for match in self.pattern.finditer(text):
            replacement, state = self.func(match.group(0), state)
            pieces.append(text[last:match.start()])
            pieces.append(replacement)
            last = match.end()
        pieces.append(text[last:])
        return "".join(pieces), state


@dataclass(frozen=True)
class Deletion:
    name: str
    pattern: Pattern[str]

    def apply(self, text: str, state: TitleState) -> Tuple[str, TitleState]:
        return self.pattern.sub("", text), state


Rule = Union[Substitution, StatefulRule, Deletion]


def title_key(title: str) -> str:
    """Comparison key for chapter titles: case and spacing insensitive."""
    return " ".join(title.lstrip("#").casefold().split())


def dedupe_chapter_title(matched: str, seen: TitleState) -> Tuple[str, TitleState]:
    """Keep the first occurrence of a title after a blank line; drop repeats."""
    title = matched.strip()
    key = title_key(title)
    if key in seen:
        return "", seen
    return "\n\n" + title, seen | {key}


# Built-in stateful functions, addressable by name from YAML rule specs
STATEFUL_FUNCTIONS: Dict[str, StateFunction] = {
    "dedupe_chapter_titles": dedupe_chapter_title,
}

CHAPTER_TITLE = re.compile(r"\n*^#[ \t]*chapter[ \t]+\d{1,3}\b[^\n]*$", re.IGNORECASE | re.MULTILINE)


def default_rules() -> List[Rule]:
    """The standard chain for cleaning up chapter fragments."""
    return [
        Substitution(
            "convert_bolded_titles_to_h1",
            re.compile(r"\*\*(chapter \d{1,3}:.*?)\*\*", re.IGNORECASE),
            r"\n\n# \1\n\n",
        ),
        Substitution(
            "convert_lower_headings_to_h1",
            re.compile(r"^#{2,6}(?=[ \t])", re.MULTILINE),
            "#",
        ),
        Substitution(
            "remove_quotes_around_chapter_titles",
            re.compile(r"chapter (\d{1,3}): [\"“](.+?)[\"”]", re.IGNORECASE),
            r"Chapter \1: \2",
        ),
        StatefulRule("remove_extraneous_chapter_titles", CHAPTER_TITLE, dedupe_chapter_title),
        Deletion(
            "remove_horizontal_bars",
            re.compile(r"^[ \t]*(?:-{3,}|\*{3,}|_{3,})[ \t]*$", re.MULTILINE),
        ),
        Substitution("collapse_blank_lines", re.compile(r"\n{3,}"), "\n\n"),
    ]


def apply_rules(text: str, rules: Iterable[Rule], state: TitleState = frozenset()) -> Tuple[str, TitleState]:
    """Run each rule on the previous rule's output, threading state through."""
    for rule in rules:
        text, state = rule.apply(text, state)
    return text.strip(), state


_FLAG_NAMES = {
    "IGNORECASE": re.IGNORECASE,
    "MULTILINE": re.MULTILINE,
    "DOTALL": re.DOTALL,
}


def _compile(spec: Dict[str, Any]) -> Pattern[str]:
    flags = 0
    for flag in spec.get("flags", []):
        try:
            flags |= _FLAG_NAMES[flag.upper()]
        except KeyError:
            raise ConfigurationError(f"Unknown regex flag '{flag}' in rule {spec.get('name')}")
    try:
        return re.compile(spec["pattern"], flags)
    except (KeyError, re.error) as e:
        raise ConfigurationError(f"Invalid pattern in rule {spec.get('name')}: {e}") from e


def build_rules(specs: Sequence[Dict[str, Any]]) -> List[Rule]:
    """Build a rule chain from plain mappings (as read from YAML).

    Each mapping has ``name``, ``kind`` (substitution, deletion or
    stateful), ``pattern`` and optional ``flags``; substitutions add
    ``replacement`` and stateful rules add ``function``, the name of a
    built-in stateful function.
    """
    rules: List[Rule] = []
    for spec in specs:
        name = spec.get("name", f"rule_{len(rules) + 1}")
        kind = spec.get("kind")
        pattern = _compile(spec)
        if kind == "substitution":
            if "replacement" not in spec:
                raise ConfigurationError(f"Substitution rule {name} needs a replacement")
            rules.append(Substitution(name, pattern, spec["replacement"]))
        elif kind == "deletion":
            rules.append(Deletion(name, pattern))
        elif kind == "stateful":
            func = STATEFUL_FUNCTIONS.get(spec.get("function", ""))
            if func is None:
                raise ConfigurationError(
                    f"Stateful rule {name} must name one of {sorted(STATEFUL_FUNCTIONS)}"
                )
            rules.append(StatefulRule(name, pattern, func))
        else:
            raise ConfigurationError(f"Rule {name}: kind must be substitution, deletion or stateful")
    return rules
