"""Tests for the normalization rule chain."""

import re

import pytest

from chaptersmith.core.errors import ConfigurationError
from chaptersmith.editor.rules import (
    Deletion,
    StatefulRule,
    Substitution,
    apply_rules,
    build_rules,
    dedupe_chapter_title,
    default_rules,
)


def test_repeated_bold_title_keeps_first():
    text = "Intro.\n**Chapter 1: The Start**\nBody.\n**Chapter 1: The Start**\nMore."
    result, state = apply_rules(text, default_rules())
    assert result == "Intro.\n\n# Chapter 1: The Start\n\nBody.\n\nMore."
    assert len(state) == 1


def test_title_at_start_of_text():
    text = "**Chapter 1: The Start**\n...**Chapter 1: The Start**..."
    result, _ = apply_rules(text, default_rules())
    assert result.startswith("# Chapter 1: The Start")
    assert result.count("Chapter 1: The Start") == 1


def test_title_removed_however_often_repeated():
    heading = "# Chapter 3: Night"
    text = "\n\n".join([heading, "One.", heading, "Two.", heading, "Three.", heading])
    result, _ = apply_rules(text, default_rules())
    assert result.count(heading) == 1
    assert result == f"{heading}\n\nOne.\n\nTwo.\n\nThree."


def test_state_carries_across_calls():
    _, state = apply_rules("# Chapter 1: Dawn\n\nText.", default_rules())
    result, new_state = apply_rules("# chapter 1:  DAWN\n\nMore.", default_rules(), state)
    assert result == "More."
    assert new_state == state


def test_different_titles_are_kept():
    result, state = apply_rules("# Chapter 1: Dawn\n\nA.\n\n# Chapter 2: Dusk\n\nB.", default_rules())
    assert "# Chapter 1: Dawn" in result
    assert "# Chapter 2: Dusk" in result
    assert len(state) == 2


def test_lower_headings_and_quotes_normalized():
    result, _ = apply_rules('## Chapter 2: "Night"\n\nText.\n\n---', default_rules())
    assert result == "# Chapter 2: Night\n\nText."


def test_default_chain_is_idempotent():
    samples = [
        "Intro.\n**Chapter 1: The Start**\nBody.\n**Chapter 1: The Start**\nMore.",
        '## Chapter 2: "Night"\n\nText.\n\n\n\nMore text.\n***\n',
        "Plain text without anything special.",
        "### Scene\n\nShe ran.\n___\nHe followed.",
    ]
    for sample in samples:
        once, _ = apply_rules(sample, default_rules())
        twice, _ = apply_rules(once, default_rules())
        assert twice == once


def test_rules_apply_in_order():
    rules = [
        Substitution("a_to_b", re.compile("a"), "b"),
        Substitution("b_to_c", re.compile("b"), "c"),
    ]
    result, _ = apply_rules("aab", rules)
    assert result == "ccc"


def test_deletion_rule():
    result, _ = apply_rules("Keep [note] this.", [Deletion("notes", re.compile(r" ?\[note\]"))])
    assert result == "Keep this."


def test_stateful_rule_receives_explicit_state():
    seen = []

    def count(matched, state):
        seen.append(matched)
        return matched.upper(), state | {matched}

    rule = StatefulRule("upper", re.compile(r"\bx\w*"), count)
    result, state = apply_rules("xa yb xc", [rule], frozenset({"old"}))
    assert result == "XA yb XC"
    assert state == frozenset({"old", "xa", "xc"})
    assert seen == ["xa", "xc"]


def test_dedupe_function_inserts_separator():
    replacement, state = dedupe_chapter_title("# Chapter 1: A", frozenset())
    assert replacement == "\n\n# Chapter 1: A"
    again, same = dedupe_chapter_title("\n# Chapter 1: A", state)
    assert again == ""
    assert same == state


def test_build_rules_from_specs():
    rules = build_rules([
        {"name": "ellipsis", "kind": "substitution", "pattern": r"\.\.\.", "replacement": "…"},
        {"name": "notes", "kind": "deletion", "pattern": r"^NOTE:.*$", "flags": ["multiline"]},
        {"name": "titles", "kind": "stateful", "pattern": r"\n*^#[ \t]*chapter \d+.*$",
         "flags": ["IGNORECASE", "MULTILINE"], "function": "dedupe_chapter_titles"},
    ])
    assert [type(r) for r in rules] == [Substitution, Deletion, StatefulRule]
    result, _ = apply_rules("# Chapter 1\n\nWait...\nNOTE: drop me\n# Chapter 1", rules)
    assert result == "# Chapter 1\n\nWait…"


@pytest.mark.parametrize("spec", [
    {"name": "bad", "kind": "mystery", "pattern": "x"},
    {"name": "bad", "kind": "stateful", "pattern": "x", "function": "nope"},
    {"name": "bad", "kind": "substitution", "pattern": "x"},
    {"name": "bad", "kind": "deletion", "pattern": "("},
    {"name": "bad", "kind": "deletion", "pattern": "x", "flags": ["VERBOSE!"]},
])
def test_invalid_rule_specs(spec):
    with pytest.raises(ConfigurationError):
        build_rules([spec])
