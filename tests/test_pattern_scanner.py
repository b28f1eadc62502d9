"""Tests for the multi-provider pattern scan."""

import json

import pytest

from chaptersmith.core.config import TargetPattern
from chaptersmith.core.errors import ConfigurationError, TransientProviderError
from chaptersmith.editor.match_merger import merge_reports
from chaptersmith.editor.pattern_scanner import STRICT_REMINDER, PatternScanner, build_scan_prompt

from conftest import FakeProvider, fast_policy

TEXT = "The night was cold. Her heart raced. She ran."
HEART = TargetPattern(name="heart raced")


def findings(*items):
    return json.dumps([{"match": m, "sentence": s, "sentence_index": i} for m, s, i in items])


def test_malformed_twice_degrades_to_empty():
    broken = FakeProvider(["not json", "still not json"], name="a")
    good = FakeProvider([findings(("heart raced", "Her heart raced.", 2))], name="b")
    scan = PatternScanner([broken, good], [HEART]).scan(TEXT)

    assert scan.reports["a"]["heart raced"] == []
    assert scan.failures == [("a", "heart raced")]
    assert len(broken.prompts) == 2
    assert broken.prompts[1].endswith(STRICT_REMINDER)

    groups = merge_reports(scan.reports, scan.sentences)
    assert [(m.provider, m.sentence_index) for m in groups[0]] == [("b", 2)]


def test_malformed_once_then_valid():
    provider = FakeProvider(["Sorry, here you go", findings(("heart raced", "Her heart raced.", 2))])
    scan = PatternScanner([provider], [HEART]).scan(TEXT)
    assert len(scan.reports["fake"]["heart raced"]) == 1
    assert scan.failures == []


def test_fatal_provider_error_degrades_to_empty():
    failing = FakeProvider([TransientProviderError("down")] * 2, name="a",
                           retry_policy=fast_policy(max_attempts=2))
    good = FakeProvider([findings(("heart raced", "Her heart raced.", 2))], name="b")
    scan = PatternScanner([failing, good], [HEART]).scan(TEXT)
    assert scan.reports["a"]["heart raced"] == []
    assert scan.raw_match_count == 1


def test_one_prompt_per_pattern_per_provider():
    patterns = [HEART, TargetPattern(name="eerie"), TargetPattern(name="repeats", kind="duplicate")]
    providers = [FakeProvider(default="[]", name="a"), FakeProvider(default="[]", name="b")]
    scan = PatternScanner(providers, patterns).scan(TEXT)
    for provider in providers:
        assert len(provider.prompts) == 3
        assert set(scan.reports[provider.name]) == {"heart raced", "eerie", "repeats"}


def test_prompt_carries_indexed_sentences():
    provider = FakeProvider(default="[]")
    PatternScanner([provider], [HEART]).scan(TEXT)
    prompt = provider.prompts[0]
    assert "[1] The night was cold.\n[2] Her heart raced.\n[3] She ran." in prompt
    assert '"heart raced"' in prompt


def test_fenced_json_is_accepted():
    fenced = "```json\n" + findings(("heart raced", "Her heart raced.", 2)) + "\n```"
    scan = PatternScanner([FakeProvider([fenced])], [HEART]).scan(TEXT)
    assert scan.reports["fake"]["heart raced"][0]["sentence_index"] == 2


def test_duplicate_pattern_prompt():
    prompt = build_scan_prompt(TargetPattern(name="dupes", kind="duplicate"), "[1] A.")
    assert "repeats content" in prompt
    assert "[1] A." in prompt


def test_empty_text_makes_no_calls():
    provider = FakeProvider()
    scan = PatternScanner([provider], [HEART]).scan("   ")
    assert scan.sentences == []
    assert provider.prompts == []


def test_no_providers_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        PatternScanner([], [HEART])
