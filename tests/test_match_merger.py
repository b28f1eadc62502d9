"""Tests for the consensus merge of provider findings."""

from chaptersmith.editor.match_merger import Match, collect, flatten, merge, merge_reports
from chaptersmith.editor.sentences import segment_sentences


def finding(match, sentence, index):
    return {"match": match, "sentence": sentence, "sentence_index": index}


def test_identical_reports_collapse_to_one():
    raw = finding("heart raced", "Her heart raced.", 4)
    groups = merge_reports({"a": {"heart raced": [raw]}, "b": {"heart raced": [dict(raw)]}})
    assert len(groups) == 1
    assert len(groups[0]) == 1
    match = groups[0].matches[0]
    assert match.sentence_index == 4
    assert match.provider in ("a", "b")


def test_same_sentence_different_substring_is_one_finding():
    groups = merge_reports({
        "a": {"heart": [finding("heart raced", "Her heart raced wildly.", 2)]},
        "b": {"heart": [finding("raced wildly", "Her heart raced wildly.", 2)]},
    })
    assert len(groups[0]) == 1


def test_same_substring_same_index_different_sentence_text_is_one_finding():
    groups = merge_reports({
        "a": {"heart": [finding("heart raced", "Her heart raced.", 2)]},
        "b": {"heart": [finding("heart raced", "Her heart raced!", 2)]},
    })
    assert len(groups[0]) == 1


def test_different_indices_are_kept_and_sorted():
    groups = merge_reports({
        "a": {"eerie": [finding("eerie", "An eerie glow.", 9), finding("eerie", "Eerie calm.", 3)]},
        "b": {"eerie": [finding("eerie", "An eerie sound.", 5)]},
    })
    assert [m.sentence_index for m in groups[0]] == [3, 5, 9]


def test_patterns_are_merged_separately():
    raw = finding("eerie", "An eerie glow.", 1)
    groups = merge_reports({"a": {"eerie": [raw], "glow": [raw]}})
    assert [g.pattern for g in groups] == ["eerie", "glow"]


def test_stray_values_are_discarded():
    matches = collect({"a": {"p": [
        "heart raced",
        42,
        None,
        {"match": "x", "sentence": "X."},
        {"match": "x", "sentence": "X.", "sentence_index": True},
        {"match": "x", "sentence": "X.", "sentence_index": 0},
        {"match": "x", "sentence": "X.", "sentence_index": "three"},
        {"match": "x", "sentence": "X.", "sentence_index": "3"},
    ]}})
    assert len(matches) == 1
    assert matches[0].sentence_index == 3


def test_one_provider_reports_each_sentence_once():
    groups = merge_reports({"a": {"eerie": [
        finding("eerie", "An eerie, eerie glow.", 2),
        finding("eerie glow", "An eerie, eerie glow.", 2),
    ]}})
    assert len(groups[0]) == 1
    indices = [(m.sentence_index, m.provider) for m in groups[0]]
    assert len(indices) == len(set(indices))


def test_collect_checks_indices_against_sentences():
    sentences = segment_sentences("One. Two.")
    matches = collect({"a": {"p": [
        {"match": "Two", "sentence_index": 2},
        {"match": "Three", "sentence_index": 3},
    ]}}, sentences)
    assert len(matches) == 1
    assert matches[0].sentence == "Two."


def sample_matches():
    return [
        Match("eerie", "eerie", "An eerie glow.", 4, "a"),
        Match("eerie", "eerie glow", "An eerie glow.", 4, "b"),
        Match("eerie", "eerie", "Eerie silence.", 2, "b"),
        Match("eerie", "eerie", "It was eerie.", 7, "a"),
        Match("tension", "tension", "Tension rose.", 4, "a"),
        Match("tension", "tension", "Tension rose.", 4, "c"),
        Match("tension", "the tension", "The tension broke.", 11, "c"),
    ]


def test_merge_is_idempotent():
    once = merge(sample_matches())
    assert merge(flatten(once)) == once


def test_merge_never_drops_unique_findings():
    matches = sample_matches()
    merged = {(m.pattern, m.sentence_index) for m in flatten(merge(matches))}
    assert merged == {(m.pattern, m.sentence_index) for m in matches}


def test_first_instance_is_kept():
    merged = merge(sample_matches())
    eerie = merged[0]
    assert eerie.matches[1] == Match("eerie", "eerie", "An eerie glow.", 4, "a")


def test_loose_sentence_text_takes_indexed_sentence():
    sentences = segment_sentences("One. Her heart raced. Three.")
    matches = collect({"a": {"p": [
        {"match": "heart raced", "sentence": "her heart raced", "sentence_index": 2},
        {"match": "heart raced", "sentence": "“Her heart raced.”", "sentence_index": 2},
    ]}}, sentences)
    assert [m.sentence for m in matches] == ["Her heart raced.", "Her heart raced."]
