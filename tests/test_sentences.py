"""Tests for sentence segmentation."""

from chaptersmith.editor.sentences import flat, index_sentences, segment_sentences, sentence_at


def texts(sentences):
    return [s.text for s in sentences]


def test_basic_split_and_indices():
    sentences = segment_sentences("The night was cold. Her heart raced! Did she run?")
    assert texts(sentences) == ["The night was cold.", "Her heart raced!", "Did she run?"]
    assert [s.index for s in sentences] == [1, 2, 3]


def test_offsets_point_into_text():
    text = "  First one.   Second one.\n\nThird one."
    for sentence in segment_sentences(text):
        assert text[sentence.start:sentence.end] == sentence.text


def test_abbreviations_do_not_split():
    text = "Mr. Smith met Dr. Jones. They talked."
    assert texts(segment_sentences(text)) == ["Mr. Smith met Dr. Jones.", "They talked."]


def test_exceptions_can_be_disabled():
    text = "Mr. Smith went home. He slept."
    assert len(segment_sentences(text, exceptions=False)) == 3
    assert len(segment_sentences(text, exceptions=True)) == 2


def test_ellipsis_does_not_split():
    text = "He waited... Nothing happened. Then rain."
    assert texts(segment_sentences(text)) == ["He waited... Nothing happened.", "Then rain."]


def test_initials_do_not_split():
    assert texts(segment_sentences("J. R. Tolkien wrote it. Done.")) == ["J. R. Tolkien wrote it.", "Done."]


def test_wrapped_lines_stay_one_sentence():
    text = "One. Her heart raced as the door\nswung open. Three."
    sentences = segment_sentences(text)
    assert [flat(s.text) for s in sentences] == ["One.", "Her heart raced as the door swung open.", "Three."]
    assert index_sentences(sentences).splitlines()[1] == "[2] Her heart raced as the door swung open."
    for sentence in sentences:
        assert text[sentence.start:sentence.end] == sentence.text


def test_blank_lines_and_headings_end_sentences():
    text = "# Chapter 1: Dawn\nShe woke and the sun rose\n\nover the hills."
    assert texts(segment_sentences(text)) == [
        "# Chapter 1: Dawn",
        "She woke and the sun rose",
        "over the hills.",
    ]


def test_closing_quotes_stay_with_sentence():
    assert texts(segment_sentences('She said "go." He went.')) == ['She said "go."', "He went."]


def test_empty_text():
    assert segment_sentences("") == []
    assert segment_sentences("\n\n   \n") == []


def test_index_sentences_format():
    sentences = segment_sentences("One. Two.")
    assert index_sentences(sentences) == "[1] One.\n[2] Two."


def test_sentence_at():
    sentences = segment_sentences("One. Two.")
    assert sentence_at(sentences, 2).text == "Two."
    assert sentence_at(sentences, 0) is None
    assert sentence_at(sentences, 3) is None
