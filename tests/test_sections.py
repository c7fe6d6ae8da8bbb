"""Section heading detection."""
from dataclasses import replace
from core.sections import assign_sections, section_of
from helpers import chunk


def test_short_heading_opens_section():
    assert section_of(chunk(0, "2. Methods")) == "methods"
    assert section_of(chunk(0, "Materials and Methods")) == "methods"
    assert section_of(chunk(0, "Conclusions")) == "discussion"


def test_short_plain_sentence_does_not_open_section():
    assert section_of(chunk(0, "Results were similar.")) is None
    assert section_of(chunk(0, "Results:")) == "results"
    assert section_of(replace(chunk(0, "Results were similar."), is_bold=True)) == "results"


def test_long_sentence_starting_with_heading_word_is_not_a_heading():
    text = "Results of the earlier trial were inconclusive and are not repeated here."
    assert section_of(chunk(0, text)) is None
    assert section_of(replace(chunk(0, text), is_heading=True)) == "results"


def test_assign_sections_labels_title_block_and_following_text():
    chunks = [
        chunk(0, "A randomized trial of something."),
        chunk(1, "Abstract"),
        chunk(2, "We studied things."),
        chunk(3, "Methods", page=2),
        chunk(4, "Patients were enrolled.", page=2),
    ]
    labelled = assign_sections(chunks)
    assert [c.section_name for c in labelled] == [
        "title",
        "abstract",
        "abstract",
        "methods",
        "methods",
    ]


def test_text_before_any_heading_after_first_page_is_unlabelled():
    labelled = assign_sections([chunk(0, "Stray text.", page=2)])
    assert labelled[0].section_name is None
