"""
tests/test_text.py — unit tests for the speech text pipeline.

Covers the individual stages (smart characters, line breaks, non-ASCII,
whitespace), both pipelines, and the length bound.
"""

from __future__ import annotations

import pytest

from voicestudio.core.text import (
    ACCENTS,
    SMART_CHARACTERS,
    SanitizationEmptyResult,
    clean_whitespace,
    normalize_line_breaks,
    replace_smart_characters,
    sanitize_for_tts,
    sanitize_non_ascii,
    sanitize_prompt,
    validate_text_length,
)

ZWSP = "\N{ZERO WIDTH SPACE}"
NBSP = "\N{NO-BREAK SPACE}"
BOM = "\N{ZERO WIDTH NO-BREAK SPACE}"

SCRIPT = (
    "Hello there.  \n"
    "    This is a test of the text to speech system.  \n"
    "    We are checking how line breaks affect the output.  \n"
    "    Does the voice pause here?  \n"
    "    Now let’s try a longer sentence, with a natural flow,  \n"
    "    to see if the pacing, emphasis, and tone sound correct.  \n"
    "    Finally, here is a short line.  \n"
    "    And another.  \n"
    "    Done."
)

SAMPLES = [
    "Plain ASCII text.",
    SCRIPT,
    "Café — naïve… “quoted” 25°C × 3 ÷ 2 © ® ™ • item",
    "Line one\r\n\r\n\r\n\r\nLine two\rLine three",
    f"Spaces{NBSP}and{ZWSP}zero\N{THIN SPACE}width\N{HAIR SPACE}here",
    "Mixed 你好 scripts Привет and émoji 🎉 end",
    "\tTabs\t\tand   spaces   \n\n  trailing  ",
    "a\N{LINE SEPARATOR}\N{LINE SEPARATOR}\N{LINE SEPARATOR}b",
    f"x\n\n{ZWSP}\n\ny",
    f"{BOM}Title\n{BOM}\n\nBody",
]


# ──────────────────────────────────────────────────────────────
# Replacement tables
# ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize("table", [SMART_CHARACTERS, ACCENTS], ids=["smart", "accents"])
def test_no_replacement_produces_a_lookup_key(table):
    # A single pass is only correct while no output feeds back into the table.
    keys = set(SMART_CHARACTERS) | set(ACCENTS)
    for src, out in table.items():
        assert not keys.intersection(out), f"{src!r} -> {out!r} contains a key"


@pytest.mark.parametrize("table", [SMART_CHARACTERS, ACCENTS], ids=["smart", "accents"])
def test_replacement_values_are_ascii(table):
    for out in table.values():
        assert all(ord(ch) <= 127 for ch in out)


def test_table_keys_are_single_characters():
    for key in list(SMART_CHARACTERS) + list(ACCENTS):
        assert len(key) == 1


# ──────────────────────────────────────────────────────────────
# replace_smart_characters
# ──────────────────────────────────────────────────────────────

def test_smart_quotes_become_ascii_quotes():
    assert replace_smart_characters("He said ‘hello’ and “goodbye” „low‚") == "He said 'hello' and \"goodbye\" \"low'"


def test_em_and_en_dashes():
    text = "The event—which was great—happened. Pages 1–10"
    assert replace_smart_characters(text) == "The event--which was great--happened. Pages 1-10"


def test_horizontal_bar_and_ellipsis():
    assert replace_smart_characters("Wait… what―now") == "Wait... what--now"


def test_special_symbols():
    text = "Temperature: 25°. Product™ is ® and ©"
    assert replace_smart_characters(text) == "Temperature: 25 degrees . ProductTM is (R) and (C)"


def test_math_symbols_and_bullet():
    assert replace_smart_characters("• 3×4 ÷ 2") == "* 3x4 / 2"


def test_special_spaces_and_separators():
    text = f"a{NBSP}b\N{THIN SPACE}c\N{HAIR SPACE}d{ZWSP}e\N{LINE SEPARATOR}f\N{PARAGRAPH SEPARATOR}g"
    assert replace_smart_characters(text) == "a b c de\nf\ng"


def test_smart_characters_leaves_other_text_alone():
    assert replace_smart_characters("Café 你好") == "Café 你好"


# ──────────────────────────────────────────────────────────────
# normalize_line_breaks
# ──────────────────────────────────────────────────────────────

def test_line_break_styles_are_unified():
    assert normalize_line_breaks("Line 1\r\nLine 2\rLine 3\nLine 4") == "Line 1\nLine 2\nLine 3\nLine 4"


def test_consecutive_breaks_are_limited():
    assert normalize_line_breaks("Paragraph 1\n\n\n\nParagraph 2") == "Paragraph 1\n\nParagraph 2"


def test_windows_paragraphs_are_limited():
    assert normalize_line_breaks("A\r\n\r\n\r\n\r\nB") == "A\n\nB"


def test_edge_blank_lines_are_dropped():
    assert normalize_line_breaks("\n\nHello\n") == "Hello"


def test_whitespace_only_lines_count_as_blank():
    # no run of three \n here, so the filter does the collapsing
    assert normalize_line_breaks("A\n  \n\t\nB") == "A\n\nB"


def test_lines_are_trimmed():
    assert normalize_line_breaks("  one  \n\ttwo\t") == "one\ntwo"


def test_script_keeps_its_lines():
    result = normalize_line_breaks(SCRIPT)
    assert "Hello there." in result
    assert "This is a test" in result
    assert len(result.split("\n")) == 9


# ──────────────────────────────────────────────────────────────
# sanitize_non_ascii
# ──────────────────────────────────────────────────────────────

def test_right_single_quote_is_replaced():
    assert sanitize_non_ascii("let’s try this") == "let's try this"


def test_accented_characters():
    assert sanitize_non_ascii("Café, naïve, résumé, Zürich") == "Cafe, naive, resume, Zurich"


def test_uppercase_accents_and_consonants():
    assert sanitize_non_ascii("ÀÉÎÕÜ ÑÇŽŠÝ ñçžšý") == "AEIOU NCZSY nczsy"


def test_unknown_characters_are_removed():
    # lossy on purpose: words can end up double-spaced
    assert sanitize_non_ascii("Test 你好 test") == "Test  test"


def test_unmapped_script_can_merge_words():
    assert sanitize_non_ascii("a→b") == "ab"


def test_ascii_control_characters_pass_through():
    assert sanitize_non_ascii("a\x07b") == "a\x07b"


# ──────────────────────────────────────────────────────────────
# clean_whitespace
# ──────────────────────────────────────────────────────────────

def test_multiple_spaces_collapse():
    assert clean_whitespace("Too    many     spaces") == "Too many spaces"


def test_outer_spaces_are_trimmed():
    assert clean_whitespace("  Leading and trailing  ") == "Leading and trailing"


def test_tabs_collapse():
    assert clean_whitespace("Tab\t\there") == "Tab here"


def test_each_line_is_trimmed_and_breaks_kept():
    assert clean_whitespace("  a  b  \n   c\t\n\nd ") == "a b\nc\n\nd"


# ──────────────────────────────────────────────────────────────
# sanitize_for_tts
# ──────────────────────────────────────────────────────────────

def test_script_pipeline_on_full_script():
    result = sanitize_for_tts(SCRIPT)
    assert "‘" not in result
    assert "’" not in result
    assert "let's" in result
    assert len(result.split("\n")) > 1
    assert all(ord(ch) <= 127 for ch in result)
    assert not any(line != line.strip() for line in result.split("\n"))


def test_script_pipeline_mixed_characters():
    text = "Test—with em-dash, ‘smart quotes’, and ellipsis… Plus 25° weather!"
    expected = "Test--with em-dash, 'smart quotes', and ellipsis... Plus 25 degrees weather!"
    assert sanitize_for_tts(text) == expected


def test_script_pipeline_keeps_paragraphs():
    assert sanitize_for_tts("First.\r\n\r\n\r\nSecond.\n") == "First.\n\nSecond."


def test_zero_width_only_script_raises():
    with pytest.raises(SanitizationEmptyResult, match="Text is empty after sanitization"):
        sanitize_for_tts(ZWSP * 3)


def test_unmapped_only_script_raises():
    with pytest.raises(SanitizationEmptyResult):
        sanitize_for_tts("你好 世界")


def test_empty_error_is_a_value_error():
    assert issubclass(SanitizationEmptyResult, ValueError)


@pytest.mark.parametrize("text", ["", None])
def test_empty_script_returns_empty_string(text):
    assert sanitize_for_tts(text) == ""


# ──────────────────────────────────────────────────────────────
# sanitize_prompt
# ──────────────────────────────────────────────────────────────

def test_prompt_line_breaks_become_spaces():
    assert sanitize_prompt("Speak with\na calm\nand friendly tone") == "Speak with a calm and friendly tone"


def test_prompt_full_cleanup():
    text = "Use a ‘friendly’  tone—speak   clearly\nand slowly"
    assert sanitize_prompt(text) == "Use a 'friendly' tone--speak clearly and slowly"


def test_prompt_paragraph_separator_is_flattened():
    assert sanitize_prompt("Calm.\N{PARAGRAPH SEPARATOR}Warm.") == "Calm. Warm."


def test_prompt_may_be_empty_after_cleanup():
    assert sanitize_prompt(ZWSP * 2) == ""


@pytest.mark.parametrize("text", ["", None])
def test_empty_prompt_returns_empty_string(text):
    assert sanitize_prompt(text) == ""


# ──────────────────────────────────────────────────────────────
# validate_text_length
# ──────────────────────────────────────────────────────────────

def test_short_text_is_unchanged():
    assert validate_text_length("Short text", 100) == "Short text"


def test_text_at_limit_is_unchanged():
    assert validate_text_length("x" * 20, 20) == "x" * 20


def test_cut_at_sentence_boundary():
    text = "This is the first sentence. This is the second sentence. This is the third."
    assert validate_text_length(text, 60) == "This is the first sentence. This is the second sentence."


def test_cut_at_question_or_exclamation():
    text = "Is this working? Yes it is! And this is extra text that should be cut."
    assert validate_text_length(text, 30) == "Is this working? Yes it is!"


def test_sentence_end_exactly_at_eighty_percent_counts():
    assert validate_text_length("abcdefgh. xyz more", 10) == "abcdefgh."


def test_cut_at_word_boundary_without_punctuation():
    text = "This is a very long sentence that goes on and on without any punctuation marks"
    result = validate_text_length(text, 50)
    assert result == "This is a very long sentence that goes on and on..."
    assert len(result) <= 53


def test_early_sentence_end_is_ignored():
    text = "Hi. " + "word " * 20
    assert validate_text_length(text, 50) == "Hi. " + " ".join(["word"] * 9) + "..."


def test_hard_cut_when_no_boundary_nearby():
    assert validate_text_length("a" * 100, 10) == "a" * 10 + "..."


# ──────────────────────────────────────────────────────────────
# Properties over sample inputs
# ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize("text", SAMPLES)
def test_outputs_are_ascii(text):
    for out in (sanitize_for_tts(text), sanitize_prompt(text)):
        assert all(ord(ch) <= 127 for ch in out)


@pytest.mark.parametrize("text", SAMPLES)
def test_prompt_never_contains_newlines(text):
    assert "\n" not in sanitize_prompt(text)


@pytest.mark.parametrize("text", SAMPLES)
def test_script_pipeline_is_idempotent(text):
    once = sanitize_for_tts(text)
    assert sanitize_for_tts(once) == once


@pytest.mark.parametrize("text", SAMPLES)
def test_prompt_pipeline_is_idempotent(text):
    once = sanitize_prompt(text)
    assert sanitize_prompt(once) == once


@pytest.mark.parametrize("limit", [1, 5, 17, 40, 64, 200])
@pytest.mark.parametrize("text", SAMPLES)
def test_length_bound_holds(text, limit):
    clean = sanitize_for_tts(text)
    out = validate_text_length(clean, limit)
    if out.endswith("...") and len(clean) > limit:
        assert len(out) <= limit + 3
    else:
        assert len(out) <= limit


# ──────────────────────────────────────────────────────────────
# Breaks that only appear after character cleanup
# ──────────────────────────────────────────────────────────────

def test_line_separators_are_capped_at_one_blank_line():
    assert sanitize_for_tts("a\N{LINE SEPARATOR}\N{LINE SEPARATOR}\N{LINE SEPARATOR}b") == "a\n\nb"


def test_zero_width_only_line_does_not_widen_a_paragraph_break():
    assert sanitize_for_tts(f"x\n\n{ZWSP}\n\ny") == "x\n\ny"


def test_separator_at_the_edges_is_dropped():
    assert sanitize_for_tts("\N{PARAGRAPH SEPARATOR}Hello\N{LINE SEPARATOR}") == "Hello"


def test_bom_is_removed():
    assert replace_smart_characters(f"{BOM}Hello") == "Hello"


def test_bom_only_line_counts_as_blank():
    assert sanitize_for_tts(f"a\n{BOM}\n\nb") == "a\n\nb"


def test_bom_only_script_raises():
    with pytest.raises(SanitizationEmptyResult):
        sanitize_for_tts(BOM * 2)


@pytest.mark.parametrize("text", SAMPLES)
def test_script_output_has_at_most_one_blank_line_and_no_edge_blanks(text):
    out = sanitize_for_tts(text)
    assert "\n\n\n" not in out
    assert out == out.strip("\n")
