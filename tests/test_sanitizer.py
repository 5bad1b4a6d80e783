from __future__ import annotations

import pytest

from kyozai.sanitizer import (
    DEFAULT_HEADING,
    contains_target_script,
    count_latin_words,
    has_meta_commentary,
    is_latin_run,
    keep_line,
    sanitize_response,
    strip_leading_reasoning,
)


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "本文だけで見出しがない",
        "## 小見出しから始まる",
        "We are asked to write a summary.\n\nLet me think about it.",
        "# 光合成 - まとめシート\n\n## 1. 概要",
    ],
)
def test_output_always_starts_with_heading(raw):
    assert sanitize_response(raw).startswith("#")
    assert not sanitize_response(raw).startswith("##")


def test_placeholder_heading_injected():
    assert sanitize_response("本文のみ") == f"{DEFAULT_HEADING}\n\n本文のみ"
    assert sanitize_response("").startswith(DEFAULT_HEADING)


def test_five_latin_words_dropped_four_kept():
    five = "Photosynthesis converts light into energy"
    four = "Photosynthesis converts light energy"
    assert count_latin_words(five) == 5 and is_latin_run(five)
    assert count_latin_words(four) == 4 and not is_latin_run(four)
    out = sanitize_response(f"# 光合成\n\n{five}\n{four}")
    assert five not in out
    assert four in out


def test_lines_with_japanese_are_always_kept():
    line = "ATP (adenosine triphosphate) is the energy currency とよばれる"
    assert contains_target_script(line)
    assert keep_line(line)


def test_meta_commentary_lines_are_dropped():
    assert has_meta_commentary("Now output")
    assert not keep_line("Now output")
    assert keep_line("DNA RNA")
    assert keep_line("1. ____ (2)")


def test_leading_reasoning_paragraphs_removed():
    raw = (
        "We are given a text about photosynthesis.\nThe user wants a summary.\n\n"
        "Let me produce the sheet.\n\n"
        "# 光合成 - まとめシート\n\n## 1. 概要\n- 植物は光を使って糖をつくる"
    )
    assert strip_leading_reasoning(raw).startswith("# 光合成")
    out = sanitize_response(raw)
    assert out.startswith("# 光合成 - まとめシート")
    assert "We are" not in out
    assert "## 1. 概要" in out


def test_latin_preamble_before_first_heading_removed():
    raw = "Sure! Here it is:\n# 小テスト\n\n## 問1. 光合成とは何か"
    assert sanitize_response(raw).startswith("# 小テスト")


def test_blank_runs_collapse_to_one():
    out = sanitize_response("# 見出し\n\n\n\n\n本文")
    assert out == "# 見出し\n\n本文"


def test_reasoning_removed_mid_text_only_by_line_filter():
    raw = "# 見出し\n\n本文です。\nI will now double check the output format carefully.\n続き"
    out = sanitize_response(raw)
    assert "double check" not in out
    assert "本文です。" in out and "続き" in out


def test_reasoning_sentence_without_blank_line_keeps_content():
    raw = "We are asked to write a summary.\n# 光合成 - まとめシート\n## 1. 概要\n- 植物は光を使う\n## 2. 材料\n- 水"
    out = sanitize_response(raw)
    assert out == "# 光合成 - まとめシート\n## 1. 概要\n- 植物は光を使う\n## 2. 材料\n- 水"


def test_reasoning_paragraph_stops_at_heading():
    raw = "Let me write the quiz.\n# 小テスト\n\n## 問1. 光合成とは何か"
    out = sanitize_response(raw)
    assert out.startswith("# 小テスト\n\n## 問1.")
    assert "Let me" not in out
