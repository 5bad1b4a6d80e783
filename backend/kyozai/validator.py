from __future__ import annotations
import math
import re
from typing import List

from pydantic import BaseModel, Field

from .options import GenerationOptions, MaterialType
from .sanitizer import is_top_level_heading

_BLANK_PATTERNS = (
    re.compile(r"_{3,}"),
    re.compile(r"□{2,}"),
    re.compile(r"（[\u3000 ]{2,}）"),
)
_NUMBERED_ITEM = re.compile(
    r"^\s*(?:\d+\s*[.．)）]|[（(]\d+[)）]|#{2,3}\s*(?:問|Question|Q)\s*\d+)",
    re.IGNORECASE,
)
_QUESTION_HEADING = re.compile(r"^\s*#{2,3}\s*(?:問|Question|Q)\s*\d+", re.IGNORECASE)
_SECTION_HEADING = re.compile(r"^##(?!#)\s*\S")
_FLASHCARD = re.compile(r"^\s*\d+\s*[.．)）]\s*(?:Q|Ｑ|問)\s*[:：]")
_ANSWER_KEY = re.compile(r"^\s*(?:#+\s*)?(?:解答|正解|答え|Answers?)", re.MULTILINE | re.IGNORECASE)


class ValidationResult(BaseModel):
    valid: bool = True
    reasons: List[str] = Field(default_factory=list)


def has_title_heading(content: str) -> bool:
    return is_top_level_heading(content.lstrip())


def count_blanks(content: str) -> int:
    return sum(len(p.findall(content)) for p in _BLANK_PATTERNS)


def _count_lines(pattern: re.Pattern, content: str) -> int:
    return sum(1 for line in content.splitlines() if pattern.search(line))


def count_numbered_items(content: str) -> int:
    return _count_lines(_NUMBERED_ITEM, content)


def count_quiz_questions(content: str) -> int:
    """Questions above the answer key; `## 問N` headings win over plain numbered lines."""
    key = _ANSWER_KEY.search(content)
    body = content[: key.start()] if key else content
    headings = _count_lines(_QUESTION_HEADING, body)
    return headings or count_numbered_items(body)


def count_section_headings(content: str) -> int:
    return _count_lines(_SECTION_HEADING, content)


def count_flashcards(content: str) -> int:
    return _count_lines(_FLASHCARD, content)


def has_answer_key(content: str) -> bool:
    return bool(_ANSWER_KEY.search(content))


def required_count(requested: int, ratio: float, floor: int) -> int:
    return max(floor, math.floor(requested * ratio))


def validate_content(material_type: MaterialType, content: str, options: GenerationOptions) -> ValidationResult:
    """Structural check of generated content. Collects every problem found."""
    material_type = MaterialType.coerce(material_type)
    reasons: List[str] = []

    if not has_title_heading(content):
        reasons.append("タイトル行（「# 」で始まる見出し）がありません。")

    if material_type is MaterialType.FILL_IN_BLANK:
        need = required_count(options.question_count, 0.5, 3)
        found = count_blanks(content)
        if found < need:
            reasons.append(f"空欄が不足しています（{found}個、{need}個以上必要）。")
    elif material_type is MaterialType.QUIZ:
        need = required_count(options.question_count, 0.5, 3)
        found = count_quiz_questions(content)
        if found < need:
            reasons.append(f"問題数が不足しています（{found}問、{need}問以上必要）。")
        if not has_answer_key(content):
            reasons.append("「解答:」の解答セクションがありません。")
    elif material_type is MaterialType.SUMMARY:
        need = required_count(options.section_count, 0.6, 2)
        found = count_section_headings(content)
        if found < need:
            reasons.append(f"「## 」で始まるセクション見出しが不足しています（{found}個、{need}個以上必要）。")
    elif material_type is MaterialType.ASSIGNMENT:
        need = required_count(options.assignment_count, 0.6, 1)
        found = count_numbered_items(content)
        if found < need:
            reasons.append(f"課題の数が不足しています（{found}件、{need}件以上必要）。")
    elif material_type is MaterialType.FLASHCARDS:
        need = required_count(options.card_count, 0.5, 5)
        found = count_flashcards(content)
        if found < need:
            reasons.append(f"「1. Q：」形式のカードが不足しています（{found}枚、{need}枚以上必要）。")

    return ValidationResult(valid=not reasons, reasons=reasons)
