"""Remove English reasoning that models leak into Japanese output.

Each check is a small named predicate so it can be exercised on its own.
"""
from __future__ import annotations
import re
from typing import List

HEADING_MARKER = "#"
DEFAULT_HEADING = "# 教材"
LATIN_RUN_THRESHOLD = 5

REASONING_OPENERS = (
    "We are",
    "I am",
    "You are",
    "The user is asking",
    "Let's see",
    "I need to",
    "I can",
    "I'll",
    "Let me",
    "Now, to",
    "I will",
    "The text appears to be",
    "The text is",
    "The output should be",
    "So, I need to",
)

# A reasoning paragraph ends at the first blank line and never spans a heading
_REASONING_PARAGRAPH = re.compile(
    r"\A\s*(?:" + "|".join(re.escape(o) for o in REASONING_OPENERS) + r")\b(?:(?!\n#).)*?\n[ \t]*\n",
    re.DOTALL,
)
_TARGET_SCRIPT = re.compile(r"[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\uff00-\uffef\u4e00-\u9faf]")
_LATIN_LETTER = re.compile(r"[A-Za-z]")
_LATIN_WORD = re.compile(r"\b[A-Za-z]+\b")
_META_COMMENTARY = re.compile(
    r"\b(?:I|we|let's|need|must|should|will|can|could|would|let me|now|so|the text|the user|the output)\b",
    re.IGNORECASE,
)
_BLANK_RUNS = re.compile(r"\n{3,}")


def is_blank_line(line: str) -> bool:
    return not line.strip()


def contains_target_script(line: str) -> bool:
    return bool(_TARGET_SCRIPT.search(line))


def has_latin_letters(line: str) -> bool:
    return bool(_LATIN_LETTER.search(line))


def has_meta_commentary(line: str) -> bool:
    return bool(_META_COMMENTARY.search(line))


def count_latin_words(line: str) -> int:
    return len(_LATIN_WORD.findall(line))


def is_latin_run(line: str) -> bool:
    return count_latin_words(line) >= LATIN_RUN_THRESHOLD


def keep_line(line: str) -> bool:
    if is_blank_line(line) or contains_target_script(line) or not has_latin_letters(line):
        return True
    if has_meta_commentary(line) or is_latin_run(line):
        return False
    return True


def strip_leading_reasoning(text: str) -> str:
    """Drop reasoning paragraphs and any Latin preamble before the first heading."""
    cleaned = text
    while True:
        stripped = _REASONING_PARAGRAPH.sub("", cleaned, count=1)
        if stripped == cleaned:
            break
        cleaned = stripped
    cleaned = cleaned.lstrip()
    title_index = cleaned.find(HEADING_MARKER)
    if title_index > 0 and has_latin_letters(cleaned[:title_index]):
        cleaned = cleaned[title_index:]
    return cleaned


def filter_lines(text: str) -> str:
    lines: List[str] = [line for line in text.split("\n") if keep_line(line)]
    return "\n".join(lines)


def collapse_blank_lines(text: str) -> str:
    return _BLANK_RUNS.sub("\n\n", text)


def is_top_level_heading(text: str) -> bool:
    return text.startswith(HEADING_MARKER) and not text.startswith(HEADING_MARKER * 2)


def ensure_heading(text: str, default_heading: str = DEFAULT_HEADING) -> str:
    body = text.strip()
    if is_top_level_heading(body):
        return body
    return f"{default_heading}\n\n{body}"


def sanitize_response(text: str, *, default_heading: str = DEFAULT_HEADING) -> str:
    """Clean raw model output for display. Always starts with a heading."""
    cleaned = strip_leading_reasoning((text or "").replace("\r\n", "\n"))
    cleaned = filter_lines(cleaned)
    cleaned = collapse_blank_lines(cleaned)
    return ensure_heading(cleaned, default_heading)
