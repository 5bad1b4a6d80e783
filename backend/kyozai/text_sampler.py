from __future__ import annotations
import re

ELISION_MARKER = "\n...(中略)...\n"

HEAD_RATIO = 0.45
MIDDLE_RATIO = 0.20

_HORIZONTAL_WS = re.compile(r"[ \t\f\v\u00a0]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


def sample_text(text: str, budget: int) -> str:
    """Return a representative excerpt of ``text`` no longer than ``budget``.

    Text that fits is returned normalized and otherwise untouched. Longer text
    becomes head + middle + tail slices joined by ``ELISION_MARKER``, because
    key terms and conclusions often sit far from the beginning of a document.
    The result never exceeds ``budget + 2 * len(ELISION_MARKER)``.
    """
    normalized = normalize_text(text)
    budget = max(int(budget or 0), 0)
    if len(normalized) <= budget:
        return normalized

    head_len = int(budget * HEAD_RATIO)
    middle_len = int(budget * MIDDLE_RATIO)
    tail_len = budget - head_len - middle_len

    total = len(normalized)
    head = normalized[:head_len]

    middle_start = max(total // 2 - middle_len // 2, head_len)
    middle_end = min(middle_start + middle_len, total)
    middle = normalized[middle_start:middle_end]

    tail_start = max(total - tail_len, middle_end)
    tail = normalized[tail_start:]

    return ELISION_MARKER.join([head.rstrip(), middle.strip(), tail.lstrip()])
