from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MaterialType(str, Enum):
    FILL_IN_BLANK = "fill-in-blank"
    SUMMARY = "summary"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    FLASHCARDS = "flashcards"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "MaterialType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.OTHER


MATERIAL_LABELS: Dict[MaterialType, str] = {
    MaterialType.FILL_IN_BLANK: "穴埋めプリント",
    MaterialType.SUMMARY: "まとめシート",
    MaterialType.QUIZ: "小テスト",
    MaterialType.ASSIGNMENT: "課題",
    MaterialType.FLASHCARDS: "フラッシュカード",
    MaterialType.OTHER: "教材",
}


def material_label(material_type: Any) -> str:
    return MATERIAL_LABELS[MaterialType.coerce(material_type)]


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ProviderName(str, Enum):
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"

    @property
    def alternate(self) -> "ProviderName":
        return ProviderName.DEEPSEEK if self is ProviderName.GEMINI else ProviderName.GEMINI


class BlankStyle(str, Enum):
    UNDERLINE = "underline"
    BOX = "box"
    PARENTHESES = "parentheses"


class BlankNumberPosition(str, Enum):
    AFTER = "after"
    BEFORE = "before"
    ABOVE = "above"


class BlankNumberType(str, Enum):
    NUMERIC = "numeric"
    ALPHABETIC = "alphabetic"
    ROMAN = "roman"
    NONE = "none"


class QuizType(str, Enum):
    DESCRIPTIVE = "descriptive"
    MULTIPLE_CHOICE = "multiple-choice"
    MIXED = "mixed"


DEFAULT_TITLE = "教材"
DEFAULT_SUBJECT_AREA = "一般"
MAX_KEY_TERMS = 20

# (low, high, default)
COUNT_RANGES: Dict[str, tuple[int, int, int]] = {
    "question_count": (1, 100, 10),
    "section_count": (2, 15, 5),
    "assignment_count": (1, 20, 3),
    "card_count": (5, 50, 15),
}

# Labels the UI has used for difficulty over time
_DIFFICULTY_ALIASES: Dict[str, Difficulty] = {
    "beginner": Difficulty.BEGINNER,
    "easy": Difficulty.BEGINNER,
    "初級": Difficulty.BEGINNER,
    "低": Difficulty.BEGINNER,
    "intermediate": Difficulty.INTERMEDIATE,
    "medium": Difficulty.INTERMEDIATE,
    "中級": Difficulty.INTERMEDIATE,
    "中": Difficulty.INTERMEDIATE,
    "advanced": Difficulty.ADVANCED,
    "hard": Difficulty.ADVANCED,
    "上級": Difficulty.ADVANCED,
    "高": Difficulty.ADVANCED,
}

_PROVIDER_ALIASES: Dict[str, ProviderName] = {
    "gemini": ProviderName.GEMINI,
    "providera": ProviderName.GEMINI,
    "deepseek": ProviderName.DEEPSEEK,
    "providerb": ProviderName.DEEPSEEK,
}


def clamp_count(value: Any, low: int, high: int, default: int) -> int:
    """Clamp ``value`` into ``[low, high]``; anything non-numeric yields ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(low, min(high, number))


def _enum_or_default(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


class GenerationOptions(BaseModel):
    """Options for one generation call.

    Accepts the camelCase keys the web client sends. Every value is coerced
    at construction: out-of-range counts are clamped, unknown or missing
    values fall back to their defaults. Nothing here raises for bad input.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    title: str = DEFAULT_TITLE
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    subject_area: str = Field(default=DEFAULT_SUBJECT_AREA, alias="subjectArea")
    question_count: int = Field(default=10, alias="questionCount")
    section_count: int = Field(default=5, alias="sectionCount")
    assignment_count: int = Field(default=3, alias="assignmentCount")
    card_count: int = Field(default=15, alias="cardCount")
    key_terms: List[str] = Field(default_factory=list, alias="keyTerms")
    provider: ProviderName = Field(default=ProviderName.GEMINI, alias="apiProvider")
    blank_style: BlankStyle = Field(default=BlankStyle.UNDERLINE, alias="blankStyle")
    blank_number_position: BlankNumberPosition = Field(default=BlankNumberPosition.AFTER, alias="blankNumberPosition")
    blank_number_type: BlankNumberType = Field(default=BlankNumberType.NUMERIC, alias="blankNumberType")
    quiz_type: QuizType = Field(default=QuizType.MIXED, alias="quizType")

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        return text or DEFAULT_TITLE

    @field_validator("subject_area", mode="before")
    @classmethod
    def _subject_area(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        if not text or text.lower() == "general":
            return DEFAULT_SUBJECT_AREA
        return text

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, value: Any) -> Difficulty:
        if isinstance(value, Difficulty):
            return value
        return _DIFFICULTY_ALIASES.get(str(value or "").strip().lower(), Difficulty.INTERMEDIATE)

    @field_validator("question_count", "section_count", "assignment_count", "card_count", mode="before")
    @classmethod
    def _counts(cls, value: Any, info) -> int:
        low, high, default = COUNT_RANGES[info.field_name]
        return clamp_count(value, low, high, default)

    @field_validator("key_terms", mode="before")
    @classmethod
    def _key_terms(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.replace("、", ",").split(",")
        if not isinstance(value, (list, tuple)):
            return []
        terms = [str(t).strip() for t in value if t is not None and str(t).strip()]
        return terms[:MAX_KEY_TERMS]

    @field_validator("provider", mode="before")
    @classmethod
    def _provider(cls, value: Any) -> ProviderName:
        if isinstance(value, ProviderName):
            return value
        return _PROVIDER_ALIASES.get(str(value or "").strip().lower(), ProviderName.GEMINI)

    @field_validator("blank_style", mode="before")
    @classmethod
    def _blank_style(cls, value: Any) -> BlankStyle:
        return _enum_or_default(BlankStyle, value, BlankStyle.UNDERLINE)

    @field_validator("blank_number_position", mode="before")
    @classmethod
    def _blank_number_position(cls, value: Any) -> BlankNumberPosition:
        return _enum_or_default(BlankNumberPosition, value, BlankNumberPosition.AFTER)

    @field_validator("blank_number_type", mode="before")
    @classmethod
    def _blank_number_type(cls, value: Any) -> BlankNumberType:
        return _enum_or_default(BlankNumberType, value, BlankNumberType.NUMERIC)

    @field_validator("quiz_type", mode="before")
    @classmethod
    def _quiz_type(cls, value: Any) -> QuizType:
        return _enum_or_default(QuizType, value, QuizType.MIXED)

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "GenerationOptions":
        """Build options from an untrusted dict, accepting both key spellings."""
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate({k: v for k, v in raw.items() if v is not None})


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_text: str
    material_type: MaterialType
    options: GenerationOptions = Field(default_factory=GenerationOptions)

    @field_validator("material_type", mode="before")
    @classmethod
    def _material_type(cls, value: Any) -> MaterialType:
        return MaterialType.coerce(value)

    @field_validator("source_text", mode="before")
    @classmethod
    def _source_text(cls, value: Any) -> str:
        return "" if value is None else str(value)
