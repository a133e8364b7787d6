from __future__ import annotations

"""Core value types shared by the selector, evaluator and session engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class AnswerField(str, Enum):
    """A text representation of a word the learner can be asked to supply."""

    NATIVE = "native"
    READING = "reading"
    TRANSLATION = "translation"


class QuizType(str, Enum):
    """Which representation is revealed on the card (none for audio)."""

    NATIVE = "native"
    READING = "reading"
    TRANSLATION = "translation"
    AUDIO = "audio"

    @property
    def revealed_field(self) -> Optional[AnswerField]:
        if self is QuizType.AUDIO:
            return None
        return AnswerField(self.value)

    @property
    def checked_fields(self) -> Tuple[AnswerField, ...]:
        revealed = self.revealed_field
        return tuple(f for f in AnswerField if f is not revealed)

    @classmethod
    def parse(cls, value: Any) -> Optional["QuizType"]:
        """Map config/CLI values to a QuizType; None for ``random``/empty."""
        if value is None or isinstance(value, QuizType):
            return value
        text = str(value).strip().lower()
        if text in ("", "random", "none"):
            return None
        return cls(text)


@dataclass(frozen=True)
class Word:
    id: int
    native: str
    reading: str
    translation: str
    audio_ref: Optional[str] = None

    def value_of(self, f: AnswerField) -> str:
        return getattr(self, f.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "native": self.native,
            "reading": self.reading,
            "translation": self.translation,
            "audio_ref": self.audio_ref,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Word":
        return cls(
            id=int(data["id"]),
            native=str(data.get("native") or ""),
            reading=str(data.get("reading") or ""),
            translation=str(data.get("translation") or ""),
            audio_ref=data.get("audio_ref") or None,
        )


@dataclass(frozen=True)
class UserAnswer:
    native: Optional[str] = None
    reading: Optional[str] = None
    translation: Optional[str] = None

    def get(self, f: AnswerField) -> Optional[str]:
        return getattr(self, f.value)

    def is_blank(self) -> bool:
        return not any((v or "").strip() for v in (self.native, self.reading, self.translation))

    def to_dict(self) -> Dict[str, str]:
        return {f.value: (self.get(f) or "") for f in AnswerField}

    @classmethod
    def empty(cls) -> "UserAnswer":
        return cls(native="", reading="", translation="")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UserAnswer":
        return cls(**{f.value: data.get(f.value) for f in AnswerField})

    @classmethod
    def from_word(cls, word: Word) -> "UserAnswer":
        return cls(native=word.native, reading=word.reading, translation=word.translation)


@dataclass(frozen=True)
class FieldCheck:
    expected: str
    actual: Optional[str]
    checked: bool
    correct: bool


@dataclass(frozen=True)
class EvaluationResult:
    per_field: Dict[AnswerField, FieldCheck]
    score: int
    max_score: int
    is_correct: bool


@dataclass(frozen=True)
class AnswerRecord:
    """One attempt, handed to the history store; the engine keeps no copy."""

    word_id: int
    word: Word
    quiz_type: QuizType
    user_answer: UserAnswer
    correct_answer: UserAnswer
    is_correct: bool
    score: int
    scored_field_count: int
    time_spent_ms: int
    timestamp: datetime


@dataclass(frozen=True)
class CardPrompt:
    """What the presentation layer shows for a drawn card."""

    kind: str  # "text" | "audio"
    revealed: Optional[AnswerField]
    content: Optional[str]
    required: Tuple[AnswerField, ...] = field(default_factory=tuple)

    @classmethod
    def for_card(cls, word: Word, quiz_type: QuizType) -> "CardPrompt":
        revealed = quiz_type.revealed_field
        if revealed is None:
            return cls(kind="audio", revealed=None, content=word.audio_ref, required=quiz_type.checked_fields)
        return cls(kind="text", revealed=revealed, content=word.value_of(revealed), required=quiz_type.checked_fields)


@dataclass(frozen=True)
class DrawResult:
    word: Word
    quiz_type: QuizType
    prompt: CardPrompt
