from __future__ import annotations

"""Schema constants and Pydantic models for the Parquet-backed answer history."""

from datetime import datetime, timezone
from typing import Literal, Optional

import pandas as pd
from pandas.api.types import CategoricalDtype
from pydantic import BaseModel, Field, field_validator, model_validator

# --- Constants ---

QUIZ_TYPES = {"native", "reading", "translation", "audio"}
TEXT_FIELDS = ["native", "reading", "translation"]
DATE_FILTERS = {"today": 0, "week": 7, "month": 30}


def _cat_dtype(categories: set[str]) -> CategoricalDtype:
    return CategoricalDtype(categories=sorted(categories), ordered=False)


DTYPES = {
    "record_id": "string",
    # timezone-aware UTC timestamps
    "timestamp": pd.DatetimeTZDtype(tz="UTC"),
    "word_id": "Int64",
    "word_native": "string",
    "word_reading": "string",
    "word_translation": "string",
    "word_audio": "string",
    "quiz_type": _cat_dtype(QUIZ_TYPES),
    "answer_native": "string",
    "answer_reading": "string",
    "answer_translation": "string",
    "is_correct": "boolean",
    "score": "UInt8",
    "scored_fields": "UInt8",
    "time_spent_ms": "UInt32",
}


# --- Pydantic models ---

class HistoryRow(BaseModel):
    record_id: str
    timestamp: datetime
    word_id: int
    word_native: str
    word_reading: str
    word_translation: str
    word_audio: Optional[str] = None
    quiz_type: Literal["native", "reading", "translation", "audio"]
    answer_native: str = ""
    answer_reading: str = ""
    answer_translation: str = ""
    is_correct: bool
    score: int = Field(ge=0, le=3)
    scored_fields: int = Field(ge=2, le=3)
    time_spent_ms: int = Field(ge=0, le=4294967295)

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _score_consistent(self) -> "HistoryRow":
        if self.score > self.scored_fields:
            raise ValueError("score must be <= scored_fields")
        if self.is_correct and self.score != self.scored_fields:
            raise ValueError("is_correct requires a full score")
        expected = 3 if self.quiz_type == "audio" else 2
        if self.scored_fields != expected:
            raise ValueError(f"{self.quiz_type} cards score {expected} fields")
        return self
