from __future__ import annotations

"""Parquet-backed answer history using pandas + pyarrow.

Unit of data: one row per answered or skipped card. Rows are kept in
append order (oldest first) and capped to the newest ``limit`` rows.
"""

import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from vocabdrill.quiz.types import AnswerRecord, QuizType, UserAnswer, Word

from .schema import DATE_FILTERS, DTYPES, QUIZ_TYPES, HistoryRow


HISTORY_FILE = "history.parquet"


def _empty_df() -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in DTYPES.items()})


def _fix_dtypes(df: pd.DataFrame) -> pd.DataFrame:
    for col, dt in DTYPES.items():
        if col not in df.columns:
            df[col] = pd.NA
        df[col] = df[col].astype(dt)
    return df[list(DTYPES.keys())]


def record_to_row(record: AnswerRecord) -> HistoryRow:
    w = record.word
    a = record.user_answer
    return HistoryRow(
        record_id=uuid.uuid4().hex,
        timestamp=record.timestamp,
        word_id=record.word_id,
        word_native=w.native,
        word_reading=w.reading,
        word_translation=w.translation,
        word_audio=w.audio_ref,
        quiz_type=record.quiz_type.value,
        answer_native=a.native or "",
        answer_reading=a.reading or "",
        answer_translation=a.translation or "",
        is_correct=record.is_correct,
        score=record.score,
        scored_fields=record.scored_field_count,
        time_spent_ms=record.time_spent_ms,
    )


def validate_records(rows: List[Any]) -> pd.DataFrame:
    """Validate HistoryRow objects or dicts and return a DataFrame with proper dtypes."""
    if not isinstance(rows, list):
        raise TypeError("rows must be a list[HistoryRow]")
    models = [r if isinstance(r, HistoryRow) else HistoryRow.model_validate(r) for r in rows]
    if not models:
        return _empty_df()
    df = pd.DataFrame([m.model_dump() for m in models])
    return _fix_dtypes(df)


def _na(value: Any) -> Optional[Any]:
    return None if pd.isna(value) else value


def row_to_record(row: Dict[str, Any]) -> AnswerRecord:
    word = Word(
        id=int(row["word_id"]),
        native=str(row["word_native"]),
        reading=str(row["word_reading"]),
        translation=str(row["word_translation"]),
        audio_ref=_na(row["word_audio"]),
    )
    ts = row["timestamp"]
    return AnswerRecord(
        word_id=word.id,
        word=word,
        quiz_type=QuizType(str(row["quiz_type"])),
        user_answer=UserAnswer(
            native=_na(row["answer_native"]) or "",
            reading=_na(row["answer_reading"]) or "",
            translation=_na(row["answer_translation"]) or "",
        ),
        correct_answer=UserAnswer.from_word(word),
        is_correct=bool(row["is_correct"]),
        score=int(row["score"]),
        scored_field_count=int(row["scored_fields"]),
        time_spent_ms=int(row["time_spent_ms"]),
        timestamp=ts.to_pydatetime() if hasattr(ts, "to_pydatetime") else ts,
    )


class HistoryStore:
    """Answer history; file-backed when ``data_dir`` is given, else in memory."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        *,
        limit: int = 1000,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.data_dir = Path(data_dir) if data_dir else None
        self.limit = max(1, int(limit))
        self._now = now or (lambda: datetime.now().astimezone())
        self._df = self._load()

    @property
    def path(self) -> Optional[Path]:
        return self.data_dir / HISTORY_FILE if self.data_dir else None

    def _load(self) -> pd.DataFrame:
        p = self.path
        if p is None or not p.exists():
            return _empty_df()
        return _fix_dtypes(pd.read_parquet(p, engine="pyarrow"))

    def _save(self) -> None:
        p = self.path
        if p is None:
            return
        p.parent.mkdir(parents=True, exist_ok=True)
        self._df.to_parquet(p, engine="pyarrow", compression="zstd", index=False)

    def append(self, record: AnswerRecord) -> HistoryRow:
        row = record_to_row(record)
        df_new = validate_records([row])
        combined = pd.concat([self._df, df_new], ignore_index=True) if len(self._df) else df_new
        self._df = _fix_dtypes(combined.tail(self.limit).reset_index(drop=True))
        self._save()
        return row

    def __len__(self) -> int:
        return len(self._df)

    def load_frame(self) -> pd.DataFrame:
        return self._df.copy()

    def _filtered(self, date_filter: Optional[str]) -> pd.DataFrame:
        df = self._df
        if not date_filter:
            return df
        if date_filter not in DATE_FILTERS:
            raise ValueError(f"Unknown date filter: {date_filter}")
        now = self._now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        since = midnight - timedelta(days=DATE_FILTERS[date_filter])
        return df[df["timestamp"] >= pd.Timestamp(since)]

    def records(self, date_filter: Optional[str] = None) -> List[AnswerRecord]:
        """Newest first, optionally limited to today / week / month."""
        df = self._filtered(date_filter)
        return [row_to_record(r) for r in reversed(df.to_dict("records"))]

    def statistics(self) -> Dict[str, int]:
        total = len(self._df)
        if total == 0:
            return {"total_practice": 0, "accuracy_rate": 0, "learned_words": 0}
        correct = int(self._df["is_correct"].sum())
        return {
            "total_practice": total,
            "accuracy_rate": int(round(correct / total * 100)),
            "learned_words": int(self._df["word_id"].nunique()),
        }

    def type_statistics(self) -> Dict[QuizType, Dict[str, int]]:
        out: Dict[QuizType, Dict[str, int]] = {}
        for t in sorted(QUIZ_TYPES):
            sub = self._df[self._df["quiz_type"].astype("string") == t]
            total = len(sub)
            correct = int(sub["is_correct"].sum()) if total else 0
            out[QuizType(t)] = {
                "total": total,
                "correct": correct,
                "accuracy": int(round(correct / total * 100)) if total else 0,
            }
        return out

    def clear(self) -> None:
        self._df = _empty_df()
        self._save()

    def replace_rows(self, rows: List[Dict[str, Any]]) -> None:
        """Swap the whole history (data import); rows are sorted oldest first."""
        df = validate_records(list(rows))
        df = df.sort_values("timestamp", kind="stable").tail(self.limit).reset_index(drop=True)
        self._df = df
        self._save()

    def export_rows(self) -> List[Dict[str, Any]]:
        out = []
        for r in self._df.to_dict("records"):
            row = {k: _na(v) for k, v in r.items()}
            row["timestamp"] = r["timestamp"].isoformat()
            row["quiz_type"] = str(r["quiz_type"])
            for k in ("word_id", "score", "scored_fields", "time_spent_ms"):
                row[k] = int(r[k])
            row["is_correct"] = bool(r["is_correct"])
            out.append(row)
        return out
