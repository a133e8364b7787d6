from __future__ import annotations

"""Engine notifications: typed events and a small pub/sub bus."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from ..quiz.types import AnswerRecord, EvaluationResult, QuizType, Word

log = logging.getLogger(__name__)


class EngineEvent(str, Enum):
    CARD_DRAWN = "card_drawn"
    ANSWER_CHECKED = "answer_checked"
    CARD_SKIPPED = "card_skipped"
    GAME_STARTED = "game_started"
    GAME_STOPPED = "game_stopped"
    AUTO_PROGRESS = "auto_progress"


class SessionMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


@dataclass(frozen=True)
class CardDrawn:
    word: Word
    quiz_type: QuizType


@dataclass(frozen=True)
class AnswerChecked:
    result: EvaluationResult
    record: AnswerRecord


@dataclass(frozen=True)
class CardSkipped:
    record: AnswerRecord


@dataclass(frozen=True)
class GameStarted:
    mode: SessionMode


@dataclass(frozen=True)
class GameStopped:
    pass


@dataclass(frozen=True)
class AutoProgress:
    current: int
    total: int


Handler = Callable[[Any], None]


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[EngineEvent, List[Handler]] = {}

    def subscribe(self, event: EngineEvent, handler: Handler) -> None:
        self._subs.setdefault(EngineEvent(event), []).append(handler)

    def unsubscribe(self, event: EngineEvent, handler: Handler) -> None:
        handlers = self._subs.get(EngineEvent(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: EngineEvent, payload: Any) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception:
                # A broken listener must not starve the others
                log.exception("Listener for %s failed", event.value)
