from __future__ import annotations

"""Session Engine: orchestrates draws, answers, skips and auto play.

The engine owns the session state and talks to its collaborators through
small contracts (word store, history store, settings store, audio service)
injected at construction. Notifications go out through an EventBus.

Auto play arms at most one one-shot timer at a time. Every arm or cancel
bumps a generation counter, and a timer callback whose generation no longer
matches returns without touching state, so a cancelled timer can never
advance a later session.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from ..audio.playback import AudioService
from ..quiz.errors import GameNotActive, NoActiveCard, NoEnabledTypes, NoWordsAvailable, PlaybackError
from ..quiz.evaluator import AnswerEvaluator
from ..quiz.selector import QuizTypeSelector
from ..quiz.types import (
    AnswerRecord,
    CardPrompt,
    DrawResult,
    EvaluationResult,
    QuizType,
    UserAnswer,
    Word,
)
from .events import (
    AnswerChecked,
    AutoProgress,
    CardDrawn,
    CardSkipped,
    EngineEvent,
    EventBus,
    GameStarted,
    GameStopped,
    SessionMode,
)
from .explain import trace as xtrace
from .scheduler import Scheduler, ThreadingScheduler, TimerHandle

log = logging.getLogger(__name__)

AnswerLike = Union[UserAnswer, Mapping[str, Any]]


class WordSource(Protocol):
    def all_words(self) -> Sequence[Word]: ...
    def random_word(self) -> Optional[Word]: ...
    def random_words(self, n: int) -> List[Word]: ...


class HistorySink(Protocol):
    def append(self, record: AnswerRecord) -> Any: ...


@dataclass(frozen=True)
class AutoSettings:
    card_count: int = 5
    interval_ms: int = 3000


@dataclass
class SessionState:
    mode: SessionMode = SessionMode.MANUAL
    active: bool = False
    current_word: Optional[Word] = None
    current_quiz_type: Optional[QuizType] = None
    started_at: Optional[float] = None  # clock ms
    auto_queue: List[Word] = field(default_factory=list)
    auto_index: int = 0
    auto_interval_ms: int = 3000

    @property
    def has_card(self) -> bool:
        return self.current_word is not None and self.current_quiz_type is not None


@dataclass(frozen=True)
class SessionSnapshot:
    active: bool
    mode: SessionMode
    current_word: Optional[Word]
    current_quiz_type: Optional[QuizType]
    auto_progress: Optional[tuple]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_answer(answer: AnswerLike) -> UserAnswer:
    if isinstance(answer, UserAnswer):
        return answer
    if isinstance(answer, Mapping):
        return UserAnswer.from_mapping(answer)
    raise TypeError(f"Unsupported answer type: {type(answer).__name__}")


class SessionEngine:
    def __init__(
        self,
        words: WordSource,
        history: HistorySink,
        settings,
        audio: Optional[AudioService] = None,
        *,
        selector: Optional[QuizTypeSelector] = None,
        evaluator: Optional[AnswerEvaluator] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        now: Optional[Callable[[], datetime]] = None,
        input_provider: Optional[Callable[[], Optional[AnswerLike]]] = None,
        bus: Optional[EventBus] = None,
        rng=None,
    ) -> None:
        self.words = words
        self.history = history
        self.settings = settings
        self.audio = audio
        self.selector = selector or QuizTypeSelector(settings, rng)
        self.evaluator = evaluator or AnswerEvaluator()
        self.scheduler = scheduler or ThreadingScheduler()
        self.bus = bus or EventBus()
        self._clock = clock or _monotonic_ms
        self._now = now or _utcnow
        self._input_provider = input_provider
        self._auto_overrides: Dict[str, int] = {}
        self._lock = threading.RLock()
        self._timer: Optional[TimerHandle] = None
        self._timer_generation = 0
        self.state = SessionState()

    # ------------------------------------------------------------------ wiring

    def on(self, event: EngineEvent, handler: Callable[[Any], None]) -> None:
        self.bus.subscribe(event, handler)

    def set_input_provider(self, provider: Optional[Callable[[], Optional[AnswerLike]]]) -> None:
        self._input_provider = provider

    def set_auto_settings(self, card_count: Optional[int] = None, interval_ms: Optional[int] = None) -> None:
        if card_count is not None:
            self._auto_overrides["card_count"] = max(1, int(card_count))
        if interval_ms is not None:
            self._auto_overrides["interval_ms"] = max(0, int(interval_ms))

    def auto_settings(self, overrides: Optional[Union[AutoSettings, Mapping[str, Any]]] = None) -> AutoSettings:
        """Effective auto settings: settings store, then set_auto_settings, then overrides."""
        s = self.settings.get()
        auto = AutoSettings(card_count=s.card_count, interval_ms=s.interval_ms)
        auto = replace(auto, **self._auto_overrides)
        if isinstance(overrides, AutoSettings):
            overrides = {"card_count": overrides.card_count, "interval_ms": overrides.interval_ms}
        if overrides:
            changes = {}
            if overrides.get("card_count") is not None:
                changes["card_count"] = max(1, int(overrides["card_count"]))
            if overrides.get("interval_ms") is not None:
                changes["interval_ms"] = max(0, int(overrides["interval_ms"]))
            auto = replace(auto, **changes)
        return auto

    # -------------------------------------------------------------- lifecycle

    def start(self, mode: Union[SessionMode, str] = SessionMode.MANUAL, settings: Optional[Union[AutoSettings, Mapping[str, Any]]] = None) -> None:
        """Open a session. AUTO samples the queue and shows the first card at once."""
        mode = SessionMode(mode)
        with self._lock:
            queue: List[Word] = []
            auto = self.auto_settings(settings)
            if mode is SessionMode.AUTO:
                queue = list(self.words.random_words(auto.card_count))
                if not queue:
                    raise NoWordsAvailable()
                if not self.selector.enabled_types():
                    raise NoEnabledTypes()

            self._cancel_timer()
            self.state = SessionState(
                mode=mode,
                active=True,
                auto_queue=queue,
                auto_index=0,
                auto_interval_ms=auto.interval_ms,
            )
            xtrace("session_started", {"mode": mode.value, "queued": len(queue), "interval_ms": auto.interval_ms})
            self.bus.emit(EngineEvent.GAME_STARTED, GameStarted(mode))
            if mode is SessionMode.AUTO:
                self._next_auto_card()

    def stop(self) -> None:
        with self._lock:
            st = self.state
            if not st.active and not st.has_card and self._timer is None and not st.auto_queue:
                return
            self._cancel_timer()
            self.state = SessionState(mode=st.mode, auto_interval_ms=st.auto_interval_ms)
            xtrace("session_ended", {"mode": st.mode.value, "answered": st.auto_index, "queued": len(st.auto_queue)})
            self.bus.emit(EngineEvent.GAME_STOPPED, GameStopped())

    def reset(self) -> None:
        """Stop and go back to the built-in auto defaults (5 cards, 3000 ms)."""
        self.stop()
        defaults = AutoSettings()
        self._auto_overrides = {"card_count": defaults.card_count, "interval_ms": defaults.interval_ms}

    # ------------------------------------------------------------------ cards

    def draw_card(self, quiz_type: Optional[Union[QuizType, str]] = None) -> DrawResult:
        with self._lock:
            if not self.state.active:
                raise GameNotActive()
            word = self.words.random_word()
            if word is None:
                raise NoWordsAvailable()
            qt = self._resolve_quiz_type(quiz_type)

            self._set_card(word, qt)
            xtrace("card_drawn", {"word_id": word.id, "quiz_type": qt.value})
            self.bus.emit(EngineEvent.CARD_DRAWN, CardDrawn(word, qt))
            return DrawResult(word=word, quiz_type=qt, prompt=CardPrompt.for_card(word, qt))

    def submit_answer(self, user_answer: AnswerLike) -> EvaluationResult:
        with self._lock:
            st = self.state
            if not st.has_card:
                raise NoActiveCard()
            answer = _coerce_answer(user_answer)
            word, qt = st.current_word, st.current_quiz_type
            result = self.evaluator.evaluate(word, qt, answer)
            record = AnswerRecord(
                word_id=word.id,
                word=word,
                quiz_type=qt,
                user_answer=answer,
                correct_answer=UserAnswer.from_word(word),
                is_correct=result.is_correct,
                score=result.score,
                scored_field_count=result.max_score,
                time_spent_ms=self._elapsed_ms(),
                timestamp=self._now(),
            )
            self.history.append(record)
            self._clear_card()
            xtrace("answer_checked", {"word_id": word.id, "score": result.score, "max": result.max_score})
            self.bus.emit(EngineEvent.ANSWER_CHECKED, AnswerChecked(result, record))
            return result

    def skip_card(self) -> None:
        """Record the current card (if any) as wrong and move on."""
        with self._lock:
            st = self.state
            if not st.active:
                raise GameNotActive()
            advance = st.mode is SessionMode.AUTO and st.auto_index < len(st.auto_queue)
            next_type = self._peek_next_auto_type() if advance else None
            self._record_skip()
            if advance:
                self._cancel_timer()
                st.auto_index += 1
                self._next_auto_card(next_type)

    def submit_answer_in_auto_mode(self, user_answer: AnswerLike) -> Optional[EvaluationResult]:
        """Early submission: beat the timer, score now, advance to the next card.

        A card that was already scored through ``submit_answer`` is not scored
        twice; the call then only advances.
        """
        with self._lock:
            st = self.state
            if st.mode is not SessionMode.AUTO or not st.active:
                return None
            answer = _coerce_answer(user_answer)
            next_type = self._peek_next_auto_type()
            self._cancel_timer()
            result = self.submit_answer(answer) if st.has_card else None
            st.auto_index += 1
            self._next_auto_card(next_type)
            return result

    # ---------------------------------------------------------------- queries

    def correct_answer(self) -> Optional[UserAnswer]:
        word = self.state.current_word
        return UserAnswer.from_word(word) if word is not None else None

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            st = self.state
            progress = None
            if st.mode is SessionMode.AUTO and st.active:
                progress = (st.auto_index + 1, len(st.auto_queue))
            return SessionSnapshot(
                active=st.active,
                mode=st.mode,
                current_word=st.current_word,
                current_quiz_type=st.current_quiz_type,
                auto_progress=progress,
            )

    # --------------------------------------------------------------- internal

    def _resolve_quiz_type(self, explicit: Optional[Union[QuizType, str]]) -> QuizType:
        forced = QuizType.parse(explicit) if explicit is not None else self.settings.get().default_quiz_type
        return self.selector.select(forced)

    def _set_card(self, word: Word, quiz_type: QuizType) -> None:
        self.state.current_word = word
        self.state.current_quiz_type = quiz_type
        self.state.started_at = self._clock()

    def _clear_card(self) -> None:
        self.state.current_word = None
        self.state.current_quiz_type = None
        self.state.started_at = None

    def _elapsed_ms(self) -> int:
        if self.state.started_at is None:
            return 0
        return max(0, int(round(self._clock() - self.state.started_at)))

    def _record_skip(self) -> None:
        st = self.state
        if st.has_card:
            word, qt = st.current_word, st.current_quiz_type
            record = AnswerRecord(
                word_id=word.id,
                word=word,
                quiz_type=qt,
                user_answer=UserAnswer.empty(),
                correct_answer=UserAnswer.from_word(word),
                is_correct=False,
                score=0,
                scored_field_count=len(qt.checked_fields),
                time_spent_ms=self._elapsed_ms(),
                timestamp=self._now(),
            )
            self.history.append(record)
            self._clear_card()
            xtrace("card_skipped", {"word_id": word.id, "quiz_type": qt.value})
            self.bus.emit(EngineEvent.CARD_SKIPPED, CardSkipped(record))
        else:
            self._clear_card()

    def _peek_next_auto_type(self) -> Optional[QuizType]:
        """Resolve the following card's type before any state changes; None past the queue end."""
        st = self.state
        if st.auto_index + 1 >= len(st.auto_queue):
            return None
        return self._resolve_quiz_type(None)

    def _next_auto_card(self, quiz_type: Optional[QuizType] = None) -> None:
        st = self.state
        if st.auto_index >= len(st.auto_queue):
            self.stop()
            return
        word = st.auto_queue[st.auto_index]
        qt = quiz_type or self._resolve_quiz_type(None)
        self._set_card(word, qt)
        xtrace("card_drawn", {"word_id": word.id, "quiz_type": qt.value, "auto_index": st.auto_index})
        self.bus.emit(EngineEvent.CARD_DRAWN, CardDrawn(word, qt))
        self.bus.emit(EngineEvent.AUTO_PROGRESS, AutoProgress(st.auto_index + 1, len(st.auto_queue)))
        if qt is QuizType.AUDIO and self.settings.get().auto_play_audio:
            self._play_audio(word)
        self._arm_timer()

    def _play_audio(self, word: Word) -> None:
        if self.audio is None:
            return
        try:
            future = self.audio.play(word.audio_ref)
        except PlaybackError as e:
            log.warning("Auto-play audio failed for word %s: %s", word.id, e)
            return
        except Exception:
            log.warning("Auto-play audio failed for word %s", word.id, exc_info=True)
            return

        def _done(f) -> None:
            exc = f.exception()
            if exc is not None:
                log.warning("Auto-play audio failed for word %s: %s", word.id, exc)

        future.add_done_callback(_done)

    def _arm_timer(self) -> None:
        self._cancel_timer()
        self._timer_generation += 1
        generation = self._timer_generation
        self._timer = self.scheduler.call_later(self.state.auto_interval_ms, lambda: self._on_timer(generation))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._timer_generation += 1

    def _pending_input(self) -> Optional[UserAnswer]:
        if self._input_provider is None:
            return None
        try:
            raw = self._input_provider()
        except Exception:
            log.exception("Pending input provider failed; treating card as skipped")
            return None
        if raw is None:
            return None
        answer = _coerce_answer(raw)
        return None if answer.is_blank() else answer

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation:
                return
            self._timer = None
            st = self.state
            if not st.active or st.mode is not SessionMode.AUTO:
                return
            xtrace("auto_timer_fired", {"auto_index": st.auto_index})
            try:
                if st.has_card:
                    pending = self._pending_input()
                    if pending is not None:
                        self.submit_answer(pending)
                    else:
                        self._record_skip()
                st.auto_index += 1
                self._next_auto_card()
            except Exception:
                # No caller to surface this to; end the session instead
                log.exception("Auto play could not advance; stopping session")
                self.stop()
