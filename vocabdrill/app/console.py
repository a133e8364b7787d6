from __future__ import annotations

"""Terminal presentation layer.

Renders engine notifications as text and answers the auto scheduler's
``pending input`` query. Answers are typed on one line, one value per
required field, separated by ``/`` (e.g. ``本 / 书``).
"""

import re
import threading
from typing import Callable, List, Optional, TextIO

from ..quiz.types import AnswerField, CardPrompt, EvaluationResult, QuizType, UserAnswer, Word
from .events import AnswerChecked, AutoProgress, CardDrawn, CardSkipped, EngineEvent, GameStarted

FIELD_LABELS = {
    AnswerField.NATIVE: "native",
    AnswerField.READING: "reading",
    AnswerField.TRANSLATION: "translation",
}

_SPLIT = re.compile(r"\s*[/／]\s*")


def parse_answer_line(line: str, quiz_type: QuizType) -> UserAnswer:
    """Assign slash-separated values to the fields the card asks for, in order."""
    parts = _SPLIT.split(line.strip()) if line.strip() else []
    values = {f.value: "" for f in AnswerField}
    for f, v in zip(quiz_type.checked_fields, parts):
        values[f.value] = v
    return UserAnswer.from_mapping(values)


def hint_for(quiz_type: QuizType) -> str:
    names = " / ".join(FIELD_LABELS[f] for f in quiz_type.checked_fields)
    return f"Enter {names}"


def format_prompt(word: Word, quiz_type: QuizType, show_hints: bool = True) -> str:
    prompt = CardPrompt.for_card(word, quiz_type)
    if prompt.kind == "audio":
        head = "[audio] listen and identify the word"
    else:
        head = f"[{FIELD_LABELS[prompt.revealed]}] {prompt.content}"
    if show_hints:
        return f"{head}\n  {hint_for(quiz_type)}"
    return head


def format_result(result: EvaluationResult) -> str:
    lines = [f"Score {result.score}/{result.max_score}: " + ("Correct!" if result.is_correct else "Not quite.")]
    for f, check in result.per_field.items():
        if not check.checked:
            continue
        mark = "ok" if check.correct else "x "
        lines.append(f"  {mark} {FIELD_LABELS[f]}: {check.actual or '-'} (answer: {check.expected})")
    return "\n".join(lines)


def format_answer(word: Word) -> str:
    return f"{word.native} / {word.reading} / {word.translation}"


class ConsoleUI:
    """Subscribes to engine events and prints them to ``out``."""

    def __init__(self, out: TextIO, *, show_hints: bool = True) -> None:
        self.out = out
        self.show_hints = show_hints
        self.finished = threading.Event()
        self._lock = threading.Lock()
        self._pending: Optional[str] = None
        self._quiz_type: Optional[QuizType] = None

    def attach(self, engine) -> None:
        engine.on(EngineEvent.GAME_STARTED, self._on_started)
        engine.on(EngineEvent.CARD_DRAWN, self._on_card)
        engine.on(EngineEvent.AUTO_PROGRESS, self._on_progress)
        engine.on(EngineEvent.ANSWER_CHECKED, self._on_checked)
        engine.on(EngineEvent.CARD_SKIPPED, self._on_skipped)
        engine.on(EngineEvent.GAME_STOPPED, self._on_stopped)
        engine.set_input_provider(self.pending_input)

    def _print(self, text: str) -> None:
        with self._lock:
            print(text, file=self.out, flush=True)

    def _on_started(self, ev: GameStarted) -> None:
        self.finished.clear()
        self._print(f"Session started ({ev.mode.value} mode).")

    def _on_card(self, ev: CardDrawn) -> None:
        with self._lock:
            self._pending = None
            self._quiz_type = ev.quiz_type
        self._print("\n" + format_prompt(ev.word, ev.quiz_type, self.show_hints))

    def _on_progress(self, ev: AutoProgress) -> None:
        self._print(f"  card {ev.current}/{ev.total}")

    def _on_checked(self, ev: AnswerChecked) -> None:
        self._print(format_result(ev.result))

    def _on_skipped(self, ev: CardSkipped) -> None:
        self._print(f"Skipped. Answer: {format_answer(ev.record.word)}")

    def _on_stopped(self, _ev) -> None:
        self._print("Session finished.")
        self.finished.set()

    # --- pending input (auto mode) ---

    def buffer_line(self, line: str) -> None:
        with self._lock:
            self._pending = line

    def pending_input(self) -> Optional[UserAnswer]:
        with self._lock:
            if self._pending is None or self._quiz_type is None:
                return None
            return parse_answer_line(self._pending, self._quiz_type)

    def current_quiz_type(self) -> Optional[QuizType]:
        with self._lock:
            return self._quiz_type


def read_lines(stream: TextIO, on_line: Callable[[str], bool]) -> threading.Thread:
    """Feed stdin lines to ``on_line`` on a daemon thread until it returns False or EOF."""

    def runner() -> None:
        for raw in stream:
            if not on_line(raw.rstrip("\n")):
                break

    t = threading.Thread(target=runner, daemon=True, name="vocabdrill-stdin")
    t.start()
    return t


def summarize(stats: dict, type_stats: dict) -> List[str]:
    lines = [
        f"Practiced: {stats['total_practice']}",
        f"Accuracy:  {stats['accuracy_rate']}%",
        f"Words seen: {stats['learned_words']}",
    ]
    for t, s in type_stats.items():
        lines.append(f"  {t.value:<12} {s['correct']}/{s['total']} ({s['accuracy']}%)")
    return lines
