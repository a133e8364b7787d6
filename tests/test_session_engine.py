import random
import unittest
from datetime import datetime, timezone

from storage.words import WordStore
from vocabdrill.app.events import EngineEvent, SessionMode
from vocabdrill.app.scheduler import ManualScheduler
from vocabdrill.app.session_engine import AutoSettings, SessionEngine
from vocabdrill.config.settings import SettingsStore
from vocabdrill.quiz.errors import GameNotActive, NoActiveCard, NoEnabledTypes, NoWordsAvailable, PlaybackError
from vocabdrill.quiz.types import QuizType, UserAnswer

FIXED_NOW = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)

WORDS = [
    ("本", "ほん", "书"),
    ("学生", "がくせい", "学生"),
    ("先生", "せんせい", "老师"),
    ("学校", "がっこう", "学校"),
    ("友達", "ともだち", "朋友"),
]


class ListHistory:
    def __init__(self) -> None:
        self.records = []

    def append(self, record) -> None:
        self.records.append(record)


class FailingAudio:
    def __init__(self) -> None:
        self.calls = 0

    def play(self, audio_ref):
        self.calls += 1
        raise PlaybackError("device busy")

    def close(self) -> None:
        pass


class _NoopHandle:
    def cancel(self) -> None:
        pass


class LeakyScheduler(ManualScheduler):
    """Cancel is ignored, so stale callbacks still fire."""

    def call_later(self, delay_ms, callback):
        super().call_later(delay_ms, callback)
        return _NoopHandle()


def make_words(n: int = 5) -> WordStore:
    store = WordStore(rng=random.Random(3), seed_samples=False)
    for native, reading, translation in WORDS[:n]:
        store.add(native, reading, translation, audio_ref=f"{reading}.wav")
    return store


class SessionEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler = ManualScheduler()
        self.history = ListHistory()
        self.settings = SettingsStore()
        self.events = []
        self.engine = self._engine(make_words())

    def _engine(self, words, scheduler=None, audio=None) -> SessionEngine:
        scheduler = scheduler or self.scheduler
        engine = SessionEngine(
            words,
            self.history,
            self.settings,
            audio,
            scheduler=scheduler,
            clock=lambda: scheduler.now_ms,
            now=lambda: FIXED_NOW,
            rng=random.Random(11),
        )
        for ev in EngineEvent:
            engine.on(ev, lambda payload, ev=ev: self.events.append((ev, payload)))
        return engine

    def _count(self, ev: EngineEvent) -> int:
        return sum(1 for e, _ in self.events if e is ev)

    # --- auto play ---

    def test_auto_without_input_skips_each_card_then_stops(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 2, "interval_ms": 1000})
        self.assertTrue(self.engine.state.has_card)
        self.assertEqual(self.scheduler.pending, 1)

        fired = self.scheduler.advance(5000)

        self.assertEqual(fired, 2)
        self.assertEqual(len(self.history.records), 2)
        for r in self.history.records:
            self.assertFalse(r.is_correct)
            self.assertEqual(r.score, 0)
            self.assertTrue(r.user_answer.is_blank())
            self.assertEqual(r.time_spent_ms, 1000)
        self.assertFalse(self.engine.state.active)
        self.assertEqual(self.scheduler.pending, 0)
        self.assertEqual(self._count(EngineEvent.GAME_STOPPED), 1)
        self.assertEqual(self._count(EngineEvent.CARD_SKIPPED), 2)

    def test_auto_queue_is_capped_by_card_count(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 3, "interval_ms": 1000})
        self.assertEqual(len(self.engine.state.auto_queue), 3)
        self.assertEqual(len({w.id for w in self.engine.state.auto_queue}), 3)
        self.assertEqual(self.engine.snapshot().auto_progress, (1, 3))

        self.scheduler.advance(1000)
        self.assertEqual(self.engine.snapshot().auto_progress, (2, 3))
        self.scheduler.advance(2000)

        self.assertFalse(self.engine.state.active)
        self.assertEqual(len(self.history.records), 3)
        progress = [p for e, p in self.events if e is EngineEvent.AUTO_PROGRESS]
        self.assertEqual([(p.current, p.total) for p in progress], [(1, 3), (2, 3), (3, 3)])

    def test_card_count_larger_than_word_store_uses_every_word_once(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 50, "interval_ms": 1000})
        self.assertEqual(len(self.engine.state.auto_queue), 5)
        self.scheduler.advance(10000)
        self.assertEqual(sorted(r.word_id for r in self.history.records), [1, 2, 3, 4, 5])

    def test_pending_input_is_scored_at_timer_expiry(self) -> None:
        self.engine.set_input_provider(lambda: self.engine.correct_answer())
        self.engine.start(SessionMode.AUTO, {"card_count": 2, "interval_ms": 1000})
        self.scheduler.advance(2000)

        self.assertEqual(len(self.history.records), 2)
        self.assertTrue(all(r.is_correct for r in self.history.records))
        self.assertEqual(self._count(EngineEvent.ANSWER_CHECKED), 2)

    def test_blank_pending_input_counts_as_skip(self) -> None:
        self.engine.set_input_provider(lambda: UserAnswer(native=" ", reading="", translation=None))
        self.engine.start(SessionMode.AUTO, {"card_count": 1, "interval_ms": 1000})
        self.scheduler.advance(1000)
        self.assertEqual(self._count(EngineEvent.CARD_SKIPPED), 1)
        self.assertEqual(self._count(EngineEvent.ANSWER_CHECKED), 0)

    def test_failing_input_provider_is_logged_and_skipped(self) -> None:
        def boom():
            raise RuntimeError("stdin closed")

        self.engine.set_input_provider(boom)
        self.engine.start(SessionMode.AUTO, {"card_count": 1, "interval_ms": 1000})
        with self.assertLogs("vocabdrill.app.session_engine", level="ERROR"):
            self.scheduler.advance(1000)
        self.assertEqual(len(self.history.records), 1)
        self.assertFalse(self.history.records[0].is_correct)

    def test_early_submit_cancels_timer_and_advances(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 2, "interval_ms": 1000})
        self.scheduler.advance(400)
        result = self.engine.submit_answer_in_auto_mode(self.engine.correct_answer())

        self.assertTrue(result.is_correct)
        self.assertEqual(self.history.records[0].time_spent_ms, 400)
        self.assertEqual(self.engine.state.auto_index, 1)
        self.assertEqual(self.scheduler.pending, 1)

        # The replacement timer runs a full interval from the early submit
        self.assertEqual(self.scheduler.advance(999), 0)
        self.assertEqual(self.scheduler.advance(1), 1)
        self.assertFalse(self.engine.state.active)
        self.assertEqual(len(self.history.records), 2)

    def test_stale_timer_callback_does_not_advance(self) -> None:
        scheduler = LeakyScheduler()
        engine = self._engine(make_words(), scheduler=scheduler)
        engine.start(SessionMode.AUTO, {"card_count": 2, "interval_ms": 1000})
        engine.submit_answer_in_auto_mode(engine.correct_answer())

        # Both the cancelled and the live timer are due; only the live one may act
        scheduler.advance(1000)

        self.assertEqual(len(self.history.records), 2)
        self.assertTrue(self.history.records[0].is_correct)
        self.assertFalse(self.history.records[1].is_correct)
        self.assertFalse(engine.state.active)

    def test_stop_invalidates_pending_timer(self) -> None:
        scheduler = LeakyScheduler()
        engine = self._engine(make_words(), scheduler=scheduler)
        engine.start(SessionMode.AUTO, {"card_count": 3, "interval_ms": 1000})
        engine.stop()
        scheduler.advance(5000)
        self.assertEqual(self.history.records, [])

    def test_restart_ignores_timers_from_previous_session(self) -> None:
        scheduler = LeakyScheduler()
        engine = self._engine(make_words(), scheduler=scheduler)
        engine.start(SessionMode.AUTO, {"card_count": 3, "interval_ms": 1000})
        scheduler.advance(500)
        engine.start(SessionMode.AUTO, {"card_count": 3, "interval_ms": 1000})

        # First session's timer is due at 1000, the new one at 1500
        scheduler.advance(500)
        self.assertEqual(engine.state.auto_index, 0)
        scheduler.advance(500)
        self.assertEqual(engine.state.auto_index, 1)

    def test_skip_in_auto_mode_moves_to_next_card(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 2, "interval_ms": 1000})
        self.engine.skip_card()
        self.assertEqual(self.engine.state.auto_index, 1)
        self.assertEqual(len(self.history.records), 1)
        self.engine.skip_card()
        self.assertFalse(self.engine.state.active)
        self.assertEqual(len(self.history.records), 2)

    def test_early_submit_outside_auto_mode_is_ignored(self) -> None:
        self.engine.start(SessionMode.MANUAL)
        self.engine.draw_card()
        self.assertIsNone(self.engine.submit_answer_in_auto_mode({"native": "x"}))
        self.assertEqual(self.history.records, [])

    def test_timer_error_stops_session(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 3, "interval_ms": 1000})
        self.settings.update(enabled_types={t: False for t in QuizType})
        with self.assertLogs("vocabdrill.app.session_engine", level="ERROR"):
            self.scheduler.advance(1000)
        self.assertFalse(self.engine.state.active)
        self.assertEqual(self.scheduler.pending, 0)

    def test_failed_skip_leaves_auto_session_untouched(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 3, "interval_ms": 1000})
        self.settings.update(enabled_types={t: False for t in QuizType})

        with self.assertRaises(NoEnabledTypes):
            self.engine.skip_card()

        self.assertTrue(self.engine.state.active)
        self.assertTrue(self.engine.state.has_card)
        self.assertEqual(self.engine.state.auto_index, 0)
        self.assertEqual(self.scheduler.pending, 1)
        self.assertEqual(self.history.records, [])

        # The armed timer still ends the session
        with self.assertLogs("vocabdrill.app.session_engine", level="ERROR"):
            self.scheduler.advance(1000)
        self.assertFalse(self.engine.state.active)

    def test_failed_early_submit_leaves_auto_session_untouched(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 3, "interval_ms": 1000})
        answer = self.engine.correct_answer()
        self.settings.update(enabled_types={t: False for t in QuizType})

        with self.assertRaises(NoEnabledTypes):
            self.engine.submit_answer_in_auto_mode(answer)

        self.assertTrue(self.engine.state.has_card)
        self.assertEqual(self.engine.state.auto_index, 0)
        self.assertEqual(self.scheduler.pending, 1)
        self.assertEqual(self.history.records, [])

    def test_skip_on_last_auto_card_needs_no_next_type(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 1, "interval_ms": 1000})
        self.settings.update(enabled_types={t: False for t in QuizType})
        self.engine.skip_card()
        self.assertFalse(self.engine.state.active)
        self.assertEqual(len(self.history.records), 1)

    def test_audio_failure_does_not_interrupt_auto_play(self) -> None:
        self.settings.update(enabled_types={QuizType.NATIVE: False, QuizType.READING: False, QuizType.TRANSLATION: False})
        audio = FailingAudio()
        engine = self._engine(make_words(), audio=audio)
        with self.assertLogs("vocabdrill.app.session_engine", level="WARNING"):
            engine.start(SessionMode.AUTO, {"card_count": 2, "interval_ms": 1000})
        self.assertEqual(audio.calls, 1)
        self.assertTrue(engine.state.active)
        self.assertEqual(engine.state.current_quiz_type, QuizType.AUDIO)
        self.assertEqual(self.scheduler.pending, 1)

    def test_audio_not_played_when_auto_play_disabled(self) -> None:
        self.settings.update(
            auto_play_audio=False,
            enabled_types={QuizType.NATIVE: False, QuizType.READING: False, QuizType.TRANSLATION: False},
        )
        audio = FailingAudio()
        engine = self._engine(make_words(), audio=audio)
        engine.start(SessionMode.AUTO, {"card_count": 1, "interval_ms": 1000})
        self.assertEqual(audio.calls, 0)

    def test_auto_settings_layering(self) -> None:
        self.settings.update(card_count=4, interval_ms=2000)
        self.assertEqual(self.engine.auto_settings().card_count, 4)
        self.engine.set_auto_settings(card_count=2)
        auto = self.engine.auto_settings()
        self.assertEqual((auto.card_count, auto.interval_ms), (2, 2000))
        self.assertEqual(self.engine.auto_settings({"interval_ms": 500}).interval_ms, 500)
        self.engine.reset()
        auto = self.engine.auto_settings()
        self.assertEqual((auto.card_count, auto.interval_ms), (5, 3000))
        self.engine.set_auto_settings(card_count=3)
        self.assertEqual(self.engine.auto_settings().card_count, 3)

    def test_auto_settings_overrides_are_clamped(self) -> None:
        auto = self.engine.auto_settings(AutoSettings(card_count=0, interval_ms=-50))
        self.assertEqual((auto.card_count, auto.interval_ms), (1, 0))
        self.assertEqual(self.engine.auto_settings({"card_count": -3}).card_count, 1)

    # --- manual play ---

    def test_manual_draw_and_submit(self) -> None:
        self.engine.start(SessionMode.MANUAL)
        self.assertEqual(self.scheduler.pending, 0)
        draw = self.engine.draw_card(QuizType.READING)
        self.assertEqual(draw.quiz_type, QuizType.READING)
        self.assertEqual(draw.prompt.content, draw.word.reading)

        self.scheduler.advance(1500)
        result = self.engine.submit_answer({"native": draw.word.native, "translation": draw.word.translation})

        self.assertTrue(result.is_correct)
        self.assertEqual((result.score, result.max_score), (2, 2))
        record = self.history.records[0]
        self.assertEqual(record.time_spent_ms, 1500)
        self.assertEqual(record.timestamp, FIXED_NOW)
        self.assertEqual(record.correct_answer, UserAnswer.from_word(draw.word))
        self.assertIsNone(self.engine.correct_answer())

    def test_card_is_answered_at_most_once(self) -> None:
        self.engine.start(SessionMode.MANUAL)
        self.engine.draw_card()
        self.engine.submit_answer(UserAnswer.empty())
        with self.assertRaises(NoActiveCard):
            self.engine.submit_answer(UserAnswer.empty())
        self.assertEqual(len(self.history.records), 1)

    def test_manual_skip_records_wrong_answer(self) -> None:
        self.engine.start(SessionMode.MANUAL)
        self.engine.draw_card(QuizType.AUDIO)
        self.engine.skip_card()
        self.assertEqual(len(self.history.records), 1)
        record = self.history.records[0]
        self.assertFalse(record.is_correct)
        self.assertEqual(record.scored_field_count, 3)

        # No card: nothing to record
        self.engine.skip_card()
        self.assertEqual(len(self.history.records), 1)

    def test_disabled_explicit_type_falls_back_to_enabled(self) -> None:
        self.settings.update(enabled_types={QuizType.READING: False, QuizType.AUDIO: False})
        self.engine.start(SessionMode.MANUAL)
        for _ in range(10):
            draw = self.engine.draw_card(QuizType.READING)
            self.assertIn(draw.quiz_type, (QuizType.NATIVE, QuizType.TRANSLATION))

    def test_default_quiz_type_setting_is_used(self) -> None:
        self.settings.update(default_quiz_type=QuizType.TRANSLATION)
        self.engine.start(SessionMode.MANUAL)
        self.assertEqual(self.engine.draw_card().quiz_type, QuizType.TRANSLATION)

    # --- errors ---

    def test_draw_requires_active_session(self) -> None:
        with self.assertRaises(GameNotActive):
            self.engine.draw_card()
        with self.assertRaises(GameNotActive):
            self.engine.skip_card()

    def test_submit_requires_card(self) -> None:
        self.engine.start(SessionMode.MANUAL)
        with self.assertRaises(NoActiveCard):
            self.engine.submit_answer(UserAnswer.empty())

    def test_auto_start_on_empty_store_leaves_state_untouched(self) -> None:
        engine = self._engine(WordStore(seed_samples=False))
        with self.assertRaises(NoWordsAvailable):
            engine.start(SessionMode.AUTO)
        self.assertFalse(engine.state.active)
        self.assertEqual(self.events, [])
        self.assertEqual(self.scheduler.pending, 0)

    def test_manual_draw_on_empty_store(self) -> None:
        engine = self._engine(WordStore(seed_samples=False))
        engine.start(SessionMode.MANUAL)
        with self.assertRaises(NoWordsAvailable):
            engine.draw_card()
        self.assertFalse(engine.state.has_card)

    def test_no_enabled_types(self) -> None:
        self.settings.update(enabled_types={t: False for t in QuizType})
        with self.assertRaises(NoEnabledTypes):
            self.engine.start(SessionMode.AUTO)
        self.assertFalse(self.engine.state.active)

        self.engine.start(SessionMode.MANUAL)
        with self.assertRaises(NoEnabledTypes):
            self.engine.draw_card()
        self.assertFalse(self.engine.state.has_card)

    def test_stop_is_idempotent(self) -> None:
        self.engine.stop()
        self.assertEqual(self._count(EngineEvent.GAME_STOPPED), 0)
        self.engine.start(SessionMode.AUTO, {"card_count": 2, "interval_ms": 1000})
        self.engine.stop()
        self.engine.stop()
        self.assertEqual(self._count(EngineEvent.GAME_STOPPED), 1)
        self.assertFalse(self.engine.state.has_card)
        self.assertEqual(self.engine.state.auto_queue, [])
        self.assertEqual(self.scheduler.pending, 0)

    def test_game_started_precedes_first_card(self) -> None:
        self.engine.start(SessionMode.AUTO, {"card_count": 1, "interval_ms": 1000})
        kinds = [e for e, _ in self.events]
        self.assertEqual(kinds[:3], [EngineEvent.GAME_STARTED, EngineEvent.CARD_DRAWN, EngineEvent.AUTO_PROGRESS])


if __name__ == "__main__":
    unittest.main()
