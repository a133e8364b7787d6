from __future__ import annotations

"""CLI for vocabdrill: word management, manual and auto drills, history and stats."""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from storage.history import HistoryStore
from storage.transfer import export_data, import_data
from storage.words import WordStore

from .. import __version__
from ..audio.playback import AudioService, make_player_from_config
from ..config.config import load_config, validate_config
from ..config.settings import SettingsStore
from ..quiz.errors import QuizError
from ..quiz.types import QuizType
from ..util.randomness import make_rng, seed_if_needed
from .console import ConsoleUI, format_answer, parse_answer_line, read_lines, summarize
from .events import SessionMode
from .session_engine import SessionEngine

SETTINGS_FILE = "settings.yml"


@dataclass
class AppContext:
    cfg: Dict[str, Any]
    data_dir: Path
    settings: SettingsStore
    words: WordStore
    history: HistoryStore


def _build_context(args: argparse.Namespace) -> AppContext:
    cfg = validate_config(load_config(args.config))
    data_dir = Path(args.data_dir or cfg["storage"]["data_dir"])
    settings_path = data_dir / SETTINGS_FILE
    # User-changed settings persist next to the data and win over the base config
    if settings_path.exists():
        cfg = validate_config(load_config(str(settings_path)))
    settings = SettingsStore(cfg, path=settings_path)
    rng = make_rng()
    words = WordStore(data_dir, rng=rng)
    history = HistoryStore(data_dir, limit=int(cfg["storage"]["history_limit"]))
    return AppContext(cfg=cfg, data_dir=data_dir, settings=settings, words=words, history=history)


def _make_audio(ctx: AppContext) -> Optional[AudioService]:
    try:
        return make_player_from_config(ctx.settings.config, base_dir=ctx.data_dir)
    except RuntimeError as e:
        logging.getLogger(__name__).warning("Audio disabled: %s", e)
        return None


def _make_engine(ctx: AppContext, audio: Optional[AudioService]) -> SessionEngine:
    return SessionEngine(ctx.words, ctx.history, ctx.settings, audio, rng=make_rng())


def _run_manual(ctx: AppContext, quiz_type: Optional[str]) -> int:
    audio = _make_audio(ctx)
    engine = _make_engine(ctx, audio)
    ui = ConsoleUI(sys.stdout, show_hints=ctx.settings.get().show_hints)
    ui.attach(engine)
    engine.start(SessionMode.MANUAL)
    print("Commands: answer line, 's' skip, 'a' show answer, 'p' play audio, 'q' quit")
    try:
        while engine.state.active:
            draw = engine.draw_card(quiz_type)
            if draw.quiz_type is QuizType.AUDIO and audio is not None and ctx.settings.get().auto_play_audio:
                _play_quietly(audio, draw.word.audio_ref)
            while True:
                try:
                    line = input("> ")
                except EOFError:
                    line = "q"
                cmd = line.strip().lower()
                if cmd == "q":
                    engine.stop()
                    break
                if cmd == "p":
                    if audio is not None:
                        _play_quietly(audio, draw.word.audio_ref)
                    continue
                if cmd == "s":
                    engine.skip_card()
                    break
                if cmd == "a":
                    print(f"Answer: {format_answer(draw.word)}")
                    engine.skip_card()
                    break
                if not cmd:
                    continue
                engine.submit_answer(parse_answer_line(line, draw.quiz_type))
                break
    finally:
        engine.stop()
        if audio is not None:
            audio.close()
    return 0


def _play_quietly(audio: AudioService, ref: Optional[str]) -> None:
    try:
        audio.play(ref)
    except QuizError as e:
        print(f"(audio unavailable: {e})")


def _run_auto(ctx: AppContext, cards: Optional[int], interval_s: Optional[float], early_submit: bool) -> int:
    audio = _make_audio(ctx)
    engine = _make_engine(ctx, audio)
    ui = ConsoleUI(sys.stdout, show_hints=ctx.settings.get().show_hints)
    ui.attach(engine)

    def on_line(line: str) -> bool:
        if line.strip().lower() == "q":
            engine.stop()
            return False
        if not line.strip():
            return True
        if early_submit:
            qt = ui.current_quiz_type()
            if qt is not None:
                try:
                    engine.submit_answer_in_auto_mode(parse_answer_line(line, qt))
                except QuizError as e:
                    # Card and timer are untouched; the timer still ends the card
                    print(f"ERROR: {e}", file=sys.stderr)
        else:
            ui.buffer_line(line)
        return engine.state.active

    overrides: Dict[str, Any] = {}
    if cards is not None:
        overrides["card_count"] = cards
    if interval_s is not None:
        overrides["interval_ms"] = int(interval_s * 1000)
    try:
        engine.start(SessionMode.AUTO, overrides)
        read_lines(sys.stdin, on_line)
        ui.finished.wait()
    except KeyboardInterrupt:
        engine.stop()
    finally:
        if audio is not None:
            audio.close()
    print()
    print("\n".join(summarize(ctx.history.statistics(), ctx.history.type_statistics())))
    return 0


def _print_words(words: List) -> None:
    for w in words:
        audio = f"  [audio: {w.audio_ref}]" if w.audio_ref else ""
        print(f"{w.id:>4}  {w.native} / {w.reading} / {w.translation}{audio}")


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="vocabdrill", description="Vocabulary drill")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--data-dir", dest="data_dir", default=None, help="Directory for words, history and settings")
    p.add_argument("--explain", action="store_true", help="Trace engine milestones")
    p.add_argument("--log-level", dest="log_level", default="WARNING")
    p.add_argument("--version", action="version", version=f"vocabdrill {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    wp = sub.add_parser("words")
    wsub = wp.add_subparsers(dest="words_cmd", required=True)
    wsub.add_parser("list")
    wa = wsub.add_parser("add")
    wa.add_argument("native")
    wa.add_argument("reading")
    wa.add_argument("translation")
    wa.add_argument("--audio", default=None, help="Audio file path (relative to data dir or absolute)")
    wr = wsub.add_parser("remove")
    wr.add_argument("id", type=int)
    ws = wsub.add_parser("search")
    ws.add_argument("query")

    dp = sub.add_parser("drill")
    dp.add_argument("--type", dest="quiz_type", default=None, choices=[t.value for t in QuizType])

    ap = sub.add_parser("auto")
    ap.add_argument("--cards", type=int, default=None)
    ap.add_argument("--interval", type=float, default=None, help="Seconds per card")
    ap.add_argument("--no-early-submit", dest="early_submit", action="store_false",
                    help="Buffer typed answers until the card's timer expires")

    hp = sub.add_parser("history")
    hp.add_argument("--filter", dest="date_filter", default=None, choices=["today", "week", "month"])
    hp.add_argument("--limit", type=int, default=20)
    sub.add_parser("clear-history")

    sp = sub.add_parser("stats")
    sp.add_argument("--plot", default=None, help="Directory for PNG reports")

    stp = sub.add_parser("settings")
    ssub = stp.add_subparsers(dest="settings_cmd", required=True)
    ssub.add_parser("show")
    sset = ssub.add_parser("set")
    sset.add_argument("assignment", help="section.key=value, e.g. quiz.enabled_types.audio=false")
    ssub.add_parser("reset")

    ep = sub.add_parser("export")
    ep.add_argument("path")
    ip = sub.add_parser("import")
    ip.add_argument("path")

    args = p.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")
    seed_if_needed()

    try:
        ctx = _build_context(args)
        if args.explain or ctx.cfg["ui"]["explain"]:
            from .explain import enable as explain_enable
            explain_enable(True)

        if args.cmd == "words":
            if args.words_cmd == "list":
                _print_words(ctx.words.all_words())
            elif args.words_cmd == "add":
                w = ctx.words.add(args.native, args.reading, args.translation, audio_ref=args.audio)
                print(f"Added word {w.id}: {format_answer(w)}")
            elif args.words_cmd == "remove":
                ctx.words.delete(args.id)
                print(f"Removed word {args.id}")
            elif args.words_cmd == "search":
                _print_words(ctx.words.search(args.query))
            return 0

        if args.cmd == "drill":
            return _run_manual(ctx, args.quiz_type)

        if args.cmd == "auto":
            return _run_auto(ctx, args.cards, args.interval, args.early_submit)

        if args.cmd == "history":
            for r in ctx.history.records(args.date_filter)[: max(0, args.limit)]:
                status = "ok" if r.is_correct else "x "
                ts = r.timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
                print(f"{ts}  {status} [{r.quiz_type.value}] {format_answer(r.word)}  {r.time_spent_ms / 1000:.1f}s")
            return 0

        if args.cmd == "clear-history":
            ctx.history.clear()
            print("History cleared.")
            return 0

        if args.cmd == "stats":
            print("\n".join(summarize(ctx.history.statistics(), ctx.history.type_statistics())))
            from analytics import AnalyticsConfig, compute_metrics, ewma_by_day, load_and_prepare, word_difficulty

            acfg = AnalyticsConfig()
            frame = ctx.history.load_frame()
            if frame.empty:
                return 0
            df = load_and_prepare(frame)
            hardest = word_difficulty(df, acfg)
            if not hardest.empty:
                print("Hardest words:")
                for r in hardest.itertuples():
                    print(f"  {r.word_native}: {int(r.C)}/{int(r.Q)} ({r.acc * 100:.0f}%)")
            if args.plot:
                from analytics import plot_trend, plot_type_accuracy

                outdir = Path(args.plot)
                outdir.mkdir(parents=True, exist_ok=True)
                m = ewma_by_day(compute_metrics(df), value_col="acc", span=acfg.smoothing_span, group_cols=["quiz_type"])
                for t in QuizType:
                    plot_trend(m, quiz_type=t.value, save_path=outdir / f"trend_{t.value}.png")
                plot_type_accuracy(m, save_path=outdir / "accuracy_by_type.png")
                print(f"Reports saved to: {outdir.resolve()}")
            return 0

        if args.cmd == "settings":
            if args.settings_cmd == "set":
                key, sep, value = args.assignment.partition("=")
                if not sep:
                    print("ERROR: expected section.key=value", file=sys.stderr)
                    return 2
                ctx.settings.set_value(key.strip(), value.strip())
            elif args.settings_cmd == "reset":
                ctx.settings.reset()
            import yaml

            print(yaml.safe_dump(ctx.settings.config, sort_keys=False, allow_unicode=True), end="")
            return 0

        if args.cmd == "export":
            Path(args.path).write_text(export_data(ctx.words, ctx.history, ctx.settings), encoding="utf-8")
            print(f"Exported {len(ctx.words)} words and {len(ctx.history)} history records to {args.path}")
            return 0

        if args.cmd == "import":
            counts = import_data(Path(args.path).read_text(encoding="utf-8"), ctx.words, ctx.history, ctx.settings)
            print(f"Imported {counts['words']} words, {counts['history']} history records.")
            return 0

    except (QuizError, KeyError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
