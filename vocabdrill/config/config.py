from __future__ import annotations

"""Configuration loading and validation for vocabdrill.

This module loads YAML configuration, applies defaults, and validates
that enumerations and numeric ranges are sane.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


ALLOWED_QUIZ_TYPES = {"native", "reading", "translation", "audio"}
ALLOWED_DEFAULT_TYPES = ALLOWED_QUIZ_TYPES | {"random"}
ALLOWED_BACKENDS = {"sounddevice", "none"}

MIN_INTERVAL_MS = 100


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def default_config_path() -> Path:
    return Path(__file__).with_name("defaults.yml")


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(default_config_path())


def default_config() -> Dict[str, Any]:
    """Validated package defaults."""
    return validate_config(load_config(None))


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Unsupported enumeration values are reported and replaced by their
    defaults; numeric values are clamped into range.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    cfg.setdefault("quiz", {})
    cfg.setdefault("auto", {})
    cfg.setdefault("audio", {})
    cfg.setdefault("storage", {})
    cfg.setdefault("ui", {})

    quiz = cfg["quiz"]
    auto = cfg["auto"]
    audio = cfg["audio"]
    storage = cfg["storage"]
    ui = cfg["ui"]

    quiz.setdefault("enabled_types", {})
    quiz.setdefault("default_quiz_type", "random")
    enabled = quiz["enabled_types"] or {}
    for t in sorted(set(enabled) - ALLOWED_QUIZ_TYPES):
        print(f"WARNING: Unknown quiz type '{t}' in enabled_types, ignoring.")
        enabled.pop(t)
    for t in ALLOWED_QUIZ_TYPES:
        enabled[t] = _as_bool(enabled.get(t), True)
    quiz["enabled_types"] = enabled

    auto.setdefault("card_count", 5)
    auto.setdefault("interval_ms", 3000)
    auto.setdefault("auto_play_audio", True)

    audio.setdefault("backend", "sounddevice")
    audio.setdefault("volume", 0.8)

    storage.setdefault("data_dir", "./vocab_data")
    storage.setdefault("history_limit", 1000)

    ui.setdefault("show_hints", True)
    ui.setdefault("explain", False)

    # Enum validations
    default_type = str(quiz.get("default_quiz_type") or "random").lower()
    if default_type not in ALLOWED_DEFAULT_TYPES:
        print(f"WARNING: Unsupported default_quiz_type '{default_type}', using 'random'.")
        default_type = "random"
    quiz["default_quiz_type"] = default_type

    backend = audio.get("backend")
    if backend not in ALLOWED_BACKENDS:
        print(f"WARNING: Unsupported audio backend '{backend}', falling back to 'sounddevice'.")
        audio["backend"] = "sounddevice"

    # Numeric ranges
    try:
        auto["card_count"] = max(1, int(auto["card_count"]))
    except (TypeError, ValueError):
        print(f"WARNING: Invalid card_count '{auto['card_count']}', using 5.")
        auto["card_count"] = 5
    try:
        auto["interval_ms"] = max(MIN_INTERVAL_MS, int(auto["interval_ms"]))
    except (TypeError, ValueError):
        print(f"WARNING: Invalid interval_ms '{auto['interval_ms']}', using 3000.")
        auto["interval_ms"] = 3000
    auto["auto_play_audio"] = _as_bool(auto.get("auto_play_audio"), True)

    try:
        audio["volume"] = min(1.0, max(0.0, float(audio["volume"])))
    except (TypeError, ValueError):
        audio["volume"] = 0.8
    try:
        storage["history_limit"] = max(1, int(storage["history_limit"]))
    except (TypeError, ValueError):
        storage["history_limit"] = 1000

    ui["show_hints"] = _as_bool(ui.get("show_hints"), True)
    ui["explain"] = _as_bool(ui.get("explain"), False)

    return cfg
