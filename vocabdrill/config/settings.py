from __future__ import annotations

"""SettingsStore: the engine's view of user preferences.

Backed by the validated YAML config dict. When constructed with a path,
``update`` writes the merged config back to that file.
"""

import copy
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..quiz.types import QuizType
from .config import default_config, validate_config


@dataclass(frozen=True)
class Settings:
    auto_play_audio: bool
    default_quiz_type: Optional[QuizType]
    enabled_types: Mapping[QuizType, bool]
    card_count: int
    interval_ms: int
    show_hints: bool = True

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Settings":
        quiz = cfg["quiz"]
        auto = cfg["auto"]
        return cls(
            auto_play_audio=bool(auto["auto_play_audio"]),
            default_quiz_type=QuizType.parse(quiz["default_quiz_type"]),
            enabled_types={t: bool(quiz["enabled_types"].get(t.value, False)) for t in QuizType},
            card_count=int(auto["card_count"]),
            interval_ms=int(auto["interval_ms"]),
            show_hints=bool(cfg["ui"]["show_hints"]),
        )


# Flat setting name -> (section, key) in the config document
_FLAT_KEYS = {
    "auto_play_audio": ("auto", "auto_play_audio"),
    "card_count": ("auto", "card_count"),
    "interval_ms": ("auto", "interval_ms"),
    "default_quiz_type": ("quiz", "default_quiz_type"),
    "show_hints": ("ui", "show_hints"),
}


class SettingsStore:
    def __init__(self, cfg: Optional[Dict[str, Any]] = None, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._cfg = validate_config(copy.deepcopy(cfg) if cfg is not None else default_config())

    @property
    def config(self) -> Dict[str, Any]:
        return copy.deepcopy(self._cfg)

    def get(self) -> Settings:
        with self._lock:
            return Settings.from_config(self._cfg)

    def update(self, **changes: Any) -> Settings:
        """Merge flat changes (``card_count=3``, ``enabled_types={...}``) and persist."""
        with self._lock:
            cfg = copy.deepcopy(self._cfg)
            for name, value in changes.items():
                if name == "enabled_types":
                    enabled = cfg["quiz"]["enabled_types"]
                    for t, flag in dict(value).items():
                        key = t.value if isinstance(t, QuizType) else str(t)
                        enabled[key] = bool(flag)
                    continue
                if name not in _FLAT_KEYS:
                    raise KeyError(f"Unknown setting: {name}")
                section, key = _FLAT_KEYS[name]
                if isinstance(value, QuizType):
                    value = value.value
                elif name == "default_quiz_type" and value is None:
                    value = "random"
                cfg[section][key] = value
            self._cfg = validate_config(cfg)
            self._save()
            return Settings.from_config(self._cfg)

    def set_value(self, dotted_key: str, raw_value: str) -> None:
        """Set ``section.key`` (or ``quiz.enabled_types.audio``) from a string."""
        parts = dotted_key.split(".")
        if len(parts) < 2:
            raise KeyError(f"Expected section.key, got: {dotted_key}")
        value = yaml.safe_load(raw_value)
        with self._lock:
            cfg = copy.deepcopy(self._cfg)
            node = cfg
            for p in parts[:-1]:
                if not isinstance(node.get(p), dict):
                    raise KeyError(f"Unknown setting: {dotted_key}")
                node = node[p]
            node[parts[-1]] = value
            self._cfg = validate_config(cfg)
            self._save()

    def reset(self) -> Settings:
        with self._lock:
            self._cfg = default_config()
            self._save()
            return Settings.from_config(self._cfg)

    def replace(self, cfg: Dict[str, Any]) -> None:
        """Swap in a whole config document (used by data import)."""
        with self._lock:
            self._cfg = validate_config(copy.deepcopy(cfg))
            self._save()

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self._cfg, f, sort_keys=False, allow_unicode=True)
