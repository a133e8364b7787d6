from __future__ import annotations

"""Minimal tracing helpers (Explain Mode).

Enable with the --explain flag (or ``ui.explain`` in config) to emit one
line per engine milestone: draws, checks, skips and timer firings.
"""

import dataclasses
import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict

_ENABLED = False


def enable(flag: bool = True) -> None:
    global _ENABLED
    _ENABLED = bool(flag)


def enabled() -> bool:
    return _ENABLED


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    return str(obj)


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    data = payload or {}
    # one line JSON; words stay readable
    print(f"[EXPLAIN] {event} :: {json.dumps(data, separators=(',', ':'), ensure_ascii=False, default=_jsonable)}")
