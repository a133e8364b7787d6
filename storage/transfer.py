from __future__ import annotations

"""Backup and restore of words, history and settings as one JSON document."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from vocabdrill.quiz.errors import ImportFormatError

from .history import HistoryStore
from .words import WordStore

EXPORT_VERSION = "1.0"


def export_data(words: WordStore, history: HistoryStore, settings=None) -> str:
    doc: Dict[str, Any] = {
        "words": [w.to_dict() for w in words.all_words()],
        "history": history.export_rows(),
        "settings": settings.config if settings is not None else {},
        "export_date": datetime.now(timezone.utc).isoformat(),
        "version": EXPORT_VERSION,
    }
    return json.dumps(doc, ensure_ascii=False, indent=2)


def import_data(text: str, words: WordStore, history: HistoryStore, settings=None) -> Dict[str, int]:
    """Replace words (and history/settings when present) from an export document.

    On failure after validation the previous words, history and settings are restored.
    """
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Import failed: not valid JSON ({e})") from e
    if not isinstance(doc, dict) or not isinstance(doc.get("words"), list):
        raise ImportFormatError("Import failed: document has no 'words' list")

    backup_words = [w.to_dict() for w in words.all_words()]
    backup_history = history.export_rows()
    backup_settings: Optional[Dict[str, Any]] = settings.config if settings is not None else None

    try:
        if doc["words"]:
            words.replace_all(doc["words"])
        if isinstance(doc.get("history"), list):
            history.replace_rows(doc["history"])
        if settings is not None and isinstance(doc.get("settings"), dict) and doc["settings"]:
            merged = settings.config
            for section, values in doc["settings"].items():
                if isinstance(values, dict):
                    merged.setdefault(section, {}).update(values)
            settings.replace(merged)
    except Exception as e:
        words.replace_all(backup_words)
        history.replace_rows(backup_history)
        if backup_settings is not None:
            settings.replace(backup_settings)
        raise ImportFormatError(f"Import failed: {e}") from e

    return {"words": len(words), "history": len(history)}
