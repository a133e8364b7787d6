from __future__ import annotations

"""JSON-backed word collection.

File layout: ``{"schema": 1, "next_id": int, "words": [ {id, native, reading, translation, audio_ref}, ... ]}``
"""

import json
import random
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from vocabdrill.quiz.errors import InvalidWord, WordNotFound
from vocabdrill.quiz.types import Word


WORDS_FILE = "words.json"

SAMPLE_WORDS = [
    ("本", "ほん", "书"),
    ("学生", "がくせい", "学生"),
    ("先生", "せんせい", "老师"),
    ("学校", "がっこう", "学校"),
    ("友達", "ともだち", "朋友"),
]

_TEXT_FIELDS = ("native", "reading", "translation")


class WordStore:
    """Word collection with random sampling; in memory when ``data_dir`` is None."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        *,
        rng: Optional[random.Random] = None,
        seed_samples: bool = True,
    ) -> None:
        self.data_dir = Path(data_dir) if data_dir else None
        self.rng = rng or random.Random()
        self._lock = threading.Lock()
        self._words: List[Word] = []
        self._next_id = 1
        self._load()
        if seed_samples and not self._words:
            self.add_sample_words()

    @property
    def path(self) -> Optional[Path]:
        return self.data_dir / WORDS_FILE if self.data_dir else None

    def _load(self) -> None:
        p = self.path
        if p is None or not p.exists():
            return
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
        self._words = [Word.from_dict(w) for w in data.get("words", [])]
        max_id = max((w.id for w in self._words), default=0)
        self._next_id = max(int(data.get("next_id", 1)), max_id + 1)

    def _save(self) -> None:
        p = self.path
        if p is None:
            return
        p.parent.mkdir(parents=True, exist_ok=True)
        doc = {"schema": 1, "next_id": self._next_id, "words": [w.to_dict() for w in self._words]}
        tmp = p.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(doc, f, ensure_ascii=False, indent=2)
        tmp.replace(p)

    # --- mutation ---

    def add_sample_words(self) -> None:
        for native, reading, translation in SAMPLE_WORDS:
            self.add(native, reading, translation)

    def add(self, native: str, reading: str, translation: str, audio_ref: Optional[str] = None) -> Word:
        values = {"native": (native or "").strip(), "reading": (reading or "").strip(), "translation": (translation or "").strip()}
        missing = [k for k, v in values.items() if not v]
        if missing:
            raise InvalidWord(f"native, reading and translation are all required (missing: {', '.join(missing)})")
        with self._lock:
            word = Word(id=self._next_id, audio_ref=audio_ref or None, **values)
            self._next_id += 1
            self._words.append(word)
            self._save()
        return word

    def update(self, word_id: int, **fields: Any) -> Word:
        unknown = set(fields) - set(_TEXT_FIELDS) - {"audio_ref"}
        if unknown:
            raise InvalidWord(f"Unknown word fields: {', '.join(sorted(unknown))}")
        with self._lock:
            idx = self._index_of(word_id)
            data = self._words[idx].to_dict()
            data.update(fields)
            word = Word.from_dict(data)
            if not all(getattr(word, k).strip() for k in _TEXT_FIELDS):
                raise InvalidWord("native, reading and translation cannot be empty")
            self._words[idx] = word
            self._save()
        return word

    def delete(self, word_id: int) -> None:
        with self._lock:
            idx = self._index_of(word_id)
            del self._words[idx]
            self._save()

    def replace_all(self, words: Iterable[Dict[str, Any]]) -> None:
        """Swap the whole collection (data import). Entries without an id get a fresh one."""
        with self._lock:
            out: List[Word] = []
            next_id = self._next_id
            seen = set()
            for raw in words:
                raw = dict(raw)
                if raw.get("id") is None or int(raw["id"]) in seen:
                    raw["id"] = next_id
                    next_id += 1
                w = Word.from_dict(raw)
                seen.add(w.id)
                out.append(w)
            self._words = out
            self._next_id = max([next_id] + [w.id + 1 for w in out])
            self._save()

    def clear(self) -> None:
        with self._lock:
            self._words = []
            self._save()

    def _index_of(self, word_id: int) -> int:
        for i, w in enumerate(self._words):
            if w.id == int(word_id):
                return i
        raise WordNotFound(word_id)

    # --- queries ---

    def all_words(self) -> List[Word]:
        return list(self._words)

    def __len__(self) -> int:
        return len(self._words)

    def get(self, word_id: int) -> Word:
        return self._words[self._index_of(word_id)]

    def search(self, query: Optional[str]) -> List[Word]:
        if not query:
            return self.all_words()
        q = query.lower()
        return [w for w in self._words if any(q in getattr(w, k).lower() for k in _TEXT_FIELDS)]

    def random_word(self) -> Optional[Word]:
        if not self._words:
            return None
        return self.rng.choice(self._words)

    def random_words(self, n: int) -> List[Word]:
        """Distinct words in random order; all of them, shuffled, when n >= count."""
        if not self._words:
            return []
        if n >= len(self._words):
            out = list(self._words)
            self.rng.shuffle(out)
            return out
        return self.rng.sample(self._words, max(0, int(n)))
