from __future__ import annotations

"""Word audio playback.

``AudioService.play`` returns a Future so callers can fire and forget; the
session engine never waits on it.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Optional

from ..quiz.errors import PlaybackError


class AudioService:
    """Abstract-like playback interface."""

    def play(self, audio_ref: Optional[str]) -> Future:
        """Start playing a clip; the future resolves when it ends."""
        raise NotImplementedError

    def stop(self) -> None:
        pass

    def close(self) -> None:
        """Release resources."""
        pass


class NullPlayer(AudioService):
    """Backend ``none``: completes immediately without sound."""

    def play(self, audio_ref: Optional[str]) -> Future:
        if not audio_ref:
            raise PlaybackError("Word has no audio")
        f: Future = Future()
        f.set_result(None)
        return f


class SoundDevicePlayer(AudioService):
    """Concrete player using soundfile for decoding and sounddevice for output."""

    def __init__(self, volume: float = 0.8, base_dir: Optional[Path] = None) -> None:
        try:
            import sounddevice  # type: ignore
            import soundfile  # type: ignore
        except Exception as e:  # pragma: no cover - runtime dependency (PortAudio)
            raise RuntimeError("sounddevice/soundfile are not available") from e
        self._sd = sounddevice
        self._sf = soundfile
        self.volume = 0.8
        self.set_volume(volume)
        self.base_dir = Path(base_dir) if base_dir else None
        # One worker: a new clip queues behind stop() of the previous one
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vocabdrill-audio")
        self._lock = threading.Lock()

    def _resolve(self, audio_ref: str) -> Path:
        p = Path(audio_ref)
        if not p.is_absolute() and self.base_dir is not None:
            p = self.base_dir / p
        return p

    def _play_blocking(self, path: Path) -> None:
        try:
            data, samplerate = self._sf.read(str(path), dtype="float32")
        except Exception as e:
            raise PlaybackError(f"Could not load audio '{path}': {e}") from e
        try:
            self._sd.play(data * self.volume, samplerate)
            self._sd.wait()
        except Exception as e:
            raise PlaybackError(f"Audio output failed: {e}") from e

    def play(self, audio_ref: Optional[str]) -> Future:
        if not audio_ref:
            raise PlaybackError("Word has no audio")
        path = self._resolve(audio_ref)
        if not path.exists():
            raise PlaybackError(f"Audio file not found: {path}")
        with self._lock:
            self.stop()
            return self._pool.submit(self._play_blocking, path)

    def stop(self) -> None:
        try:
            self._sd.stop()
        except Exception:
            # nothing playing / device gone
            pass

    def set_volume(self, volume: float) -> None:
        self.volume = min(1.0, max(0.0, float(volume)))

    def close(self) -> None:
        self.stop()
        self._pool.shutdown(wait=False)


def make_player_from_config(cfg: Dict, base_dir: Optional[Path] = None) -> AudioService:
    """Factory for AudioService from config dict."""
    audio = cfg.get("audio", {})
    backend = audio.get("backend", "sounddevice")
    if backend == "none":
        return NullPlayer()
    if backend == "sounddevice":
        return SoundDevicePlayer(volume=float(audio.get("volume", 0.8)), base_dir=base_dir)
    raise ValueError(f"Unsupported backend: {backend}")
