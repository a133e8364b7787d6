from __future__ import annotations

"""One-shot cancellable timers for auto-advance.

The engine only needs ``call_later(delay_ms, callback) -> handle`` and
``handle.cancel()``. ``ThreadingScheduler`` runs callbacks on a
``threading.Timer`` thread; tests drive ``ManualScheduler`` by hand.
"""

import threading
from typing import Callable, List, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class _ThreadTimerHandle:
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler:
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(max(0, delay_ms) / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return _ThreadTimerHandle(timer)


class _ManualHandle:
    def __init__(self, due_ms: int, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: nothing fires until ``advance`` is called."""

    def __init__(self) -> None:
        self.now_ms = 0
        self._pending: List[_ManualHandle] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        h = _ManualHandle(self.now_ms + max(0, delay_ms), callback)
        self._pending.append(h)
        return h

    @property
    def pending(self) -> int:
        return sum(1 for h in self._pending if not h.cancelled)

    def advance(self, ms: int) -> int:
        """Move time forward, firing due callbacks in order. Returns fired count."""
        target = self.now_ms + ms
        fired = 0
        while True:
            due = [h for h in self._pending if not h.cancelled and h.due_ms <= target]
            if not due:
                break
            h = min(due, key=lambda x: x.due_ms)
            self._pending.remove(h)
            self.now_ms = h.due_ms
            h.callback()
            fired += 1
        self.now_ms = target
        self._pending = [h for h in self._pending if not h.cancelled]
        return fired
