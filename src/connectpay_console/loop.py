"""UI loop and background-request plumbing.

Component state is only touched from the UI loop. Network calls run on a
worker (``ThreadRunner``) and their outcome is posted back to the loop with
``call_soon``, the same hand-off a tkinter app does with ``root.after(0, ...)``.
"""

from __future__ import annotations

import heapq
import itertools
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, TypeVar

T = TypeVar("T")
Callback = Callable[[], None]


class UiLoop(Protocol):
    def call_soon(self, callback: Callback) -> None: ...

    def call_later(self, delay_seconds: float, callback: Callback) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualLoop:
    """Deterministic loop driven by ``advance``/``run_pending``.

    Used headless (scripts, tests) where no toolkit owns the main loop.
    ``call_soon`` is safe to call from worker threads.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: list[_Timer] = []
        self._by_handle: dict[int, _Timer] = {}
        self._ready: list[Callback] = []
        self._lock = threading.Lock()
        self._seq = itertools.count(1)

    def now(self) -> float:
        return self._now

    def call_soon(self, callback: Callback) -> None:
        with self._lock:
            self._ready.append(callback)

    def call_later(self, delay_seconds: float, callback: Callback) -> int:
        handle = next(self._seq)
        timer = _Timer(due=self._now + max(0.0, delay_seconds), seq=handle, callback=callback)
        heapq.heappush(self._timers, timer)
        self._by_handle[handle] = timer
        return handle

    def cancel(self, handle: Any) -> None:
        timer = self._by_handle.pop(handle, None)
        if timer is not None:
            timer.cancelled = True

    @property
    def pending_timers(self) -> int:
        return len(self._by_handle)

    def run_pending(self) -> int:
        ran = 0
        while True:
            with self._lock:
                if not self._ready:
                    return ran
                batch, self._ready = self._ready, []
            for callback in batch:
                callback()
                ran += 1

    def advance(self, seconds: float) -> int:
        target = self._now + seconds
        ran = self.run_pending()
        while self._timers and self._timers[0].due <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._by_handle.pop(timer.seq, None)
            self._now = timer.due
            timer.callback()
            ran += 1 + self.run_pending()
        self._now = target
        return ran


class TkLoop:
    """Adapter over a tkinter root (or any widget exposing ``after``)."""

    def __init__(self, root: Any) -> None:
        self.root = root

    def call_soon(self, callback: Callback) -> None:
        self.root.after(0, callback)

    def call_later(self, delay_seconds: float, callback: Callback) -> Any:
        return self.root.after(int(delay_seconds * 1000), callback)

    def cancel(self, handle: Any) -> None:
        self.root.after_cancel(handle)


@dataclass
class Submission:
    """Handle for a request handed to a runner; filled in on the UI loop."""

    operation: str
    done: bool = False
    value: Any = None
    error: Exception | None = None

    def resolve(self, value: Any) -> None:
        self.done = True
        self.value = value

    def fail(self, error: Exception) -> None:
        self.done = True
        self.error = error


class BackgroundRunner(Protocol):
    def submit(
        self,
        work: Callable[[], T],
        on_success: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> None: ...


class InlineRunner:
    """Runs work synchronously on the caller's thread."""

    def submit(
        self,
        work: Callable[[], T],
        on_success: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        try:
            result = work()
        except Exception as exc:
            on_error(exc)
            return
        on_success(result)


class ThreadRunner:
    def __init__(self, loop: UiLoop) -> None:
        self.loop = loop

    def submit(
        self,
        work: Callable[[], T],
        on_success: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        def worker() -> None:
            try:
                result = work()
            except Exception as exc:
                self.loop.call_soon(lambda: on_error(exc))
                return
            self.loop.call_soon(lambda: on_success(result))

        threading.Thread(target=worker, daemon=True).start()
