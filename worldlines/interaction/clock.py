"""Single clock/ticker abstraction driving timers, repeating ticks and frames.

All interactive components schedule through one clock. ``Clock.advance``
moves logical time forward and fires everything that falls due, in time
order, so tests drive whole animations without sleeping.
``RealtimeClock`` feeds wall-clock time into the same machinery.
"""

import heapq
import itertools
import logging
import math
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellable handle for a scheduled callback."""

    __slots__ = ("due", "interval", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None], interval: float | None = None) -> None:
        self.due = due
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        kind = f"every {self.interval}ms" if self.interval else "once"
        state = "cancelled" if self.cancelled else f"due {self.due}"
        return f"TimerHandle({kind}, {state})"


class Clock:
    """Deterministic logical clock (milliseconds)."""

    def __init__(self, frame_ms: float = 16) -> None:
        self.frame_ms = frame_ms
        self._now = 0.0
        self._next_frame = frame_ms
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._frame_callbacks: list[TimerHandle] = []
        self._frame_listeners: list[Callable[[], None]] = []

    @property
    def now(self) -> float:
        return self._now

    # --- Scheduling ---

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self._now + max(delay_ms, 0.0), callback)
        self._push(handle)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Fire ``callback`` every ``interval_ms``, first after one interval."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = TimerHandle(self._now + interval_ms, callback, interval=interval_ms)
        self._push(handle)
        return handle

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once at the next frame boundary.

        Callbacks requested while a frame is running wait for the following
        frame, so nesting two requests defers past one full layout pass.
        """
        handle = TimerHandle(self._next_frame, callback)
        self._frame_callbacks.append(handle)
        return handle

    def on_frame(self, listener: Callable[[], None]) -> None:
        """Run ``listener`` at the start of every frame (layout passes)."""
        self._frame_listeners.append(listener)

    def remove_frame_listener(self, listener: Callable[[], None]) -> None:
        if listener in self._frame_listeners:
            self._frame_listeners.remove(listener)

    @property
    def idle(self) -> bool:
        """True when no timers or frame callbacks are pending."""
        self._drop_cancelled()
        self._frame_callbacks = [h for h in self._frame_callbacks if not h.cancelled]
        return not self._heap and not self._frame_callbacks

    # --- Driving ---

    def advance(self, ms: float) -> None:
        """Move time forward by ``ms``, firing everything that falls due."""
        target = self._now + ms
        while True:
            self._drop_cancelled()
            next_timer = self._heap[0][0] if self._heap else math.inf
            step = min(next_timer, self._next_frame)
            if step > target:
                break
            self._now = step
            if next_timer <= self._next_frame:
                _, _, handle = heapq.heappop(self._heap)
                self._fire(handle)
            else:
                self._next_frame += self.frame_ms
                self._run_frame()
        self._now = target

    def run_until_idle(self, limit_ms: float = 60_000) -> None:
        """Advance frame by frame until nothing is pending (or ``limit_ms`` passes)."""
        deadline = self._now + limit_ms
        while not self.idle and self._now < deadline:
            self.advance(self.frame_ms)

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (handle.due, next(self._seq), handle))

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)

    def _fire(self, handle: TimerHandle) -> None:
        if handle.interval is not None:
            handle.due += handle.interval
            self._push(handle)
        handle.callback()

    def _run_frame(self) -> None:
        for listener in list(self._frame_listeners):
            listener()
        callbacks, self._frame_callbacks = self._frame_callbacks, []
        for handle in callbacks:
            if not handle.cancelled:
                handle.callback()


class RealtimeClock(Clock):
    """Clock driven by ``time.monotonic`` for interactive front-ends."""

    def run(self, until: Callable[[], bool], timeout_s: float = 60.0) -> None:
        """Pump wall-clock time into the clock until ``until()`` is true."""
        start = last = time.monotonic()
        while not until():
            time.sleep(self.frame_ms / 1000)
            current = time.monotonic()
            self.advance((current - last) * 1000)
            last = current
            if current - start > timeout_s:
                logger.warning("Realtime clock gave up after %.1fs", timeout_s)
                break
