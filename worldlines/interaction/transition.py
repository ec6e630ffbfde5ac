"""Cinematic transition sequencer for the divergence meter.

A jump to a new value plays six timed phases:

    FLASH -> REVEAL -> SCRAMBLE -> CONVERGE -> SHRINK -> FADE_OUT

Only one run is live at a time. Every run gets a generation token and every
scheduled callback checks it before touching the display, so a run that was
overridden (or cancelled) can never write over a newer one. Its timer
handles are cancelled as well.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from worldlines.config import TransitionConfig
from worldlines.interaction.clock import Clock, TimerHandle
from worldlines.interaction.display import format_reading

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    FLASH = "flash"
    REVEAL = "reveal"
    SCRAMBLE = "scramble"
    CONVERGE = "converge"
    SHRINK = "shrink"
    FADE_OUT = "fade_out"


PHASE_ORDER = (
    Phase.FLASH,
    Phase.REVEAL,
    Phase.SCRAMBLE,
    Phase.CONVERGE,
    Phase.SHRINK,
    Phase.FADE_OUT,
)


def ease_out_cubic(t: float) -> float:
    t = min(max(t, 0.0), 1.0)
    return 1 - (1 - t) ** 3


def converge_value(start: float, end: float, t: float) -> float:
    """Eased value at progress ``t``; exactly ``end`` once ``t >= 1``."""
    if t >= 1.0:
        return end
    return start + (end - start) * ease_out_cubic(t)


@dataclass
class DisplayState:
    """What the meter shows right now."""
    shown: float = 0.0
    visible: bool = True
    scale: float = 1.0
    opacity: float = 1.0

    @property
    def reading(self) -> str:
        return format_reading(self.shown) if self.visible else ""


@dataclass
class _Run:
    token: int
    start: float
    target: float
    phase: Phase = Phase.IDLE
    phase_started: float = 0.0
    phase_ticker: TimerHandle | None = None
    handles: list[TimerHandle] = field(default_factory=list)


class TransitionSequencer:
    """Plays the jump animation on a shared clock."""

    def __init__(
        self,
        clock: Clock,
        config: TransitionConfig | None = None,
        rng: random.Random | None = None,
        initial_value: float = 0.0,
    ) -> None:
        self.clock = clock
        self.config = config or TransitionConfig()
        self.rng = rng or random.Random()
        self.display = DisplayState(shown=initial_value)
        self.generation = 0
        self._settled = initial_value
        self._run: _Run | None = None
        self._listeners: list[Callable[[Phase], None]] = []
        self._durations = {
            Phase.FLASH: self.config.flash_ms,
            Phase.REVEAL: self.config.reveal_ms,
            Phase.SCRAMBLE: self.config.scramble_ms,
            Phase.CONVERGE: self.config.converge_ms,
            Phase.SHRINK: self.config.shrink_ms,
            Phase.FADE_OUT: self.config.fade_ms,
        }

    @property
    def phase(self) -> Phase:
        return self._run.phase if self._run else Phase.IDLE

    @property
    def active(self) -> bool:
        return self._run is not None

    @property
    def transition_complete(self) -> bool:
        return self._run is None

    @property
    def target(self) -> float | None:
        return self._run.target if self._run else None

    @property
    def settled_value(self) -> float:
        """Last value a run converged on (or the initial value)."""
        return self._settled

    @property
    def total_duration(self) -> float:
        return sum(self._durations.values())

    def subscribe(self, listener: Callable[[Phase], None]) -> None:
        """Call ``listener(phase)`` on every phase entry; ``Phase.IDLE`` on completion."""
        self._listeners.append(listener)

    def set_value(self, value: float) -> None:
        """Show ``value`` immediately, without a transition."""
        self.cancel()
        self._settled = value
        self.display = DisplayState(shown=value)

    def jump(self, target: float) -> int:
        """Start a run towards ``target``, overriding any run in flight. Returns its token."""
        if self._run is not None:
            logger.debug("Run %d overridden by a new jump", self._run.token)
            self._invalidate()
        self.generation += 1
        self._run = _Run(token=self.generation, start=self._settled, target=target)
        logger.debug("Run %d: %s -> %s", self.generation, self._settled, target)
        self._run.handles.append(
            self.clock.call_every(self.config.frame_ms, self._guard(self._on_frame))
        )
        self._enter(Phase.FLASH)
        return self.generation

    def cancel(self) -> None:
        """Drop the run in flight (host teardown). The display rests on the settled value."""
        if self._run is None:
            return
        logger.debug("Run %d cancelled", self._run.token)
        self._invalidate()
        self.display = DisplayState(shown=self._settled)

    def _invalidate(self) -> None:
        assert self._run is not None
        for handle in self._run.handles:
            handle.cancel()
        self._run = None
        self.generation += 1

    def _guard(self, fn: Callable[[], None]) -> Callable[[], None]:
        token = self.generation

        def callback() -> None:
            if self._run is None or self._run.token != token:
                logger.debug("Dropping stale callback from run %d", token)
                return
            fn()

        return callback

    # --- Phase machine ---

    def _enter(self, phase: Phase) -> None:
        run = self._run
        assert run is not None
        run.phase = phase
        run.phase_started = self.clock.now
        run.handles.append(
            self.clock.call_later(self._durations[phase], self._guard(self._finish_phase))
        )

        if phase is Phase.FLASH:
            self.display.visible = False
            self.display.scale = 1.0
            self.display.opacity = 1.0
        elif phase is Phase.REVEAL:
            self.display.visible = True
            self.display.shown = run.start
            self.display.scale = self.config.peak_scale
        elif phase is Phase.SCRAMBLE:
            self.display.scale = 1.0
            self._scramble()
            run.phase_ticker = self.clock.call_every(
                self.config.scramble_tick_ms, self._guard(self._scramble)
            )
            run.handles.append(run.phase_ticker)
        elif phase is Phase.CONVERGE:
            self.display.shown = run.start

        self._emit(phase)

    def _finish_phase(self) -> None:
        run = self._run
        assert run is not None
        if run.phase_ticker is not None:
            run.phase_ticker.cancel()
            run.phase_ticker = None
        if run.phase is Phase.CONVERGE:
            self.display.shown = run.target
            self._settled = run.target

        index = PHASE_ORDER.index(run.phase)
        if index + 1 < len(PHASE_ORDER):
            self._enter(PHASE_ORDER[index + 1])
            return

        self._complete()

    def _complete(self) -> None:
        run = self._run
        assert run is not None
        for handle in run.handles:
            handle.cancel()
        self._run = None
        self.display = DisplayState(shown=run.target)
        logger.debug("Run %d complete at %s", run.token, self.display.reading)
        self._emit(Phase.IDLE)

    def _progress(self) -> float:
        run = self._run
        assert run is not None
        duration = self._durations[run.phase]
        if duration <= 0:
            return 1.0
        return min(max((self.clock.now - run.phase_started) / duration, 0.0), 1.0)

    def _on_frame(self) -> None:
        run = self._run
        assert run is not None
        p = self._progress()
        peak = self.config.peak_scale
        if run.phase is Phase.FLASH:
            self.display.scale = 1.0 + (peak - 1.0) * ease_out_cubic(p)
        elif run.phase is Phase.REVEAL:
            self.display.scale = peak - (peak - 1.0) * ease_out_cubic(p)
        elif run.phase is Phase.CONVERGE:
            self.display.shown = converge_value(run.start, run.target, p)
        elif run.phase is Phase.SHRINK:
            self.display.scale = 1.0 - (1.0 - self.config.shrink_scale) * p
        elif run.phase is Phase.FADE_OUT:
            self.display.opacity = 1.0 - p

    def _scramble(self) -> None:
        previous = self.display.shown
        value = previous
        for _ in range(8):
            value = round(
                self.rng.uniform(self.config.scramble_min, self.config.scramble_max), 6,
            )
            if value != previous:
                break
        self.display.shown = value

    def _emit(self, phase: Phase) -> None:
        for listener in self._listeners:
            listener(phase)
