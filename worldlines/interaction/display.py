"""Nixie meter reading formats and the standalone meter display modes."""

import logging
import re
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from worldlines.interaction.clock import Clock, TimerHandle

logger = logging.getLogger(__name__)

READING_DECIMALS = 6
MAX_DIGITS = 8


def format_reading(value: float) -> str:
    """Divergence reading, six decimals: ``1.130205``."""
    return f"{value:.{READING_DECIMALS}f}"


def sanitize_custom_value(text: str) -> str:
    """Clean free text typed into the meter's custom mode.

    Keeps digits and dots. With a dot the result is ``X.XXXXXX`` (the last
    digit typed before the dot, up to six after); without one, up to eight
    digits.
    """
    cleaned = re.sub(r"[^\d.]", "", text)
    if "." in cleaned:
        parts = cleaned.split(".")
        before = parts[0][-1:]
        after = parts[1][:READING_DECIMALS]
        return f"{before}.{after}"
    return cleaned[:MAX_DIGITS]


def clock_reading(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return now.strftime("%H.%M.%S")


def counter_reading(count: int) -> str:
    return str(count % 10**MAX_DIGITS).zfill(MAX_DIGITS)


class MeterMode(str, Enum):
    CLOCK = "clock"
    CUSTOM = "custom"
    COUNTER = "counter"


class NixieMeter:
    """The meter outside of worldline jumps: wall time, a typed value, or a counter.

    Ticks once a second on the shared clock; the counter advances by one per
    tick while in counter mode.
    """

    TICK_MS = 1000
    DEFAULT_CUSTOM_VALUE = "12345678"

    def __init__(
        self,
        clock: Clock,
        mode: MeterMode = MeterMode.CLOCK,
        custom_value: str = DEFAULT_CUSTOM_VALUE,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.clock = clock
        self.now = now
        self.mode = MeterMode(mode)
        self.custom_value = sanitize_custom_value(custom_value)
        self.count = 0
        self._ticker: TimerHandle | None = None
        self._listeners: list[Callable[[str], None]] = []

    @property
    def reading(self) -> str:
        if self.mode is MeterMode.CLOCK:
            return clock_reading(self.now())
        if self.mode is MeterMode.CUSTOM:
            return self.custom_value
        return counter_reading(self.count)

    @property
    def show_dots(self) -> bool:
        """Clock mode lights the separators between hours, minutes and seconds."""
        return self.mode is MeterMode.CLOCK

    def subscribe(self, listener: Callable[[str], None]) -> None:
        """Call ``listener`` with the reading after every tick and mode change."""
        self._listeners.append(listener)

    def set_mode(self, mode: MeterMode | str) -> None:
        mode = MeterMode(mode)
        if mode is MeterMode.COUNTER and self.mode is not MeterMode.COUNTER:
            self.count = 0
        self.mode = mode
        logger.debug("Meter mode %s", mode.value)
        self._notify()

    def set_custom_value(self, text: str) -> str:
        self.custom_value = sanitize_custom_value(text)
        if self.mode is MeterMode.CUSTOM:
            self._notify()
        return self.custom_value

    def start(self) -> None:
        if self._ticker is None:
            self._ticker = self.clock.call_every(self.TICK_MS, self._tick)
            self._notify()

    def stop(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    @property
    def running(self) -> bool:
        return self._ticker is not None

    def _tick(self) -> None:
        if self.mode is MeterMode.COUNTER:
            self.count += 1
        self._notify()

    def _notify(self) -> None:
        reading = self.reading
        for listener in self._listeners:
            listener(reading)
