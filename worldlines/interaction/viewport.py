"""Zoom and horizontal scroll for the timeline strips.

Zooming keeps the content under the cursor (or the last known cursor
position, or the viewport centre) fixed. The new content width is only known
after the next layout pass, so the scroll correction is deferred two frames
on the shared clock instead of being applied synchronously.
"""

import logging
from dataclasses import dataclass

from worldlines.config import ViewportConfig
from worldlines.interaction.clock import Clock, TimerHandle
from worldlines.interaction.transition import ease_out_cubic
from worldlines.models import ViewMode

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# (zoom threshold, content width in % of viewport per zoom unit), steepest first.
WIDTH_TIERS = (
    (4.0, 1000.0),  # monthly ticks
    (3.0, 300.0),   # yearly ticks
    (0.0, 100.0),
)

# (zoom upper bound, years between ticks); monthly at/above the last bound.
TICK_TIERS = (
    (1.5, 20),
    (2.0, 10),
    (3.0, 5),
    (4.0, 1),
)


def width_percent(zoom: float) -> float:
    """Content width as a percentage of the viewport width at ``zoom``."""
    for threshold, per_unit in WIDTH_TIERS:
        if zoom >= threshold:
            return zoom * per_unit
    return zoom * WIDTH_TIERS[-1][1]


def tick_interval(zoom: float) -> int | None:
    """Years between tick marks, or None for monthly ticks."""
    for bound, years in TICK_TIERS:
        if zoom < bound:
            return years
    return None


@dataclass(frozen=True)
class Tick:
    position: float  # percent of the year span
    label: str
    year: int
    month: int | None = None


def tick_marks(start_year: int, end_year: int, zoom: float) -> list[Tick]:
    span = end_year - start_year
    if span <= 0:
        return []
    step = tick_interval(zoom)
    if step is not None:
        return [
            Tick(position=(year - start_year) / span * 100, label=str(year), year=year)
            for year in range(start_year, end_year + 1, step)
        ]

    ticks = []
    for year in range(start_year, end_year):
        for month in range(12):
            ticks.append(Tick(
                position=((year - start_year) + month / 12) / span * 100,
                label=str(year) if month == 0 else MONTH_ABBREVIATIONS[month],
                year=year,
                month=month + 1,
            ))
    ticks.append(Tick(position=100.0, label=str(end_year), year=end_year, month=1))
    return ticks


def position_to_year(position: float, start_year: int, end_year: int) -> float:
    return start_year + (end_year - start_year) * position / 100


@dataclass
class ScrollStrip:
    """One horizontally scrollable timeline strip."""
    viewport_width: float
    content_width: float = 0.0
    scroll_offset: float = 0.0

    @property
    def max_offset(self) -> float:
        return max(self.content_width - self.viewport_width, 0.0)

    def scroll_to(self, offset: float) -> float:
        self.scroll_offset = min(max(offset, 0.0), self.max_offset)
        return self.scroll_offset

    def anchor_ratio(self, cursor_x: float) -> float:
        """Fraction of the content under viewport position ``cursor_x``."""
        if self.content_width <= 0:
            return 0.0
        return (self.scroll_offset + cursor_x) / self.content_width

    def x_for(self, position: float) -> float:
        """Content x of a 0-100 timeline position."""
        return self.content_width * position / 100

    def on_screen(self, position: float) -> bool:
        """Whether a 0-100 timeline position is inside the visible window."""
        x = self.x_for(position) - self.scroll_offset
        return 0.0 <= x <= self.viewport_width


class ZoomSynchronizer:
    """Owns the zoom factor and the scroll offsets of the three strips."""

    def __init__(self, clock: Clock, config: ViewportConfig | None = None) -> None:
        self.clock = clock
        self.config = config or ViewportConfig()
        self.zoom = self.config.min_zoom
        self.strips = {mode: ScrollStrip(self.config.viewport_width) for mode in ViewMode}
        self.active_mode = ViewMode.ROOT
        self.cursor_x: float | None = None
        self._anchor_token = 0
        self._pending_anchor: tuple[ScrollStrip, float, float] | None = None
        self._drag: tuple[float, float] | None = None
        self._scroll_anim: TimerHandle | None = None
        self._scroll_target: float | None = None
        self._anchor_frame: TimerHandle | None = None
        self.layout()
        clock.on_frame(self.layout)

    @property
    def active_strip(self) -> ScrollStrip:
        return self.strips[self.active_mode]

    def set_active(self, mode: ViewMode) -> None:
        self.active_mode = mode

    def resize(self, viewport_width: float) -> None:
        for strip in self.strips.values():
            strip.viewport_width = viewport_width
        self.layout()

    def layout(self) -> None:
        """Layout pass: size every strip for the current zoom."""
        percent = width_percent(self.zoom)
        for strip in self.strips.values():
            strip.content_width = strip.viewport_width * percent / 100
            strip.scroll_to(strip.scroll_offset)

    # --- Zoom ---

    def zoom_in(self, cursor_x: float | None = None) -> bool:
        return self.set_zoom(self.zoom + self.config.zoom_step, cursor_x)

    def zoom_out(self, cursor_x: float | None = None) -> bool:
        return self.set_zoom(self.zoom - self.config.zoom_step, cursor_x)

    def set_zoom(self, zoom: float, cursor_x: float | None = None) -> bool:
        """Change zoom, keeping the anchored content still. False if unchanged."""
        new_zoom = round(min(max(zoom, self.config.min_zoom), self.config.max_zoom), 2)
        if new_zoom == self.zoom:
            return False

        strip = self.active_strip
        if self._pending_anchor is not None and self._pending_anchor[0] is strip:
            # layout has not caught up with the previous step yet
            _, ratio, x = self._pending_anchor
        else:
            x = self._anchor_x(strip, cursor_x)
            ratio = strip.anchor_ratio(x)

        logger.debug("Zoom %.2f -> %.2f anchored at ratio %.4f", self.zoom, new_zoom, ratio)
        self.zoom = new_zoom
        self._anchor_token += 1
        self._pending_anchor = (strip, ratio, x)
        self._schedule_restore(self._anchor_token)
        return True

    def _schedule_restore(self, token: int) -> None:
        # first frame lays out the new width, the second restores the anchor
        if self._anchor_frame is not None:
            self._anchor_frame.cancel()

        def after_layout() -> None:
            self._anchor_frame = self.clock.request_frame(lambda: self._restore_anchor(token))

        self._anchor_frame = self.clock.request_frame(after_layout)

    def _anchor_x(self, strip: ScrollStrip, cursor_x: float | None) -> float:
        if cursor_x is None:
            cursor_x = self.cursor_x
        if cursor_x is None:
            cursor_x = strip.viewport_width / 2
        return min(max(cursor_x, 0.0), strip.viewport_width)

    def _restore_anchor(self, token: int) -> None:
        if token != self._anchor_token or self._pending_anchor is None:
            return
        strip, ratio, x = self._pending_anchor
        self._pending_anchor = None
        self._anchor_frame = None
        strip.scroll_to(ratio * strip.content_width - x)

    def wheel(self, delta_y: float, shift: bool = False, cursor_x: float | None = None) -> bool:
        """Returns True when the wheel event was consumed as a zoom."""
        if shift or not self.config.wheel_zoom or delta_y == 0:
            return False
        if delta_y < 0:
            self.zoom_in(cursor_x)
        else:
            self.zoom_out(cursor_x)
        return True

    # --- Panning ---

    def pointer_move(self, x: float) -> None:
        self.cursor_x = x
        if self._drag is not None:
            start_x, start_offset = self._drag
            self.active_strip.scroll_to(
                start_offset - (x - start_x) * self.config.drag_multiplier
            )

    def drag_start(self, x: float) -> None:
        self._stop_scroll_animation()
        self.cursor_x = x
        self._drag = (x, self.active_strip.scroll_offset)

    def drag_end(self) -> None:
        self._drag = None

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    def scroll_step(self, direction: int) -> None:
        """Smooth-scroll the active strip by a fraction of the viewport."""
        strip = self.active_strip
        base = self._scroll_target if self._scroll_target is not None else strip.scroll_offset
        delta = strip.viewport_width * self.config.arrow_scroll_fraction * direction
        target = min(max(base + delta, 0.0), strip.max_offset)
        self._stop_scroll_animation()
        self._scroll_target = target

        start = strip.scroll_offset
        started = self.clock.now
        duration = self.config.smooth_scroll_ms

        def step() -> None:
            t = 1.0 if duration <= 0 else (self.clock.now - started) / duration
            if t >= 1.0:
                strip.scroll_to(target)
                self._stop_scroll_animation()
                return
            strip.scroll_to(start + (target - start) * ease_out_cubic(t))

        self._scroll_anim = self.clock.call_every(self.clock.frame_ms, step)

    def _stop_scroll_animation(self) -> None:
        if self._scroll_anim is not None:
            self._scroll_anim.cancel()
            self._scroll_anim = None
        self._scroll_target = None

    def close(self) -> None:
        """Stop animations and detach from the clock."""
        self._stop_scroll_animation()
        self._drag = None
        self._pending_anchor = None
        if self._anchor_frame is not None:
            self._anchor_frame.cancel()
            self._anchor_frame = None
        self.clock.remove_frame_listener(self.layout)
