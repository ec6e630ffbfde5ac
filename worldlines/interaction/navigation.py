"""Navigation state machine: view modes, selection and key handling.

Views nest ROOT (all worldlines, then cross-cutting events) ->
BRANCH (one worldline's events) -> INDIVIDUAL (one event's branch, no
further forking). Activating an item is what starts a transition; moving
the highlight never does. While a transition is running, activation and
view changes are ignored; closing the event overlay, moving the highlight,
zooming and scrolling stay available.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from worldlines.cache import DataCache
from worldlines.interaction.linkage import descendants, transition_target
from worldlines.interaction.transition import TransitionSequencer
from worldlines.interaction.viewport import ZoomSynchronizer
from worldlines.models import EventRow, ViewMode, WorldlineRow

logger = logging.getLogger(__name__)

KEY_UP = "ArrowUp"
KEY_DOWN = "ArrowDown"
KEY_LEFT = "ArrowLeft"
KEY_RIGHT = "ArrowRight"
KEY_ENTER = "Enter"
KEY_ESCAPE = "Escape"
KEY_BACK = "Backspace"
ZOOM_IN_KEYS = frozenset({"+", "="})
ZOOM_OUT_KEYS = frozenset({"-", "_"})


@dataclass
class NavigationState:
    view: ViewMode = ViewMode.ROOT
    root_index: int = 0
    branch_index: int = 0
    individual_index: int = 0
    worldline_id: str | None = None
    individual_event_id: str | None = None
    modal_event_id: str | None = None
    admin_visible: bool = False


class AdminSequence:
    """Matches a fixed key sequence; any mismatch starts over."""

    def __init__(self, keys: Sequence[str]) -> None:
        self.keys = [_normalize(k) for k in keys]
        self.progress = 0

    def feed(self, key: str) -> bool:
        """Returns True when ``key`` completes the sequence."""
        if not self.keys:
            return False
        key = _normalize(key)
        if key == self.keys[self.progress]:
            self.progress += 1
        else:
            self.progress = 1 if key == self.keys[0] else 0
        if self.progress == len(self.keys):
            self.progress = 0
            return True
        return False


def _normalize(key: str) -> str:
    return key.lower() if len(key) == 1 else key


class NavigationStateMachine:
    def __init__(
        self,
        cache: DataCache,
        sequencer: TransitionSequencer,
        viewport: ZoomSynchronizer,
        admin_keys: Sequence[str] = (),
    ) -> None:
        self.cache = cache
        self.sequencer = sequencer
        self.viewport = viewport
        self.state = NavigationState()
        self.admin_sequence = AdminSequence(admin_keys)
        self._admin_listeners: list[Callable[[bool], None]] = []
        cache.subscribe(self._on_data_changed)

    def on_admin_toggle(self, listener: Callable[[bool], None]) -> None:
        self._admin_listeners.append(listener)

    # --- Derived views ---

    @property
    def view(self) -> ViewMode:
        return self.state.view

    @property
    def worldline(self) -> WorldlineRow | None:
        if self.state.worldline_id is None:
            return None
        return self.cache.worldline(self.state.worldline_id)

    @property
    def modal_event(self) -> EventRow | None:
        if self.state.modal_event_id is None:
            return None
        return self.cache.event(self.state.modal_event_id)

    def branch_events(self) -> list[EventRow]:
        if self.state.worldline_id is None:
            return []
        return self.cache.events_in_scope(self.state.worldline_id)

    def individual_events(self) -> list[EventRow]:
        event_id = self.state.individual_event_id
        if event_id is None:
            return []
        in_scope = self.branch_events()
        head = [e for e in in_scope if e.id == event_id]
        if not head:
            return []
        return head + descendants(event_id, in_scope)

    def root_items(self) -> list[WorldlineRow | EventRow]:
        """Worldlines, then the cross-cutting events that only Root lists."""
        return [*self.cache.worldlines, *self.cache.root_events()]

    def visible_items(self) -> list[WorldlineRow | EventRow]:
        if self.state.view is ViewMode.ROOT:
            return self.root_items()
        if self.state.view is ViewMode.BRANCH:
            return self.branch_events()
        return self.individual_events()

    @property
    def selected_index(self) -> int:
        if self.state.view is ViewMode.ROOT:
            return self.state.root_index
        if self.state.view is ViewMode.BRANCH:
            return self.state.branch_index
        return self.state.individual_index

    def _set_selected_index(self, index: int) -> None:
        if self.state.view is ViewMode.ROOT:
            self.state.root_index = index
        elif self.state.view is ViewMode.BRANCH:
            self.state.branch_index = index
        else:
            self.state.individual_index = index

    @property
    def highlighted(self) -> WorldlineRow | EventRow | None:
        items = self.visible_items()
        if not items:
            return None
        return items[self.selected_index]

    # --- Input ---

    def handle_key(self, key: str) -> bool:
        """Dispatch one key press. Returns True when it was handled."""
        if self.admin_sequence.feed(key):
            self.toggle_admin()
            return True

        if key == KEY_UP:
            self.move(-1)
        elif key == KEY_DOWN:
            self.move(1)
        elif key == KEY_LEFT:
            self.viewport.scroll_step(-1)
        elif key == KEY_RIGHT:
            self.viewport.scroll_step(1)
        elif key in ZOOM_IN_KEYS:
            self.viewport.zoom_in()
        elif key in ZOOM_OUT_KEYS:
            self.viewport.zoom_out()
        elif key == KEY_ENTER:
            return self.activate()
        elif key == KEY_ESCAPE:
            if self.state.modal_event_id is not None:
                self.close_modal()
            else:
                return self.back()
        elif key == KEY_BACK:
            return self.back()
        else:
            return False
        return True

    def move(self, delta: int) -> None:
        """Move the highlight, clamped to the visible list."""
        count = len(self.visible_items())
        if count == 0:
            self._set_selected_index(0)
            return
        self._set_selected_index(min(max(self.selected_index + delta, 0), count - 1))

    def activate(self) -> bool:
        """Enter on the highlighted item."""
        item = self.highlighted
        if item is None:
            return False
        if isinstance(item, WorldlineRow):
            return self.select_worldline(item.id)
        return self.select_event(item.id)

    def select_worldline(self, worldline_id: str) -> bool:
        """ROOT -> BRANCH for ``worldline_id`` and jump the meter to its value."""
        if self._locked("select worldline"):
            return False
        worldline = self.cache.worldline(worldline_id)
        if worldline is None:
            return False
        index = self.cache.worldlines.index(worldline)
        self.state.root_index = index
        self.state.worldline_id = worldline.id
        self.state.branch_index = 0
        self.state.individual_index = 0
        self.state.individual_event_id = None
        self._set_view(ViewMode.BRANCH)
        self.sequencer.jump(worldline.percentage)
        return True

    def select_event(self, event_id: str) -> bool:
        """Open the event overlay; jump the meter when the event names a target."""
        if self._locked("select event"):
            return False
        items = self.visible_items()
        for index, event in enumerate(items):
            if isinstance(event, EventRow) and event.id == event_id:
                break
        else:
            return False
        self._set_selected_index(index)
        self.state.modal_event_id = event.id
        target = transition_target(event)
        if target is not None:
            self.sequencer.jump(target)
        return True

    def open_individual(self, event_id: str) -> bool:
        """BRANCH -> INDIVIDUAL, drilling into one event's branch."""
        if self._locked("open branch"):
            return False
        if self.state.view is not ViewMode.BRANCH:
            return False
        events = self.branch_events()
        for index, event in enumerate(events):
            if event.id == event_id:
                break
        else:
            return False
        self.state.branch_index = index
        self.state.individual_event_id = event_id
        self.state.individual_index = 0
        self._set_view(ViewMode.INDIVIDUAL)
        return True

    def back(self) -> bool:
        if self._locked("back"):
            return False
        if self.state.view is ViewMode.INDIVIDUAL:
            self.state.individual_event_id = None
            self.state.individual_index = 0
            self._set_view(ViewMode.BRANCH)
            return True
        if self.state.view is ViewMode.BRANCH:
            self.state.worldline_id = None
            self.state.root_index = 0
            self.state.branch_index = 0
            self._set_view(ViewMode.ROOT)
            return True
        return False

    def close_modal(self) -> None:
        self.state.modal_event_id = None

    def toggle_admin(self) -> None:
        self.state.admin_visible = not self.state.admin_visible
        logger.info("Admin panel %s", "shown" if self.state.admin_visible else "hidden")
        for listener in self._admin_listeners:
            listener(self.state.admin_visible)

    # --- Internals ---

    def _locked(self, action: str) -> bool:
        if self.sequencer.active:
            logger.debug("Ignoring %s while a transition is running", action)
            return True
        return False

    def _set_view(self, view: ViewMode) -> None:
        self.state.view = view
        self.viewport.set_active(view)

    def _on_data_changed(self) -> None:
        """Keep the state consistent after the cache reloads."""
        if self.state.worldline_id is not None and self.worldline is None:
            self.state.worldline_id = None
            self.state.individual_event_id = None
            self.state.branch_index = 0
            self.state.individual_index = 0
            self._set_view(ViewMode.ROOT)
        if self.state.individual_event_id is not None and not self.individual_events():
            self.state.individual_event_id = None
            self.state.individual_index = 0
            if self.state.view is ViewMode.INDIVIDUAL:
                self._set_view(ViewMode.BRANCH)
        if self.state.modal_event_id is not None and self.modal_event is None:
            self.state.modal_event_id = None

        self.state.root_index = _clamp_index(self.state.root_index, len(self.root_items()))
        self.state.branch_index = _clamp_index(self.state.branch_index, len(self.branch_events()))
        self.state.individual_index = _clamp_index(
            self.state.individual_index, len(self.individual_events())
        )


def _clamp_index(index: int, count: int) -> int:
    if count == 0:
        return 0
    return min(max(index, 0), count - 1)
