"""Admin data manager: pending forms, row editing and mutations.

Every successful mutation refreshes the shared ``DataCache`` so the
navigation views see the change. Failures are logged, never retried, and
leave the form or edit state untouched for resubmission.
"""

import logging
from collections.abc import Callable

from pydantic import BaseModel, ValidationError

from worldlines.cache import DataCache
from worldlines.client import DataAccess, DataAccessError
from worldlines.models import (
    EventInsert,
    EventRow,
    EventUpdate,
    WorldlineInsert,
    WorldlineRow,
    WorldlineUpdate,
)

logger = logging.getLogger(__name__)

TAB_WORLDLINES = "worldlines"
TAB_EVENTS = "events"


class WorldlineForm(BaseModel):
    id: str = ""
    name: str = ""
    percentage: float = 0.0
    color: str = "rgba(255, 255, 255, 0.8)"


class EventForm(BaseModel):
    id: str = ""
    date: str = ""
    title: str = ""
    position: float = 0.0
    scope: str = "alpha"
    type: str = ""
    lore: str = ""
    from_worldline: str = ""
    to_worldline: str = ""


def _always(_: str) -> bool:
    return True


class AdminPanel:
    def __init__(
        self,
        access: DataAccess,
        cache: DataCache,
        confirm: Callable[[str], bool] = _always,
    ) -> None:
        self.access = access
        self.cache = cache
        self.confirm = confirm
        self.visible = False
        self.active_tab = TAB_WORLDLINES
        self.new_worldline = WorldlineForm()
        self.new_event = EventForm()
        self.editing_worldline: str | None = None
        self.editing_event: str | None = None
        self.edit_worldline_data = WorldlineUpdate()
        self.edit_event_data = EventUpdate()
        self.last_error: str | None = None

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
        if visible:
            self.cache.refresh()

    def select_tab(self, tab: str) -> None:
        if tab not in (TAB_WORLDLINES, TAB_EVENTS):
            raise ValueError(f"Unknown admin tab: {tab}")
        self.active_tab = tab

    # --- Worldlines ---

    def add_worldline(self) -> bool:
        if not self._mutate(
            "add worldline",
            lambda: self.access.create_worldline(WorldlineInsert(**self.new_worldline.model_dump())),
        ):
            return False
        self.new_worldline = WorldlineForm()
        return True

    def delete_worldline(self, worldline_id: str) -> bool:
        if not self.confirm(f"Delete worldline {worldline_id}?"):
            return False
        return self._mutate("delete worldline", lambda: self.access.delete_worldline(worldline_id))

    def start_edit_worldline(self, worldline: WorldlineRow) -> None:
        self.editing_worldline = worldline.id
        self.edit_worldline_data = WorldlineUpdate(
            name=worldline.name, percentage=worldline.percentage, color=worldline.color,
        )

    def cancel_edit_worldline(self) -> None:
        self.editing_worldline = None
        self.edit_worldline_data = WorldlineUpdate()

    def save_worldline_edit(self) -> bool:
        worldline_id = self.editing_worldline
        if worldline_id is None:
            return False
        if not self._mutate(
            "update worldline",
            lambda: self.access.update_worldline(worldline_id, self.edit_worldline_data),
        ):
            return False
        self.cancel_edit_worldline()
        return True

    # --- Events ---

    def add_event(self) -> bool:
        if not self._mutate(
            "add event",
            lambda: self.access.create_event(EventInsert(**self.new_event.model_dump())),
        ):
            return False
        self.new_event = EventForm()
        return True

    def delete_event(self, event_id: str) -> bool:
        if not self.confirm(f"Delete event {event_id}?"):
            return False
        return self._mutate("delete event", lambda: self.access.delete_event(event_id))

    def start_edit_event(self, event: EventRow) -> None:
        self.editing_event = event.id
        self.edit_event_data = EventUpdate(
            date=event.date,
            title=event.title,
            position=event.position,
            from_worldline=event.from_worldline,
            to_worldline=event.to_worldline,
            lore=event.lore,
            type=event.type,
            scope=event.scope,
        )

    def cancel_edit_event(self) -> None:
        self.editing_event = None
        self.edit_event_data = EventUpdate()

    def save_event_edit(self) -> bool:
        event_id = self.editing_event
        if event_id is None:
            return False
        if not self._mutate(
            "update event",
            lambda: self.access.update_event(event_id, self.edit_event_data),
        ):
            return False
        self.cancel_edit_event()
        return True

    def _mutate(self, action: str, call: Callable[[], object]) -> bool:
        try:
            call()
        except (DataAccessError, ValidationError) as e:
            logger.error("Failed to %s: %s", action, e)
            self.last_error = f"Failed to {action}"
            return False
        self.last_error = None
        self.cache.refresh()
        return True
