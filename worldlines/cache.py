"""In-memory data cache feeding the interactive core."""

import logging
from collections.abc import Callable

from worldlines.client import DataAccess, DataAccessError
from worldlines.config import TimelineConfig
from worldlines.models import EventRow, Scope, TimelineConfigRow, WorldlineRow

logger = logging.getLogger(__name__)


class DataCache:
    """Worldlines, events and the timeline span, fetched once and refreshed on demand.

    Every fetch failure degrades to an empty/default value; nothing raises
    out of ``load`` or ``refresh``.
    """

    def __init__(self, access: DataAccess, fallback_timeline: TimelineConfig | None = None) -> None:
        self.access = access
        self.fallback_timeline = fallback_timeline or TimelineConfig()
        self.worldlines: list[WorldlineRow] = []
        self.events: list[EventRow] = []
        self.timeline_config: TimelineConfigRow | None = None
        self.load_failed = False
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        """Call ``listener`` after every load/refresh."""
        self._listeners.append(listener)

    def load(self) -> bool:
        """Startup load. Returns False when the service was unreachable."""
        if not self.access.health_check():
            logger.warning("Data service health check failed; starting with an empty timeline")
            self.load_failed = True
            self._notify()
            return False

        self.load_failed = False
        self.timeline_config = self._fetch("timeline config", self.access.get_timeline_config, None)
        self._fetch_collections()
        self._notify()
        return True

    def refresh(self) -> None:
        """Re-fetch worldlines and events after a mutation."""
        self._fetch_collections()
        self._notify()

    def _fetch_collections(self) -> None:
        self.worldlines = self._fetch("worldlines", self.access.list_worldlines, [])
        self.events = self._fetch("events", self.access.list_events, [])
        logger.debug("Cache holds %d worldlines, %d events", len(self.worldlines), len(self.events))

    def _fetch(self, what, call, default):
        try:
            return call()
        except DataAccessError as e:
            logger.warning("Failed to load %s: %s", what, e)
            return default

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()

    # --- Lookups ---

    @property
    def start_year(self) -> int:
        if self.timeline_config:
            return self.timeline_config.start_year
        return self.fallback_timeline.start_year

    @property
    def end_year(self) -> int:
        if self.timeline_config:
            return self.timeline_config.end_year
        return self.fallback_timeline.end_year

    def worldline(self, worldline_id: str) -> WorldlineRow | None:
        for worldline in self.worldlines:
            if worldline.id == worldline_id:
                return worldline
        return None

    def event(self, event_id: str) -> EventRow | None:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def events_in_scope(self, scope: str) -> list[EventRow]:
        """Events for one worldline bucket, ordered by position."""
        return sorted(
            (e for e in self.events if e.scope == scope), key=lambda e: e.position,
        )

    def root_events(self) -> list[EventRow]:
        """Cross-cutting events shown only in the root view."""
        return self.events_in_scope(Scope.GLOBAL.value)
