"""Data-access collaborators: the REST client and a direct store adapter."""

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import ValidationError

from worldlines.config import Config
from worldlines.db import WorldlineDB
from worldlines.models import (
    EventInsert,
    EventRow,
    EventUpdate,
    TimelineConfigRow,
    WorldlineInsert,
    WorldlineRow,
    WorldlineUpdate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataAccessError(Exception):
    """A data-access call failed (transport error, non-2xx or malformed response, store error)."""


class DataAccess(Protocol):
    def list_worldlines(self) -> list[WorldlineRow]: ...

    def list_events(self, scope: str | None = None) -> list[EventRow]: ...

    def get_timeline_config(self) -> TimelineConfigRow | None: ...

    def health_check(self) -> bool: ...

    def create_worldline(self, worldline: WorldlineInsert) -> WorldlineRow: ...

    def update_worldline(self, worldline_id: str, changes: WorldlineUpdate) -> WorldlineRow: ...

    def delete_worldline(self, worldline_id: str) -> None: ...

    def create_event(self, event: EventInsert) -> EventRow: ...

    def update_event(self, event_id: str, changes: EventUpdate) -> EventRow: ...

    def delete_event(self, event_id: str) -> None: ...

    def close(self) -> None: ...


class ApiDataAccess:
    """Talks to the REST service over HTTP.

    The ``httpx.Client`` is injectable; tests pass FastAPI's ``TestClient``.
    """

    def __init__(self, client: httpx.Client, api_prefix: str = "/api") -> None:
        self.client = client
        self.api_prefix = api_prefix.rstrip("/")

    @classmethod
    def from_config(cls, config: Config) -> "ApiDataAccess":
        client = httpx.Client(
            base_url=config.client.base_url, timeout=config.client.timeout,
        )
        return cls(client, config.client.api_prefix)

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.api_prefix}{path}"
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DataAccessError(
                f"{method} {url} failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise DataAccessError(f"{method} {url} failed: {e}") from e
        return response

    def _read(self, method: str, path: str, parse: Callable[[Any], T], **kwargs: Any) -> T:
        """Request and decode; a 2xx body that is not the expected shape is an error too."""
        response = self._request(method, path, **kwargs)
        try:
            return parse(response.json())
        except (ValueError, TypeError, ValidationError) as e:
            raise DataAccessError(f"{method} {self.api_prefix}{path} returned a malformed body: {e}") from e

    # --- Reads ---

    def list_worldlines(self) -> list[WorldlineRow]:
        return self._read("GET", "/temporal-fields", _rows(WorldlineRow))

    def list_events(self, scope: str | None = None) -> list[EventRow]:
        params = {"scope": scope} if scope else None
        return self._read("GET", "/temporal-events", _rows(EventRow), params=params)

    def get_timeline_config(self) -> TimelineConfigRow | None:
        return self._read(
            "GET", "/temporal-config",
            lambda data: TimelineConfigRow.model_validate(data) if data else None,
        )

    def health_check(self) -> bool:
        try:
            return self.client.get(f"{self.api_prefix}/status").is_success
        except httpx.HTTPError as e:
            logger.warning("Health check failed: %s", e)
            return False

    # --- Mutations ---

    def create_worldline(self, worldline: WorldlineInsert) -> WorldlineRow:
        return self._read(
            "POST", "/temporal-fields", WorldlineRow.model_validate, json=worldline.model_dump(),
        )

    def update_worldline(self, worldline_id: str, changes: WorldlineUpdate) -> WorldlineRow:
        return self._read(
            "PUT", f"/temporal-fields/{worldline_id}", WorldlineRow.model_validate,
            json=changes.model_dump(exclude_unset=True),
        )

    def delete_worldline(self, worldline_id: str) -> None:
        self._request("DELETE", f"/temporal-fields/{worldline_id}")

    def create_event(self, event: EventInsert) -> EventRow:
        return self._read(
            "POST", "/temporal-events", EventRow.model_validate, json=event.model_dump(),
        )

    def update_event(self, event_id: str, changes: EventUpdate) -> EventRow:
        return self._read(
            "PUT", f"/temporal-events/{event_id}", EventRow.model_validate,
            json=changes.model_dump(exclude_unset=True),
        )

    def delete_event(self, event_id: str) -> None:
        self._request("DELETE", f"/temporal-events/{event_id}")


def _rows(model: type[T]) -> Callable[[Any], list[T]]:
    def parse(data: Any) -> list[T]:
        if not isinstance(data, list):
            raise TypeError(f"expected a list, got {type(data).__name__}")
        return [model.model_validate(row) for row in data]
    return parse


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Re-raise sqlite and lookup failures as ``DataAccessError``."""
    try:
        yield
    except (sqlite3.Error, ValueError) as e:
        raise DataAccessError(f"{action} failed: {e}") from e


class LocalDataAccess:
    """Reads and writes the sqlite store in-process, without the REST hop."""

    def __init__(self, db: WorldlineDB) -> None:
        self.db = db

    def close(self) -> None:
        """The store belongs to the caller; nothing to release."""

    def list_worldlines(self) -> list[WorldlineRow]:
        with _store_errors("list worldlines"):
            return self.db.list_worldlines()

    def list_events(self, scope: str | None = None) -> list[EventRow]:
        with _store_errors("list events"):
            return self.db.list_events(scope=scope)

    def get_timeline_config(self) -> TimelineConfigRow | None:
        with _store_errors("read timeline config"):
            return self.db.get_timeline_config()

    def health_check(self) -> bool:
        try:
            self.db.conn.execute("SELECT 1")
        except (RuntimeError, sqlite3.Error) as e:
            logger.warning("Store health check failed: %s", e)
            return False
        return True

    def create_worldline(self, worldline: WorldlineInsert) -> WorldlineRow:
        with _store_errors("create worldline"):
            return self.db.upsert_worldline(worldline)

    def update_worldline(self, worldline_id: str, changes: WorldlineUpdate) -> WorldlineRow:
        with _store_errors("update worldline"):
            return self.db.update_worldline(worldline_id, changes)

    def delete_worldline(self, worldline_id: str) -> None:
        with _store_errors("delete worldline"):
            deleted = self.db.delete_worldline(worldline_id)
        if not deleted:
            raise DataAccessError(f"Worldline '{worldline_id}' not found")

    def create_event(self, event: EventInsert) -> EventRow:
        with _store_errors("create event"):
            return self.db.upsert_event(event)

    def update_event(self, event_id: str, changes: EventUpdate) -> EventRow:
        with _store_errors("update event"):
            return self.db.update_event(event_id, changes)

    def delete_event(self, event_id: str) -> None:
        with _store_errors("delete event"):
            deleted = self.db.delete_event(event_id)
        if not deleted:
            raise DataAccessError(f"Event '{event_id}' not found")
