"""SQLite database setup and operations for the worldlines store."""

import logging
import sqlite3

from worldlines.config import Config
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

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS worldlines (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    percentage REAL NOT NULL,
    color TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    title TEXT NOT NULL,
    position REAL NOT NULL,
    from_worldline TEXT,
    to_worldline TEXT,
    lore TEXT,
    type TEXT,
    scope TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS timeline_config (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_year INTEGER NOT NULL,
    end_year INTEGER NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_events_scope ON events(scope);
CREATE INDEX IF NOT EXISTS idx_events_type ON events(type);
CREATE INDEX IF NOT EXISTS idx_events_position ON events(position);
"""

# Event columns that may not be cleared by an update.
_REQUIRED_EVENT_FIELDS = frozenset({"date", "title", "position", "scope"})


class WorldlineDB:
    """SQLite database wrapper for worldlines, events and the timeline span."""

    def __init__(self, config: Config) -> None:
        self.db_path = config.resolved_db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call init_db() first.")
        return self._conn

    def init_db(self) -> None:
        """Create database and tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # REST handlers use the connection from threadpool workers, one at a time.
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(SCHEMA_SQL)
        logger.info("Database initialized at %s", self.db_path)

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    # --- Worldline operations ---

    def upsert_worldline(self, worldline: WorldlineInsert) -> WorldlineRow:
        """Insert or replace a worldline. Returns the stored row."""
        self.conn.execute(
            """INSERT OR REPLACE INTO worldlines (id, name, percentage, color, updated_at)
               VALUES (?, ?, ?, ?, datetime('now'))""",
            (worldline.id, worldline.name, worldline.percentage, worldline.color),
        )
        self.conn.commit()
        return self.get_worldline(worldline.id)  # type: ignore[return-value]

    def get_worldline(self, worldline_id: str) -> WorldlineRow | None:
        row = self.conn.execute(
            "SELECT * FROM worldlines WHERE id = ?", (worldline_id,)
        ).fetchone()
        if row:
            return WorldlineRow(**dict(row))
        return None

    def list_worldlines(self) -> list[WorldlineRow]:
        rows = self.conn.execute(
            "SELECT * FROM worldlines ORDER BY percentage"
        ).fetchall()
        return [WorldlineRow(**dict(r)) for r in rows]

    def update_worldline(
        self, worldline_id: str, changes: WorldlineUpdate
    ) -> WorldlineRow:
        """Merge the fields set on ``changes`` into a stored worldline."""
        existing = self.get_worldline(worldline_id)
        if existing is None:
            raise ValueError(f"Worldline '{worldline_id}' not found")
        merged = existing.model_dump()
        merged.update(changes.model_dump(exclude_unset=True, exclude_none=True))
        return self.upsert_worldline(WorldlineInsert(
            id=worldline_id,
            name=merged["name"],
            percentage=merged["percentage"],
            color=merged["color"],
        ))

    def delete_worldline(self, worldline_id: str) -> bool:
        """Delete a worldline. Returns False if it did not exist."""
        cursor = self.conn.execute(
            "DELETE FROM worldlines WHERE id = ?", (worldline_id,)
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def count_worldlines(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) as cnt FROM worldlines").fetchone()
        return row["cnt"] if row else 0

    # --- Event operations ---

    def upsert_event(self, event: EventInsert) -> EventRow:
        """Insert or replace an event. Returns the stored row."""
        self.conn.execute(
            """INSERT OR REPLACE INTO events
               (id, date, title, position, from_worldline, to_worldline, lore, type, scope, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, datetime('now'))""",
            (
                event.id,
                event.date,
                event.title,
                event.position,
                event.from_worldline or None,
                event.to_worldline or None,
                event.lore or None,
                event.type or None,
                event.scope,
            ),
        )
        self.conn.commit()
        return self.get_event(event.id)  # type: ignore[return-value]

    def get_event(self, event_id: str) -> EventRow | None:
        row = self.conn.execute(
            "SELECT * FROM events WHERE id = ?", (event_id,)
        ).fetchone()
        if row:
            return EventRow(**dict(row))
        return None

    def list_events(self, scope: str | None = None) -> list[EventRow]:
        if scope:
            rows = self.conn.execute(
                "SELECT * FROM events WHERE scope = ? ORDER BY position", (scope,)
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM events ORDER BY position"
            ).fetchall()
        return [EventRow(**dict(r)) for r in rows]

    def update_event(self, event_id: str, changes: EventUpdate) -> EventRow:
        """Merge the fields set on ``changes`` into a stored event.

        An explicit ``None`` clears an optional column (lore, type, the
        from/to descriptors); for required columns it keeps the stored value.
        """
        existing = self.get_event(event_id)
        if existing is None:
            raise ValueError(f"Event '{event_id}' not found")
        merged = existing.model_dump()
        for key, value in changes.model_dump(exclude_unset=True).items():
            if value is None and key in _REQUIRED_EVENT_FIELDS:
                continue
            merged[key] = value
        return self.upsert_event(EventInsert(
            id=event_id,
            date=merged["date"],
            title=merged["title"],
            position=merged["position"],
            from_worldline=merged["from_worldline"],
            to_worldline=merged["to_worldline"],
            lore=merged["lore"],
            type=merged["type"],
            scope=merged["scope"],
        ))

    def delete_event(self, event_id: str) -> bool:
        """Delete an event. Returns False if it did not exist."""
        cursor = self.conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    def count_events(self, scope: str | None = None) -> int:
        if scope:
            row = self.conn.execute(
                "SELECT COUNT(*) as cnt FROM events WHERE scope = ?", (scope,)
            ).fetchone()
        else:
            row = self.conn.execute("SELECT COUNT(*) as cnt FROM events").fetchone()
        return row["cnt"] if row else 0

    # --- Timeline config operations ---

    def set_timeline_config(self, start_year: int, end_year: int) -> TimelineConfigRow:
        """Store the timeline span, replacing any existing record."""
        row = self.conn.execute("SELECT id FROM timeline_config LIMIT 1").fetchone()
        if row:
            self.conn.execute(
                """UPDATE timeline_config SET start_year = ?, end_year = ?,
                   updated_at = datetime('now') WHERE id = ?""",
                (start_year, end_year, row["id"]),
            )
        else:
            self.conn.execute(
                "INSERT INTO timeline_config (start_year, end_year) VALUES (?, ?)",
                (start_year, end_year),
            )
        self.conn.commit()
        return self.get_timeline_config()  # type: ignore[return-value]

    def get_timeline_config(self) -> TimelineConfigRow | None:
        row = self.conn.execute("SELECT * FROM timeline_config LIMIT 1").fetchone()
        if row:
            return TimelineConfigRow(**dict(row))
        return None
