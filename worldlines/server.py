"""REST service over the worldlines store.

Endpoints (under the configured API prefix, ``/api`` by default):

- ``/temporal-fields``       worldlines CRUD
- ``/temporal-events``       events CRUD, ``?scope=`` filter
- ``/temporal-config``       timeline span (null when unset)
- ``/status``                health check

Usage:
    uvicorn --factory worldlines.server:create_app --port 3001
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from worldlines.config import Config, load_config
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
from worldlines.seed import migrate_initial_data

logger = logging.getLogger(__name__)

router = APIRouter()


def get_db(request: Request) -> Iterator[WorldlineDB]:
    """Hand the store to one threadpool handler at a time."""
    with request.app.state.db_lock:
        yield request.app.state.db


# --- Worldlines ---


@router.get("/temporal-fields", response_model=list[WorldlineRow])
def list_worldlines(db: WorldlineDB = Depends(get_db)):
    return db.list_worldlines()


@router.get("/temporal-fields/{worldline_id}", response_model=WorldlineRow)
def get_worldline(worldline_id: str, db: WorldlineDB = Depends(get_db)):
    worldline = db.get_worldline(worldline_id)
    if not worldline:
        raise HTTPException(status_code=404, detail="Worldline not found")
    return worldline


@router.post("/temporal-fields", response_model=WorldlineRow, status_code=201)
def create_worldline(body: WorldlineInsert, db: WorldlineDB = Depends(get_db)):
    return db.upsert_worldline(body)


@router.put("/temporal-fields/{worldline_id}", response_model=WorldlineRow)
def update_worldline(
    worldline_id: str, body: WorldlineUpdate, db: WorldlineDB = Depends(get_db)
):
    if not db.get_worldline(worldline_id):
        raise HTTPException(status_code=404, detail="Worldline not found")
    return db.update_worldline(worldline_id, body)


@router.delete("/temporal-fields/{worldline_id}")
def delete_worldline(worldline_id: str, db: WorldlineDB = Depends(get_db)):
    if not db.delete_worldline(worldline_id):
        raise HTTPException(status_code=404, detail="Worldline not found")
    return {"message": "Worldline deleted successfully"}


# --- Events ---


@router.get("/temporal-events", response_model=list[EventRow])
def list_events(
    scope: Optional[str] = Query(None, description="Only events in this worldline bucket"),
    db: WorldlineDB = Depends(get_db),
):
    return db.list_events(scope=scope)


@router.get("/temporal-events/{event_id}", response_model=EventRow)
def get_event(event_id: str, db: WorldlineDB = Depends(get_db)):
    event = db.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.post("/temporal-events", response_model=EventRow, status_code=201)
def create_event(body: EventInsert, db: WorldlineDB = Depends(get_db)):
    return db.upsert_event(body)


@router.put("/temporal-events/{event_id}", response_model=EventRow)
def update_event(
    event_id: str, body: EventUpdate, db: WorldlineDB = Depends(get_db)
):
    if not db.get_event(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return db.update_event(event_id, body)


@router.delete("/temporal-events/{event_id}")
def delete_event(event_id: str, db: WorldlineDB = Depends(get_db)):
    if not db.delete_event(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return {"message": "Event deleted successfully"}


# --- Timeline config / status ---


@router.get("/temporal-config", response_model=Optional[TimelineConfigRow])
def get_timeline_config(db: WorldlineDB = Depends(get_db)):
    return db.get_timeline_config()


@router.get("/status")
def status():
    return {"status": "OK", "message": "Worldlines API is running"}


def create_app(config: Config | None = None) -> FastAPI:
    """Build the REST app. The store is opened and seeded in the lifespan."""
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = WorldlineDB(config)
        db.init_db()
        if config.seed_on_start:
            migrate_initial_data(db)
        app.state.db = db
        app.state.db_lock = threading.Lock()
        logger.info("Worldlines API ready (db=%s)", db.db_path)
        yield
        logger.info("Shutting down worldlines API")
        db.close()

    app = FastAPI(
        title="Worldlines API",
        version="0.1.0",
        description="Persistence service for the worldline timeline visualizer",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix=config.server.api_prefix)
    return app
