"""Shared test fixtures for worldlines tests."""

import random

import pytest
from fastapi.testclient import TestClient

from worldlines.client import LocalDataAccess
from worldlines.config import Config
from worldlines.context import AppContext
from worldlines.db import WorldlineDB
from worldlines.interaction.clock import Clock
from worldlines.seed import migrate_initial_data
from worldlines.server import create_app


@pytest.fixture()
def config(tmp_path):
    return Config(db_path=str(tmp_path / "test.db"))


@pytest.fixture()
def tmp_db(config):
    """Create a WorldlineDB backed by a temp file."""
    db = WorldlineDB(config)
    db.init_db()
    yield db
    db.close()


@pytest.fixture()
def populated_db(tmp_db):
    """DB pre-loaded with the seed data: 4 worldlines, 3 events, timeline 2002-2102."""
    migrate_initial_data(tmp_db)
    return tmp_db


@pytest.fixture()
def api_client(config):
    """TestClient over a seeded app; the lifespan runs inside the ``with``."""
    with TestClient(create_app(config)) as client:
        yield client


@pytest.fixture()
def clock():
    return Clock(frame_ms=16)


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def context(config, populated_db, clock, rng):
    """Application context over the seeded store, driven by the manual clock."""
    ctx = AppContext.create(config, LocalDataAccess(populated_db), clock=clock, rng=rng)
    yield ctx
    ctx.close()
