"""Pydantic models for the worldlines visualizer."""

from enum import Enum

from pydantic import BaseModel, Field


class Scope(str, Enum):
    ALPHA = "alpha"
    BETA = "beta"
    GAMMA = "gamma"
    DELTA = "delta"
    GLOBAL = "global"  # cross-cutting, shown only in the root view


class ViewMode(str, Enum):
    ROOT = "root"
    BRANCH = "branch"
    INDIVIDUAL = "individual"


# --- Row models (what comes out of the DB / API) ---


class WorldlineRow(BaseModel):
    id: str
    name: str
    percentage: float
    color: str
    created_at: str | None = None
    updated_at: str | None = None


class EventRow(BaseModel):
    id: str
    date: str
    title: str
    position: float
    from_worldline: str | None = None
    to_worldline: str | None = None
    lore: str | None = None
    type: str | None = None
    scope: str
    created_at: str | None = None
    updated_at: str | None = None


class TimelineConfigRow(BaseModel):
    id: int | None = None
    start_year: int
    end_year: int
    created_at: str | None = None
    updated_at: str | None = None


# --- Insert models (what goes into the DB) ---


class WorldlineInsert(BaseModel):
    """Worldline payload for create requests."""
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    percentage: float
    color: str = Field(min_length=1)


class EventInsert(BaseModel):
    """Event payload for create requests."""
    id: str = Field(min_length=1)
    date: str = Field(min_length=1)
    title: str = Field(min_length=1)
    position: float
    from_worldline: str | None = None
    to_worldline: str | None = None
    lore: str | None = None
    type: str | None = None
    scope: str = Field(min_length=1)


# --- Update models (partial; unset fields keep the stored value) ---


class WorldlineUpdate(BaseModel):
    name: str | None = None
    percentage: float | None = None
    color: str | None = None


class EventUpdate(BaseModel):
    date: str | None = None
    title: str | None = None
    position: float | None = None
    from_worldline: str | None = None
    to_worldline: str | None = None
    lore: str | None = None
    type: str | None = None
    scope: str | None = None
