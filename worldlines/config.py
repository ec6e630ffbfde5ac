"""Configuration loading for the worldlines visualizer."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3001
    api_prefix: str = "/api"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class ClientConfig(BaseModel):
    base_url: str = "http://localhost:3001"
    api_prefix: str = "/api"
    timeout: float = 5.0


class TimelineConfig(BaseModel):
    """Year span used when the store holds no timeline_config record."""
    start_year: int = 2002
    end_year: int = 2102


class TransitionConfig(BaseModel):
    flash_ms: float = 500
    reveal_ms: float = 3000
    scramble_ms: float = 1000
    converge_ms: float = 1000
    shrink_ms: float = 2000
    fade_ms: float = 2000
    scramble_tick_ms: float = 50
    frame_ms: float = 16
    scramble_min: float = 0.0
    scramble_max: float = 9.999999
    peak_scale: float = 4.0
    shrink_scale: float = 0.5


class ViewportConfig(BaseModel):
    min_zoom: float = 1.0
    max_zoom: float = 5.0
    zoom_step: float = 0.2
    drag_multiplier: float = 1.5
    arrow_scroll_fraction: float = 0.3
    smooth_scroll_ms: float = 300
    viewport_width: float = 1000.0
    wheel_zoom: bool = False  # earlier variant zoomed on plain wheel


class Config(BaseModel):
    db_path: str = "data/worldlines.db"
    seed_on_start: bool = True
    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    transition: TransitionConfig = Field(default_factory=TransitionConfig)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    admin_sequence: list[str] = Field(default_factory=lambda: [
        "ArrowUp", "ArrowUp", "ArrowDown", "ArrowDown",
        "ArrowLeft", "ArrowRight", "ArrowLeft", "ArrowRight", "a",
    ])

    @property
    def resolved_db_path(self) -> Path:
        """Resolve db_path relative to project root."""
        p = Path(self.db_path)
        if p.is_absolute():
            return p
        return _project_root() / p


def _project_root() -> Path:
    """Return the worldlines project root directory."""
    return Path(__file__).parent.parent


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML file. Falls back to defaults if file missing."""
    if config_path is None:
        config_path = _project_root() / "config.yaml"

    if config_path.exists():
        raw: dict[str, Any] = yaml.safe_load(config_path.read_text()) or {}
        return Config(**raw)

    return Config()
