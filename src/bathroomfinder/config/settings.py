"""
Runtime settings.

Resolution order:
1. `BATHROOMFINDER_CONFIG_PATH` (a YAML file) if set, else the packaged `defaults.yaml`
2. a short whitelist of environment variables (see `_ENV_OVERRIDES`)
3. model defaults for anything still missing

Deployment knobs (feed backend, location source, search semantics) belong here, not
in the engine.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from bathroomfinder.core.env import load_dotenv_if_present, resolve_project_path


SearchMode = Literal["all", "search_overrides"]


class AppSettings(BaseModel):
    name: str = "Bathroom Finder"
    log_level: str = "INFO"
    http_timeout_seconds: float = 15
    # How long the API waits on startup for the first snapshot + location before serving anyway.
    startup_wait_seconds: float = 5


class FeedSettings(BaseModel):
    backend: Literal["firebase", "memory"] = "memory"
    base_url: str | None = None
    collection: str = "bathrooms"
    auth_token: str | None = None
    # Only used by the memory backend: JSON file shaped like the remote database root.
    seed_path: str | None = None


class GeolocationSettings(BaseModel):
    provider: Literal["static", "ip", "none"] = "none"
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    ip_lookup_url: str = "http://ip-api.com/json/"


class RankingSettings(BaseModel):
    search_mode: SearchMode = "all"


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    geolocation: GeolocationSettings = Field(default_factory=GeolocationSettings)
    ranking: RankingSettings = Field(default_factory=RankingSettings)


def _parse_yaml_mapping(text: str, source: str) -> dict[str, Any]:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{source}: top-level YAML must be a mapping, got {type(data).__name__}.")
    return data


def _packaged_yaml(filename: str) -> dict[str, Any]:
    text = resources.files("bathroomfinder.config").joinpath(filename).read_text(encoding="utf-8")
    return _parse_yaml_mapping(text, filename)


def _external_yaml(path: str) -> dict[str, Any]:
    resolved = resolve_project_path(path)
    return _parse_yaml_mapping(resolved.read_text(encoding="utf-8"), str(resolved))


# env var -> (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "BATHROOMFINDER_LOG_LEVEL": ("app", "log_level"),
    "BATHROOMFINDER_FEED_BACKEND": ("feed", "backend"),
    "BATHROOMFINDER_FEED_URL": ("feed", "base_url"),
    "BATHROOMFINDER_FEED_SEED": ("feed", "seed_path"),
    "BATHROOMFINDER_FEED_AUTH": ("feed", "auth_token"),
}


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Return `raw` with whitelisted environment variables layered on top."""
    merged = {section: dict(values or {}) for section, values in raw.items()}

    for name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(name)
        if value:
            merged.setdefault(section, {})[key] = value

    # `LAT,LNG` pins the static geolocation provider (handy for demos and kiosks).
    location = os.getenv("BATHROOMFINDER_LOCATION")
    if location:
        lat, _, lng = location.partition(",")
        merged.setdefault("geolocation", {}).update(
            {"provider": "static", "lat": float(lat), "lng": float(lng)}
        )

    return merged


@lru_cache
def get_settings() -> Settings:
    """Load, overlay and validate settings once per process."""
    load_dotenv_if_present()
    config_path = os.getenv("BATHROOMFINDER_CONFIG_PATH")
    raw = _external_yaml(config_path) if config_path else _packaged_yaml("defaults.yaml")
    return Settings.model_validate(_apply_env_overrides(raw))


@lru_cache
def get_logging_config() -> dict[str, Any]:
    return _packaged_yaml("logging.yaml")
