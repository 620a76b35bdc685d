"""
Application settings (Pydantic).

Defaults live in the models below. They can be overridden by:
- a YAML file pointed to by ``ANTIPODAL_CONFIG_PATH``
- ``ANTIPODAL_LOG_LEVEL`` / ``ANTIPODAL_LOG_FILE`` environment variables

Example YAML::

    geocoder:
      timeout_seconds: 3
    random:
      area_uniform: true
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field


CONFIG_PATH_ENV = "ANTIPODAL_CONFIG_PATH"


class AppSettings(BaseModel):
    log_level: str = "INFO"
    log_file: Optional[str] = None


class DefaultLocationSettings(BaseModel):
    """Where the map starts before any position is adopted."""

    latitude: float = Field(34.0739, ge=-90, le=90)
    longitude: float = Field(-118.2400, ge=-180, le=180)
    name: str = "Los Angeles, United States"
    antipode_name: str = "Indian Ocean"


class MapSettings(BaseModel):
    span_deg: float = Field(0.05, gt=0)
    antipode_span_deg: float = Field(30.0, gt=0)


class GeocoderSettings(BaseModel):
    base_url: str = "https://nominatim.openstreetmap.org/reverse"
    user_agent: str = "Antipodal/1.0 (terminal antipode viewer)"
    timeout_seconds: float = Field(5.0, gt=0)
    # Nominatim detail level, 10 is roughly city
    zoom: int = Field(10, ge=0, le=18)
    language: Optional[str] = None
    # Nominatim usage policy: at most one request per second
    min_interval_seconds: float = Field(1.0, ge=0)


class LocationSettings(BaseModel):
    timeout_seconds: float = Field(10.0, gt=0)
    authorization_wait_seconds: float = Field(3.0, ge=0)
    ip_fallback: bool = True


class RandomSettings(BaseModel):
    area_uniform: bool = False


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    default_location: DefaultLocationSettings = Field(default_factory=DefaultLocationSettings)
    map: MapSettings = Field(default_factory=MapSettings)
    geocoder: GeocoderSettings = Field(default_factory=GeocoderSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    random: RandomSettings = Field(default_factory=RandomSettings)


def _read_yaml_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).expanduser().read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


def _env_overrides() -> Dict[str, Any]:
    app: Dict[str, Any] = {}
    if os.getenv("ANTIPODAL_LOG_LEVEL"):
        app["log_level"] = os.environ["ANTIPODAL_LOG_LEVEL"]
    if os.getenv("ANTIPODAL_LOG_FILE"):
        app["log_file"] = os.environ["ANTIPODAL_LOG_FILE"]
    return {"app": app} if app else {}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """Build settings from defaults, an optional YAML file and the environment.

    Raises:
        ValueError: If the YAML file is not a mapping.
        pydantic.ValidationError: If a value is out of range.
    """
    data: Dict[str, Any] = {}
    path = config_path or os.getenv(CONFIG_PATH_ENV)
    if path:
        data = _read_yaml_file(path)
    data = _deep_merge(data, _env_overrides())
    return Settings.model_validate(data)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached)."""
    return load_settings()
