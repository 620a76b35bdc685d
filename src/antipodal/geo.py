"""
Geo math: coordinates, antipodes and random points.

Everything here is pure. Coordinates are validated on construction and never
mutated; each derivation builds a new one.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


EARTH_RADIUS_KM = 6371


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"latitude out of range [-90, 90]: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"longitude out of range [-180, 180]: {self.longitude}")


@dataclass(frozen=True)
class MapRegion:
    """A map viewport: a center and a span in degrees on both axes."""

    center: Coordinate
    span: float


def antipode(c: Coordinate) -> Coordinate:
    """Return the point diametrically opposite ``c``.

    Longitude 0 maps to 180 (not -180), and 180 maps back to 0, so the
    transform is not an involution on that meridian.
    """
    longitude = c.longitude - 180 if c.longitude > 0 else c.longitude + 180
    return Coordinate(-c.latitude, longitude)


def random_position(rng: Optional[random.Random] = None, area_uniform: bool = False) -> Coordinate:
    """Draw a random point on Earth.

    By default latitude and longitude are independent uniform draws, which
    over-weights the poles. With ``area_uniform`` latitude goes through an
    inverse sine so points are uniform over the sphere's surface.
    """
    rng = rng or random
    if area_uniform:
        latitude = math.degrees(math.asin(rng.uniform(-1, 1)))
    else:
        latitude = rng.uniform(-90, 90)
    longitude = rng.uniform(-180, 180)
    # uniform() may round onto the bound, clamp for the validator
    return Coordinate(max(-90.0, min(90.0, latitude)), max(-180.0, min(180.0, longitude)))


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Calculate distance between two points in kilometers."""
    lat1_rad, lat2_rad = math.radians(a.latitude), math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lon = math.radians(b.longitude - a.longitude)
    h = math.sin(delta_lat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))


def format_coordinate(c: Coordinate, precision: int = 6) -> str:
    """Hemisphere-lettered display, e.g. ``34.073900°N 118.240000°W``."""
    ns = "N" if c.latitude >= 0 else "S"
    ew = "E" if c.longitude >= 0 else "W"
    return f"{abs(c.latitude):.{precision}f}°{ns} {abs(c.longitude):.{precision}f}°{ew}"


def mean_solar_time(c: Coordinate, now_utc: datetime) -> datetime:
    """Local mean solar time at ``c``: UTC shifted by four minutes per degree east."""
    return now_utc + timedelta(hours=c.longitude / 15)
