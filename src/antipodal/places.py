"""
Place Resolver: best-effort reverse geocoding.

Uses OpenStreetMap Nominatim (free, no API key). Whatever goes wrong, the
answer degrades to "Ocean", which is also right most of the time for an
antipode.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Dict, Optional, Protocol

import requests

from antipodal.config import GeocoderSettings
from antipodal.errors import ResolutionEmpty, ResolutionFailure
from antipodal.geo import Coordinate


logger = logging.getLogger(__name__)

OCEAN = "Ocean"


class PlaceLookup(Protocol):
    def lookup(self, coordinate: Coordinate) -> Optional[str]:
        ...


class NominatimLookup:
    """Reverse geocoding with the Nominatim ``/reverse`` endpoint."""

    def __init__(self, settings: Optional[GeocoderSettings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or GeocoderSettings()
        self.session = session or requests.Session()
        self._lock = threading.Lock()
        self._last_request_monotonic: Optional[float] = None

    def _throttle_requests(self) -> None:
        spacing_seconds = self.settings.min_interval_seconds
        if spacing_seconds <= 0:
            return

        now = time.monotonic()
        if self._last_request_monotonic is not None:
            remaining = spacing_seconds - (now - self._last_request_monotonic)
            if remaining > 0:
                time.sleep(remaining)
                now = time.monotonic()

        self._last_request_monotonic = now

    def lookup(self, coordinate: Coordinate) -> Optional[str]:
        params: Dict[str, Any] = {
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
            "format": "json",
            "zoom": self.settings.zoom,
        }
        if self.settings.language:
            params["accept-language"] = self.settings.language
        headers = {"User-Agent": self.settings.user_agent}

        with self._lock:
            self._throttle_requests()

        try:
            response = self.session.get(
                self.settings.base_url, params=params, headers=headers, timeout=self.settings.timeout_seconds
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ResolutionFailure(f"Nominatim lookup failed: {e}") from e

        # Over open water Nominatim answers {"error": "Unable to geocode"}
        if not isinstance(data, dict) or "error" in data:
            return None
        return data.get("display_name")


class PlaceResolver:
    """Turns a coordinate into a display name, never raising."""

    def __init__(self, lookup: PlaceLookup, timeout_seconds: float = 5.0):
        self.lookup = lookup
        self.timeout_seconds = timeout_seconds

    def _lookup(self, coordinate: Coordinate) -> str:
        name = self.lookup.lookup(coordinate)
        if not name or not name.strip():
            raise ResolutionEmpty(f"No place at {coordinate.latitude:.4f}, {coordinate.longitude:.4f}")
        return name

    async def resolve(self, coordinate: Coordinate) -> str:
        """Resolve ``coordinate`` once; empty results and failures give ``OCEAN``."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._lookup, coordinate), self.timeout_seconds)
        except ResolutionEmpty as e:
            logger.debug("%s", e)
        except asyncio.TimeoutError:
            logger.warning("Place lookup timed out after %.1fs", self.timeout_seconds)
        except ResolutionFailure as e:
            logger.warning("%s", e)
        except Exception:
            logger.exception("Unexpected error from place lookup")
        return OCEAN
