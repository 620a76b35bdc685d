"""
Location Source: where the current position comes from.

Real fixes come from macOS Location Services (pyobjc) with an IP geolocation
fallback. Providers are blocking; ``LocationSource`` runs them in a worker
thread so the UI loop never waits on the GPS.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from antipodal.config import LocationSettings
from antipodal.errors import PermissionDenied, PositionUnavailable
from antipodal.geo import Coordinate, random_position


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fix:
    """A position plus a short status text describing its quality."""

    coordinate: Coordinate
    status: str


class PositionProvider(Protocol):
    def request_authorization(self) -> None:
        ...

    def request_position(self) -> Fix:
        ...


def describe_accuracy(accuracy_m: float) -> str:
    if accuracy_m <= 10:
        return f"GPS: Excellent (±{accuracy_m:.0f}m)"
    elif accuracy_m <= 50:
        return f"GPS: Good (±{accuracy_m:.0f}m)"
    elif accuracy_m <= 100:
        return f"GPS: Fair (±{accuracy_m:.0f}m)"
    return f"GPS: Low accuracy (±{accuracy_m:.0f}m)"


# =============================================================================
# macOS Location Services
# =============================================================================

class CoreLocationProvider:
    """Get GPS location using macOS CoreLocation.

    CoreLocation delivers updates on the run loop of the thread that created
    the manager, so every call builds its own manager on the calling thread
    and spins that thread's run loop until it answers.
    """

    POLL_SECONDS = 0.1

    def __init__(self, timeout_seconds: float = 10.0, authorization_wait_seconds: float = 3.0):
        import CoreLocation

        self._cl = CoreLocation
        self.timeout_seconds = timeout_seconds
        self.authorization_wait_seconds = authorization_wait_seconds
        self._stop = threading.Event()

    def _new_manager(self):
        return self._cl.CLLocationManager.alloc().init()

    def _spin(self) -> None:
        from Foundation import NSDate, NSRunLoop

        NSRunLoop.currentRunLoop().runUntilDate_(NSDate.dateWithTimeIntervalSinceNow_(self.POLL_SECONDS))

    def _status(self) -> int:
        return self._cl.CLLocationManager.authorizationStatus()

    def cancel(self) -> None:
        """Make any polling loop give up at its next tick."""
        self._stop.set()

    def request_authorization(self) -> None:
        cl = self._cl
        self._stop.clear()
        status = self._status()

        if status == cl.kCLAuthorizationStatusDenied:
            raise PermissionDenied("Location denied - enable it in System Settings > Privacy > Location Services")
        if status == cl.kCLAuthorizationStatusRestricted:
            raise PermissionDenied("Location restricted by system")

        if status == cl.kCLAuthorizationStatusNotDetermined:
            manager = self._new_manager()
            manager.requestWhenInUseAuthorization()
            # Wait briefly for the user to answer the prompt
            for _ in range(int(self.authorization_wait_seconds / self.POLL_SECONDS)):
                if self._stop.is_set():
                    break
                self._spin()
                if self._status() != cl.kCLAuthorizationStatusNotDetermined:
                    break
            if self._status() in (cl.kCLAuthorizationStatusDenied, cl.kCLAuthorizationStatusRestricted):
                raise PermissionDenied("Location access was declined")

    def request_position(self) -> Fix:
        manager = self._new_manager()
        manager.setDesiredAccuracy_(self._cl.kCLLocationAccuracyBest)
        manager.startUpdatingLocation()
        try:
            for _ in range(int(self.timeout_seconds / self.POLL_SECONDS)):
                if self._stop.is_set():
                    raise PositionUnavailable("Location request cancelled")
                self._spin()
                loc = manager.location()
                if loc and loc.horizontalAccuracy() > 0:
                    coordinate = Coordinate(loc.coordinate().latitude, loc.coordinate().longitude)
                    return Fix(coordinate, describe_accuracy(loc.horizontalAccuracy()))
        finally:
            manager.stopUpdatingLocation()
        raise PositionUnavailable(f"GPS timeout after {self.timeout_seconds:.0f}s")


# =============================================================================
# IP geolocation
# =============================================================================

class IPLocationProvider:
    """City-level location via IP geolocation."""

    def request_authorization(self) -> None:
        pass

    def request_position(self) -> Fix:
        import geocoder

        try:
            g = geocoder.ip("me")
        except Exception as e:
            raise PositionUnavailable(f"IP geolocation failed: {e}") from e
        if not g.ok or g.lat is None or g.lng is None:
            raise PositionUnavailable("Could not determine location")
        try:
            coordinate = Coordinate(float(g.lat), float(g.lng))
        except ValueError as e:
            raise PositionUnavailable(str(e)) from e
        return Fix(coordinate, "IP Location (city-level, ~10km accuracy)")


def default_provider(settings: Optional[LocationSettings] = None) -> PositionProvider:
    """CoreLocation when pyobjc is available, otherwise IP geolocation."""
    settings = settings or LocationSettings()
    try:
        return CoreLocationProvider(settings.timeout_seconds, settings.authorization_wait_seconds)
    except ImportError:
        if not settings.ip_fallback:
            raise
        logger.info("CoreLocation unavailable, using IP geolocation")
        return IPLocationProvider()


class LocationSource:
    """Produces positions for the navigator: the device fix or a random point."""

    def __init__(
        self,
        provider: PositionProvider,
        rng: Optional[random.Random] = None,
        area_uniform: bool = False,
    ):
        self.provider = provider
        self.rng = rng or random.Random()
        self.area_uniform = area_uniform

    def _locate(self) -> Fix:
        self.provider.request_authorization()
        return self.provider.request_position()

    async def request_current_position(self) -> Fix:
        """Ask for permission and a fix without blocking the event loop.

        Raises:
            PermissionDenied: Access denied or restricted.
            PositionUnavailable: No fix could be obtained.
        """
        try:
            fix = await asyncio.to_thread(self._locate)
        except (PermissionDenied, PositionUnavailable):
            raise
        except Exception as e:
            raise PositionUnavailable(f"Location provider error: {e}") from e
        logger.info("Got position %.4f, %.4f (%s)", fix.coordinate.latitude, fix.coordinate.longitude, fix.status)
        return fix

    def random_position(self) -> Coordinate:
        return random_position(self.rng, area_uniform=self.area_uniform)

    def cancel(self) -> None:
        """Ask a provider that supports it to abandon its in-flight request."""
        cancel = getattr(self.provider, "cancel", None)
        if cancel is not None:
            cancel()
