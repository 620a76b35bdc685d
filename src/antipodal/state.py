"""
View state and the navigator that feeds it.

``StateStore`` is the single owner of the displayed state. It hands out
immutable ``ViewState`` snapshots to subscribers on every change. Each
adoption of a new position bumps a generation counter; place names resolved
for an older generation are dropped instead of overwriting newer ones.

``Navigator`` ties the Location Source and the Place Resolver to the store.
All store mutations happen on the event loop thread, so there are no locks.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Set

from antipodal.config import Settings
from antipodal.errors import LocationError
from antipodal.geo import Coordinate, MapRegion, antipode
from antipodal.location import LocationSource
from antipodal.places import PlaceResolver


logger = logging.getLogger(__name__)

PENDING = "Resolving..."

DEFAULT_SPAN = 0.05
ANTIPODE_SPAN = 30.0


@dataclass(frozen=True)
class ViewState:
    current: Coordinate
    place_name: str
    antipode_name: str
    generation: int = 0
    status: str = ""
    span: float = DEFAULT_SPAN
    antipode_span: float = ANTIPODE_SPAN

    @property
    def antipode(self) -> Coordinate:
        return antipode(self.current)

    @property
    def region(self) -> MapRegion:
        return MapRegion(self.current, self.span)

    @property
    def antipode_region(self) -> MapRegion:
        return MapRegion(self.antipode, self.antipode_span)


Subscriber = Callable[[ViewState], None]


def default_state(settings: Optional[Settings] = None) -> ViewState:
    """The state shown at startup, before any position is adopted."""
    settings = settings or Settings()
    home = settings.default_location
    return ViewState(
        current=Coordinate(home.latitude, home.longitude),
        place_name=home.name,
        antipode_name=home.antipode_name,
        status="Press 'l' for your location, 'r' for a random one",
        span=settings.map.span_deg,
        antipode_span=settings.map.antipode_span_deg,
    )


class StateStore:
    """Holds the current ``ViewState`` and publishes every change."""

    def __init__(self, initial: ViewState):
        self._state = initial
        self._subscribers: List[Subscriber] = []

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def generation(self) -> int:
        return self._state.generation

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for future snapshots; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, state: ViewState) -> None:
        self._state = state
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception:
                logger.exception("State subscriber %r failed", callback)

    def adopt(self, coordinate: Coordinate, status: Optional[str] = None) -> int:
        """Make ``coordinate`` current; both names go back to pending."""
        generation = self._state.generation + 1
        self._publish(
            replace(
                self._state,
                current=coordinate,
                place_name=PENDING,
                antipode_name=PENDING,
                generation=generation,
                status=self._state.status if status is None else status,
            )
        )
        return generation

    def set_place_name(self, generation: int, name: str) -> bool:
        if generation != self._state.generation:
            logger.debug("Dropping stale place name %r (generation %d)", name, generation)
            return False
        self._publish(replace(self._state, place_name=name))
        return True

    def set_antipode_name(self, generation: int, name: str) -> bool:
        if generation != self._state.generation:
            logger.debug("Dropping stale antipode name %r (generation %d)", name, generation)
            return False
        self._publish(replace(self._state, antipode_name=name))
        return True


class Navigator:
    """Adopts positions into the store and resolves their place names."""

    def __init__(self, store: StateStore, source: LocationSource, resolver: PlaceResolver):
        self.store = store
        self.source = source
        self.resolver = resolver
        self._tasks: Set[asyncio.Task] = set()
        self._locating: Optional[asyncio.Task] = None

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _resolve_place(self, generation: int, coordinate: Coordinate) -> None:
        self.store.set_place_name(generation, await self.resolver.resolve(coordinate))

    async def _resolve_antipode(self, generation: int, coordinate: Coordinate) -> None:
        self.store.set_antipode_name(generation, await self.resolver.resolve(antipode(coordinate)))

    def adopt(self, coordinate: Coordinate, status: Optional[str] = None) -> int:
        """Adopt ``coordinate`` and start both lookups. Must run on the event loop."""
        generation = self.store.adopt(coordinate, status)
        self._spawn(self._resolve_place(generation, coordinate))
        self._spawn(self._resolve_antipode(generation, coordinate))
        return generation

    def randomize(self) -> Coordinate:
        coordinate = self.source.random_position()
        logger.info("Random location %.4f, %.4f", coordinate.latitude, coordinate.longitude)
        self.adopt(coordinate, "Random location")
        return coordinate

    async def _locate(self, generation: int) -> None:
        try:
            fix = await self.source.request_current_position()
        except LocationError as e:
            logger.warning("Location unavailable: %s", e)
            return
        if generation != self.store.generation:
            logger.info("Dropping device fix, a newer position was adopted while locating")
            return
        self.adopt(fix.coordinate, fix.status)

    def request_current_position(self) -> asyncio.Task:
        """Fire off a device position request; the state changes only on success.

        Only one request runs at a time; asking again while one is pending
        returns the pending task.
        """
        if self._locating is not None and not self._locating.done():
            return self._locating
        self._locating = self._spawn(self._locate(self.store.generation))
        return self._locating

    @property
    def busy(self) -> bool:
        return bool(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every in-flight request, including ones they start, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        # Worker threads cannot be cancelled, so tell the provider to stop polling
        self.source.cancel()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
        self._locating = None
