#!/usr/bin/env python3
"""
Antipodal - where you are, and what is on the other side of the Earth

FEATURES:
- Real GPS location using macOS Location Services (IP fallback elsewhere)
- Random location anywhere on Earth
- Antipodal point with its own preview map
- Reverse-geocoded place names for both points

CONTROLS:
- l: Current location
- r: Random location
- Mouse drag: Pan the map
- q: Quit
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Footer, Header, Static
from rich.style import Style
from rich.text import Text

from antipodal.config import Settings, get_settings
from antipodal.geo import Coordinate, MapRegion, format_coordinate, haversine_km, mean_solar_time
from antipodal.location import LocationSource, default_provider
from antipodal.logging_config import setup_logging
from antipodal.places import NominatimLookup, PlaceResolver
from antipodal.state import Navigator, StateStore, ViewState, default_state


logger = logging.getLogger(__name__)

CAPTION = (
    "Most land points are opposite to ocean. Only a few places like parts of "
    "South America and Spain have land antipodes."
)

GRID_STEPS = [0.001, 0.002, 0.005, 0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1, 2, 5, 10, 15, 30, 45, 90]


def grid_step(span: float) -> float:
    """Smallest graticule step giving at most about four lines across ``span``."""
    for step in GRID_STEPS:
        if step >= span / 4:
            return step
    return GRID_STEPS[-1]


# =============================================================================
# UI COMPONENTS
# =============================================================================

class MapWidget(Static):
    """
    Map display widget.
    - Draws a graticule for the region around the center
    - Marks the given coordinate
    - Supports mouse drag to pan the drawing
    """

    can_focus = True

    def __init__(self, color: str = "green", marker_char: str = "◉", **kwargs):
        super().__init__(**kwargs)
        self.map_color = color
        self.marker_char = marker_char
        self.view_region: Optional[MapRegion] = None
        self.marker: Optional[Coordinate] = None
        self.label: str = ""
        self.pan_x: int = 0
        self.pan_y: int = 0
        self._dragging: bool = False
        self._drag_x: int = 0
        self._drag_y: int = 0

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if event.button == 1:
            self._dragging = True
            self._drag_x = event.x
            self._drag_y = event.y
            self.capture_mouse()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        self._dragging = False
        self.release_mouse()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self._dragging:
            self.pan_x += event.x - self._drag_x
            self.pan_y += event.y - self._drag_y
            self._drag_x = event.x
            self._drag_y = event.y
            self.refresh()

    def set_view(self, region: MapRegion, marker: Optional[Coordinate] = None, label: str = "") -> None:
        if region != self.view_region:
            self.pan_x = 0
            self.pan_y = 0
        self.view_region = region
        self.marker = marker
        self.label = label
        self.refresh()

    def render(self) -> Text:
        text = Text()
        w = max(self.size.width, 8)
        h = max(self.size.height, 4)
        buffer = [[' ' for _ in range(w)] for _ in range(h)]

        if self.view_region is None:
            return text

        center = self.view_region.center
        # Terminal cells are about twice as tall as they are wide
        lat_per_row = self.view_region.span / h
        lon_per_col = lat_per_row / 2
        cx = w // 2 + self.pan_x
        cy = h // 2 + self.pan_y

        def col(lon: float) -> int:
            return int(round(cx + (lon - center.longitude) / lon_per_col))

        def row(lat: float) -> int:
            return int(round(cy - (lat - center.latitude) / lat_per_row))

        # Graticule
        step = grid_step(self.view_region.span)
        lon_lo = center.longitude - (cx + 1) * lon_per_col
        lon_hi = center.longitude + (w - cx + 1) * lon_per_col
        lat_lo = center.latitude - (h - cy + 1) * lat_per_row
        lat_hi = center.latitude + (cy + 1) * lat_per_row

        lon = math.floor(lon_lo / step) * step
        while lon <= lon_hi:
            x = col(lon)
            if 0 <= x < w:
                for y in range(h):
                    buffer[y][x] = '┆'
            lon += step

        lat = math.floor(lat_lo / step) * step
        while lat <= lat_hi:
            y = row(lat)
            if 0 <= y < h and abs(lat) <= 90:
                glyph = '═' if abs(lat) < step / 2 else '┄'
                for x in range(w):
                    buffer[y][x] = '┼' if buffer[y][x] == '┆' else glyph
            lat += step

        # Compass points
        mid_x, mid_y = w // 2, h // 2
        buffer[0][mid_x] = 'N'
        buffer[h - 1][mid_x] = 'S'
        buffer[mid_y][0] = 'W'
        buffer[mid_y][w - 1] = 'E'

        # Marker and label
        if self.marker is not None:
            mx, my = col(self.marker.longitude), row(self.marker.latitude)
            if 0 <= mx < w and 0 <= my < h:
                buffer[my][mx] = self.marker_char
                label = f" {self.label}" if self.label else ""
                for i, c in enumerate(label):
                    if 0 <= mx + 1 + i < w:
                        buffer[my][mx + 1 + i] = c

        span_label = f"{self.view_region.span:g}°"
        for i, c in enumerate(span_label[: w - 1]):
            buffer[h - 1][w - 1 - len(span_label) + i] = c

        # Convert to Rich Text
        for row_chars in buffer:
            text.append(''.join(row_chars) + '\n', style=Style(color=self.map_color))

        return text


class LocationCard(Static):
    """Shows the current place name, coordinates and time."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.view_state: Optional[ViewState] = None

    def render(self) -> Text:
        text = Text()
        if self.view_state is None:
            return text
        c = self.view_state.current
        width = max(self.size.width - 4, 20)

        text.append(f"{self.view_state.place_name[:width]}\n", style=Style(color="white", bold=True))
        text.append(f"Latitude:  {c.latitude:.6f}\n")
        text.append(f"Longitude: {c.longitude:.6f}\n")
        text.append(f"Current time: {datetime.now().strftime('%H:%M')}\n")
        if self.view_state.status:
            text.append(f"{self.view_state.status[:width]}\n", style=Style(color="cyan", dim=True))
        return text


class AntipodeInfo(Static):
    """Shows the antipode place name, coordinates, solar time and distance."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.view_state: Optional[ViewState] = None

    def render(self) -> Text:
        text = Text()
        if self.view_state is None:
            return text
        a = self.view_state.antipode
        width = max(self.size.width - 2, 20)
        solar = mean_solar_time(a, datetime.now(timezone.utc))
        distance = haversine_km(self.view_state.current, a)

        text.append(f"{self.view_state.antipode_name[:width]}\n", style=Style(color="white", bold=True))
        text.append(f"Latitude:  {a.latitude:.6f}\n")
        text.append(f"Longitude: {a.longitude:.6f}\n")
        text.append(f"Solar time: {solar.strftime('%H:%M')}\n")
        text.append(f"{format_coordinate(a, 4)}  |  {distance:,.0f} km away\n", style=Style(color="grey50"))
        return text


# =============================================================================
# MAIN APPLICATION
# =============================================================================

def build_navigator(settings: Settings) -> Navigator:
    """Wire the default providers, resolver and store together."""
    source = LocationSource(default_provider(settings.location), area_uniform=settings.random.area_uniform)
    resolver = PlaceResolver(NominatimLookup(settings.geocoder), timeout_seconds=settings.geocoder.timeout_seconds)
    return Navigator(StateStore(default_state(settings)), source, resolver)


class AntipodalApp(App):
    """
    Antipodal - current position, random position and the antipode of either.

    The display only changes on user action or when a place name arrives.
    """

    TITLE = "Antipodal"

    CSS = """
    Screen {
        background: #000000;
    }

    #map-container {
        height: 1fr;
        border: heavy green;
        background: #000000;
    }

    #location-card {
        height: auto;
        border: round green;
        padding: 0 1;
    }

    #antipode-card {
        height: auto;
        border: round red;
        border-title-color: red;
        padding: 0 1;
    }

    #antipode-row {
        height: 9;
    }

    #antipode-map {
        width: 24;
        height: 9;
    }

    #antipode-info {
        padding: 0 2;
    }

    #caption {
        color: grey;
    }

    Static {
        color: #00ff00;
    }

    Footer {
        background: #001100;
    }

    Header {
        background: #001100;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("l", "current_location", "Current Location"),
        Binding("r", "random_location", "Random"),
    ]

    def __init__(self, navigator: Optional[Navigator] = None, settings: Optional[Settings] = None):
        super().__init__()
        self.app_settings = settings or get_settings()
        self.navigator = navigator or build_navigator(self.app_settings)
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        self.world_map = MapWidget(id="map")
        self.location_card = LocationCard(id="location-card")
        self.antipode_map = MapWidget(color="red", marker_char="●", id="antipode-map")
        self.antipode_info = AntipodeInfo(id="antipode-info")

        with Container(id="map-container"):
            yield self.world_map

        yield self.location_card

        with Container(id="antipode-card") as card:
            card.border_title = "Antipodal Point"
            with Horizontal(id="antipode-row"):
                yield self.antipode_map
                yield self.antipode_info
            yield Static(CAPTION, id="caption")

        yield Footer()

    def on_mount(self) -> None:
        self._unsubscribe = self.navigator.store.subscribe(self._render_state)
        self._render_state(self.navigator.store.state)
        # Keep the clocks on the cards current
        self.set_interval(30, self._tick)

    async def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
        await self.navigator.aclose()

    def _tick(self) -> None:
        self.location_card.refresh()
        self.antipode_info.refresh()

    def _render_state(self, state: ViewState) -> None:
        """Push a state snapshot into every widget."""
        self.world_map.set_view(state.region, state.current, "You" if state.status.startswith(("GPS", "IP")) else "")
        self.antipode_map.set_view(state.antipode_region, state.antipode)
        self.location_card.view_state = state
        self.antipode_info.view_state = state
        self.location_card.refresh(layout=True)
        self.antipode_info.refresh()

    # === ACTIONS ===

    def action_current_location(self) -> None:
        """Ask for the device position; nothing changes until it arrives."""
        self.notify("Getting location...")
        self.navigator.request_current_position()

    def action_random_location(self) -> None:
        c = self.navigator.randomize()
        self.notify(f"Random location: {c.latitude:.4f}, {c.longitude:.4f}")


# =============================================================================
# ENTRY POINT
# =============================================================================

def run():
    """Run the Antipodal application."""
    settings = get_settings()
    setup_logging(settings.app.log_level, settings.app.log_file)
    logger.info("Starting Antipodal")

    app = AntipodalApp(settings=settings)
    app.run()


if __name__ == "__main__":
    run()
