"""
Antipodal - your location and its antipode, in the terminal

A terminal app that shows where you are (or a random point on Earth) on a
map, together with the point on the opposite side of the globe.
Uses macOS Location Services for real GPS coordinates.
"""

__version__ = "1.0.0"

from .app import run

__all__ = ["run"]
