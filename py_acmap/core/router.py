"""
Route strings: a compact, human-readable camera location.

Outdoor locations serialize as ``"<NS><N|S>,<EW><E|W>,<zoom>"``, e.g.
``"12.345N,45.678E,0.080"``. Indoor locations have no meaningful geographic
form and use the full coordinate text instead.
"""

import math
import re
from typing import NamedTuple, Optional

from .coordinates import Coordinates

_FIELD_PATTERN = re.compile(r"^\s*(?P<value>\d+(?:\.\d+)?)\s*(?P<hemisphere>[NSEW])\s*$", re.IGNORECASE)


class Route(NamedTuple):
    """A parsed route: where to center and how far to zoom."""

    coords: Coordinates
    zoom: float


def make_route(coords: Coordinates, zoom: float) -> str:
    """
    Serialize coordinates and zoom into a route string.

    Outdoor positions give ``<ns>,<ew>,<zoom>``, which ``parse_route`` reads
    back. Indoor positions give ``#<landcell format>@<zoom>``, which is for
    display only: ``parse_route`` returns None for it.
    """
    if coords.is_outside():
        ns, ew = coords.ns, coords.ew
        return (
            f"{abs(ns):.3f}{'N' if ns >= 0 else 'S'},"
            f"{abs(ew):.3f}{'E' if ew >= 0 else 'W'},"
            f"{zoom:.3f}"
        )
    return f"#{coords.format()}@{zoom}"


def _parse_hemisphere_value(text: str, positive: str, negative: str) -> Optional[float]:
    match = _FIELD_PATTERN.match(text)
    if match is None:
        return None
    hemisphere = match.group("hemisphere").upper()
    if hemisphere not in (positive, negative):
        return None
    value = float(match.group("value"))
    return -value if hemisphere == negative else value


def parse_route(route: str) -> Optional[Route]:
    """
    Parse a route string.

    Exactly three comma separated fields are required (NS, EW, zoom). Any
    malformed input yields None so the caller keeps its current camera.
    """
    if not route:
        return None

    parts = route.lstrip("#").split(",")
    if len(parts) != 3:
        return None

    ns = _parse_hemisphere_value(parts[0], "N", "S")
    ew = _parse_hemisphere_value(parts[1], "E", "W")
    if ns is None or ew is None:
        return None

    try:
        zoom = float(parts[2])
    except ValueError:
        return None
    if not math.isfinite(zoom) or zoom <= 0:
        return None

    return Route(Coordinates.from_geo(ns, ew, 0.0), zoom)
