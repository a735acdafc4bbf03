"""
Landblock <-> geographic coordinate conversion.

The world is a 255x255 grid of 192-unit landblocks, each split into 8x8
landcells of 24 units. Positions are addressed by a 32-bit landcell id
(LBX in bits 24-31, LBY in bits 16-23, cell index in the low 16 bits) plus
a local offset inside the landblock. Geographic coordinates are the
north/south and east/west degrees shown to players.

The scaling constants below are part of the coordinate system itself:
landblock bits divided by 8192 (LBY) or 2097152 (LBX) give the landblock
index times 8, one degree is 10 landcells, and 1019.5 landcells is the
offset of the map origin.
"""

import math
import re
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

LANDBLOCK_SIZE = 192.0
CELL_SIZE = 24.0
CELLS_PER_LANDBLOCK = 8
MAP_LANDBLOCKS = 255
MAP_CELLS = MAP_LANDBLOCKS * CELLS_PER_LANDBLOCK  # 2040 cells per side
MAP_SIZE = MAP_LANDBLOCKS * LANDBLOCK_SIZE  # 48960 world units per side
MAX_LANDBLOCK = 0xFE

LBY_DIVISOR = 8192.0
LBX_DIVISOR = 2097152.0
ORIGIN_OFFSET = 1019.5
CELLS_PER_DEGREE = 10.0

# Z is displayed in units of 240 (one landblock-height "level")
Z_DISPLAY_SCALE = 240.0


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class GeoCoordinate(NamedTuple):
    """North/south and east/west degrees. Negative values are south/west."""

    ns: float
    ew: float


def landblock_to_ns(landcell: int, y_offset: float) -> float:
    """North/south degrees of a local y offset inside ``landcell``'s landblock."""
    lby = (_uint32(landcell) & 0x00FF0000) / LBY_DIVISOR
    return ((y_offset / CELL_SIZE + lby) - ORIGIN_OFFSET) / CELLS_PER_DEGREE


def landblock_to_ew(landcell: int, x_offset: float) -> float:
    """East/west degrees of a local x offset inside ``landcell``'s landblock."""
    lbx = (_uint32(landcell) & 0xFF000000) / LBX_DIVISOR
    return ((x_offset / CELL_SIZE + lbx) - ORIGIN_OFFSET) / CELLS_PER_DEGREE


def ns_to_landblock(landcell: int, ns: float) -> float:
    """Local y offset of ``ns`` degrees relative to ``landcell``'s landblock."""
    lby = (_uint32(landcell) & 0x00FF0000) / LBY_DIVISOR
    return ((ns * CELLS_PER_DEGREE - lby) + ORIGIN_OFFSET) * CELL_SIZE


def ew_to_landblock(landcell: int, ew: float) -> float:
    """Local x offset of ``ew`` degrees relative to ``landcell``'s landblock."""
    lbx = (_uint32(landcell) & 0xFF000000) / LBX_DIVISOR
    return ((ew * CELLS_PER_DEGREE - lbx) + ORIGIN_OFFSET) * CELL_SIZE


def landcell_from_geo(ns: float, ew: float) -> int:
    """
    Outdoor landcell id containing the given geographic position.

    The scaled position is split into an 8-bit landblock index and a 3-bit
    cell index per axis; the cell index is stored 1-based as
    ``(cell_x << 3 | cell_y) + 1``. Positions beyond the map are clamped
    to the edge cells.
    """
    cell_x = math.floor(ew * CELLS_PER_DEGREE + ORIGIN_OFFSET)
    cell_y = math.floor(ns * CELLS_PER_DEGREE + ORIGIN_OFFSET)
    cell_x = max(0, min(MAP_CELLS - 1, cell_x))
    cell_y = max(0, min(MAP_CELLS - 1, cell_y))

    lbx = (cell_x >> 3) & 0xFF
    lby = (cell_y >> 3) & 0xFF
    sub_x = cell_x & 7
    sub_y = cell_y & 7
    return _uint32((lbx << 24) | (lby << 16) | (((sub_x << 3) | sub_y) + 1))


def to_geo(landcell: int, x_offset: float, y_offset: float) -> GeoCoordinate:
    """Convert a landcell id plus local offset to geographic degrees."""
    return GeoCoordinate(
        landblock_to_ns(landcell, y_offset),
        landblock_to_ew(landcell, x_offset),
    )


def from_geo(ns: float, ew: float) -> Tuple[int, float, float]:
    """
    Convert geographic degrees to ``(landcell, x_offset, y_offset)``.

    Inverse of :func:`to_geo`: the landblock is derived first, then the
    offset formulas are inverted relative to it.
    """
    landcell = landcell_from_geo(ns, ew)
    return landcell, ew_to_landblock(landcell, ew), ns_to_landblock(landcell, ns)


@dataclass
class Coordinates:
    """A landcell id plus local offset, with geographic accessors."""

    landcell: int = 0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    COORDINATE_PATTERN = re.compile(
        r"(?P<ns_val>[0-9]{1,3}(?:\.[0-9]{1,3})?)\s*(?P<ns_chr>[ns])"
        r"[,\s]*"
        r"(?P<ew_val>[0-9]{1,3}(?:\.[0-9]{1,3})?)\s*(?P<ew_chr>[ew])"
        r"(?:,?\s*(?P<z_val>-?\d+(?:\.\d+)?)z)?",
        re.IGNORECASE,
    )

    def __post_init__(self):
        self.landcell = _uint32(self.landcell)
        if (self.landcell & 0xFFFF) == 0:
            self._calculate_outdoor_landcell()

    def _calculate_outdoor_landcell(self):
        cell = math.floor(self.x / CELL_SIZE) * 8 + math.ceil(self.y / CELL_SIZE)
        self.landcell = _uint32(self.landcell | cell)

    @classmethod
    def from_geo(cls, ns: float, ew: float, z: float = 0.0) -> "Coordinates":
        """Build coordinates from geographic degrees."""
        landcell, x, y = from_geo(ns, ew)
        return cls(landcell, x, y, z)

    @classmethod
    def parse(cls, text: str) -> Optional["Coordinates"]:
        """
        Parse free-form text such as ``"12.3N, 45.6E"`` or ``"12.3s 45.6w, 1.5z"``.

        Returns None when no coordinate pair is found.
        """
        match = cls.COORDINATE_PATTERN.search(text or "")
        if match is None:
            return None

        ns = float(match.group("ns_val"))
        if match.group("ns_chr").lower() == "s":
            ns = -ns
        ew = float(match.group("ew_val"))
        if match.group("ew_chr").lower() == "w":
            ew = -ew
        z = float(match.group("z_val")) * Z_DISPLAY_SCALE if match.group("z_val") else 0.0
        return cls.from_geo(ns, ew, z)

    @property
    def ns(self) -> float:
        return landblock_to_ns(self.landcell, self.y)

    @property
    def ew(self) -> float:
        return landblock_to_ew(self.landcell, self.x)

    @property
    def geo(self) -> GeoCoordinate:
        return GeoCoordinate(self.ns, self.ew)

    def lbx(self) -> int:
        return (self.landcell >> 24) & 0xFF

    def lby(self) -> int:
        return (self.landcell >> 16) & 0xFF

    def is_outside(self) -> bool:
        return (self.landcell & 0xFFFF) < 0x100

    def world_offset(self) -> Tuple[float, float]:
        """Absolute landblock-space position (x east, y north) in world units."""
        return (
            self.lbx() * LANDBLOCK_SIZE + self.x,
            self.lby() * LANDBLOCK_SIZE + self.y,
        )

    def format(self) -> str:
        ns, ew = self.ns, self.ew
        return (
            f"{abs(ns):.3f}{'N' if ns >= 0 else 'S'}, "
            f"{abs(ew):.3f}{'E' if ew >= 0 else 'W'}, "
            f"{self.z / Z_DISPLAY_SCALE:.3f}Z "
            f"[0x{self.landcell:08X} {self.x:.3f}, {self.y:.3f}, {self.z:.3f}]"
        )

    def __str__(self) -> str:
        return self.format()
