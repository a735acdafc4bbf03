"""
Terrain sample decoding and corner-code packing.

Each vertex of the terrain grid carries a height-table index, a terrain
type and a road code. The four corners of a landcell are packed into one
32-bit "pcode" which is the only input of blend planning:

    terrain bits: NW << 15 | NE << 10 | SE << 5 | SW        (5 bits each)
    road bits:    SW << 26 | SE << 24 | NE << 22 | NW << 20  (2 bits each)

All packing arithmetic is unsigned 32-bit.
"""

from typing import NamedTuple, Tuple

import numpy as np

MAX_HEIGHT_INDEX = 254
MAX_TERRAIN_TYPE = 31
MAX_ROAD_CODE = 3

# Corner order used throughout: NW, NE, SE, SW
CORNERS = ("NW", "NE", "SE", "SW")
TERRAIN_SHIFTS = (15, 10, 5, 0)
ROAD_SHIFTS = (20, 22, 24, 26)

TERRAIN_MASK = 0x1F
ROAD_MASK = 0x3


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


def _clamp(value, low, high):
    return max(low, min(high, int(value)))


class VertexSample(NamedTuple):
    """Decoded per-vertex terrain sample."""

    height_index: int
    terrain_type: int
    road_code: int
    scenery: int = 0


class Corner(NamedTuple):
    """Terrain and road code of one landcell corner."""

    terrain_type: int
    road_code: int


def decode_sample(red: int, green: int, blue: int, alpha: int = 0) -> VertexSample:
    """
    Decode one RGBA texel of the terrain data image.

    Red holds the height index, green the terrain type, blue the road code
    and alpha the scenery id. Out-of-range values are clamped.
    """
    return VertexSample(
        _clamp(red, 0, MAX_HEIGHT_INDEX),
        _clamp(green, 0, MAX_TERRAIN_TYPE),
        _clamp(blue, 0, MAX_ROAD_CODE),
        int(alpha),
    )


def decode_terrain_word(word: int) -> Tuple[int, int, int]:
    """
    Split a raw landblock terrain word into ``(terrain_type, road_code, scenery)``.

    Layout of the 16-bit word: road in bits 0-1, terrain type in bits 2-6,
    scenery in bits 11-15.
    """
    word = int(word)
    terrain_type = (word & 0x7C) >> 2
    road_code = word & 0x3
    scenery = (word & 0xF800) >> 11
    return terrain_type, road_code, scenery


def pack_pcode(nw: Corner, ne: Corner, se: Corner, sw: Corner) -> int:
    """Pack four corner (terrain, road) pairs into a pcode."""
    corners = (nw, ne, se, sw)
    terrain_bits = 0
    road_bits = 0
    for corner, t_shift, r_shift in zip(corners, TERRAIN_SHIFTS, ROAD_SHIFTS):
        terrain = _clamp(corner[0], 0, MAX_TERRAIN_TYPE)
        road = _clamp(corner[1], 0, MAX_ROAD_CODE)
        terrain_bits |= terrain << t_shift
        road_bits |= road << r_shift
    return _uint32(road_bits | terrain_bits)


def unpack_pcode(pcode: int) -> Tuple[Corner, Corner, Corner, Corner]:
    """Decode a pcode back into its NW, NE, SE, SW corners."""
    pcode = _uint32(pcode)
    return tuple(
        Corner((pcode >> t_shift) & TERRAIN_MASK, (pcode >> r_shift) & ROAD_MASK)
        for t_shift, r_shift in zip(TERRAIN_SHIFTS, ROAD_SHIFTS)
    )


def terrain_codes(pcode: int) -> Tuple[int, int, int, int]:
    """The four 5-bit terrain types of a pcode, NW first."""
    pcode = _uint32(pcode)
    return tuple((pcode >> shift) & TERRAIN_MASK for shift in TERRAIN_SHIFTS)


def road_codes(pcode: int) -> Tuple[int, int, int, int]:
    """The four 2-bit road codes of a pcode, NW first."""
    pcode = _uint32(pcode)
    return tuple((pcode >> shift) & ROAD_MASK for shift in ROAD_SHIFTS)


def pack_pcodes(terrain: np.ndarray, road: np.ndarray) -> np.ndarray:
    """
    Vectorized :func:`pack_pcode`.

    Args:
        terrain: (..., 4) terrain types in NW, NE, SE, SW order
        road: (..., 4) road codes in the same order

    Returns:
        uint32 array of pcodes with shape ``terrain.shape[:-1]``
    """
    terrain = np.clip(np.asarray(terrain, dtype=np.int64), 0, MAX_TERRAIN_TYPE).astype(np.uint32)
    road = np.clip(np.asarray(road, dtype=np.int64), 0, MAX_ROAD_CODE).astype(np.uint32)

    pcodes = np.zeros(terrain.shape[:-1], dtype=np.uint32)
    for i, (t_shift, r_shift) in enumerate(zip(TERRAIN_SHIFTS, ROAD_SHIFTS)):
        pcodes |= terrain[..., i] << np.uint32(t_shift)
        pcodes |= road[..., i] << np.uint32(r_shift)
    return pcodes
