"""
Procedural terrain splatting: pcode -> blend plan.

A landcell is drawn as a base terrain texture with up to three terrain
overlays and up to two road overlays on top. Each overlay pairs a color
texture with an alpha mask from a small atlas of canonical shapes (corner,
side, three road families) rotated in 90 degree steps.

Corner shapes are addressed with a 4-bit corner mask, one bit per corner in
NW, NE, SE, SW order (NW = 1, SW = 8). Rotating a mask one step clockwise
is ``code * 2`` with the 16 wrapped back to 1.

Texture atlas slots: 0-30 terrain types, 31 the road texture.
Alpha atlas slots: 0-3 corner variants, 4 side, 5-7 road families.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from .terrain_codec import ROAD_MASK, ROAD_SHIFTS, terrain_codes

ROAD_TEXTURE = 31
MAX_TERRAIN_TEXTURE = 30

CORNER_ALPHA_SLOTS = (0, 1, 2, 3)
SIDE_ALPHA_SLOT = 4
ROAD_ALPHA_SLOTS = (5, 6, 7)
NUM_ROAD_MAPS = len(ROAD_ALPHA_SLOTS)

# Corner mask each canonical (unrotated) alpha shape covers
CORNER_ALPHA_CODE = 8   # single corner (SW)
SIDE_ALPHA_CODE = 9     # west side (NW | SW)
ROAD_ALPHA_CODES = (9, 8, 5)  # edge road, end cap, diagonal

CORNER_BITS = (1, 2, 4, 8)  # NW, NE, SE, SW
ALL_CORNERS = 0xF

# All four terrains distinct: NW is the base, the rest overlay their own corner
DEFAULT_OVERLAY_CODES = (2, 4, 8)

# Three road corners: two edge roads meeting at the corner opposite the gap
THREE_CORNER_ROAD_CODES = {
    0xE: (6, 12),
    0xD: (9, 12),
    0xB: (9, 3),
    0x7: (3, 6),
}

MAX_ROTATIONS = 4


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class RoadShape(str, Enum):
    """Outcome of road classification."""

    NONE = "none"
    SOLID = "solid"
    THREE_CORNER = "three_corner"
    PARTIAL = "partial"


@dataclass(frozen=True)
class OverlayLayer:
    """One overlay of a blend plan."""

    texture_index: int
    alpha_index: int
    rotation: int
    code: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "texture_index": self.texture_index,
            "alpha_index": self.alpha_index,
            "rotation": self.rotation,
            "code": self.code,
        }


@dataclass(frozen=True)
class BlendPlan:
    """Everything needed to shade one landcell."""

    pcode: int
    base_texture: int
    terrain_overlays: Tuple[OverlayLayer, ...] = field(default_factory=tuple)
    road_overlays: Tuple[OverlayLayer, ...] = field(default_factory=tuple)
    road_shape: RoadShape = RoadShape.NONE

    @property
    def solid_road(self) -> bool:
        return self.road_shape == RoadShape.SOLID

    @property
    def has_overlays(self) -> bool:
        return bool(self.terrain_overlays or self.road_overlays)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pcode": self.pcode,
            "base_texture": self.base_texture,
            "road_shape": self.road_shape.value,
            "terrain_overlays": [layer.to_dict() for layer in self.terrain_overlays],
            "road_overlays": [layer.to_dict() for layer in self.road_overlays],
        }


def rotate_code(code: int) -> int:
    """Rotate a 4-bit corner mask one step clockwise."""
    code *= 2
    if code >= 16:
        code -= 15
    return code


def find_rotation(reference: int, code: int) -> Optional[int]:
    """
    Number of clockwise steps that turn ``reference`` into ``code``.

    Returns None when no rotation within four steps matches.
    """
    candidate = reference
    for rotation in range(MAX_ROTATIONS):
        if candidate == code:
            return rotation
        candidate = rotate_code(candidate)
    return None


def variant_index(pcode: int, num_variants: int) -> int:
    """
    Deterministic pseudo-random variant for a landcell.

    floor(frac((1379576222 * pcode - 1372186442) * 2^-32) * num_variants),
    with the product taken modulo 2^32.
    """
    if num_variants <= 1:
        return 0
    fraction = _uint32(1379576222 * _uint32(pcode) - 1372186442) * 2.3283064365386963e-10
    index = int(fraction * num_variants)
    return max(0, min(num_variants - 1, index))


def _is_single_corner(code: int) -> bool:
    return code in CORNER_BITS


def get_terrain_alpha(pcode: int, code: int) -> Optional[Tuple[int, int]]:
    """
    Alpha mask slot and rotation for a terrain overlay covering ``code``.

    Single corners pick one of the corner variants; any other mask uses the
    side shape. Returns None if the shape cannot be rotated onto ``code``.
    """
    if _is_single_corner(code):
        slot = CORNER_ALPHA_SLOTS[variant_index(pcode, len(CORNER_ALPHA_SLOTS))]
        reference = CORNER_ALPHA_CODE
    else:
        slot = SIDE_ALPHA_SLOT
        reference = SIDE_ALPHA_CODE

    rotation = find_rotation(reference, code)
    if rotation is None:
        return None
    return slot, rotation


def get_road_alpha(pcode: int, code: int) -> Optional[Tuple[int, int]]:
    """
    Alpha mask slot and rotation for a road overlay covering ``code``.

    Road families are tried in turn starting at the landcell's variant.
    """
    start = variant_index(pcode, NUM_ROAD_MAPS)
    for step in range(NUM_ROAD_MAPS):
        family = (start + step) % NUM_ROAD_MAPS
        rotation = find_rotation(ROAD_ALPHA_CODES[family], code)
        if rotation is not None:
            return ROAD_ALPHA_SLOTS[family], rotation
    return None


def road_mask(pcode: int) -> int:
    """4-bit mask of corners with a road, NW = 1 ... SW = 8."""
    pcode = _uint32(pcode)
    mask = 0
    for bit, shift in zip(CORNER_BITS, ROAD_SHIFTS):
        if pcode & (ROAD_MASK << shift):
            mask |= bit
    return mask


def classify_roads(pcode: int) -> Tuple[RoadShape, Tuple[int, ...]]:
    """Road shape of a landcell and the corner masks of its road overlays."""
    mask = road_mask(pcode)
    if mask == ALL_CORNERS:
        return RoadShape.SOLID, ()
    if mask == 0:
        return RoadShape.NONE, ()
    if mask in THREE_CORNER_ROAD_CODES:
        return RoadShape.THREE_CORNER, THREE_CORNER_ROAD_CODES[mask]
    return RoadShape.PARTIAL, (mask,)


def classify_terrain(pcode: int) -> Tuple[int, List[Tuple[int, int]]]:
    """
    Base terrain and ``(terrain_type, corner_mask)`` overlays of a landcell.

    The first terrain found on two corners (scanning NW, NE, SE, SW) becomes
    the base; every other terrain becomes an overlay covering the corners it
    occupies. With four distinct terrains NW is the base and the others
    overlay their single corners.
    """
    terrains = terrain_codes(pcode)

    base = None
    for i in range(4):
        for j in range(i + 1, 4):
            if terrains[i] == terrains[j]:
                base = terrains[i]
                break
        if base is not None:
            break

    if base is None:
        overlays = [(terrains[i + 1], code) for i, code in enumerate(DEFAULT_OVERLAY_CODES)]
        return terrains[0], overlays

    overlays: List[Tuple[int, int]] = []
    for terrain, bit in zip(terrains, CORNER_BITS):
        if terrain == base:
            continue
        for k, (existing, code) in enumerate(overlays):
            if existing == terrain:
                overlays[k] = (existing, code | bit)
                break
        else:
            overlays.append((terrain, bit))
    return base, overlays


def _terrain_texture(terrain_type: int) -> int:
    return max(0, min(MAX_TERRAIN_TEXTURE, int(terrain_type)))


@lru_cache(maxsize=8192)
def build_blend_plan(pcode: int) -> BlendPlan:
    """
    Compute the blend plan of a landcell.

    Pure function of ``pcode``. Overlays whose alpha shape cannot be rotated
    onto their corner mask are left out.
    """
    pcode = _uint32(pcode)
    road_shape, road_overlay_codes = classify_roads(pcode)

    if road_shape == RoadShape.SOLID:
        return BlendPlan(pcode=pcode, base_texture=ROAD_TEXTURE, road_shape=road_shape)

    base, overlays = classify_terrain(pcode)

    terrain_layers = []
    for terrain, code in overlays:
        alpha = get_terrain_alpha(pcode, code)
        if alpha is None:
            continue
        terrain_layers.append(OverlayLayer(_terrain_texture(terrain), alpha[0], alpha[1], code))

    road_layers = []
    for code in road_overlay_codes:
        alpha = get_road_alpha(pcode, code)
        if alpha is None:
            continue
        road_layers.append(OverlayLayer(ROAD_TEXTURE, alpha[0], alpha[1], code))

    return BlendPlan(
        pcode=pcode,
        base_texture=_terrain_texture(base),
        terrain_overlays=tuple(terrain_layers),
        road_overlays=tuple(road_layers),
        road_shape=road_shape,
    )
