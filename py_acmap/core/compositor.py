"""
Compositor: blend plan + position -> final color.

Layer order from bottom to top is base terrain, terrain overlays, road
overlays, then the optional grid-line highlight. Every function here works
on scalars as well as numpy arrays of positions, so a whole landcell (or a
whole view) can be shaded in one call.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config.render_settings import TerrainDisplaySettings
from .blend_planner import BlendPlan, OverlayLayer
from .coordinates import CELL_SIZE, LANDBLOCK_SIZE
from .textures import PaletteTextures, TerrainPalette, TextureSource, default_alpha_mask

DEFAULT_EPSILON = 1e-6
MAX_TERRAIN_OVERLAYS = 3
MAX_ROAD_OVERLAYS = 2


def rotate_uv(u, v, rotation: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map a landcell position into the canonical frame of a mask rotated
    ``rotation`` clockwise steps.
    """
    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    for _ in range(rotation % 4):
        u, v = v, 1.0 - u
    return u, v


def mask_blend(
    colors: Sequence[np.ndarray],
    transparencies: Sequence[np.ndarray],
    epsilon: float = DEFAULT_EPSILON,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Combine overlay layers into one color and one coverage.

    Layer ``i`` has transparency ``t_i`` (1 where the overlay is absent).
    Combined coverage is ``1 - prod(t_i)`` and the combined color is
    ``sum(prod_{j<i}(t_j) * (1 - t_i) * color_i) / max(coverage, epsilon)``,
    i.e. earlier layers sit on top of later ones.

    Returns:
        (color with shape (..., 3), coverage with shape (...))
    """
    shape = np.broadcast(*transparencies).shape if transparencies else ()
    remaining = np.ones(shape)
    accumulated = np.zeros(shape + (3,))

    for color, transparency in zip(colors, transparencies):
        transparency = np.clip(np.asarray(transparency, dtype=np.float64), 0.0, 1.0)
        accumulated = accumulated + (remaining * (1.0 - transparency))[..., None] * color
        remaining = remaining * transparency

    coverage = 1.0 - remaining
    color = accumulated / np.maximum(coverage, epsilon)[..., None]
    return color, coverage


def _sample_color(
    textures: TextureSource, palette: TerrainPalette, index: int, tu: np.ndarray, tv: np.ndarray
) -> np.ndarray:
    sample = textures.sample_terrain(index, tu, tv)
    if sample is None:
        return np.broadcast_to(palette.color(index), tu.shape + (3,)).astype(np.float64)
    return np.asarray(sample, dtype=np.float64)


def _sample_alpha(textures: TextureSource, layer: OverlayLayer, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    ru, rv = rotate_uv(u, v, layer.rotation)
    sample = textures.sample_alpha(layer.alpha_index, ru, rv)
    if sample is None:
        return default_alpha_mask(layer.alpha_index, ru, rv)
    return np.asarray(sample, dtype=np.float64)


def _blend_layers(
    layers: Sequence[OverlayLayer],
    textures: TextureSource,
    palette: TerrainPalette,
    u: np.ndarray,
    v: np.ndarray,
    tu: np.ndarray,
    tv: np.ndarray,
    epsilon: float,
) -> Tuple[np.ndarray, np.ndarray]:
    colors: List[np.ndarray] = []
    transparencies: List[np.ndarray] = []
    for layer in layers:
        colors.append(_sample_color(textures, palette, layer.texture_index, tu, tv))
        transparencies.append(np.broadcast_to(_sample_alpha(textures, layer, u, v), u.shape))

    if not colors:
        return np.zeros(u.shape + (3,)), np.zeros(u.shape)
    return mask_blend(colors, transparencies, epsilon)


def composite(
    plan: BlendPlan,
    u,
    v,
    textures: Optional[TextureSource] = None,
    palette: Optional[TerrainPalette] = None,
    texture_uv: Optional[Tuple[np.ndarray, np.ndarray]] = None,
    epsilon: float = DEFAULT_EPSILON,
) -> np.ndarray:
    """
    Shade a landcell at local position ``(u, v)``.

    Args:
        plan: Blend plan of the landcell
        u: West->east fraction inside the landcell, in [0, 1)
        v: North->south fraction inside the landcell, in [0, 1)
        textures: Texture source; missing textures fall back to the palette
        palette: Fallback colors per texture index
        texture_uv: Coordinates for color textures (defaults to ``(u, v)``),
            typically world based so textures tile across landcells
        epsilon: Floor for the combined overlay coverage

    Returns:
        RGB floats with shape ``u.shape + (3,)``
    """
    palette = palette or TerrainPalette()
    textures = textures or PaletteTextures(palette)

    u, v = np.broadcast_arrays(np.asarray(u, dtype=np.float64), np.asarray(v, dtype=np.float64))
    if texture_uv is None:
        tu, tv = u, v
    else:
        tu, tv = np.broadcast_arrays(
            np.asarray(texture_uv[0], dtype=np.float64), np.asarray(texture_uv[1], dtype=np.float64)
        )

    base = _sample_color(textures, palette, plan.base_texture, tu, tv)
    if not plan.has_overlays:
        return base

    terrain_color, terrain_alpha = _blend_layers(
        plan.terrain_overlays[:MAX_TERRAIN_OVERLAYS], textures, palette, u, v, tu, tv, epsilon
    )
    road_color, road_alpha = _blend_layers(
        plan.road_overlays[:MAX_ROAD_OVERLAYS], textures, palette, u, v, tu, tv, epsilon
    )

    terrain_alpha = terrain_alpha[..., None]
    road_alpha = road_alpha[..., None]
    return (
        base * (1.0 - terrain_alpha) * (1.0 - road_alpha)
        + terrain_color * terrain_alpha * (1.0 - road_alpha)
        + road_color * road_alpha
    )


def grid_line_mask(
    world_x, world_y, pixel_size: float, display: TerrainDisplaySettings
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Boolean masks of pixels on landblock lines and (other) landcell lines.

    ``pixel_size`` is the world size of one pixel. Landblock lines are two
    pixels wide, landcell lines one.
    """
    world_x = np.asarray(world_x, dtype=np.float64)
    world_y = np.asarray(world_y, dtype=np.float64)

    landblock = np.zeros(np.broadcast(world_x, world_y).shape, dtype=bool)
    landcell = np.zeros_like(landblock)

    if display.show_landblock_lines:
        band = 2.0 * pixel_size / LANDBLOCK_SIZE
        landblock = (np.mod(world_x / LANDBLOCK_SIZE, 1.0) < band) | (
            np.mod(world_y / LANDBLOCK_SIZE, 1.0) < band
        )
    if display.show_landcell_lines:
        band = pixel_size / CELL_SIZE
        landcell = (np.mod(world_x / CELL_SIZE, 1.0) < band) | (np.mod(world_y / CELL_SIZE, 1.0) < band)
        landcell &= ~landblock
    return landblock, landcell


def apply_grid_lines(
    color: np.ndarray, world_x, world_y, pixel_size: float, display: TerrainDisplaySettings
) -> np.ndarray:
    """Overwrite pixels on enabled grid lines with the highlight colors."""
    if not (display.show_landblock_lines or display.show_landcell_lines):
        return color

    landblock, landcell = grid_line_mask(world_x, world_y, pixel_size, display)
    color = np.array(color, dtype=np.float64, copy=True)
    color[landblock] = display.landblock_line_color
    color[landcell] = display.landcell_line_color
    return color
