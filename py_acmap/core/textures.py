"""
Terrain palette and texture sources for the compositor.

Texture data is owned by an external loader; the compositor only needs
point samples. A source returns None for anything it does not have, and
the compositor falls back to palette colors (terrain) or the procedural
default shapes (alpha masks).

Alpha masks hold transparency: 1.0 means the overlay is absent and the
layer below shows through, 0.0 means the overlay fully covers.
"""

from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import numpy as np
import structlog

logger = structlog.get_logger()

PALETTE_SIZE = 32
ALPHA_SLOTS = 8

# Terrain type names of the landscape data, indexed by terrain type
TERRAIN_NAMES = [
    "BarrenRock", "Grassland", "Ice", "LushGrass", "MarshSparseSwamp",
    "MudRichDirt", "ObsidianPlain", "PackedDirt", "PatchyDirt", "PatchyGrassland",
    "SandYellow", "SandGrey", "SandRockStrewn", "SedimentaryRock", "SemiBarrenRock",
    "Snow", "WaterRunning", "WaterStandingFresh", "WaterShallowSea", "WaterShallowStillSea",
    "WaterDeepSea", "Reserved21", "Reserved22", "Reserved23", "Reserved24",
    "Reserved25", "Reserved26", "Reserved27", "Reserved28", "Reserved29",
    "Reserved30", "Road",
]

DEFAULT_TERRAIN_COLORS = [
    (0.45, 0.42, 0.38),  # BarrenRock
    (0.36, 0.55, 0.25),  # Grassland
    (0.85, 0.92, 0.96),  # Ice
    (0.25, 0.52, 0.18),  # LushGrass
    (0.33, 0.40, 0.24),  # MarshSparseSwamp
    (0.40, 0.30, 0.20),  # MudRichDirt
    (0.15, 0.13, 0.16),  # ObsidianPlain
    (0.55, 0.45, 0.32),  # PackedDirt
    (0.50, 0.44, 0.30),  # PatchyDirt
    (0.44, 0.52, 0.28),  # PatchyGrassland
    (0.86, 0.78, 0.52),  # SandYellow
    (0.66, 0.64, 0.58),  # SandGrey
    (0.70, 0.62, 0.48),  # SandRockStrewn
    (0.56, 0.48, 0.40),  # SedimentaryRock
    (0.52, 0.50, 0.42),  # SemiBarrenRock
    (0.95, 0.96, 0.98),  # Snow
    (0.25, 0.45, 0.70),  # WaterRunning
    (0.22, 0.40, 0.62),  # WaterStandingFresh
    (0.20, 0.45, 0.68),  # WaterShallowSea
    (0.22, 0.48, 0.66),  # WaterShallowStillSea
    (0.10, 0.22, 0.45),  # WaterDeepSea
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.50, 0.50, 0.50),
    (0.60, 0.55, 0.45),  # Road
]


class TerrainPalette:
    """32 RGB fallback colors (floats in [0, 1]), one per terrain type."""

    def __init__(self, colors: Optional[Sequence[Sequence[float]]] = None):
        colors = np.array(DEFAULT_TERRAIN_COLORS if colors is None else colors, dtype=np.float64)
        if colors.shape != (PALETTE_SIZE, 3):
            raise ValueError(f"Palette needs {PALETTE_SIZE} RGB entries, got shape {colors.shape}")
        self.colors = np.clip(colors, 0.0, 1.0)
        self.colors.flags.writeable = False

    def color(self, index: int) -> np.ndarray:
        return self.colors[max(0, min(PALETTE_SIZE - 1, int(index)))]

    def colors_for(self, indices: np.ndarray) -> np.ndarray:
        indices = np.clip(np.asarray(indices, dtype=np.int64), 0, PALETTE_SIZE - 1)
        return self.colors[indices]


class TextureSource:
    """
    Point sampler interface over the terrain and alpha atlases.

    ``u``/``v`` are arrays of any (matching) shape; terrain samples return
    ``shape + (3,)`` RGB floats, alpha samples return ``shape`` floats.
    """

    def sample_terrain(self, index: int, u: np.ndarray, v: np.ndarray) -> Optional[np.ndarray]:
        return None

    def sample_alpha(self, index: int, u: np.ndarray, v: np.ndarray) -> Optional[np.ndarray]:
        return None


class PaletteTextures(TextureSource):
    """Flat palette colors, used below the texture zoom threshold."""

    def __init__(self, palette: Optional[TerrainPalette] = None):
        self.palette = palette or TerrainPalette()

    def sample_terrain(self, index, u, v):
        u = np.asarray(u, dtype=np.float64)
        return np.broadcast_to(self.palette.color(index), u.shape + (3,)).copy()


def _wrap_sample(image: np.ndarray, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Nearest-neighbour sample with repeat wrapping."""
    height, width = image.shape[:2]
    cols = np.floor(np.asarray(u, dtype=np.float64) * width).astype(np.int64) % width
    rows = np.floor(np.asarray(v, dtype=np.float64) * height).astype(np.int64) % height
    return image[rows, cols]


class ImageTextureAtlas(TextureSource):
    """
    Atlas backed by in-memory images.

    Terrain images are (H, W, 3) floats in [0, 1]; alpha images are (H, W)
    transparency floats. Slots without an image report None.
    """

    def __init__(
        self,
        terrain: Optional[Dict[int, np.ndarray]] = None,
        alpha: Optional[Dict[int, np.ndarray]] = None,
    ):
        self.terrain: Dict[int, np.ndarray] = {}
        self.alpha: Dict[int, np.ndarray] = {}

        for index, image in (terrain or {}).items():
            image = np.asarray(image, dtype=np.float64)
            if image.ndim != 3 or image.shape[2] < 3:
                raise ValueError(f"Terrain texture {index} must be (H, W, 3), got {image.shape}")
            self.terrain[int(index)] = image[..., :3]

        for index, image in (alpha or {}).items():
            image = np.asarray(image, dtype=np.float64)
            if image.ndim != 2:
                raise ValueError(f"Alpha mask {index} must be (H, W), got {image.shape}")
            self.alpha[int(index)] = image

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "ImageTextureAtlas":
        """
        Load ``terrain_<n>.png`` and ``alpha_<n>.png`` files with Pillow.

        Terrain images are read as RGB, alpha masks from their alpha channel.
        """
        from PIL import Image

        path = Path(path)
        terrain: Dict[int, np.ndarray] = {}
        alpha: Dict[int, np.ndarray] = {}

        for index in range(PALETTE_SIZE):
            file = path / f"terrain_{index}.png"
            if file.exists():
                with Image.open(file) as image:
                    terrain[index] = np.asarray(image.convert("RGB"), dtype=np.float64) / 255.0

        for index in range(ALPHA_SLOTS):
            file = path / f"alpha_{index}.png"
            if file.exists():
                with Image.open(file) as image:
                    alpha[index] = np.asarray(image.convert("RGBA"), dtype=np.float64)[..., 3] / 255.0

        logger.info(
            "Texture atlas loaded",
            path=str(path),
            terrain_textures=len(terrain),
            alpha_masks=len(alpha),
        )
        return cls(terrain, alpha)

    def has_terrain(self, index: int) -> bool:
        return index in self.terrain

    def sample_terrain(self, index, u, v):
        image = self.terrain.get(int(index))
        if image is None:
            return None
        return _wrap_sample(image, u, v)

    def sample_alpha(self, index, u, v):
        image = self.alpha.get(int(index))
        if image is None:
            return None
        return _wrap_sample(image, u, v)


# Procedural stand-ins for the alpha atlas, drawn in their canonical
# orientation (see blend_planner: corner = SW, side = west, road families
# = west edge, SW end cap, NW-SE diagonal). u runs west->east, v north->south.
_CORNER_RADII = (0.55, 0.65, 0.75, 0.85)


def default_alpha_mask(index: int, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Transparency of the built-in alpha shape ``index`` at ``(u, v)``."""
    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)

    if 0 <= index <= 3:
        distance = np.hypot(u, 1.0 - v)
        return np.clip(distance / _CORNER_RADII[index], 0.0, 1.0)
    if index == 4:
        return np.clip(u / 0.75, 0.0, 1.0)
    if index == 5:
        return np.where(u < 0.25, 0.0, 1.0)
    if index == 6:
        return np.where(np.hypot(u, 1.0 - v) < 0.5, 0.0, 1.0)
    if index == 7:
        return np.where(np.abs(u - v) < 0.3, 0.0, 1.0)
    return np.ones(np.broadcast(u, v).shape)

