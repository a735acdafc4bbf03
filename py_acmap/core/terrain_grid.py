"""
Dense terrain vertex grid, height table and landblock mesh generation.

The grid stores one RGBA sample per landcell corner: 8 cells per landblock
side, so a full 255x255 landblock world is 2041x2041 samples. Row 0 is the
northern edge (the same orientation as the terrain data image), columns
run west to east.
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import structlog

from ..cameras.camera_mode import CameraMode
from .coordinates import CELL_SIZE, CELLS_PER_LANDBLOCK, LANDBLOCK_SIZE, MAP_CELLS
from .terrain_codec import (
    MAX_HEIGHT_INDEX,
    MAX_ROAD_CODE,
    MAX_TERRAIN_TYPE,
    Corner,
    VertexSample,
    pack_pcode,
    pack_pcodes,
)

logger = structlog.get_logger()

FULL_GRID_SIZE = MAP_CELLS + 1  # 2041
HEIGHT_TABLE_SIZE = 255
VERTICES_PER_LANDBLOCK = CELLS_PER_LANDBLOCK * CELLS_PER_LANDBLOCK * 6


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class HeightTable:
    """Maps height indices (0-254) to world heights."""

    def __init__(self, values: Optional[Sequence[float]] = None):
        if values is None:
            values = np.arange(HEIGHT_TABLE_SIZE, dtype=np.float64) * 2.0
        values = np.array(values, dtype=np.float64)
        if values.shape != (HEIGHT_TABLE_SIZE,):
            raise ValueError(
                f"Height table needs {HEIGHT_TABLE_SIZE} entries, got shape {values.shape}"
            )
        self.values = values
        self.values.flags.writeable = False

    def __getitem__(self, index: int) -> float:
        return float(self.values[max(0, min(MAX_HEIGHT_INDEX, int(index)))])

    def __len__(self) -> int:
        return HEIGHT_TABLE_SIZE

    def lookup(self, indices: np.ndarray) -> np.ndarray:
        """Vectorized lookup with clamped indices."""
        indices = np.clip(np.asarray(indices, dtype=np.int64), 0, MAX_HEIGHT_INDEX)
        return self.values[indices]


class TerrainGrid:
    """
    Read-only grid of vertex samples.

    Channels: 0 = height index, 1 = terrain type, 2 = road code, 3 = scenery.
    Vertex coordinates ``(gx, gy)`` are global landcell-corner indices with
    ``gy`` increasing to the north, matching landblock Y.
    """

    def __init__(self, data: np.ndarray, height_table: Optional[HeightTable] = None):
        data = np.asarray(data)
        if data.ndim != 3 or data.shape[0] != data.shape[1] or data.shape[2] not in (3, 4):
            raise ValueError(f"Terrain data must be a square (N, N, 3|4) array, got {data.shape}")
        if (data.shape[0] - 1) % CELLS_PER_LANDBLOCK != 0 or data.shape[0] < CELLS_PER_LANDBLOCK + 1:
            raise ValueError(
                f"Terrain grid side must be landblocks*{CELLS_PER_LANDBLOCK}+1, got {data.shape[0]}"
            )

        if data.shape[2] == 3:
            data = np.concatenate([data, np.zeros(data.shape[:2] + (1,), dtype=data.dtype)], axis=2)

        samples = np.clip(data, 0, 255).astype(np.uint8)
        samples[..., 0] = np.minimum(samples[..., 0], MAX_HEIGHT_INDEX)
        samples[..., 1] = np.minimum(samples[..., 1], MAX_TERRAIN_TYPE)
        samples[..., 2] = np.minimum(samples[..., 2], MAX_ROAD_CODE)
        samples.flags.writeable = False

        self.data = samples
        self.height_table = height_table or HeightTable()
        self.size = samples.shape[0]
        self.cells = self.size - 1
        self.landblocks = self.cells // CELLS_PER_LANDBLOCK

    @classmethod
    def filled(
        cls,
        terrain_type: int = 0,
        road_code: int = 0,
        height_index: int = 0,
        landblocks: int = 255,
        height_table: Optional[HeightTable] = None,
    ) -> "TerrainGrid":
        """Uniform grid, mostly useful for demos and tests."""
        size = landblocks * CELLS_PER_LANDBLOCK + 1
        data = np.zeros((size, size, 4), dtype=np.uint8)
        data[..., 0] = height_index
        data[..., 1] = terrain_type
        data[..., 2] = road_code
        return cls(data, height_table)

    @classmethod
    def from_image(
        cls, path: Union[str, Path], height_table: Optional[HeightTable] = None
    ) -> "TerrainGrid":
        """Load the RGBA terrain data image (red=height, green=terrain, blue=road, alpha=scenery)."""
        from PIL import Image

        path = Path(path)
        logger.info("Loading terrain data image", path=str(path))
        with Image.open(path) as image:
            data = np.asarray(image.convert("RGBA"), dtype=np.uint8)

        grid = cls(data, height_table)
        logger.info("Terrain grid loaded", size=grid.size, landblocks=grid.landblocks)
        return grid

    @property
    def map_size(self) -> float:
        """World units per side covered by the grid."""
        return self.landblocks * LANDBLOCK_SIZE

    def _rows(self, gy):
        return (self.size - 1) - gy

    def _clamp_vertex(self, gx, gy):
        return (
            np.clip(gx, 0, self.size - 1),
            np.clip(gy, 0, self.size - 1),
        )

    def sample(self, gx: int, gy: int) -> VertexSample:
        """Vertex sample at ``(gx, gy)``; indices outside the grid are clamped."""
        gx, gy = self._clamp_vertex(int(gx), int(gy))
        r, g, b, a = (int(c) for c in self.data[self._rows(gy), gx])
        return VertexSample(r, g, b, a)

    def height(self, gx: int, gy: int) -> float:
        return self.height_table[self.sample(gx, gy).height_index]

    def corners(self, gx: int, gy: int) -> Tuple[Corner, Corner, Corner, Corner]:
        """NW, NE, SE, SW corners of the landcell whose south-west vertex is ``(gx, gy)``."""
        positions = ((gx, gy + 1), (gx + 1, gy + 1), (gx + 1, gy), (gx, gy))
        corners = []
        for x, y in positions:
            sample = self.sample(x, y)
            corners.append(Corner(sample.terrain_type, sample.road_code))
        return tuple(corners)

    def cell_pcode(self, gx: int, gy: int) -> int:
        return pack_pcode(*self.corners(gx, gy))

    def pcodes_for_cells(self, gx: np.ndarray, gy: np.ndarray) -> np.ndarray:
        """Vectorized :meth:`cell_pcode` for arrays of cell indices."""
        gx = np.asarray(gx, dtype=np.int64)
        gy = np.asarray(gy, dtype=np.int64)
        offsets = ((0, 1), (1, 1), (1, 0), (0, 0))

        terrain = np.empty(gx.shape + (4,), dtype=np.int64)
        road = np.empty(gx.shape + (4,), dtype=np.int64)
        for i, (dx, dy) in enumerate(offsets):
            x, y = self._clamp_vertex(gx + dx, gy + dy)
            texels = self.data[self._rows(y), x]
            terrain[..., i] = texels[..., 1]
            road[..., i] = texels[..., 2]
        return pack_pcodes(terrain, road)

    def terrain_types_for_vertices(self, gx: np.ndarray, gy: np.ndarray) -> np.ndarray:
        x, y = self._clamp_vertex(np.asarray(gx, dtype=np.int64), np.asarray(gy, dtype=np.int64))
        return self.data[self._rows(y), x, 1]

    def heights_for_vertices(self, gx: np.ndarray, gy: np.ndarray) -> np.ndarray:
        x, y = self._clamp_vertex(np.asarray(gx, dtype=np.int64), np.asarray(gy, dtype=np.int64))
        return self.height_table.lookup(self.data[self._rows(y), x, 0])


def cell_split_direction(lbx: int, lby: int, cell_x: int, cell_y: int) -> bool:
    """
    Which diagonal splits a landcell into two triangles.

    Returns True for the NE-SW diagonal, False for NW-SE. The choice is a
    fixed 32-bit hash of the global cell position so every client splits
    cells the same way.
    """
    x = lbx * CELLS_PER_LANDBLOCK + cell_x
    seed_a = _uint32(x * 214614067)
    seed_b = _uint32(x * 1109124029)
    magic_a = _uint32(seed_a + 1813693831)
    magic_b = seed_b
    split_dir = _uint32((lby * CELLS_PER_LANDBLOCK + cell_y) * magic_a - magic_b - 1369149221)
    return split_dir * 2.3283064e-10 >= 0.5


def build_landblock_mesh(
    grid: TerrainGrid, lbx: int, lby: int, mode: CameraMode = CameraMode.PLANAR
) -> np.ndarray:
    """
    Triangle list for one landblock: 64 cells, 2 triangles each.

    World Y grows southwards (``map_size - landblock Y``). The vertex layout
    follows ``mode``: planar ``(x, y, height)``, flying ``(x, height, y)``.

    Returns:
        float32 array of shape (384, 3)
    """
    map_size = grid.map_size
    vertices = np.empty((VERTICES_PER_LANDBLOCK, 3), dtype=np.float32)

    i = 0
    for cell_x in range(CELLS_PER_LANDBLOCK):
        for cell_y in range(CELLS_PER_LANDBLOCK):
            gx = lbx * CELLS_PER_LANDBLOCK + cell_x
            gy = lby * CELLS_PER_LANDBLOCK + cell_y

            # (vertex dx, vertex dy) with dy measured north from the cell's south edge
            nw, ne, se, sw = (0, 1), (1, 1), (1, 0), (0, 0)
            if cell_split_direction(lbx, lby, cell_x, cell_y):
                corners = (nw, ne, sw, se, sw, ne)
            else:
                corners = (nw, ne, se, nw, se, sw)

            for dx, dy in corners:
                world_x = (gx + dx) * CELL_SIZE
                world_y = map_size - (gy + dy) * CELL_SIZE
                h = grid.height(gx + dx, gy + dy)
                if mode == CameraMode.FLYING:
                    vertices[i] = (world_x, h, world_y)
                else:
                    vertices[i] = (world_x, world_y, h)
                i += 1

    return vertices
