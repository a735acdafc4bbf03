"""Shared API dependencies: terrain grid and texture atlas loaded from settings."""

from functools import lru_cache
from typing import Optional

import structlog

from ..config import settings
from ..core.terrain_grid import TerrainGrid
from ..core.textures import ImageTextureAtlas, TextureSource

logger = structlog.get_logger()


@lru_cache(maxsize=1)
def load_terrain_grid() -> Optional[TerrainGrid]:
    """Load the terrain grid named by ``terrain_data_path``, once."""
    if not settings.terrain_data_path:
        logger.warning("No terrain data configured", setting="terrain_data_path")
        return None
    try:
        return TerrainGrid.from_image(settings.terrain_data_path)
    except (OSError, ValueError) as e:
        logger.error("Failed to load terrain data", path=settings.terrain_data_path, error=str(e))
        return None


@lru_cache(maxsize=1)
def load_textures() -> Optional[TextureSource]:
    """Load the texture atlas from ``texture_dir``, once."""
    if not settings.texture_dir:
        return None
    try:
        return ImageTextureAtlas.from_directory(settings.texture_dir)
    except (OSError, ValueError) as e:
        logger.error("Failed to load textures", path=settings.texture_dir, error=str(e))
        return None


def get_terrain_grid() -> Optional[TerrainGrid]:
    return load_terrain_grid()


def get_textures() -> Optional[TextureSource]:
    return load_textures()
