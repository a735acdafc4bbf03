"""PNG previews of the planar view, rendered on the CPU."""

import io
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from PIL import Image

from ..config import get_render_settings, settings
from ..core.terrain_grid import TerrainGrid
from ..core.terrain_renderer import TerrainRenderer
from ..core.textures import TextureSource
from .dependencies import get_terrain_grid, get_textures

logger = structlog.get_logger()

router = APIRouter(prefix="/preview", tags=["Preview"])


def get_grid_or_503(grid: Optional[TerrainGrid] = Depends(get_terrain_grid)) -> TerrainGrid:
    """Terrain grid or 503 when none is loaded."""
    if grid is None:
        logger.warning("Terrain data not loaded")
        raise HTTPException(status_code=503, detail="Terrain data not loaded")
    return grid


@router.get("", responses={200: {"content": {"image/png": {}}}})
async def render_preview(
    route: Optional[str] = Query(None, description="Route string; defaults to the whole map"),
    width: int = Query(512, ge=1, description="Image width in pixels"),
    height: int = Query(512, ge=1, description="Image height in pixels"),
    landblock_lines: bool = Query(False, description="Highlight landblock boundaries"),
    landcell_lines: bool = Query(False, description="Highlight landcell boundaries"),
    grid: TerrainGrid = Depends(get_grid_or_503),
    textures: Optional[TextureSource] = Depends(get_textures),
):
    """Render the planar view at ``route`` as a PNG image."""
    if width > settings.preview_max_size or height > settings.preview_max_size:
        logger.warning("Preview size too large", width=width, height=height, limit=settings.preview_max_size)
        raise HTTPException(
            status_code=400,
            detail=f"Preview size is limited to {settings.preview_max_size} pixels per edge",
        )

    render_settings = get_render_settings()
    render_settings = render_settings.model_copy(
        update={
            "terrain": render_settings.terrain.model_copy(
                update={"show_landblock_lines": landblock_lines, "show_landcell_lines": landcell_lines}
            )
        }
    )
    renderer = TerrainRenderer((width, height), grid=grid, textures=textures, settings=render_settings)

    if route is not None and not renderer.apply_route(route):
        logger.warning("Invalid preview route", route=route)
        raise HTTPException(status_code=400, detail=f"Invalid route: {route}")

    logger.info("Rendering preview", route=route, width=width, height=height)
    pixels = renderer.render_preview()

    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return Response(
        content=buffer.getvalue(),
        media_type="image/png",
        headers={"X-Route": renderer.current_route()},
    )
