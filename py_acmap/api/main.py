"""FastAPI main application."""

from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Path, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..config import settings
from ..core.blend_planner import build_blend_plan
from ..core.coordinates import Coordinates, to_geo
from ..core.router import parse_route
from ..core.terrain_codec import MAX_ROAD_CODE, MAX_TERRAIN_TYPE, Corner, pack_pcode, unpack_pcode
from ..core.terrain_grid import TerrainGrid
from ..utils.logging import configure_logging
from .dependencies import get_terrain_grid
from .preview import get_grid_or_503
from .preview import router as preview_router

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Terrain Map Viewer API",
    description="Landblock coordinates, terrain blend planning and map previews",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(preview_router)


# Request/Response models
class CoordinatesResponse(BaseModel):
    """A location in both landblock and geographic form."""

    landcell: str = Field(..., description="Landcell id as 0x-prefixed hex")
    lbx: int
    lby: int
    x: float
    y: float
    z: float
    ns: float
    ew: float
    outdoor: bool
    text: str

    @classmethod
    def from_coordinates(cls, coords: Coordinates) -> "CoordinatesResponse":
        return cls(
            landcell=f"0x{coords.landcell:08X}",
            lbx=coords.lbx(),
            lby=coords.lby(),
            x=coords.x,
            y=coords.y,
            z=coords.z,
            ns=coords.ns,
            ew=coords.ew,
            outdoor=coords.is_outside(),
            text=coords.format(),
        )


class GeoResponse(BaseModel):
    ns: float
    ew: float


class RouteResponse(BaseModel):
    """A parsed route string."""

    route: str
    zoom: float
    coordinates: CoordinatesResponse


class CornerModel(BaseModel):
    terrain_type: int = Field(0, ge=0, le=MAX_TERRAIN_TYPE)
    road_code: int = Field(0, ge=0, le=MAX_ROAD_CODE)


class CornersRequest(BaseModel):
    """Four landcell corners in NW, NE, SE, SW order."""

    corners: List[CornerModel] = Field(..., min_length=4, max_length=4)


class OverlayResponse(BaseModel):
    texture_index: int
    alpha_index: int
    rotation: int
    code: int


class BlendPlanResponse(BaseModel):
    """Blend plan of one landcell."""

    pcode: int
    pcode_hex: str
    base_texture: int
    road_shape: str
    terrain_overlays: List[OverlayResponse]
    road_overlays: List[OverlayResponse]
    corners: List[CornerModel]


def _plan_response(pcode: int) -> BlendPlanResponse:
    plan = build_blend_plan(pcode)
    data = plan.to_dict()
    return BlendPlanResponse(
        pcode_hex=f"0x{plan.pcode:08X}",
        corners=[CornerModel(terrain_type=c.terrain_type, road_code=c.road_code) for c in unpack_pcode(pcode)],
        **data,
    )


def _parse_landcell(text: str) -> int:
    try:
        landcell = int(text, 0)
    except ValueError:
        logger.warning("Invalid landcell id", landcell=text)
        raise HTTPException(status_code=400, detail=f"Invalid landcell id: {text}")
    if not 0 <= landcell <= 0xFFFFFFFF:
        logger.warning("Landcell id out of range", landcell=text)
        raise HTTPException(status_code=400, detail=f"Landcell id out of range: {text}")
    return landcell


# Event handlers
@app.on_event("startup")
async def startup_event():
    logger.info("Starting terrain map viewer API", terrain_data=settings.terrain_data_path)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down terrain map viewer API")


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Terrain Map Viewer API",
        "version": __version__,
        "status": "running",
    }


@app.get("/health")
async def health_check(grid: Optional[TerrainGrid] = Depends(get_terrain_grid)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "terrain_loaded": grid is not None,
        "landblocks": grid.landblocks if grid is not None else 0,
    }


@app.get("/coordinates/from-geo", response_model=CoordinatesResponse)
async def coordinates_from_geo(
    ns: float = Query(..., ge=-102.0, le=102.0, description="Degrees north (negative: south)"),
    ew: float = Query(..., ge=-102.0, le=102.0, description="Degrees east (negative: west)"),
    z: float = Query(0.0, description="Height in world units"),
):
    """Landcell and local offset of a geographic position."""
    return CoordinatesResponse.from_coordinates(Coordinates.from_geo(ns, ew, z))


@app.get("/coordinates/to-geo", response_model=GeoResponse)
async def coordinates_to_geo(
    landcell: str = Query(..., description="Landcell id, decimal or 0x-prefixed hex"),
    x: float = Query(0.0, ge=0.0, le=192.0),
    y: float = Query(0.0, ge=0.0, le=192.0),
):
    """Geographic degrees of a landcell id plus local offset."""
    geo = to_geo(_parse_landcell(landcell), x, y)
    return GeoResponse(ns=geo.ns, ew=geo.ew)


@app.get("/coordinates/parse", response_model=CoordinatesResponse)
async def parse_coordinates(text: str = Query(..., description="Free-form text such as '12.3N, 45.6E'")):
    """Find a coordinate pair in free-form text."""
    coords = Coordinates.parse(text)
    if coords is None:
        logger.info("No coordinates found", text=text)
        raise HTTPException(status_code=400, detail="No coordinates found in text")
    return CoordinatesResponse.from_coordinates(coords)


@app.get("/routes/parse", response_model=RouteResponse)
async def parse_route_string(route: str = Query(..., description="Route such as '12.345N,45.678E,0.080'")):
    """Parse a route string into coordinates and zoom."""
    parsed = parse_route(route)
    if parsed is None:
        logger.warning("Invalid route", route=route)
        raise HTTPException(status_code=400, detail=f"Invalid route: {route}")
    return RouteResponse(
        route=route,
        zoom=parsed.zoom,
        coordinates=CoordinatesResponse.from_coordinates(parsed.coords),
    )


@app.get("/blend-plans/{pcode}", response_model=BlendPlanResponse)
async def get_blend_plan(pcode: int = Path(..., ge=0, le=0xFFFFFFFF)):
    """Blend plan of a packed corner code."""
    return _plan_response(pcode)


@app.post("/blend-plans", response_model=BlendPlanResponse)
async def plan_from_corners(request: CornersRequest):
    """Pack four corners and return their blend plan."""
    corners = [Corner(c.terrain_type, c.road_code) for c in request.corners]
    return _plan_response(pack_pcode(*corners))


@app.get("/terrain/cells/{gx}/{gy}", response_model=BlendPlanResponse)
async def get_cell_plan(
    gx: int = Path(..., ge=0),
    gy: int = Path(..., ge=0),
    grid: TerrainGrid = Depends(get_grid_or_503),
):
    """Blend plan of the landcell whose south-west vertex is ``(gx, gy)``."""
    if gx >= grid.cells or gy >= grid.cells:
        logger.warning("Invalid cell index", gx=gx, gy=gy, cells=grid.cells)
        raise HTTPException(status_code=400, detail="Invalid cell index")
    return _plan_response(grid.cell_pcode(gx, gy))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
