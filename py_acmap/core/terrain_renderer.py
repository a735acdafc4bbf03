"""
Render loop driver for the terrain viewer.

The GPU side (buffers, shaders, draw calls) belongs to a rendering
collaborator. This module owns what it consumes: the two cameras and the
active-camera selection, the input queue drained once per tick, and the
per-frame uniforms. It also provides a CPU preview that shades the planar
view pixel by pixel with the same blend planner and compositor.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..cameras.camera_2d import Camera2D
from ..cameras.camera_flying import CameraFlying
from ..cameras.camera_mode import CameraMode
from ..cameras.base_camera import BaseCamera
from ..cameras.input_events import InputEvent, InputQueue, KeyDown, PointerMove, Resize
from ..config.render_settings import RenderSettings, get_render_settings
from . import matrix
from .blend_planner import build_blend_plan
from .compositor import apply_grid_lines, composite
from .coordinates import CELL_SIZE, LANDBLOCK_SIZE, MAP_SIZE
from .router import make_route, parse_route
from .terrain_grid import TerrainGrid, build_landblock_mesh
from .textures import PALETTE_SIZE, ImageTextureAtlas, PaletteTextures, TerrainPalette, TextureSource

logger = structlog.get_logger()

SWITCH_CAMERA_KEY = "keyc"
FLYING_START_HEIGHT = 500.0
FLYING_SPEED_FACTOR = 0.01


@dataclass
class FrameUniforms:
    """Per-frame values handed to the rendering collaborator."""

    transform: np.ndarray
    camera_mode: CameraMode
    scale: float
    pixel_size: float
    render_view: Optional[Tuple[int, int, int, int]]
    min_zoom_for_textures: float
    show_landcell_lines: bool
    show_landblock_lines: bool
    bad_wireframe: bool
    has_terrain_texture: Tuple[bool, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transform": matrix.to_column_major(self.transform),
            "camera_mode": int(self.camera_mode),
            "scale": self.scale,
            "pixel_size": self.pixel_size,
            "render_view": list(self.render_view) if self.render_view is not None else None,
            "min_zoom_for_textures": self.min_zoom_for_textures,
            "show_landcell_lines": self.show_landcell_lines,
            "show_landblock_lines": self.show_landblock_lines,
            "bad_wireframe": self.bad_wireframe,
            "has_terrain_texture": list(self.has_terrain_texture),
        }


class CameraContext:
    """Holds both cameras and which one is authoritative."""

    def __init__(self, planar: Camera2D, flying: CameraFlying, mode: CameraMode = CameraMode.PLANAR):
        self.planar = planar
        self.flying = flying
        self.mode = mode
        self.select(mode)

    @property
    def current(self) -> BaseCamera:
        return self.flying if self.mode == CameraMode.FLYING else self.planar

    def select(self, mode: CameraMode) -> None:
        self.mode = CameraMode(mode)
        self.planar.set_active(self.mode == CameraMode.PLANAR)
        self.flying.set_active(self.mode == CameraMode.FLYING)


class TerrainRenderer:
    """
    Owns the cameras, input queue and frame state of one view.

    Args:
        viewport_size: Viewport width and height in pixels
        grid: Terrain vertex grid; required for previews and meshes
        textures: Texture source; palette colors are used when omitted
        palette: Terrain fallback colors
        settings: Render settings (defaults to the module-level settings)
    """

    def __init__(
        self,
        viewport_size: Sequence[float] = (1280, 720),
        grid: Optional[TerrainGrid] = None,
        textures: Optional[TextureSource] = None,
        palette: Optional[TerrainPalette] = None,
        settings: Optional[RenderSettings] = None,
    ):
        self.settings = settings or get_render_settings()
        self.grid = grid
        self.palette = palette or TerrainPalette()
        self.textures = textures or PaletteTextures(self.palette)

        map_size = grid.map_size if grid is not None else MAP_SIZE
        self.map_size = np.array([map_size, map_size], dtype=np.float64)

        self.camera_2d = Camera2D(viewport_size, self.map_size, self.settings.camera)
        self.flying_camera = CameraFlying(viewport_size, self.settings.flying)
        self.context = CameraContext(self.camera_2d, self.flying_camera)
        self.input_queue = InputQueue()
        self.mouse_pos = np.zeros(2, dtype=np.float64)
        self.frame_count = 0

        self.initialize_2d_camera()
        self.initialize_flying_camera()

    @property
    def viewport_size(self) -> np.ndarray:
        return self.camera_2d.viewport_size

    @property
    def current_camera(self) -> BaseCamera:
        return self.context.current

    @property
    def camera_mode(self) -> CameraMode:
        return self.context.mode

    def initialize_2d_camera(self) -> None:
        """Fit the map to the viewport and center it."""
        self.camera_2d.zoom = self.camera_2d.fit_zoom()
        self.camera_2d.center_on_vec(self.map_size / 2.0)

    def initialize_flying_camera(self) -> None:
        """Hover above the map center looking down at 45 degrees."""
        center = self.map_size / 2.0
        self.flying_camera.position = np.array([center[0], center[1], FLYING_START_HEIGHT])
        self.flying_camera.set_rotation(0.0, math.pi / 4.0, 0.0)
        self.flying_camera.move_speed = float(self.map_size.max()) * FLYING_SPEED_FACTOR

    def resize(self, width: float, height: float) -> None:
        self.camera_2d.resize(width, height)
        self.flying_camera.resize(width, height)

    def push_event(self, event: InputEvent) -> None:
        self.input_queue.push(event)

    def switch_camera(self, mode: CameraMode) -> None:
        """
        Make ``mode`` the active camera, carrying over an approximate view.

        Planar -> flying places the flying camera above the planar center,
        higher when zoomed out. Flying -> planar centers on the ground point
        below the flying camera and zooms out with altitude.
        """
        mode = CameraMode(mode)
        if mode == self.context.mode:
            return

        if mode == CameraMode.FLYING:
            x, y = self.camera_2d.position[:2]
            height = max(100.0, 1000.0 / self.camera_2d.zoom)
            self.flying_camera.position = np.array([x, y, height])
            self.flying_camera.set_rotation(0.0, math.pi / 6.0, 0.0)
        else:
            x, y, z = self.flying_camera.position
            self.camera_2d.center_on_vec((x, y))
            height_factor = max(0.01, min(2.0, z / 1000.0))
            self.camera_2d.zoom = self.camera_2d.zoom / height_factor

        self.context.select(mode)
        logger.info("Switched camera", mode=mode.name)

    def toggle_camera(self) -> None:
        if self.context.mode == CameraMode.PLANAR:
            self.switch_camera(CameraMode.FLYING)
        else:
            self.switch_camera(CameraMode.PLANAR)

    def _dispatch(self, event: InputEvent) -> None:
        if isinstance(event, Resize):
            self.resize(event.width, event.height)
            return
        if isinstance(event, KeyDown) and event.code.lower() == SWITCH_CAMERA_KEY:
            self.toggle_camera()
            return
        if isinstance(event, PointerMove):
            self.mouse_pos = np.asarray(event.position, dtype=np.float64)
        self.current_camera.handle_event(event)

    def tick(self, dt: float) -> FrameUniforms:
        """
        Advance one frame.

        Drains queued input in arrival order, updates the active camera and
        returns the uniforms for the frame.
        """
        for event in self.input_queue.drain():
            self._dispatch(event)
        self.current_camera.update(dt)
        self.frame_count += 1
        return self.frame_uniforms()

    def pixel_size(self) -> float:
        """World units covered by one screen pixel in the planar view."""
        return 1.0 / self.camera_2d.zoom

    def render_view(self) -> Tuple[int, int, int, int]:
        """
        Landblock cull window of the planar view: (lbx0, lby0, count_x, count_y).

        The start is floored and the end ceiled so partly visible landblocks
        are kept. Landblock Y counts north from the bottom of the map.
        """
        landblocks = int(round(float(self.map_size[0]) / LANDBLOCK_SIZE))
        top_left = self.camera_2d.screen_to_world((0.0, 0.0))
        bottom_right = self.camera_2d.screen_to_world(self.viewport_size)
        north_top = float(self.map_size[1] - top_left[1])
        north_bottom = float(self.map_size[1] - bottom_right[1])

        def window(start: float, end: float) -> Tuple[int, int]:
            first = min(max(math.floor(start / LANDBLOCK_SIZE), 0), landblocks)
            last = min(max(math.ceil(end / LANDBLOCK_SIZE), 0), landblocks)
            return first, max(last - first, 0)

        lbx0, count_x = window(float(top_left[0]), float(bottom_right[0]))
        lby0, count_y = window(north_bottom, north_top)
        return lbx0, lby0, count_x, count_y

    def _has_terrain_texture(self) -> Tuple[bool, ...]:
        if isinstance(self.textures, ImageTextureAtlas):
            return tuple(self.textures.has_terrain(i) for i in range(PALETTE_SIZE))
        return tuple(False for _ in range(PALETTE_SIZE))

    def frame_uniforms(self) -> FrameUniforms:
        camera = self.current_camera
        terrain = self.settings.terrain
        planar = self.context.mode == CameraMode.PLANAR
        return FrameUniforms(
            transform=camera.transform,
            camera_mode=self.context.mode,
            scale=self.camera_2d.scale,
            pixel_size=self.pixel_size(),
            render_view=self.render_view() if planar else None,
            min_zoom_for_textures=terrain.min_zoom_for_textures,
            show_landcell_lines=terrain.show_landcell_lines,
            show_landblock_lines=terrain.show_landblock_lines,
            bad_wireframe=terrain.bad_wireframe,
            has_terrain_texture=self._has_terrain_texture(),
        )

    def landblock_mesh(self, lbx: int, lby: int) -> np.ndarray:
        """Triangle list of one landblock in the active camera's vertex layout."""
        if self.grid is None:
            raise RuntimeError("No terrain grid loaded")
        return build_landblock_mesh(self.grid, lbx, lby, self.context.mode)

    def overlay_text(self) -> str:
        """Status lines describing the pointer position and active camera."""
        if self.context.mode == CameraMode.PLANAR:
            camera = self.camera_2d
            coords = camera.screen_to_coords(self.mouse_pos)
            lines = [
                f"Coords: {coords}",
                f"Camera: 2D | Zoom: {camera.zoom:.4f} | "
                f"Pos: ({camera.position[0]:.1f}, {camera.position[1]:.1f})",
            ]
        else:
            camera = self.flying_camera
            x, y, z = camera.position
            lines = [
                f"3D Position: ({x:.1f}, {y:.1f}, {z:.1f})",
                f"Camera: Flying | Yaw: {math.degrees(camera.yaw):.1f}° | "
                f"Pitch: {math.degrees(camera.pitch):.1f}° | Speed: {camera.move_speed:.1f}",
            ]
        lines.append("Press 'C' to switch cameras")
        return "\n".join(lines)

    def apply_route(self, route: str) -> bool:
        """
        Center the planar camera on a route string.

        Returns False (camera unchanged) when the route cannot be parsed.
        """
        parsed = parse_route(route)
        if parsed is None:
            logger.warning("Ignoring malformed route", route=route)
            return False

        self.camera_2d.zoom = parsed.zoom
        self.camera_2d.center_on_coords(parsed.coords)
        logger.info("Applied route", route=route, zoom=self.camera_2d.zoom)
        return True

    def current_route(self) -> str:
        """Route string of the planar view center."""
        coords = self.camera_2d.screen_to_coords(self.camera_2d.viewport_center)
        return make_route(coords, self.camera_2d.zoom)

    def render_preview(self) -> np.ndarray:
        """
        Shade the planar view on the CPU.

        Every pixel inside the map is composited from its landcell's blend
        plan; pixels outside the map get the clear color. Below
        ``min_zoom_for_textures`` only palette colors are used.

        Returns:
            uint8 array of shape (height, width, 3)
        """
        if self.grid is None:
            raise RuntimeError("No terrain grid loaded")

        terrain = self.settings.terrain
        camera = self.camera_2d
        width, height = (int(round(s)) for s in camera.viewport_size)

        # Pixel centers -> world (x east, y south)
        screen_x = np.arange(width, dtype=np.float64) + 0.5
        screen_y = np.arange(height, dtype=np.float64) + 0.5
        origin = camera.position[:2] - camera.viewport_size / (2.0 * camera.zoom)
        world_x, world_y = np.meshgrid(
            screen_x / camera.zoom + origin[0], screen_y / camera.zoom + origin[1]
        )

        image = np.empty((height, width, 3), dtype=np.float64)
        image[...] = np.asarray(terrain.clear_color, dtype=np.float64) / 255.0

        map_extent = self.grid.map_size
        inside = (world_x >= 0) & (world_x < map_extent) & (world_y >= 0) & (world_y < map_extent)
        if inside.any():
            image[inside] = self._shade(world_x[inside], world_y[inside])
            image[inside] = apply_grid_lines(
                image[inside], world_x[inside], world_y[inside], self.pixel_size(), terrain
            )

        logger.debug("Rendered preview", width=width, height=height, zoom=camera.zoom)
        return np.round(np.clip(image, 0.0, 1.0) * 255.0).astype(np.uint8)

    def _shade(self, world_x: np.ndarray, world_y: np.ndarray) -> np.ndarray:
        terrain = self.settings.terrain
        cells = self.grid.cells

        north = self.grid.map_size - world_y
        gx = np.clip(np.floor(world_x / CELL_SIZE).astype(np.int64), 0, cells - 1)
        gy = np.clip(np.floor(north / CELL_SIZE).astype(np.int64), 0, cells - 1)
        u = np.clip(world_x / CELL_SIZE - gx, 0.0, 1.0)
        v = np.clip((gy + 1) - north / CELL_SIZE, 0.0, 1.0)
        texture_u = world_x / CELL_SIZE * terrain.texture_repeat
        texture_v = world_y / CELL_SIZE * terrain.texture_repeat

        if self.camera_2d.zoom < terrain.min_zoom_for_textures:
            textures: TextureSource = PaletteTextures(self.palette)
        else:
            textures = self.textures

        pcodes = self.grid.pcodes_for_cells(gx, gy)
        unique_pcodes, inverse = np.unique(pcodes, return_inverse=True)
        inverse = inverse.reshape(-1)

        colors = np.empty(world_x.shape + (3,), dtype=np.float64)
        for k, pcode in enumerate(unique_pcodes):
            selected = inverse == k
            plan = build_blend_plan(int(pcode))
            colors[selected] = composite(
                plan,
                u[selected],
                v[selected],
                textures,
                self.palette,
                texture_uv=(texture_u[selected], texture_v[selected]),
                epsilon=terrain.mask_blend_epsilon,
            )
        return colors
