"""
Planar top-down camera with pan, cursor-anchored zoom and pinch zoom.

World space: x grows east, y grows south (``y = map_size - landblock y``),
one unit per game unit. Zoom is screen pixels per world unit.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from ..config.render_settings import CameraSettings
from ..core import matrix
from ..core.coordinates import LANDBLOCK_SIZE, MAP_SIZE, MAX_LANDBLOCK, Coordinates
from .base_camera import BaseCamera
from .camera_mode import CameraMode
from .input_events import TouchMove, TouchStart, Wheel

DEFAULT_ZOOM = 0.08
ORTHO_NEAR = 0.000901
ORTHO_FAR = 100000000000.0


class Camera2D(BaseCamera):
    """Orthographic camera looking straight down at the map."""

    mode = CameraMode.PLANAR

    def __init__(
        self,
        viewport_size: Sequence[float] = (1.0, 1.0),
        map_size: Sequence[float] = (MAP_SIZE, MAP_SIZE),
        settings: Optional[CameraSettings] = None,
        zoom: float = DEFAULT_ZOOM,
    ):
        self.settings = settings or CameraSettings()
        self.map_size = np.array(map_size, dtype=np.float64)
        self._zoom = self.cap_zoom(zoom)
        self._last_distance = 0.0
        super().__init__(viewport_size)
        self.position[:2] = self.map_size / 2.0

    @property
    def zoom(self) -> float:
        return self._zoom

    @zoom.setter
    def zoom(self, value: float) -> None:
        self._zoom = self.cap_zoom(value)

    @property
    def scale(self) -> float:
        return self._zoom

    def cap_zoom(self, zoom: float) -> float:
        return max(self.settings.min_zoom, min(self.settings.max_zoom, float(zoom)))

    def fit_zoom(self) -> float:
        """Zoom at which the map spans the longer viewport edge."""
        if self.viewport_size[1] > self.viewport_size[0]:
            return self.cap_zoom(self.viewport_size[1] / self.map_size[1])
        return self.cap_zoom(self.viewport_size[0] / self.map_size[0])

    @property
    def viewport_center(self) -> np.ndarray:
        return self.viewport_size / 2.0

    @property
    def translation_matrix(self) -> np.ndarray:
        """Scale by zoom, then translate so ``position`` lands at the viewport center."""
        offset = self.viewport_size / (2.0 * self._zoom)
        translation = -self.position[:2] + offset
        return matrix.scale((self._zoom, self._zoom, 1.0)) @ matrix.translate(
            (translation[0], translation[1], 0.0)
        )

    @property
    def view_projection(self) -> np.ndarray:
        width, height = self.viewport_size
        return matrix.ortho(0.0, width, height, 0.0, ORTHO_NEAR, ORTHO_FAR)

    @property
    def transform(self) -> np.ndarray:
        return self.view_projection @ self.translation_matrix

    # Input

    def handle_drag(self, delta: np.ndarray) -> None:
        self.position[:2] += np.asarray(delta, dtype=np.float64) / self._zoom

    def on_wheel(self, event: Wheel) -> None:
        self.zoom_at_cursor(event.delta, event.position)

    def on_touch_start(self, event: TouchStart) -> None:
        super().on_touch_start(event)
        self._last_distance = 0.0

    def on_touch_move(self, event: TouchMove) -> None:
        if len(event.touches) == 1:
            self.handle_move(*event.touches[0])
        elif len(event.touches) >= 2:
            self.handle_pinch(event.touches[0], event.touches[1])

    def _world_under_clip(self, clip: Tuple[float, float]) -> np.ndarray:
        inverse = matrix.invert(self.transform)
        return matrix.transform_point(inverse, (clip[0], clip[1], 0.0))[:2]

    def zoom_about(self, new_zoom: float, screen_pos: Sequence[float]) -> None:
        """Change zoom while keeping the world point under ``screen_pos`` fixed."""
        clip = self.clip_space_position(*screen_pos)
        pre_zoom = self._world_under_clip(clip)
        self.zoom = new_zoom
        post_zoom = self._world_under_clip(clip)
        self.position[:2] += pre_zoom - post_zoom

    def zoom_at_cursor(self, wheel_delta: float, screen_pos: Sequence[float]) -> None:
        new_zoom = self._zoom * math.pow(2.0, -wheel_delta * self.settings.wheel_zoom_sensitivity)
        self.zoom_about(new_zoom, screen_pos)

    def handle_pinch(self, touch0: Sequence[float], touch1: Sequence[float]) -> None:
        """Zoom by the change in distance between two touches, anchored at their midpoint."""
        distance = math.hypot(touch0[0] - touch1[0], touch0[1] - touch1[1])
        if self._last_distance != 0 and distance != self._last_distance:
            factor = math.pow(2.0, (distance - self._last_distance) * self.settings.pinch_zoom_sensitivity)
            midpoint = ((touch0[0] + touch1[0]) / 2.0, (touch0[1] + touch1[1]) / 2.0)
            self.zoom_about(self._zoom * factor, midpoint)
        self._last_distance = distance

    # Explicit camera control

    def adjust_zoom(self, amount: float) -> None:
        """One zoom step: in for negative ``amount``, out otherwise."""
        step = self.settings.step_zoom_amount
        self.zoom = self._zoom + self._zoom * (step if amount < 0 else -step)

    def move_camera(self, movement: Sequence[float], clamp_to_map: bool = False) -> None:
        new_position = self.position[:2] + np.asarray(movement[:2], dtype=np.float64)
        if clamp_to_map:
            new_position = self.clamp_to_map(new_position)
        self.position[:2] = new_position

    def center_on_vec(self, position: Sequence[float]) -> None:
        self.position[:2] = np.asarray(position[:2], dtype=np.float64)

    def center_on_coords(self, coords: Coordinates) -> None:
        self.position[:2] = self.centered_position(coords)

    def centered_position(self, coords: Coordinates, clamp_to_map: bool = False) -> np.ndarray:
        camera_position = self.screen_to_world(self.coords_to_screen(coords))
        if clamp_to_map:
            return self.clamp_to_map(camera_position)
        return camera_position

    def clamp_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Smallest and largest camera positions that keep the view inside the map."""
        half_view = self.viewport_size / self._zoom / 2.0
        return half_view, self.map_size - half_view

    def clamp_to_map(self, position: Sequence[float]) -> np.ndarray:
        """
        Clamp a camera position so the view stays on the map.

        On an axis where the view is larger than the map the camera is
        centered on the map instead.
        """
        position = np.asarray(position[:2], dtype=np.float64)
        camera_min, camera_max = self.clamp_bounds()
        clamped = np.clip(position, camera_min, camera_max)
        too_small = camera_min > camera_max
        clamped[too_small] = self.map_size[too_small] / 2.0
        return clamped

    # Conversions

    def world_to_screen(self, world_position: Sequence[float]) -> np.ndarray:
        return matrix.transform_point(self.translation_matrix, world_position[:2])

    def screen_to_world(self, screen_position: Sequence[float]) -> np.ndarray:
        return matrix.transform_point(matrix.invert(self.translation_matrix), screen_position[:2])

    def coords_to_screen(self, coords: Coordinates) -> np.ndarray:
        landblock_space = np.array(
            [
                coords.lbx() * LANDBLOCK_SIZE + coords.x,
                coords.lby() * LANDBLOCK_SIZE + coords.y,
            ]
        )
        return self.world_to_screen((landblock_space[0], self.map_size[1] - landblock_space[1]))

    def screen_to_coords(self, screen_position: Sequence[float]) -> Coordinates:
        world = self.screen_to_world(screen_position)
        offset_x = max(0.0, float(world[0]))
        offset_y = max(0.0, float(self.map_size[1] - world[1]))

        lbx = min(math.floor(offset_x / LANDBLOCK_SIZE), MAX_LANDBLOCK)
        lby = min(math.floor(offset_y / LANDBLOCK_SIZE), MAX_LANDBLOCK)
        landblock = (lbx << 24) | (lby << 16)
        return Coordinates(landblock, offset_x % LANDBLOCK_SIZE, offset_y % LANDBLOCK_SIZE, 0.0)
