"""
Free-flying perspective camera.

Z is up. With zero rotation the camera looks along -Y (north on the map),
right is +X. Orientation is ``Rz(yaw) @ Rx(pitch) @ Ry(roll)`` applied to
those canonical axes; positive pitch tilts the view downwards.
"""

import math
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from ..config.render_settings import FlyingCameraSettings
from ..core import matrix
from .base_camera import BaseCamera
from .camera_mode import CameraMode
from .input_events import KeyDown, KeyUp, PointerMove, Wheel

CANONICAL_FORWARD = np.array([0.0, -1.0, 0.0])
CANONICAL_RIGHT = np.array([1.0, 0.0, 0.0])
CANONICAL_UP = np.array([0.0, 0.0, 1.0])

FORWARD_KEYS = ("keyw", "arrowup")
BACKWARD_KEYS = ("keys", "arrowdown")
LEFT_KEYS = ("keya", "arrowleft")
RIGHT_KEYS = ("keyd", "arrowright")
UP_KEYS = ("space",)
DOWN_KEYS = ("shiftleft", "shiftright")
ROLL_LEFT_KEYS = ("keyq",)
ROLL_RIGHT_KEYS = ("keye",)


class CameraFlying(BaseCamera):
    """Perspective camera steered with pointer look and keyboard movement."""

    mode = CameraMode.FLYING

    def __init__(
        self,
        viewport_size: Sequence[float] = (1.0, 1.0),
        settings: Optional[FlyingCameraSettings] = None,
    ):
        super().__init__(viewport_size)
        self.settings = settings or FlyingCameraSettings()

        self._yaw = 0.0
        self._pitch = 0.0
        self._roll = 0.0
        self._fov = self.settings.fov
        self.near = self.settings.near
        self.far = self.settings.far
        self.move_speed = self.settings.move_speed

        self._keys: Dict[str, bool] = {}
        self._forward = CANONICAL_FORWARD.copy()
        self._right = CANONICAL_RIGHT.copy()
        self._up = CANONICAL_UP.copy()

    # Orientation

    @property
    def yaw(self) -> float:
        return self._yaw

    @yaw.setter
    def yaw(self, value: float) -> None:
        self._yaw = float(value)
        self._update_vectors()

    @property
    def pitch(self) -> float:
        return self._pitch

    @pitch.setter
    def pitch(self, value: float) -> None:
        limit = math.pi / 2.0 - self.settings.pitch_epsilon
        self._pitch = max(-limit, min(limit, float(value)))
        self._update_vectors()

    @property
    def roll(self) -> float:
        return self._roll

    @roll.setter
    def roll(self, value: float) -> None:
        self._roll = float(value)
        self._update_vectors()

    @property
    def fov(self) -> float:
        return self._fov

    @fov.setter
    def fov(self, value: float) -> None:
        self._fov = max(1.0, min(179.0, float(value)))

    def set_rotation(self, yaw: float, pitch: float, roll: float = 0.0) -> None:
        self.yaw = yaw
        self.pitch = pitch
        self.roll = roll

    def _update_vectors(self) -> None:
        rotation = matrix.rotate_z(self._yaw) @ matrix.rotate_x(self._pitch) @ matrix.rotate_y(self._roll)
        basis = rotation[:3, :3]
        self._forward = matrix.normalize(basis @ CANONICAL_FORWARD)
        self._right = matrix.normalize(basis @ CANONICAL_RIGHT)
        self._up = matrix.normalize(basis @ CANONICAL_UP)

    @property
    def forward(self) -> np.ndarray:
        return self._forward.copy()

    @property
    def right(self) -> np.ndarray:
        return self._right.copy()

    @property
    def up(self) -> np.ndarray:
        return self._up.copy()

    def look_at(self, target: Sequence[float]) -> None:
        """Aim ``forward`` at ``target``."""
        direction = matrix.normalize(np.asarray(target, dtype=np.float64) - self.position)
        if not direction.any():
            return
        self._yaw = math.atan2(direction[0], -direction[1])
        self.pitch = -math.asin(max(-1.0, min(1.0, direction[2])))

    # Matrices

    @property
    def view_projection(self) -> np.ndarray:
        return matrix.perspective(math.radians(self._fov), self.aspect, self.near, self.far)

    @property
    def view_matrix(self) -> np.ndarray:
        return matrix.view_from_basis(self.position, self._right, self._up, self._forward)

    @property
    def transform(self) -> np.ndarray:
        return self.view_projection @ self.view_matrix

    # Input

    def on_pointer_move(self, event: PointerMove) -> None:
        if event.locked:
            if self._mouse_down:
                self.handle_mouse_look(*event.movement)
            self.mouse_pos = np.asarray(event.position, dtype=np.float64)
            return
        self.handle_move(*event.position)

    def handle_mouse_look(self, delta_x: float, delta_y: float) -> None:
        """Pointer-locked look; large OS deltas are clamped per event."""
        max_delta = self.settings.max_look_delta
        delta_x = max(-max_delta, min(max_delta, delta_x))
        delta_y = max(-max_delta, min(max_delta, delta_y))
        self.yaw = self._yaw - delta_x * self.settings.mouse_sensitivity
        self.pitch = self._pitch + delta_y * self.settings.mouse_sensitivity

    def handle_drag(self, delta: np.ndarray) -> None:
        if self._is_dragging:
            self.yaw = self._yaw + delta[0] * self.settings.mouse_sensitivity
            self.pitch = self._pitch - delta[1] * self.settings.mouse_sensitivity

    def on_wheel(self, event: Wheel) -> None:
        self.move_speed *= 0.9 if event.delta > 0 else 1.1
        self.move_speed = max(self.settings.min_move_speed, min(self.settings.max_move_speed, self.move_speed))

    def on_key_down(self, event: KeyDown) -> None:
        self._keys[event.code.lower()] = True

    def on_key_up(self, event: KeyUp) -> None:
        self._keys[event.code.lower()] = False

    def set_active(self, active: bool) -> None:
        super().set_active(active)
        if not self.active:
            self._keys.clear()

    def _held(self, codes: Tuple[str, ...]) -> bool:
        return any(self._keys.get(code, False) for code in codes)

    def update(self, dt: float) -> None:
        if not self.active:
            return
        super().update(dt)
        self.handle_keyboard_input(dt)

    def handle_keyboard_input(self, dt: float) -> None:
        """Advance along the held directions; ``dt`` in seconds."""
        distance = self.move_speed * dt

        if self._held(FORWARD_KEYS):
            self.position += self._forward * distance
        if self._held(BACKWARD_KEYS):
            self.position -= self._forward * distance
        if self._held(LEFT_KEYS):
            self.position -= self._right * distance
        if self._held(RIGHT_KEYS):
            self.position += self._right * distance
        if self._held(UP_KEYS):
            self.position += self._up * distance
        if self._held(DOWN_KEYS):
            self.position -= self._up * distance

        if self._held(ROLL_LEFT_KEYS):
            self.roll = self._roll + self.settings.roll_speed * dt
        if self._held(ROLL_RIGHT_KEYS):
            self.roll = self._roll - self.settings.roll_speed * dt

    # Conversions

    def world_to_screen(self, world_position: Sequence[float]) -> np.ndarray:
        """Project a world point; returns ``(screen_x, screen_y, ndc_z)``."""
        ndc = matrix.transform_point(self.transform, world_position)
        screen_x, screen_y = self.screen_from_clip(ndc[0], ndc[1])
        return np.array([screen_x, screen_y, ndc[2]])

    def screen_to_world_ray(self, screen_x: float, screen_y: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Ray through a viewport pixel.

        Returns:
            (origin, unit direction); the origin is the camera position
        """
        clip_x, clip_y = self.clip_space_position(screen_x, screen_y)
        inverse = matrix.invert(self.transform)
        world_near = matrix.transform_point(inverse, (clip_x, clip_y, -1.0))
        world_far = matrix.transform_point(inverse, (clip_x, clip_y, 1.0))
        return self.position.copy(), matrix.normalize(world_far - world_near)
