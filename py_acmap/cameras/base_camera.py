"""
Shared camera behaviour: viewport, pointer tracking, drag detection and
input dispatch behind the active-camera gate.
"""

from typing import Sequence, Tuple

import numpy as np

from .camera_mode import CameraMode
from .input_events import (
    InputEvent,
    KeyDown,
    KeyUp,
    PointerDown,
    PointerMove,
    PointerUp,
    Resize,
    TouchEnd,
    TouchMove,
    TouchStart,
    Wheel,
)

PRIMARY_BUTTON = 0


class BaseCamera:
    """
    Common state of both camera variants.

    Only an active camera reacts to input: :meth:`handle_event` and
    :meth:`update` return immediately while ``active`` is False. The owner
    (see ``CameraContext``) flips the flag when it selects a camera.
    """

    mode: CameraMode = CameraMode.PLANAR

    def __init__(self, viewport_size: Sequence[float] = (1.0, 1.0)):
        self.position = np.zeros(3, dtype=np.float64)
        self.viewport_size = np.array([1.0, 1.0], dtype=np.float64)
        self.mouse_pos = np.zeros(2, dtype=np.float64)
        self.active = False

        self._mouse_down = False
        self._is_dragging = False
        self._last_drag = np.zeros(2, dtype=np.float64)
        self._drag_start = np.zeros(2, dtype=np.float64)

        self.resize(*viewport_size)

    @property
    def view_projection(self) -> np.ndarray:
        raise NotImplementedError

    @property
    def transform(self) -> np.ndarray:
        raise NotImplementedError

    @property
    def is_dragging(self) -> bool:
        return self._is_dragging

    def resize(self, width: float, height: float) -> None:
        self.viewport_size = np.array([max(1.0, float(width)), max(1.0, float(height))])

    def update(self, dt: float) -> None:
        if not self.active:
            return
        if not self._mouse_down and self._is_dragging:
            self._is_dragging = False

    def handle_event(self, event: InputEvent) -> bool:
        """
        Apply one input event.

        Returns:
            True if the camera consumed the event, False while inactive
        """
        if not self.active:
            return False

        if isinstance(event, Resize):
            self.resize(event.width, event.height)
        elif isinstance(event, PointerDown):
            self.on_pointer_down(event)
        elif isinstance(event, PointerUp):
            self.on_pointer_up(event)
        elif isinstance(event, PointerMove):
            self.on_pointer_move(event)
        elif isinstance(event, Wheel):
            self.on_wheel(event)
        elif isinstance(event, TouchStart):
            self.on_touch_start(event)
        elif isinstance(event, TouchMove):
            self.on_touch_move(event)
        elif isinstance(event, TouchEnd):
            self.on_touch_end(event)
        elif isinstance(event, KeyDown):
            self.on_key_down(event)
        elif isinstance(event, KeyUp):
            self.on_key_up(event)
        else:
            return False
        return True

    def on_pointer_down(self, event: PointerDown) -> None:
        if event.button == PRIMARY_BUTTON:
            self._mouse_down = True

    def on_pointer_up(self, event: PointerUp) -> None:
        if event.button == PRIMARY_BUTTON:
            self._mouse_down = False

    def on_pointer_move(self, event: PointerMove) -> None:
        self.handle_move(*event.position)

    def on_wheel(self, event: Wheel) -> None:
        pass

    def on_touch_start(self, event: TouchStart) -> None:
        self._mouse_down = True

    def on_touch_move(self, event: TouchMove) -> None:
        if len(event.touches) == 1:
            self.handle_move(*event.touches[0])

    def on_touch_end(self, event: TouchEnd) -> None:
        self._mouse_down = False

    def on_key_down(self, event: KeyDown) -> None:
        pass

    def on_key_up(self, event: KeyUp) -> None:
        pass

    def handle_move(self, x: float, y: float) -> None:
        """
        Track the pointer and turn held-button motion into drags.

        The first sample after the button goes down only records the anchor;
        every later sample drags by ``last - new``.
        """
        new_pos = np.array([x, y], dtype=np.float64)

        if self._mouse_down:
            if not self._is_dragging:
                self._drag_start = new_pos.copy()
            else:
                self.handle_drag(self._last_drag - new_pos)
            self._is_dragging = True
            self._last_drag = new_pos.copy()

        self.mouse_pos = new_pos

    def handle_drag(self, delta: np.ndarray) -> None:
        raise NotImplementedError

    def clip_space_position(self, x: float, y: float) -> Tuple[float, float]:
        """Viewport pixel position -> clip space (x right, y up, both in [-1, 1])."""
        width, height = self.viewport_size
        return (x / width) * 2.0 - 1.0, (y / height) * -2.0 + 1.0

    def screen_from_clip(self, clip_x: float, clip_y: float) -> Tuple[float, float]:
        width, height = self.viewport_size
        return (clip_x + 1.0) * 0.5 * width, (1.0 - clip_y) * 0.5 * height

    @property
    def aspect(self) -> float:
        return float(self.viewport_size[0] / self.viewport_size[1])

    def set_active(self, active: bool) -> None:
        """Select or deselect the camera; deselecting drops any drag in progress."""
        self.active = bool(active)
        if not self.active:
            self._mouse_down = False
            self._is_dragging = False
