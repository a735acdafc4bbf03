"""
Camera models: planar (top-down) and free-flying.
"""

from .camera_mode import CameraMode
from .base_camera import BaseCamera
from .camera_2d import Camera2D
from .camera_flying import CameraFlying
from .input_events import InputQueue

__all__ = ['CameraMode', 'BaseCamera', 'Camera2D', 'CameraFlying', 'InputQueue']
