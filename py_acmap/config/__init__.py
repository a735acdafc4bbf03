"""
Configuration modules for the terrain viewer.
"""

from .config import settings, Settings
from .render_settings import (
    RenderSettings,
    CameraSettings,
    FlyingCameraSettings,
    TerrainDisplaySettings,
    get_render_settings,
)

__all__ = ['settings', 'Settings', 'RenderSettings', 'CameraSettings',
           'FlyingCameraSettings', 'TerrainDisplaySettings', 'get_render_settings']
