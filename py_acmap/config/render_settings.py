"""
Render and camera settings for the terrain viewer.

This module defines the tunables of both camera variants and the terrain
display toggles, including zoom limits, input sensitivities and debug
overlays.
"""

from typing import Tuple

from pydantic import BaseModel, Field


class CameraSettings(BaseModel):
    """Settings for the planar (top-down) camera."""

    min_zoom: float = Field(default=0.002, gt=0, description="Smallest allowed zoom (pixels per world unit)")
    max_zoom: float = Field(default=1000.0, gt=0, description="Largest allowed zoom (pixels per world unit)")

    # Input sensitivities
    wheel_zoom_sensitivity: float = Field(
        default=0.005, description="Zoom exponent per wheel delta unit: zoom *= 2^(-delta*k)"
    )
    pinch_zoom_sensitivity: float = Field(
        default=0.0075, description="Zoom exponent per pixel of pinch distance change"
    )
    step_zoom_amount: float = Field(default=0.1, description="Relative zoom change of a single zoom step")


class FlyingCameraSettings(BaseModel):
    """Settings for the free-flying perspective camera."""

    fov: float = Field(default=45.0, ge=1.0, le=179.0, description="Vertical field of view in degrees")
    near: float = Field(default=0.1, gt=0, description="Near clip plane")
    far: float = Field(default=100000000.0, gt=0, description="Far clip plane")

    mouse_sensitivity: float = Field(default=0.005, description="Radians per pixel of pointer motion")
    max_look_delta: float = Field(
        default=100.0, description="Per-event clamp on relative pointer motion"
    )
    pitch_epsilon: float = Field(default=0.01, description="Pitch stays this far (radians) from +-90 degrees")

    move_speed: float = Field(default=100.0, description="World units per second")
    min_move_speed: float = Field(default=1.0, description="Lower bound for wheel speed adjustment")
    max_move_speed: float = Field(default=1000.0, description="Upper bound for wheel speed adjustment")
    roll_speed: float = Field(default=0.5, description="Roll rate in radians per second")


class TerrainDisplaySettings(BaseModel):
    """Settings for terrain shading and debug overlays."""

    min_zoom_for_textures: float = Field(
        default=0.02, description="Below this zoom the palette colors are shown instead of textures"
    )
    show_landcell_lines: bool = Field(default=False, description="Highlight 24-unit landcell boundaries")
    show_landblock_lines: bool = Field(default=False, description="Highlight 192-unit landblock boundaries")
    bad_wireframe: bool = Field(default=False, description="Draw the terrain mesh as a line strip")

    texture_repeat: float = Field(default=2.0, description="Terrain texture repeats per landcell")
    mask_blend_epsilon: float = Field(default=1e-6, gt=0, description="Floor for the combined overlay alpha")

    clear_color: Tuple[int, int, int] = Field(default=(29, 34, 60), description="Background outside the map")
    landblock_line_color: Tuple[float, float, float] = Field(default=(1.0, 0.0, 0.0))
    landcell_line_color: Tuple[float, float, float] = Field(default=(1.0, 0.0, 1.0))


class RenderSettings(BaseModel):
    """Main render settings configuration."""

    camera: CameraSettings = Field(default_factory=CameraSettings)
    flying: FlyingCameraSettings = Field(default_factory=FlyingCameraSettings)
    terrain: TerrainDisplaySettings = Field(default_factory=TerrainDisplaySettings)


# Default settings instance
default_render_settings = RenderSettings()


def get_render_settings() -> RenderSettings:
    """Get the current render settings."""
    return default_render_settings
