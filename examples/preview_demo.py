#!/usr/bin/env python3
"""
Demo script: build a small synthetic terrain, inspect a few blend plans and
render a preview of the planar view to a PNG file.
"""

import sys

import numpy as np
from PIL import Image

from py_acmap.config import RenderSettings
from py_acmap.cameras.input_events import KeyDown, PointerDown, PointerMove, PointerUp, Wheel
from py_acmap.core.blend_planner import build_blend_plan
from py_acmap.core.terrain_grid import TerrainGrid
from py_acmap.core.terrain_renderer import TerrainRenderer
from py_acmap.utils.logging import configure_logging


def make_terrain(landblocks: int = 8) -> TerrainGrid:
    """Grassland with a lake, a sandy shore and a road running east-west."""
    size = landblocks * 8 + 1
    data = np.zeros((size, size, 4), dtype=np.uint8)
    data[..., 1] = 1  # Grassland

    rows, cols = np.mgrid[0:size, 0:size]
    distance = np.hypot(rows - size / 2, cols - size / 3)
    data[distance < size / 4, 1] = 10  # SandYellow
    data[distance < size / 5, 1] = 17  # WaterStandingFresh
    data[..., 0] = np.clip(distance * 2, 0, 254).astype(np.uint8)

    road_row = (size * 3) // 4
    data[road_row:road_row + 2, :, 2] = 1
    return TerrainGrid(data)


def main():
    """Render the demo terrain."""
    configure_logging("INFO", "plain")
    output = sys.argv[1] if len(sys.argv) > 1 else "preview.png"

    grid = make_terrain()
    print(f"Terrain grid: {grid.size}x{grid.size} samples, {grid.landblocks} landblocks per side")

    print("\nBlend plans along the lake shore:")
    for gx in range(10, 16):
        plan = build_blend_plan(grid.cell_pcode(gx, 32))
        print(f"  cell ({gx}, 32): base={plan.base_texture:2d} "
              f"terrain overlays={len(plan.terrain_overlays)} road={plan.road_shape.value}")

    settings = RenderSettings()
    settings.terrain.show_landblock_lines = True
    renderer = TerrainRenderer((640, 480), grid=grid, settings=settings)

    # Drag a little and zoom in on the lake
    for event in (
        PointerDown((320, 240)),
        PointerMove((320, 240)),
        PointerMove((300, 250)),
        PointerUp((300, 250)),
        Wheel(-200.0, (260, 240)),
    ):
        renderer.push_event(event)
    uniforms = renderer.tick(1 / 60)
    print(f"\nCamera mode: {uniforms.camera_mode.name}, zoom: {uniforms.scale:.4f}")
    print(renderer.overlay_text())
    print(f"Route: {renderer.current_route()}")

    pixels = renderer.render_preview()
    Image.fromarray(pixels).save(output)
    print(f"\nPreview written to {output}")

    renderer.push_event(KeyDown("KeyC"))
    renderer.tick(1 / 60)
    print(f"\nAfter switching cameras ({renderer.camera_mode.name}):")
    print(renderer.overlay_text())


if __name__ == "__main__":
    main()
