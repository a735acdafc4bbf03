"""Tests for the render loop driver and CPU preview."""

import pytest
import numpy as np
from py_acmap.cameras.camera_mode import CameraMode
from py_acmap.cameras.input_events import KeyDown, PointerDown, PointerMove, Resize, Wheel
from py_acmap.config.render_settings import RenderSettings, TerrainDisplaySettings
from py_acmap.core.router import parse_route
from py_acmap.core.terrain_grid import TerrainGrid
from py_acmap.core.terrain_renderer import FrameUniforms, TerrainRenderer
from py_acmap.core.textures import TerrainPalette


@pytest.fixture
def grid():
    return TerrainGrid.filled(terrain_type=4, height_index=5, landblocks=4)


@pytest.fixture
def renderer(grid):
    return TerrainRenderer(viewport_size=(64, 48), grid=grid, settings=RenderSettings())


class TestCameraSelection:
    """Test the active-camera gate and camera switching."""

    def test_planar_starts_active(self, renderer):
        assert renderer.camera_mode == CameraMode.PLANAR
        assert renderer.camera_2d.active
        assert not renderer.flying_camera.active

    def test_initial_planar_view_fits_map(self, renderer):
        assert renderer.camera_2d.zoom == pytest.approx(64 / 768)
        np.testing.assert_allclose(renderer.camera_2d.position[:2], [384.0, 384.0])

    def test_initial_flying_state(self, renderer):
        flying = renderer.flying_camera

        np.testing.assert_allclose(flying.position, [384.0, 384.0, 500.0])
        assert flying.pitch == pytest.approx(np.pi / 4)
        assert flying.move_speed == pytest.approx(7.68)

    def test_key_c_toggles(self, renderer):
        renderer.push_event(KeyDown("KeyC"))
        renderer.tick(0.016)

        assert renderer.camera_mode == CameraMode.FLYING
        assert renderer.flying_camera.active
        assert not renderer.camera_2d.active

        renderer.push_event(KeyDown("KeyC"))
        renderer.tick(0.016)

        assert renderer.camera_mode == CameraMode.PLANAR

    def test_only_active_camera_reacts(self, renderer):
        planar_before = renderer.camera_2d.position.copy()
        renderer.switch_camera(CameraMode.FLYING)
        yaw_before = renderer.flying_camera.yaw

        renderer.push_event(PointerDown((10, 10)))
        renderer.push_event(PointerMove((10, 10)))
        renderer.push_event(PointerMove((0, 10)))
        renderer.push_event(Wheel(100.0, (10, 10)))
        renderer.tick(0.016)

        np.testing.assert_array_equal(renderer.camera_2d.position, planar_before)
        assert renderer.flying_camera.yaw != yaw_before

    def test_switch_heuristics(self, renderer):
        """Test the approximate view carried between cameras."""
        zoom = renderer.camera_2d.zoom
        renderer.switch_camera(CameraMode.FLYING)

        np.testing.assert_allclose(renderer.flying_camera.position, [384.0, 384.0, 1000.0 / zoom])
        assert renderer.flying_camera.pitch == pytest.approx(np.pi / 6)

        renderer.switch_camera(CameraMode.PLANAR)

        assert renderer.camera_2d.zoom == pytest.approx(zoom / 2.0)
        np.testing.assert_allclose(renderer.camera_2d.position[:2], [384.0, 384.0])

    def test_switch_to_same_mode_is_noop(self, renderer):
        zoom = renderer.camera_2d.zoom
        renderer.switch_camera(CameraMode.PLANAR)

        assert renderer.camera_2d.zoom == zoom


class TestTick:
    """Test per-frame processing."""

    def test_tick_returns_uniforms(self, renderer):
        uniforms = renderer.tick(0.016)

        assert isinstance(uniforms, FrameUniforms)
        assert uniforms.camera_mode == CameraMode.PLANAR
        assert uniforms.pixel_size == pytest.approx(1.0 / renderer.camera_2d.zoom)
        assert uniforms.render_view == (0, 0, 4, 4)
        assert renderer.frame_count == 1

    def test_uniforms_to_dict(self, renderer):
        data = renderer.tick(0.016).to_dict()

        assert len(data["transform"]) == 16
        assert data["camera_mode"] == 0
        assert len(data["has_terrain_texture"]) == 32
        assert not any(data["has_terrain_texture"])

    def test_render_view_is_landblock_window(self, renderer):
        """Test that the cull window is floored, ceiled and flipped to landblock Y."""
        renderer.camera_2d.zoom = 1.0
        renderer.camera_2d.center_on_vec((300.0, 100.0))

        assert renderer.render_view() == (1, 3, 1, 1)

    def test_render_view_clamped_to_map(self, renderer):
        renderer.camera_2d.zoom = 0.01

        assert renderer.render_view() == (0, 0, 4, 4)

    def test_render_view_full_map(self):
        renderer = TerrainRenderer(viewport_size=(1280, 720), settings=RenderSettings())

        assert renderer.frame_uniforms().render_view == (0, 55, 255, 145)

    def test_flying_uniforms_have_no_render_view(self, renderer):
        renderer.switch_camera(CameraMode.FLYING)

        assert renderer.tick(0.016).render_view is None

    def test_queue_drained(self, renderer):
        renderer.push_event(PointerMove((5, 5)))
        renderer.push_event(Resize(100, 80))
        renderer.tick(0.016)

        assert len(renderer.input_queue) == 0
        np.testing.assert_array_equal(renderer.mouse_pos, [5.0, 5.0])
        np.testing.assert_array_equal(renderer.camera_2d.viewport_size, [100.0, 80.0])
        np.testing.assert_array_equal(renderer.flying_camera.viewport_size, [100.0, 80.0])

    def test_overlay_text(self, renderer):
        text = renderer.overlay_text()

        assert "Coords:" in text
        assert "Camera: 2D" in text
        assert text.endswith("Press 'C' to switch cameras")

        renderer.toggle_camera()
        text = renderer.overlay_text()

        assert "3D Position" in text
        assert "Camera: Flying" in text


class TestMeshes:
    """Test landblock meshes in the active camera's layout."""

    def test_layout_follows_mode(self, renderer):
        planar = renderer.landblock_mesh(0, 0)
        renderer.switch_camera(CameraMode.FLYING)
        flying = renderer.landblock_mesh(0, 0)

        np.testing.assert_allclose(planar[:, 2], 10.0)
        np.testing.assert_allclose(flying[:, 1], 10.0)

    def test_mesh_without_grid(self):
        with pytest.raises(RuntimeError):
            TerrainRenderer(viewport_size=(64, 48)).landblock_mesh(0, 0)


class TestRoutes:
    """Test applying and producing route strings."""

    def test_invalid_route_ignored(self, renderer):
        position = renderer.camera_2d.position.copy()
        zoom = renderer.camera_2d.zoom

        assert renderer.apply_route("not a route") is False
        np.testing.assert_array_equal(renderer.camera_2d.position, position)
        assert renderer.camera_2d.zoom == zoom

    def test_route_round_trip(self):
        renderer = TerrainRenderer(viewport_size=(64, 48), settings=RenderSettings())

        assert renderer.apply_route("0.000N,0.000E,0.500") is True
        route = parse_route(renderer.current_route())

        assert route is not None
        assert route.zoom == pytest.approx(0.5)
        assert abs(route.coords.ns) < 1e-3
        assert abs(route.coords.ew) < 1e-3


class TestPreview:
    """Test the CPU preview render."""

    def test_uniform_terrain(self, renderer):
        image = renderer.render_preview()
        expected = np.round(TerrainPalette().color(4) * 255).astype(np.uint8)

        assert image.shape == (48, 64, 3)
        assert image.dtype == np.uint8
        assert np.all(image == expected)

    def test_outside_map_uses_clear_color(self, renderer):
        renderer.camera_2d.zoom = 0.01

        image = renderer.render_preview()

        assert image[0, 0].tolist() == [29, 34, 60]
        assert image[24, 32].tolist() != [29, 34, 60]

    def test_landblock_lines(self, grid):
        settings = RenderSettings(terrain=TerrainDisplaySettings(show_landblock_lines=True))
        renderer = TerrainRenderer(viewport_size=(64, 48), grid=grid, settings=settings)
        expected = np.round(TerrainPalette().color(4) * 255).astype(np.uint8)

        image = renderer.render_preview()

        assert image[10, 0].tolist() == [255, 0, 0]
        assert image[10, 5].tolist() == expected.tolist()

    def test_preview_without_grid(self):
        with pytest.raises(RuntimeError):
            TerrainRenderer(viewport_size=(64, 48)).render_preview()

    def test_grid_lines_stay_on_map(self):
        """Test that zoomed-out line highlights leave the clear color alone."""
        grid = TerrainGrid.filled(terrain_type=4, landblocks=2)
        settings = RenderSettings(
            terrain=TerrainDisplaySettings(show_landblock_lines=True, show_landcell_lines=True)
        )
        renderer = TerrainRenderer(viewport_size=(400, 400), grid=grid, settings=settings)
        renderer.camera_2d.zoom = 0.5
        renderer.camera_2d.center_on_vec((192.0, 192.0))
        clear = list(settings.terrain.clear_color)

        image = renderer.render_preview()

        off_map = np.ones((400, 400), dtype=bool)
        off_map[104:296, 104:296] = False
        assert np.all(image[off_map] == clear)
        assert image[150, 104].tolist() == [255, 0, 0]
