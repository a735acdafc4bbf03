"""Tests for landcell compositing and grid-line highlighting."""

import pytest
import numpy as np
from py_acmap.config.render_settings import TerrainDisplaySettings
from py_acmap.core.blend_planner import build_blend_plan
from py_acmap.core.compositor import apply_grid_lines, composite, grid_line_mask, mask_blend, rotate_uv
from py_acmap.core.terrain_codec import Corner, pack_pcode
from py_acmap.core.textures import ImageTextureAtlas, PaletteTextures, TerrainPalette, default_alpha_mask


RED = np.array([1.0, 0.0, 0.0])
BLUE = np.array([0.0, 0.0, 1.0])


def plan_for(terrain, road=(0, 0, 0, 0)):
    return build_blend_plan(pack_pcode(*(Corner(t, r) for t, r in zip(terrain, road))))


class TestRotateUV:
    """Test mask-space rotation of landcell positions."""

    def test_identity(self):
        u, v = rotate_uv(0.2, 0.3, 0)

        assert (float(u), float(v)) == pytest.approx((0.2, 0.3))

    def test_one_step(self):
        u, v = rotate_uv(0.2, 0.3, 1)

        assert (float(u), float(v)) == pytest.approx((0.3, 0.8))

    def test_full_turn(self):
        u, v = rotate_uv(np.array([0.1, 0.6]), np.array([0.7, 0.2]), 4)

        np.testing.assert_allclose(u, [0.1, 0.6])
        np.testing.assert_allclose(v, [0.7, 0.2])


class TestMaskBlend:
    """Test combining overlay layers."""

    def test_two_half_layers(self):
        """Test that the first layer sits on top of the second."""
        color, coverage = mask_blend(
            [RED[None, :], BLUE[None, :]],
            [np.array([0.5]), np.array([0.5])],
        )

        np.testing.assert_allclose(coverage, [0.75])
        np.testing.assert_allclose(color[0], [2.0 / 3.0, 0.0, 1.0 / 3.0])

    def test_opaque_layer_hides_later_layers(self):
        color, coverage = mask_blend(
            [RED[None, :], BLUE[None, :]],
            [np.array([0.0]), np.array([0.0])],
        )

        np.testing.assert_allclose(coverage, [1.0])
        np.testing.assert_allclose(color[0], RED)

    def test_fully_transparent(self):
        """Test that zero coverage does not divide by zero."""
        color, coverage = mask_blend([RED[None, :]], [np.array([1.0])])

        np.testing.assert_allclose(coverage, [0.0])
        assert np.all(np.isfinite(color))


class TestComposite:
    """Test shading a landcell from its blend plan."""

    def test_no_overlays_returns_base(self):
        palette = TerrainPalette()
        plan = plan_for((6, 6, 6, 6))

        color = composite(plan, np.array([0.1, 0.9]), np.array([0.5, 0.2]), palette=palette)

        assert color.shape == (2, 3)
        np.testing.assert_array_equal(color, np.tile(palette.color(6), (2, 1)))

    def test_solid_road_is_road_color(self):
        palette = TerrainPalette()
        plan = plan_for((1, 2, 3, 4), road=(1, 1, 1, 1))

        color = composite(plan, 0.5, 0.5, textures=PaletteTextures(palette), palette=palette)

        np.testing.assert_allclose(color, palette.color(31))

    def test_opaque_overlay_mask(self):
        """Test that a fully covering alpha mask shows the overlay texture."""
        palette = TerrainPalette()
        plan = plan_for((1, 1, 2, 2))
        atlas = ImageTextureAtlas(alpha={4: np.zeros((4, 4))})

        color = composite(plan, np.array([0.3]), np.array([0.6]), textures=atlas, palette=palette)

        np.testing.assert_allclose(color[0], palette.color(2))

    def test_transparent_overlay_mask(self):
        """Test that a fully transparent alpha mask leaves the base showing."""
        palette = TerrainPalette()
        plan = plan_for((1, 1, 2, 2))
        atlas = ImageTextureAtlas(alpha={4: np.ones((4, 4))})

        color = composite(plan, np.array([0.3]), np.array([0.6]), textures=atlas, palette=palette)

        np.testing.assert_allclose(color[0], palette.color(1))

    def test_terrain_texture_sampled(self):
        """Test that an available terrain texture replaces the palette color."""
        palette = TerrainPalette()
        image = np.zeros((2, 2, 3))
        image[..., 1] = 1.0
        atlas = ImageTextureAtlas(terrain={6: image})

        color = composite(plan_for((6, 6, 6, 6)), 0.25, 0.25, textures=atlas, palette=palette)

        np.testing.assert_allclose(color, [0.0, 1.0, 0.0])

    def test_output_in_range(self):
        """Test that mixed plans stay within the color range."""
        u, v = np.meshgrid(np.linspace(0, 0.99, 8), np.linspace(0, 0.99, 8))
        for terrain, road in (((1, 2, 3, 4), (0, 1, 1, 1)), ((5, 5, 9, 5), (1, 0, 0, 0))):
            color = composite(plan_for(terrain, road), u, v)
            assert color.shape == (8, 8, 3)
            assert np.all(color >= -1e-9)
            assert np.all(color <= 1.0 + 1e-9)


class TestDefaultAlphaMasks:
    """Test the built-in alpha shapes."""

    def test_corner_mask_covers_sw_corner(self):
        assert default_alpha_mask(0, 0.0, 1.0) == pytest.approx(0.0)
        assert default_alpha_mask(0, 1.0, 0.0) == pytest.approx(1.0)

    def test_side_mask_covers_west_side(self):
        assert default_alpha_mask(4, 0.0, 0.5) == pytest.approx(0.0)
        assert default_alpha_mask(4, 0.9, 0.5) == pytest.approx(1.0)

    def test_unknown_slot_is_transparent(self):
        np.testing.assert_array_equal(default_alpha_mask(12, np.zeros(3), np.zeros(3)), np.ones(3))


class TestGridLines:
    """Test landblock and landcell line highlighting."""

    def setup_method(self):
        self.display = TerrainDisplaySettings(show_landblock_lines=True, show_landcell_lines=True)

    def test_masks(self):
        x = np.array([0.5, 24.1, 100.0])
        y = np.array([100.0, 100.0, 100.0])

        landblock, landcell = grid_line_mask(x, y, 1.0, self.display)

        assert landblock.tolist() == [True, False, False]
        assert landcell.tolist() == [False, True, False]

    def test_apply_colors(self):
        color = np.full((3, 3), 0.5)
        x = np.array([0.5, 24.1, 100.0])
        y = np.full(3, 100.0)

        result = apply_grid_lines(color, x, y, 1.0, self.display)

        np.testing.assert_allclose(result[0], [1.0, 0.0, 0.0])
        np.testing.assert_allclose(result[1], [1.0, 0.0, 1.0])
        np.testing.assert_allclose(result[2], [0.5, 0.5, 0.5])
        np.testing.assert_allclose(color, 0.5)

    def test_disabled_lines_leave_color(self):
        color = np.full((2, 3), 0.25)
        display = TerrainDisplaySettings()

        result = apply_grid_lines(color, np.array([0.5, 24.1]), np.array([0.5, 0.5]), 1.0, display)

        np.testing.assert_array_equal(result, color)
