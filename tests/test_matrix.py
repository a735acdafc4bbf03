"""Tests for 4x4 matrix helpers."""

import math

import pytest
import numpy as np
from py_acmap.core import matrix


class TestMatrixHelpers:
    """Test transform construction and application."""

    def test_translate_and_scale(self):
        m = matrix.scale((2.0, 3.0, 1.0)) @ matrix.translate((1.0, -1.0, 0.0))

        np.testing.assert_allclose(matrix.transform_point(m, (1.0, 1.0)), [4.0, 0.0])

    def test_rotate_z_quarter_turn(self):
        point = matrix.transform_point(matrix.rotate_z(math.pi / 2), (1.0, 0.0, 0.0))

        np.testing.assert_allclose(point, [0.0, 1.0, 0.0], atol=1e-12)

    def test_ortho_maps_box_to_clip_cube(self):
        m = matrix.ortho(0.0, 800.0, 600.0, 0.0, 0.1, 100.0)

        np.testing.assert_allclose(matrix.transform_point(m, (0.0, 0.0, 0.0))[:2], [-1.0, 1.0])
        np.testing.assert_allclose(matrix.transform_point(m, (800.0, 600.0, 0.0))[:2], [1.0, -1.0])

    def test_perspective_divides_by_w(self):
        m = matrix.perspective(math.radians(90.0), 1.0, 1.0, 100.0)

        near = matrix.transform_point(m, (0.0, 0.0, -1.0))
        far = matrix.transform_point(m, (0.0, 0.0, -100.0))

        assert near[2] == pytest.approx(-1.0)
        assert far[2] == pytest.approx(1.0)

    def test_view_from_basis(self):
        """Test that the camera axes map to view-space axes."""
        eye = np.array([5.0, 5.0, 5.0])
        m = matrix.view_from_basis(eye, (1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, -1.0, 0.0))

        np.testing.assert_allclose(matrix.transform_point(m, eye), [0.0, 0.0, 0.0])
        np.testing.assert_allclose(matrix.transform_point(m, eye + [2.0, -3.0, 1.0]), [2.0, 1.0, -3.0])

    def test_invert(self):
        m = matrix.rotate_x(0.3) @ matrix.translate((1.0, 2.0, 3.0))

        np.testing.assert_allclose(matrix.invert(m) @ m, np.eye(4), atol=1e-12)

    def test_normalize_zero_vector(self):
        np.testing.assert_array_equal(matrix.normalize((0.0, 0.0, 0.0)), [0.0, 0.0, 0.0])

    def test_column_major(self):
        m = matrix.translate((7.0, 8.0, 9.0))

        assert matrix.to_column_major(m)[12:15] == [7.0, 8.0, 9.0]
