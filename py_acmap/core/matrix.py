"""
4x4 matrix helpers (column-vector convention: ``clip = M @ (x, y, z, 1)``).

The layouts follow the usual OpenGL conventions so the matrices can be
handed to a rendering collaborator after a transpose to column-major.
"""

import math
from typing import Sequence

import numpy as np


def identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


def translate(offset: Sequence[float]) -> np.ndarray:
    m = identity()
    m[: len(offset), 3] = offset
    return m


def scale(factors: Sequence[float]) -> np.ndarray:
    m = identity()
    for i, factor in enumerate(factors):
        m[i, i] = factor
    return m


def rotate_x(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    m = identity()
    m[1, 1], m[1, 2] = c, -s
    m[2, 1], m[2, 2] = s, c
    return m


def rotate_y(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    m = identity()
    m[0, 0], m[0, 2] = c, s
    m[2, 0], m[2, 2] = -s, c
    return m


def rotate_z(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    m = identity()
    m[0, 0], m[0, 1] = c, -s
    m[1, 0], m[1, 1] = s, c
    return m


def ortho(left: float, right: float, bottom: float, top: float, near: float, far: float) -> np.ndarray:
    """Orthographic projection mapping the box onto the [-1, 1] clip cube."""
    m = identity()
    m[0, 0] = 2.0 / (right - left)
    m[1, 1] = 2.0 / (top - bottom)
    m[2, 2] = -2.0 / (far - near)
    m[0, 3] = -(right + left) / (right - left)
    m[1, 3] = -(top + bottom) / (top - bottom)
    m[2, 3] = -(far + near) / (far - near)
    return m


def perspective(fovy: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Perspective projection; ``fovy`` in radians."""
    f = 1.0 / math.tan(fovy / 2.0)
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = 2.0 * far * near / (near - far)
    m[3, 2] = -1.0
    return m


def normalize(vector: Sequence[float]) -> np.ndarray:
    vector = np.asarray(vector, dtype=np.float64)
    length = np.linalg.norm(vector)
    if length == 0:
        return vector
    return vector / length


def view_from_basis(
    eye: Sequence[float], right: Sequence[float], up: Sequence[float], forward: Sequence[float]
) -> np.ndarray:
    """
    View matrix of a camera at ``eye`` with the given unit axes.

    ``right`` maps to +x and ``up`` to +y in view space; the camera looks
    down -z. The axes need not form a right-handed frame, so a world with
    y pointing south still shows east on the right of the screen.
    """
    eye = np.asarray(eye, dtype=np.float64)
    right = np.asarray(right, dtype=np.float64)
    up = np.asarray(up, dtype=np.float64)
    forward = np.asarray(forward, dtype=np.float64)

    m = identity()
    m[0, :3] = right
    m[1, :3] = up
    m[2, :3] = -forward
    m[0, 3] = -right.dot(eye)
    m[1, 3] = -up.dot(eye)
    m[2, 3] = forward.dot(eye)
    return m


def invert(m: np.ndarray) -> np.ndarray:
    return np.linalg.inv(m)


def transform_point(m: np.ndarray, point: Sequence[float]) -> np.ndarray:
    """Apply ``m`` to a 2D or 3D point, dividing by w."""
    point = np.asarray(point, dtype=np.float64)
    homogeneous = np.zeros(4, dtype=np.float64)
    homogeneous[: point.shape[0]] = point
    homogeneous[3] = 1.0

    result = m @ homogeneous
    if result[3] != 0 and result[3] != 1.0:
        result = result / result[3]
    return result[: point.shape[0]]


def to_column_major(m: np.ndarray) -> list:
    """Flatten for the rendering side (column-major float list)."""
    return [float(x) for x in np.asarray(m, dtype=np.float64).T.reshape(-1)]
