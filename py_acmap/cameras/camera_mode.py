"""Camera mode discriminator shared with the rendering side."""

from enum import IntEnum


class CameraMode(IntEnum):
    """
    Which camera variant is authoritative.

    The integer value is handed to the rendering collaborator, which uses it
    to pick the vertex layout: planar meshes are ``(x, y, height)``, flying
    meshes swap the ground axes to ``(x, height, y)``.
    """

    PLANAR = 0
    FLYING = 1
