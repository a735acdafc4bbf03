"""
py-acmap: planar and flyable terrain map viewer core.

Coordinate conversion, camera models and the procedural terrain-splatting
pipeline for a landblock-addressed game world.
"""

__version__ = "0.1.0"
