"""Camera module for primary rays and image accumulation.

Components:
    pinhole: Pinhole camera with look-at rotation and perspective projection

Camera responsibilities:
    - Map normalized image-plane coordinates to world-space primary rays
    - Project a path's final segment back onto the sensor
    - Add a path's weighted contribution into the shared pixel buffer

Plane coordinates are normalized:
    x in [-1, 1): left to right across the image
    y in (-1, 1]: bottom to top across the image
"""

from .pinhole import (
    PLANE_PDF,
    Camera,
    pixel_to_plane,
    plane_to_pixel,
)

__all__ = [
    "Camera",
    "PLANE_PDF",
    "pixel_to_plane",
    "plane_to_pixel",
]
