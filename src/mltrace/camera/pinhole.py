"""Pinhole camera: primary rays, projection and sample accumulation.

The camera is described by its position, facing direction, up vector and an
angular field of view (the angle from the optical axis to each edge of the
sensor). It builds a left-handed look-at rotation whose rows are

- x: normalize(up x facing), pointing right in the image
- y: facing x x, pointing up in the image
- z: facing

and a focal length ``f = 1 / tan(fov)``. A camera-space direction ``(x, y, z)``
lands on the normalized image plane at ``(f x / z, f y / z)``; the sensor
covers ``[-1, 1)`` horizontally and ``(-1, 1]`` vertically so both map onto
valid pixel indices.

Example:
    >>> import math
    >>> from mltrace.camera.pinhole import Camera
    >>> camera = Camera((0, 0, -4), (0, 0, 1), (0, 1, 0), math.pi / 5)
    >>> direction = camera.primary_direction(0.0, 0.0)  # along the optical axis
    >>> camera.project(direction)
    (0.0, 0.0)
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from mltrace.core.accumulator import PixelBuffer
from mltrace.core.path import DISTANCE_FACTOR, Path, contribution
from mltrace.core.ray import (
    Vec3,
    as_vec3,
    cross,
    is_finite,
    length_squared,
    near_zero,
    normalize,
    vec3,
)

if TYPE_CHECKING:
    from mltrace.scene.scene import Scene

# Density of a uniform point on the [-1, 1)^2 image plane
PLANE_PDF = 0.25


class Camera:
    """Pinhole camera with a fixed look-at rotation.

    Attributes:
        position: Camera position in world space (the path's final vertex).
        rotation: 3x3 world-to-camera rotation (rows are the camera axes).
        focal_length: ``1 / tan(fov)``.
        fov: Angle from the optical axis to each edge of the sensor, radians.
    """

    def __init__(
        self,
        position: npt.ArrayLike,
        facing: npt.ArrayLike,
        up: npt.ArrayLike,
        fov: float,
    ) -> None:
        """Build the camera basis.

        Raises:
            ValueError: If facing/up are degenerate or parallel, or fov is not
                in (0, π/2).
        """
        if not (0.0 < fov < math.pi / 2.0):
            raise ValueError(f"Field of view must be in (0, pi/2) radians, got {fov}")
        facing_v = as_vec3(facing)
        up_v = as_vec3(up)
        if near_zero(facing_v) or near_zero(up_v):
            raise ValueError("Camera facing and up vectors must be non-zero")
        z_axis = normalize(facing_v)
        x_axis = cross(normalize(up_v), z_axis)
        if near_zero(x_axis, 1e-9):
            raise ValueError("Camera up vector must not be parallel to the facing direction")
        x_axis = normalize(x_axis)
        y_axis = cross(z_axis, x_axis)

        position_v = as_vec3(position)
        position_v.setflags(write=False)
        rotation = np.stack([x_axis, y_axis, z_axis])
        rotation.setflags(write=False)

        self._position = position_v
        self._rotation = rotation
        self._fov = float(fov)
        self._focal_length = 1.0 / math.tan(fov)

    @property
    def position(self) -> Vec3:
        return self._position

    @property
    def rotation(self) -> npt.NDArray[np.float64]:
        return self._rotation

    @property
    def fov(self) -> float:
        return self._fov

    @property
    def focal_length(self) -> float:
        return self._focal_length

    # =========================================================================
    # Image plane <-> world directions
    # =========================================================================

    def primary_direction(self, plane_x: float, plane_y: float) -> Vec3:
        """World-space direction through a point of the normalized image plane.

        The result is not normalized; its camera-space z component equals the
        focal length.
        """
        return self._rotation.T @ vec3(plane_x, plane_y, self._focal_length)

    def to_camera_space(self, direction: Vec3) -> Vec3:
        """Rotate a world-space direction into camera space."""
        return self._rotation @ direction

    def project(self, direction: Vec3) -> tuple[float, float] | None:
        """Perspective-project a world-space direction onto the image plane.

        Returns:
            ``(plane_x, plane_y)``, or None if the direction points behind the
            camera or is degenerate.
        """
        point = self.to_camera_space(direction)
        if not point[2] > 0.0 or not is_finite(point):
            return None
        scale = self._focal_length / point[2]
        return float(point[0] * scale), float(point[1] * scale)

    def propose(self, rng: np.random.Generator) -> tuple[float, Vec3]:
        """Draw a primary direction through a uniform image-plane point.

        Returns:
            Tuple of (1/4, direction).
        """
        x = rng.uniform(-1.0, 1.0)
        y = rng.uniform(-1.0, 1.0)
        return PLANE_PDF, self.primary_direction(x, y)

    # =========================================================================
    # Accumulation
    # =========================================================================

    def record_sample(self, path: Path, scene: Scene, image: PixelBuffer, weight: float) -> bool:
        """Add a path's weighted colour to the pixel its last segment lands on.

        The last two vertices (camera neighbour and camera) give the direction
        that is projected onto the sensor. The colour is the light colour
        attenuated over that final segment, times ``weight``, times every
        per-vertex geometry and scattering factor of the path.

        Args:
            path: The current path of a Markov chain.
            scene: The scene (for occlusion tests).
            image: Shared accumulation buffer.
            weight: Per-sample weight.

        Returns:
            True if something was added. Paths whose last segment misses the
            sensor, occluded paths and non-finite colours add nothing.
        """
        point = self.to_camera_space(path.points[-2] - path.points[-1])
        if not point[2] > 0.0 or not is_finite(point):
            return False
        scale = self._focal_length / point[2]
        plane_x = point[0] * scale
        plane_y = point[1] * scale
        if not (-1.0 <= plane_x < 1.0 and -1.0 < plane_y <= 1.0):
            return False

        throughput = contribution(path, scene)
        if not np.any(throughput):
            return False

        value = path.light.color / (1.0 + DISTANCE_FACTOR * length_squared(point)) * weight
        value = value * throughput
        if not is_finite(value):
            return False

        x, y = plane_to_pixel(plane_x, plane_y, image.width, image.height)
        image.add(x, y, value)
        return True

    def __repr__(self) -> str:
        return (
            f"Camera(position={tuple(float(c) for c in self._position)}, "
            f"fov={self._fov:.4f})"
        )


# =============================================================================
# Pixel <-> plane coordinates
# =============================================================================


def pixel_to_plane(
    px: int,
    py: int,
    width: int,
    height: int,
    jitter: tuple[float, float] = (0.5, 0.5),
) -> tuple[float, float]:
    """Map a pixel (plus sub-pixel offset) to normalized plane coordinates.

    Args:
        px: Column (0 = left).
        py: Row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        jitter: Offset inside the pixel, each component in [0, 1).

    Returns:
        ``(plane_x, plane_y)`` with plane_x in [-1, 1) and plane_y in (-1, 1].
    """
    plane_x = 2.0 * (px + jitter[0]) / width - 1.0
    plane_y = 1.0 - 2.0 * (py + jitter[1]) / height
    return plane_x, plane_y


def plane_to_pixel(plane_x: float, plane_y: float, width: int, height: int) -> tuple[int, int]:
    """Map on-sensor plane coordinates to pixel indices."""
    x = int((plane_x + 1.0) * width / 2.0)
    y = int((1.0 - plane_y) * height / 2.0)
    return min(max(x, 0), width - 1), min(max(y, 0), height - 1)
