"""Ray data structure and vector utilities for path sampling.

This module provides the fundamental Ray dataclass together with the small
vector and sampling helpers used throughout the Metropolis sampler. Vectors and
colours are float64 NumPy arrays of shape (3,).

Ray directions are deliberately not normalized: path segments are cast as
``Ray(x1, x0 - x1)`` so that the neighbouring vertex sits at ``t == 1``, and all
hit distances are reported in ray parameter units.

Example:
    >>> import numpy as np
    >>> from mltrace.core.ray import Ray, vec3
    >>> ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, 2.0))
    >>> ray.at(0.5)  # halfway along the segment
    array([0., 0., 1.])
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

Vec3 = npt.NDArray[np.float64]
Color = npt.NDArray[np.float64]

# Rec. 709 luma weights
LUMINANCE_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)

TAU = 2.0 * math.pi


def vec3(x: float, y: float, z: float) -> Vec3:
    """Create a 3-component float64 vector."""
    return np.array([x, y, z], dtype=np.float64)


def color(r: float, g: float, b: float) -> Color:
    """Create an RGB colour (same representation as vec3)."""
    return np.array([r, g, b], dtype=np.float64)


def as_vec3(value: npt.ArrayLike) -> Vec3:
    """Convert a tuple/list/array into a float64 vector of shape (3,).

    Raises:
        ValueError: If the value does not have exactly three components.
    """
    arr = np.asarray(value, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected 3 components, got shape {arr.shape}")
    return arr.copy()


@dataclass(frozen=True, eq=False)
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction vector. Not required to be unit length;
            intersection distances are measured in multiples of it.
    """

    origin: Vec3
    direction: Vec3

    def at(self, t: float) -> Vec3:
        """Compute the point along the ray at parameter t."""
        return self.origin + t * self.direction


# =============================================================================
# Vector Utility Functions
# =============================================================================


def dot(a: Vec3, b: Vec3) -> float:
    """Compute the dot product of two vectors."""
    return float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])


def cross(a: Vec3, b: Vec3) -> Vec3:
    """Compute the cross product of two vectors."""
    return np.array(
        [
            a[1] * b[2] - a[2] * b[1],
            a[2] * b[0] - a[0] * b[2],
            a[0] * b[1] - a[1] * b[0],
        ],
        dtype=np.float64,
    )


def length_squared(v: Vec3) -> float:
    """Compute the squared length of a vector."""
    return dot(v, v)


def length(v: Vec3) -> float:
    """Compute the Euclidean length of a vector."""
    return math.sqrt(length_squared(v))


def near_zero(v: Vec3, eps: float = 1e-12) -> bool:
    """Check if a vector is near zero in all components, or not finite.

    Useful for detecting degenerate directions before normalizing them.
    """
    if not np.all(np.isfinite(v)):
        return True
    return bool(abs(v[0]) < eps and abs(v[1]) < eps and abs(v[2]) < eps)


def normalize(v: Vec3) -> Vec3:
    """Normalize a vector to unit length.

    Returns:
        A unit vector in the same direction as v. If v is zero-length or not
        finite, returns a zero vector.
    """
    if near_zero(v):
        return np.zeros(3, dtype=np.float64)
    return v / length(v)


def angle_between(a: Vec3, b: Vec3) -> float:
    """Compute the unsigned angle between two vectors in radians.

    Returns 0.0 when either vector is degenerate, so callers never see NaN.
    """
    denom = length(a) * length(b)
    if denom < 1e-300 or not math.isfinite(denom):
        return 0.0
    cosine = dot(a, b) / denom
    return math.acos(min(1.0, max(-1.0, cosine)))


def project_onto_plane(v: Vec3, normal: Vec3) -> Vec3:
    """Remove the component of v along normal (normal need not be unit)."""
    n2 = length_squared(normal)
    if n2 == 0.0:
        return v.copy()
    return v - (dot(v, normal) / n2) * normal


def luminance(c: Color) -> float:
    """Luminance of an RGB colour using Rec. 709 weights."""
    w = LUMINANCE_WEIGHTS
    return float(c[0] * w[0] + c[1] * w[1] + c[2] * w[2])


def is_finite(v: npt.NDArray[np.float64]) -> bool:
    """True when every component is a finite number."""
    return bool(np.all(np.isfinite(v)))


# =============================================================================
# Local Frames and Random Sampling
# =============================================================================


def build_onb_from_normal(normal: Vec3) -> tuple[Vec3, Vec3, Vec3]:
    """Build an orthonormal basis from a normal vector.

    Creates a local coordinate frame where the normal is the z-axis. Works for
    every orientation, including a normal pointing along -z.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, bitangent, normal) forming an orthonormal basis.
    """
    # Choose a vector not parallel to normal
    a = vec3(1.0, 0.0, 0.0)
    if abs(normal[0]) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = normalize(cross(a, normal))
    bitangent = cross(normal, tangent)
    return tangent, bitangent, normal


def local_to_world(local_dir: Vec3, tangent: Vec3, bitangent: Vec3, normal: Vec3) -> Vec3:
    """Transform a direction from a local (z-up) frame to world coordinates."""
    return local_dir[0] * tangent + local_dir[1] * bitangent + local_dir[2] * normal


def sample_hatbox_hemisphere(normal: Vec3, rng: np.random.Generator) -> Vec3:
    """Sample a unit direction in the hemisphere around a normal.

    Uses Archimedes' hat-box theorem: an azimuth drawn uniformly in [0, 2π)
    and a height z drawn uniformly in [0, 1) give a point uniformly distributed
    over the hemisphere, with radius sqrt(1 - z²) in the tangent plane.

    Args:
        normal: The surface normal (unit length) defining the hemisphere.
        rng: The caller's random generator.

    Returns:
        A unit direction in world space with a non-negative normal component.
    """
    phi = rng.uniform(0.0, TAU)
    z = rng.uniform(0.0, 1.0)
    r = math.sqrt(1.0 - z * z)
    local = vec3(math.cos(phi) * r, math.sin(phi) * r, z)
    tangent, bitangent, n = build_onb_from_normal(normal)
    return local_to_world(local, tangent, bitangent, n)


def sample_uniform_sphere(rng: np.random.Generator) -> Vec3:
    """Sample a unit direction uniformly over the whole sphere (hat-box method)."""
    phi = rng.uniform(0.0, TAU)
    z = rng.uniform(-1.0, 1.0)
    r = math.sqrt(1.0 - z * z)
    return vec3(math.cos(phi) * r, math.sin(phi) * r, z)
