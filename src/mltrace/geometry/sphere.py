"""Sphere primitive with robust ray-sphere intersection.

This module provides a Sphere dataclass and intersection routine using the
robust quadratic formula from Ray Tracing Gems to avoid floating-point
artifacts when b^2 is nearly equal to 4ac.

Ray directions need not be normalized, so returned distances are in ray
parameter units. Hits closer than ``t_min`` are ignored to prevent a ray that
starts on the surface from immediately re-hitting it.

Example:
    >>> from mltrace.core.ray import Ray, vec3
    >>> from mltrace.geometry.sphere import Sphere
    >>> sphere = Sphere(center=vec3(0.0, 0.0, 0.0), radius=1.0)
    >>> sphere.hit(Ray(vec3(0.0, 0.0, -4.0), vec3(0.0, 0.0, 1.0)))
    (3.0, array([ 0.,  0., -1.]))
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from mltrace.core.ray import Ray, Vec3, as_vec3, dot, normalize

# Do not consider intersections closer than this (prevents shadow acne)
MIN_DIST = 1e-4


def _solve_quadratic_robust(a: float, h: float, c: float) -> tuple[float, float] | None:
    """Solve a*t^2 + 2*h*t + c = 0 with a numerically stable formula.

    Returns:
        The two roots (t0 <= t1), or None if there is no real solution or
        the coefficients are degenerate.
    """
    discriminant = h * h - a * c
    if discriminant < 0.0 or a == 0.0 or not math.isfinite(discriminant):
        return None
    sqrt_d = math.sqrt(discriminant)

    # q = -(h + sign(h) * sqrt(discriminant))
    q = -(h + math.copysign(sqrt_d, h))
    if abs(q) < 1e-300:
        # Tangent ray through the origin of the quadratic; fall back
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        t0, t1 = t1, t0
    return t0, t1


@dataclass(frozen=True, eq=False)
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere.
        radius: The radius of the sphere (positive).
    """

    center: Vec3
    radius: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", as_vec3(self.center))
        if not (self.radius > 0.0 and math.isfinite(self.radius)):
            raise ValueError(f"Sphere radius must be positive and finite, got {self.radius}")

    def hit(self, ray: Ray, t_min: float = MIN_DIST) -> tuple[float, Vec3] | None:
        """Find the nearest intersection in front of the ray origin.

        The intersection is found by solving
        ``|origin + t * direction - center|^2 = radius^2``.

        Args:
            ray: The ray to test.
            t_min: Minimum t value to consider a valid hit.

        Returns:
            ``(t, normal)`` for the nearest root beyond t_min, or None on a miss.
            The normal is unit length and points outward when the ray starts
            outside the sphere, inward when it starts inside (i.e. it always
            faces the ray origin).
        """
        oc = ray.origin - self.center
        a = dot(ray.direction, ray.direction)
        h = dot(ray.direction, oc)
        c = dot(oc, oc) - self.radius * self.radius

        roots = _solve_quadratic_robust(a, h, c)
        if roots is None:
            return None
        t0, t1 = roots

        if t0 > t_min and math.isfinite(t0):
            point = ray.at(t0)
            return t0, normalize(point - self.center)
        if t1 > t_min and math.isfinite(t1):
            # Ray started inside the sphere
            point = ray.at(t1)
            return t1, normalize(self.center - point)
        return None
