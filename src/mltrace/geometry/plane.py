"""Infinite plane primitive.

A plane is given by any point on it and its normal. The intersection is

    t = n . (point - origin) / n . direction

A ray (almost) parallel to the plane would produce an infinite or NaN
parameter; such rays are reported as a miss instead of propagating
non-finite values into path contributions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from mltrace.core.ray import Ray, Vec3, as_vec3, dot, near_zero, normalize
from mltrace.geometry.sphere import MIN_DIST

# |n . d| below this is treated as parallel
PARALLEL_EPSILON = 1e-12


@dataclass(frozen=True, eq=False)
class Plane:
    """An infinite plane.

    Attributes:
        point: Any point on the plane.
        normal: The plane normal (normalized on construction).
    """

    point: Vec3
    normal: Vec3

    def __post_init__(self) -> None:
        normal = as_vec3(self.normal)
        if near_zero(normal):
            raise ValueError("Plane normal must be a non-zero finite vector")
        object.__setattr__(self, "point", as_vec3(self.point))
        object.__setattr__(self, "normal", normalize(normal))

    def hit(self, ray: Ray, t_min: float = MIN_DIST) -> tuple[float, Vec3] | None:
        """Intersect a ray with the plane.

        Returns:
            ``(t, normal)`` with the normal flipped to face the ray origin, or
            None for a miss, a parallel ray or a hit closer than t_min.
        """
        denom = dot(self.normal, ray.direction)
        if abs(denom) < PARALLEL_EPSILON:
            return None
        t = dot(self.normal, self.point - ray.origin) / denom
        if not math.isfinite(t) or t <= t_min:
            return None
        normal = -self.normal if denom > 0.0 else self.normal
        return t, normal
