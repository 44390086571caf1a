"""Geometry module for shape primitives.

This module provides the analytic primitives consulted by the scene's
nearest-hit query:

Components:
    sphere: Sphere primitive with robust ray-sphere intersection
    plane: Infinite plane primitive

Every primitive exposes the same contract:
    hit(ray, t_min) -> (t, unit_normal) or None

where t is measured in ray parameter units, hits nearer than t_min are ignored,
and the normal faces the ray origin.
"""

from .plane import Plane
from .sphere import MIN_DIST, Sphere

__all__ = [
    "MIN_DIST",
    "Plane",
    "Sphere",
]
