"""Lambertian (ideal diffuse) scattering model.

The response is the material colour for every pair of directions. No sine or
cosine weighting is applied here: directions are generated uniformly over the
hemisphere and the cosine falloff is part of the path geometry term.

Example:
    >>> from mltrace.materials.lambertian import Lambertian
    >>> mat = Lambertian((1.0, 0.5, 0.5))
    >>> mat.evaluate(0.3, 1.0, 0.7)
    array([1. , 0.5, 0.5])
"""

from __future__ import annotations

from mltrace.core.ray import Color
from mltrace.materials.base import Material, validate_color


class Lambertian(Material):
    """Constant (angle independent) scattering.

    Attributes:
        color: The diffuse reflectance colour (RGB, non-negative).
    """

    def __init__(self, color: object) -> None:
        self._color = validate_color(color)
        self._color.setflags(write=False)

    @property
    def color(self) -> Color:
        return self._color

    @property
    def albedo(self) -> Color:
        return self._color

    def evaluate(self, phi_in: float, theta: float, phi_out: float) -> Color:
        return self._color.copy()

    def __repr__(self) -> str:
        return f"Lambertian(color={tuple(float(c) for c in self._color)})"
