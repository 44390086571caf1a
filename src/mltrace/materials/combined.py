"""Weighted linear combination of scattering models."""

from __future__ import annotations

import math
from collections.abc import Iterable

import numpy as np

from mltrace.core.ray import Color
from mltrace.materials.base import Material


class Combined(Material):
    """Sum of weighted sub-models.

    Weights need not sum to one; the weighted sum is the model's response and
    the weighted sum of sub-model albedos is its overall colour.

    Example:
        >>> from mltrace.materials import Combined, Lambertian, Specular
        >>> glossy = Combined([(0.7, Lambertian((1, 1, 1))), (0.3, Specular((1, 1, 1), 20))])
    """

    def __init__(self, parts: Iterable[tuple[float, Material]]) -> None:
        parts = tuple((float(w), m) for w, m in parts)
        if not parts:
            raise ValueError("Combined material needs at least one component")
        for weight, material in parts:
            if not (weight >= 0.0 and math.isfinite(weight)):
                raise ValueError(f"Component weights must be finite and >= 0, got {weight}")
            if not isinstance(material, Material):
                raise ValueError(f"Component {material!r} is not a Material")
        self._parts = parts
        albedo = np.zeros(3, dtype=np.float64)
        for weight, material in parts:
            albedo += weight * material.albedo
        albedo.setflags(write=False)
        self._albedo = albedo

    @property
    def parts(self) -> tuple[tuple[float, Material], ...]:
        return self._parts

    @property
    def albedo(self) -> Color:
        return self._albedo

    def evaluate(self, phi_in: float, theta: float, phi_out: float) -> Color:
        total = np.zeros(3, dtype=np.float64)
        for weight, material in self._parts:
            total += weight * material.evaluate(phi_in, theta, phi_out)
        return total

    def __repr__(self) -> str:
        return f"Combined({list(self._parts)!r})"
