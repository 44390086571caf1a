"""Glossy lobe around the mirror direction.

The lobe is

    f = color * |cos(theta) sin(phi_in) sin(phi_out) - cos(phi_in) cos(phi_out)|^alpha

The bracketed term is the cosine of the angle between the outgoing direction
and the mirror reflection of the incoming direction (both expressed through
their polar angles from the normal and the relative azimuth theta), so the
response peaks at the mirror direction and sharpens as ``alpha`` grows, much
like a Blinn-Phong lobe.
"""

from __future__ import annotations

import math

from mltrace.core.ray import Color
from mltrace.materials.base import Material, validate_color


class Specular(Material):
    """Blinn-Phong-like lobe scaled by a colour.

    Attributes:
        color: Peak colour of the lobe.
        alpha: Sharpness exponent (0 gives a constant response).
    """

    def __init__(self, color: object, alpha: float) -> None:
        if not (alpha >= 0.0 and math.isfinite(alpha)):
            raise ValueError(f"Specular exponent must be finite and >= 0, got {alpha}")
        self._color = validate_color(color)
        self._color.setflags(write=False)
        self._alpha = float(alpha)

    @property
    def color(self) -> Color:
        return self._color

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def albedo(self) -> Color:
        return self._color

    def lobe(self, phi_in: float, theta: float, phi_out: float) -> float:
        """Scalar lobe value in [0, 1]."""
        cosine = (
            math.cos(theta) * math.sin(phi_in) * math.sin(phi_out)
            - math.cos(phi_in) * math.cos(phi_out)
        )
        return abs(cosine) ** self._alpha

    def evaluate(self, phi_in: float, theta: float, phi_out: float) -> Color:
        return self._color * self.lobe(phi_in, theta, phi_out)

    def __repr__(self) -> str:
        return (
            f"Specular(color={tuple(float(c) for c in self._color)}, "
            f"alpha={self._alpha})"
        )
