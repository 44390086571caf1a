"""Common interface shared by all scattering models.

A scattering model answers two questions at a path vertex:

* ``evaluate(phi_in, theta, phi_out)``: how much light arriving at polar angle
  ``phi_in`` from the normal leaves at polar angle ``phi_out``, where ``theta``
  is the azimuth between the two directions projected onto the tangent plane.
  Because only the relative azimuth enters, models are azimuthally symmetric.
* ``propose(normal, rng)``: draw an outgoing direction over the hemisphere of
  the normal and return it with its sampling density.

The density returned by ``propose`` is ``luminance(albedo) / (2π)``: the
uniform hemisphere density weighted by the model's overall brightness rather
than normalized against the BSDF itself. Acceptance ratios in the Metropolis
sampler depend on exactly this value.
"""

from __future__ import annotations

import math

import numpy as np

from mltrace.core.ray import (
    Color,
    Vec3,
    as_vec3,
    is_finite,
    luminance,
    sample_hatbox_hemisphere,
)


def validate_color(value: object, name: str = "color") -> Color:
    """Convert to a colour array and check it is finite and non-negative.

    Raises:
        ValueError: If any component is negative or not finite.
    """
    c = as_vec3(value)
    if not is_finite(c) or np.any(c < 0.0):
        raise ValueError(f"{name} components must be finite and non-negative, got {tuple(c)}")
    return c


class Material:
    """Base class for scattering models.

    Subclasses implement ``evaluate`` and the ``albedo`` property; direction
    sampling is shared.
    """

    @property
    def albedo(self) -> Color:
        """Overall colour of the model, used to weight the sampling density."""
        raise NotImplementedError

    def evaluate(self, phi_in: float, theta: float, phi_out: float) -> Color:
        """Evaluate the scattering value for the given angles (radians)."""
        raise NotImplementedError

    def propose(self, normal: Vec3, rng: np.random.Generator) -> tuple[float, Vec3]:
        """Sample an outgoing direction over the hemisphere around ``normal``.

        Args:
            normal: Unit surface normal at the vertex.
            rng: The worker's random generator.

        Returns:
            Tuple of (density, direction) with density
            ``luminance(albedo) / (2π)`` and a unit world-space direction.
        """
        direction = sample_hatbox_hemisphere(normal, rng)
        return luminance(self.albedo) / (2.0 * math.pi), direction
