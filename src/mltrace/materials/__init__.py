"""Materials module for scattering models.

This module implements the angle-based scattering models evaluated at every
interior path vertex:

Components:
    base: Material interface and shared hat-box direction sampling
    lambertian: Constant (ideal diffuse) response
    specular: Glossy lobe around the mirror direction
    combined: Weighted sum of other models

Each material provides:
    - evaluate(phi_in, theta, phi_out): RGB scattering value
    - propose(normal, rng): (density, direction) hemisphere sample
    - albedo: overall colour weighting the sampling density
"""

from .base import Material, validate_color
from .combined import Combined
from .lambertian import Lambertian
from .specular import Specular

__all__ = [
    "Material",
    "validate_color",
    "Lambertian",
    "Specular",
    "Combined",
]
