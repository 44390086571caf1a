"""Scene container and nearest-hit ray casting.

The scene is the shared, read-only context consulted by every sampling
operation: the camera, the point lights and the list of objects. It is built
once at startup and handed to every worker by reference; nothing in it is
mutated afterwards, so workers read it without locking.

Objects are shared by reference. A path vertex stores the very SceneObject it
hit, never a copy of its shape or material.

Example:
    >>> import math
    >>> from mltrace.camera import Camera
    >>> from mltrace.core.ray import Ray, vec3
    >>> from mltrace.geometry import Sphere
    >>> from mltrace.materials import Lambertian
    >>> from mltrace.scene.scene import Light, Scene, SceneObject
    >>> camera = Camera((0, 0, -4), (0, 0, 1), (0, 1, 0), math.pi / 5)
    >>> scene = Scene(
    ...     camera=camera,
    ...     lights=[Light((1.5, 1.5, -1.5), (1, 1, 1))],
    ...     objects=[SceneObject(Sphere((0, 0, 0), 1.0), Lambertian((1, 1, 1)))],
    ... )
    >>> hit = scene.cast(Ray(vec3(0, 0, -4), vec3(0, 0, 1)))
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Protocol

import numpy as np

from mltrace.core.ray import Color, Ray, Vec3, as_vec3, sample_uniform_sphere
from mltrace.geometry.sphere import MIN_DIST
from mltrace.materials.base import Material, validate_color

if TYPE_CHECKING:
    from mltrace.camera.pinhole import Camera

# Density of a direction drawn uniformly over the unit sphere
LIGHT_PDF = 1.0 / (4.0 * math.pi)


class Shape(Protocol):
    """Anything with the primitive intersection contract."""

    def hit(self, ray: Ray, t_min: float = MIN_DIST) -> tuple[float, Vec3] | None: ...


@dataclass(frozen=True, eq=False)
class Light:
    """A point light.

    Attributes:
        position: World-space position; the light-side anchor of every path.
        color: Emitted colour.
    """

    position: Vec3
    color: Color

    def __post_init__(self) -> None:
        position = as_vec3(self.position)
        position.setflags(write=False)
        light_color = validate_color(self.color, "Light color")
        light_color.setflags(write=False)
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "color", light_color)

    def propose(self, rng: np.random.Generator) -> tuple[float, Vec3]:
        """Draw an emission direction uniformly over the sphere.

        Returns:
            Tuple of (1 / (4π), unit direction).
        """
        return LIGHT_PDF, sample_uniform_sphere(rng)


@dataclass(frozen=True, eq=False)
class SceneObject:
    """Immutable pairing of a shape and its scattering model.

    Attributes:
        shape: Geometric primitive (Sphere, Plane, ...).
        material: Scattering model evaluated at hits on this shape.
    """

    shape: Shape
    material: Material


class Hit(NamedTuple):
    """Nearest intersection reported by Scene.cast.

    Attributes:
        t: Distance in ray parameter units.
        normal: Unit normal at the hit, facing the ray origin.
        obj: The SceneObject that was hit (shared reference).
    """

    t: float
    normal: Vec3
    obj: SceneObject


class Scene:
    """Camera, lights and objects; read-only after construction.

    Raises:
        ValueError: If there are no lights or no objects.
    """

    def __init__(
        self,
        camera: Camera,
        lights: Sequence[Light],
        objects: Sequence[SceneObject],
    ) -> None:
        if not lights:
            raise ValueError("Scene needs at least one light")
        if not objects:
            raise ValueError("Scene needs at least one object")
        self._camera = camera
        self._lights = tuple(lights)
        self._objects = tuple(objects)

    @property
    def camera(self) -> Camera:
        return self._camera

    @property
    def lights(self) -> tuple[Light, ...]:
        return self._lights

    @property
    def objects(self) -> tuple[SceneObject, ...]:
        return self._objects

    def cast(self, ray: Ray) -> Hit | None:
        """Return the globally nearest hit beyond MIN_DIST, or None.

        Rays whose direction is degenerate (zero or non-finite) never hit.
        """
        if not np.all(np.isfinite(ray.direction)) or not np.any(ray.direction):
            return None
        nearest: Hit | None = None
        for obj in self._objects:
            result = obj.shape.hit(ray, MIN_DIST)
            if result is None:
                continue
            t, normal = result
            if nearest is None or t < nearest.t:
                nearest = Hit(t, normal, obj)
        return nearest

    def __repr__(self) -> str:
        return f"Scene(lights={len(self._lights)}, objects={len(self._objects)})"
