"""Reference scene: three diffuse spheres lit by one point light.

The camera sits at (0, 0, -4) looking down +z with +y up and a field of view
of π/5 to each sensor edge. The scene is:

- a unit sphere at the origin (pinkish)
- a sphere of radius 0.5 at (-1, -1, -1) (greenish)
- a sphere of radius 0.2 at (1, 1, -1) (bluish)
- a white point light at (2, 2, -2)

Options add a floor plane under the spheres and a glossy lobe on the main
sphere.

Example:
    >>> from mltrace.scene.spheres import SphereSceneParams, create_sphere_scene
    >>> scene = create_sphere_scene(SphereSceneParams(with_floor=True))
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from mltrace.camera.pinhole import Camera
from mltrace.geometry.plane import Plane
from mltrace.geometry.sphere import Sphere
from mltrace.materials.base import Material
from mltrace.materials.combined import Combined
from mltrace.materials.lambertian import Lambertian
from mltrace.materials.specular import Specular
from mltrace.scene.scene import Light, Scene, SceneObject


@dataclass
class SphereSceneParams:
    """Parameters for the reference sphere scene.

    Attributes:
        light_position: Position of the point light.
        light_color: Emitted colour of the light.
        main_color: Colour of the unit sphere at the origin.
        left_color: Colour of the small sphere at (-1, -1, -1).
        right_color: Colour of the tiny sphere at (1, 1, -1).
        floor_color: Colour of the optional floor plane.
        with_floor: Add a horizontal plane at y = -1.
        glossiness: Weight of the specular lobe mixed into the main sphere
            (0 keeps it purely diffuse).
        gloss_exponent: Sharpness of that lobe.
        fov: Camera field of view in radians.
    """

    light_position: tuple[float, float, float] = (2.0, 2.0, -2.0)
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    main_color: tuple[float, float, float] = (1.0, 0.5, 0.5)
    left_color: tuple[float, float, float] = (0.5, 1.0, 0.5)
    right_color: tuple[float, float, float] = (0.5, 0.5, 1.0)
    floor_color: tuple[float, float, float] = (0.8, 0.8, 0.8)
    with_floor: bool = False
    glossiness: float = 0.0
    gloss_exponent: float = 20.0
    fov: float = math.pi / 5.0


def _main_material(params: SphereSceneParams) -> Material:
    diffuse = Lambertian(params.main_color)
    if params.glossiness <= 0.0:
        return diffuse
    return Combined(
        [
            (1.0 - params.glossiness, diffuse),
            (params.glossiness, Specular((1.0, 1.0, 1.0), params.gloss_exponent)),
        ]
    )


def create_sphere_scene(params: SphereSceneParams | None = None) -> Scene:
    """Create the reference sphere scene.

    Args:
        params: Scene parameters; defaults reproduce the reference setup.

    Returns:
        The constructed Scene.
    """
    if params is None:
        params = SphereSceneParams()
    if not 0.0 <= params.glossiness <= 1.0:
        raise ValueError(f"glossiness must be in [0, 1], got {params.glossiness}")

    camera = Camera(
        position=(0.0, 0.0, -4.0),
        facing=(0.0, 0.0, 1.0),
        up=(0.0, 1.0, 0.0),
        fov=params.fov,
    )
    objects = [
        SceneObject(Sphere((0.0, 0.0, 0.0), 1.0), _main_material(params)),
        SceneObject(Sphere((-1.0, -1.0, -1.0), 0.5), Lambertian(params.left_color)),
        SceneObject(Sphere((1.0, 1.0, -1.0), 0.2), Lambertian(params.right_color)),
    ]
    if params.with_floor:
        objects.append(
            SceneObject(Plane((0.0, -1.0, 0.0), (0.0, 1.0, 0.0)), Lambertian(params.floor_color))
        )
    lights = [Light(params.light_position, params.light_color)]
    return Scene(camera=camera, lights=lights, objects=objects)


def create_single_sphere_scene(
    light_position: tuple[float, float, float] = (1.5, 1.5, -1.5),
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    sphere_color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    fov: float = math.pi / 5.0,
) -> Scene:
    """A single white unit sphere at the origin with one light.

    Useful as the smallest scene that still exercises occlusion and the
    light-side chain.
    """
    camera = Camera((0.0, 0.0, -4.0), (0.0, 0.0, 1.0), (0.0, 1.0, 0.0), fov)
    return Scene(
        camera=camera,
        lights=[Light(light_position, light_color)],
        objects=[SceneObject(Sphere((0.0, 0.0, 0.0), 1.0), Lambertian(sphere_color))],
    )
