"""Light-to-camera path model: construction, measure and mutation.

A path is an ordered chain of vertices ``v0 .. vk`` where ``v0`` is a light
position, ``vk`` is the camera position and every interior vertex lies on a
surface of the scene. Interior vertex ``i`` (stored at ``points[i + 1]``) has
the normal ``normals[i]`` and the object ``objects[i]``, so a path always has
exactly two more points than surfaces.

Paths are immutable values. Mutation builds a new Path and leaves the current
one untouched, which lets the Metropolis sampler throw a rejected candidate
away without any bookkeeping.

The three operations here are:

* ``propose_path``: bidirectional construction of an initial path from a point
  on the image plane and a light, returning the joint density of every random
  choice that was made.
* ``measure``: the unnormalized scalar importance of a path, used inside the
  acceptance ratio. ``contribution`` is the colour-valued counterpart used when
  a path is recorded into the image.
* ``mutate``: bidirectional segment replacement, returning the new path and
  the joint density of the mutation's random choices.

Example:
    >>> import numpy as np
    >>> from mltrace.core.path import measure, mutate, propose_path
    >>> rng = np.random.default_rng(7)
    >>> probability, path = propose_path(0.0, 0.0, scene.lights[0], scene, rng)
    >>> m = measure(path, scene)
    >>> candidate = mutate(path, scene, rng)  # None if the mutation missed
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from mltrace.core.ray import (
    Color,
    Ray,
    Vec3,
    angle_between,
    dot,
    is_finite,
    length_squared,
    luminance,
    project_onto_plane,
)
from mltrace.geometry.sphere import MIN_DIST
from mltrace.scene.scene import LIGHT_PDF, Light, SceneObject

if TYPE_CHECKING:
    from mltrace.scene.scene import Scene

# =============================================================================
# Sampling Constants
# =============================================================================

# Chance of adding another step to a growing chain
CONTINUE_CHANCE = 0.5

# Factor for light attenuation over distance
DISTANCE_FACTOR = 0.1

# Hard cap on interior vertices per chain during construction
MAX_CHAIN_VERTICES = 32

# Largest number of vertices regenerated on each side by one mutation
MAX_REGENERATED = 2

# A hit at t < 1 - OCCLUSION_TOLERANCE lies strictly before the neighbour
OCCLUSION_TOLERANCE = 1e-6


def _freeze(v: Vec3) -> Vec3:
    if v.flags.writeable:
        v = v.copy()
        v.setflags(write=False)
    return v


@dataclass(frozen=True, eq=False)
class Path:
    """Ordered light-to-camera chain of vertices.

    Attributes:
        light: The light this path starts from.
        points: Vertex positions, ``points[0]`` at the light and
            ``points[-1]`` at the camera.
        normals: Surface normal at each interior vertex.
        objects: Object hit at each interior vertex (shared references).

    Raises:
        ValueError: If the shape invariant
            ``len(points) == len(objects) + 2 == len(normals) + 2`` is broken.
    """

    light: Light
    points: tuple[Vec3, ...]
    normals: tuple[Vec3, ...]
    objects: tuple[SceneObject, ...]

    def __post_init__(self) -> None:
        points = tuple(_freeze(p) for p in self.points)
        normals = tuple(_freeze(n) for n in self.normals)
        objects = tuple(self.objects)
        if not (len(points) == len(objects) + 2 == len(normals) + 2):
            raise ValueError(
                f"Path shape mismatch: {len(points)} points, {len(normals)} normals, "
                f"{len(objects)} objects"
            )
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "normals", normals)
        object.__setattr__(self, "objects", objects)

    @property
    def interior_count(self) -> int:
        """Number of surface vertices between the light and the camera."""
        return len(self.objects)

    @property
    def camera_position(self) -> Vec3:
        return self.points[-1]

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        return f"Path(vertices={len(self.points)}, interior={len(self.objects)})"


# =============================================================================
# Measure
# =============================================================================


def vertex_factors(path: Path, scene: Scene) -> list[tuple[float, Color]] | None:
    """Per-vertex geometry and scattering factors along a path.

    For every interior vertex, in order from the light:

    1. re-cast a ray from the vertex toward its light-side neighbour; a hit
       strictly before the neighbour means the segment is occluded;
    2. the geometry term ``(incoming_hat . normal) / (1 + DISTANCE_FACTOR |incoming|^2)``;
    3. the scattering value at the angles between incoming/outgoing and the
       normal, with the azimuth measured between their tangent-plane
       projections.

    Returns:
        A list of ``(geometry, bsdf_color)`` pairs, or None when a segment is
        occluded, back-facing or degenerate (zero length, non-finite).
    """
    factors: list[tuple[float, Color]] = []
    points = path.points
    for i, obj in enumerate(path.objects):
        x0 = points[i]
        x1 = points[i + 1]
        x2 = points[i + 2]
        incoming = x0 - x1
        outgoing = x2 - x1
        normal = path.normals[i]

        dist2 = length_squared(incoming)
        if not (dist2 > 0.0 and math.isfinite(dist2)) or length_squared(outgoing) == 0.0:
            return None

        # check occlusion
        hit = scene.cast(Ray(x1, incoming))
        if hit is not None and hit.t < 1.0 - OCCLUSION_TOLERANCE:
            return None

        cosine = dot(incoming, normal) / math.sqrt(dist2)
        if not cosine > 0.0:
            # back side of the surface the vertex sits on
            return None
        geometry = cosine / (1.0 + DISTANCE_FACTOR * dist2)

        phi_in = angle_between(incoming, normal)
        phi_out = angle_between(outgoing, normal)
        theta = angle_between(
            project_onto_plane(incoming, normal),
            project_onto_plane(outgoing, normal),
        )
        factors.append((geometry, obj.material.evaluate(phi_in, theta, phi_out)))
    return factors


def measure(path: Path, scene: Scene) -> float:
    """Unnormalized scalar importance of a path.

    Starts from the light sampling density 1/(4π) and multiplies, per interior
    vertex, the geometry term and the luminance of the scattering value.

    Returns:
        A non-negative finite number; exactly 0.0 for occluded or degenerate
        paths.
    """
    factors = vertex_factors(path, scene)
    if factors is None:
        return 0.0
    value = LIGHT_PDF
    for geometry, bsdf in factors:
        value *= geometry * luminance(bsdf)
        if value == 0.0:
            return 0.0
    if not math.isfinite(value) or value < 0.0:
        return 0.0
    return value


def contribution(path: Path, scene: Scene) -> Color:
    """Colour-valued product of every per-vertex factor (zero when occluded)."""
    factors = vertex_factors(path, scene)
    result = np.ones(3, dtype=np.float64)
    if factors is None:
        return np.zeros(3, dtype=np.float64)
    for geometry, bsdf in factors:
        result *= geometry * bsdf
    return result


# =============================================================================
# Initial Proposal
# =============================================================================


class _Chain:
    """Append-only vertex chain grown from one end of a path."""

    def __init__(self, origin: Vec3) -> None:
        self.points: list[Vec3] = [origin]
        self.normals: list[Vec3] = []
        self.objects: list[SceneObject] = []

    @property
    def size(self) -> int:
        return len(self.objects)

    def cast_from_tip(self, scene: Scene, direction: Vec3) -> bool:
        """Cast from the current tip and append the hit. False on a miss."""
        ray = Ray(self.points[-1], direction)
        hit = scene.cast(ray)
        if hit is None:
            return False
        point = ray.at(hit.t)
        if not is_finite(point):
            return False
        self.points.append(point)
        self.normals.append(hit.normal)
        self.objects.append(hit.obj)
        return True

    def scatter(self, scene: Scene, rng: np.random.Generator) -> float | None:
        """Extend by sampling the tip's material.

        Returns:
            The direction density, or None if the cast missed.
        """
        pdf, direction = self.objects[-1].material.propose(self.normals[-1], rng)
        if not self.cast_from_tip(scene, direction):
            return None
        return pdf


def propose_path(
    plane_x: float,
    plane_y: float,
    light: Light,
    scene: Scene,
    rng: np.random.Generator,
) -> tuple[float, Path]:
    """Build an initial path by growing a camera chain and a light chain.

    The camera chain starts with the primary ray through image-plane point
    ``(plane_x, plane_y)``. After a camera hit, a CONTINUE_CHANCE coin decides
    whether to start the light chain with a uniform-sphere emission sample.
    Chains then grow alternately (camera, light), each extension gated by its
    own coin flip. Growth stops at the first failed flip, the first miss or
    when a chain reaches MAX_CHAIN_VERTICES.

    Args:
        plane_x: Horizontal image-plane coordinate in [-1, 1).
        plane_y: Vertical image-plane coordinate in [-1, 1) (up is positive).
        light: The light anchoring the path.
        scene: The scene to cast into.
        rng: The worker's random generator.

    Returns:
        Tuple of (probability, path) where probability is the product of every
        successful coin flip's chance and every direction sampling density.
    """
    camera = scene.camera
    probability = 1.0
    light_chain = _Chain(light.position)
    camera_chain = _Chain(camera.position)

    if camera_chain.cast_from_tip(scene, camera.primary_direction(plane_x, plane_y)):
        if rng.random() < CONTINUE_CHANCE:
            probability *= CONTINUE_CHANCE
            pdf, direction = light.propose(rng)
            probability *= pdf
            if light_chain.cast_from_tip(scene, direction):
                while (
                    camera_chain.size < MAX_CHAIN_VERTICES
                    and light_chain.size < MAX_CHAIN_VERTICES
                ):
                    if rng.random() >= CONTINUE_CHANCE:
                        break
                    probability *= CONTINUE_CHANCE
                    pdf = camera_chain.scatter(scene, rng)
                    if pdf is None:
                        break
                    probability *= pdf

                    if rng.random() >= CONTINUE_CHANCE:
                        break
                    probability *= CONTINUE_CHANCE
                    pdf = light_chain.scatter(scene, rng)
                    if pdf is None:
                        break
                    probability *= pdf

    path = Path(
        light=light,
        points=tuple(light_chain.points) + tuple(reversed(camera_chain.points)),
        normals=tuple(light_chain.normals) + tuple(reversed(camera_chain.normals)),
        objects=tuple(light_chain.objects) + tuple(reversed(camera_chain.objects)),
    )
    return probability, path


# =============================================================================
# Mutation
# =============================================================================


class MutationKind(Enum):
    """Available mutation strategies."""

    BIDIRECTIONAL = "bidirectional"


def _regenerate(
    scene: Scene,
    rng: np.random.Generator,
    point: Vec3,
    normal: Vec3,
    obj: SceneObject,
    count: int,
) -> tuple[float, list[Vec3], list[Vec3], list[SceneObject]] | None:
    """Grow ``count`` fresh vertices away from an existing one."""
    probability = 1.0
    points: list[Vec3] = []
    normals: list[Vec3] = []
    objects: list[SceneObject] = []
    for _ in range(count):
        pdf, direction = obj.material.propose(normal, rng)
        if not pdf > 0.0:
            return None
        probability *= pdf
        ray = Ray(point, direction)
        hit = scene.cast(ray)
        if hit is None:
            return None
        point = ray.at(hit.t)
        if not is_finite(point):
            return None
        normal = hit.normal
        obj = hit.obj
        points.append(point)
        normals.append(normal)
        objects.append(obj)
    return probability, points, normals, objects


def bidirectional_mutation(
    path: Path,
    scene: Scene,
    rng: np.random.Generator,
    start: int,
    end: int,
    light_count: int,
    camera_count: int,
) -> tuple[float, Path] | None:
    """Replace the interior vertices strictly between ``start`` and ``end``.

    Interior vertices ``0..start`` and ``end..n-1`` (and the light and camera
    endpoints) are kept verbatim. ``light_count`` new vertices are grown from
    interior vertex ``start`` and ``camera_count`` from interior vertex
    ``end``; the camera-side run is reversed so the result stays ordered from
    the light.

    Args:
        path: The current path.
        scene: The scene to cast into.
        rng: The worker's random generator.
        start: Light-side kept interior index.
        end: Camera-side kept interior index, ``start <= end``.
        light_count: Vertices to grow from ``start`` (0..MAX_REGENERATED).
        camera_count: Vertices to grow from ``end`` (0..MAX_REGENERATED).

    Returns:
        Tuple of (probability, new_path) where probability is the product of
        the direction densities drawn, or None if a cast missed or landed on a
        non-finite point, a density was zero or a join produced a zero-length
        segment.

    Raises:
        ValueError: If the indices or counts are out of range.
    """
    n = path.interior_count
    if not 0 <= start <= end < n:
        raise ValueError(f"Need 0 <= start <= end < {n}, got start={start}, end={end}")
    for count in (light_count, camera_count):
        if not 0 <= count <= MAX_REGENERATED:
            raise ValueError(f"Regenerated vertex count must be in [0, {MAX_REGENERATED}]")

    light_side = _regenerate(
        scene, rng, path.points[start + 1], path.normals[start], path.objects[start], light_count
    )
    if light_side is None:
        return None
    camera_side = _regenerate(
        scene, rng, path.points[end + 1], path.normals[end], path.objects[end], camera_count
    )
    if camera_side is None:
        return None

    light_p, light_points, light_normals, light_objects = light_side
    camera_p, camera_points, camera_normals, camera_objects = camera_side

    points = (
        path.points[: start + 2]
        + tuple(light_points)
        + tuple(reversed(camera_points))
        + path.points[end + 1 :]
    )
    for a, b in zip(points, points[1:]):
        if length_squared(b - a) < MIN_DIST * MIN_DIST:
            return None

    new_path = Path(
        light=path.light,
        points=points,
        normals=(
            path.normals[: start + 1]
            + tuple(light_normals)
            + tuple(reversed(camera_normals))
            + path.normals[end:]
        ),
        objects=(
            path.objects[: start + 1]
            + tuple(light_objects)
            + tuple(reversed(camera_objects))
            + path.objects[end:]
        ),
    )
    return light_p * camera_p, new_path


def mutate(
    path: Path,
    scene: Scene,
    rng: np.random.Generator,
    kind: MutationKind = MutationKind.BIDIRECTIONAL,
) -> tuple[float, Path] | None:
    """Propose a local change to a path.

    For the bidirectional mutation, ``start`` is uniform over the interior
    vertices, ``end`` uniform over ``start..n-1`` and each side regenerates
    0, 1 or 2 vertices with equal chance.

    Returns:
        Tuple of (probability, new_path) with the joint density of every random
        choice made, or None when there is nothing to mutate (no interior
        vertices) or the attempt failed. A failed attempt leaves the current
        path as it is.
    """
    if kind is not MutationKind.BIDIRECTIONAL:
        raise ValueError(f"Unsupported mutation kind: {kind}")

    n = path.interior_count
    if n == 0:
        return None
    start = int(rng.integers(0, n))
    end = int(rng.integers(start, n))
    light_count = int(rng.integers(0, MAX_REGENERATED + 1))
    camera_count = int(rng.integers(0, MAX_REGENERATED + 1))
    choice_p = 1.0 / n / (n - start) / (MAX_REGENERATED + 1) ** 2

    result = bidirectional_mutation(path, scene, rng, start, end, light_count, camera_count)
    if result is None:
        return None
    sample_p, new_path = result
    return choice_p * sample_p, new_path
