"""Scene module: lights, objects and nearest-hit queries.

Components:
    scene: Scene container, Light, SceneObject and the Hit record
    spheres: Reference three-sphere scene used by the examples and tests

The scene is built once and shared read-only by every render worker:
    - Objects pair a shape (sphere, plane) with a scattering model
    - Lights are points emitting uniformly over the sphere
    - Scene.cast returns the globally nearest hit beyond MIN_DIST
"""

from .scene import (
    LIGHT_PDF,
    Hit,
    Light,
    Scene,
    SceneObject,
)

# Note: spheres is NOT imported here to avoid circular imports (it needs the
# camera, which needs core.path, which needs this package).
# Import it directly when needed:
#   from mltrace.scene.spheres import create_sphere_scene

__all__ = [
    "Scene",
    "SceneObject",
    "Light",
    "Hit",
    "LIGHT_PDF",
]
