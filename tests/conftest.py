"""Pytest configuration for mltrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import math

import numpy as np
import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. Only the preview
    window field needs it.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture
def rng():
    """A seeded generator so sampling tests are reproducible."""
    return np.random.default_rng(12345)


@pytest.fixture
def camera():
    """Camera at (0, 0, -4) looking down +z."""
    from mltrace.camera.pinhole import Camera

    return Camera((0.0, 0.0, -4.0), (0.0, 0.0, 1.0), (0.0, 1.0, 0.0), math.pi / 5)


@pytest.fixture
def single_sphere_scene():
    """White unit sphere at the origin, white light at (1.5, 1.5, -1.5)."""
    from mltrace.scene.spheres import create_single_sphere_scene

    return create_single_sphere_scene()


@pytest.fixture
def enclosed_scene(camera):
    """Unit sphere inside a large grey sphere, so every cast hits something."""
    from mltrace.geometry.sphere import Sphere
    from mltrace.materials.lambertian import Lambertian
    from mltrace.scene.scene import Light, Scene, SceneObject

    return Scene(
        camera=camera,
        lights=[Light((1.5, 1.5, -1.5), (1.0, 1.0, 1.0))],
        objects=[
            SceneObject(Sphere((0.0, 0.0, 0.0), 1.0), Lambertian((1.0, 1.0, 1.0))),
            SceneObject(Sphere((0.0, 0.0, 0.0), 10.0), Lambertian((0.5, 0.5, 0.5))),
        ],
    )
