"""Unit tests for the scene container and nearest-hit casting."""

import math

import numpy as np
import pytest


def _white():
    from mltrace.materials.lambertian import Lambertian

    return Lambertian((1.0, 1.0, 1.0))


class TestLight:
    """Tests for point lights."""

    def test_arrays_are_read_only(self):
        """Test light position and colour cannot be modified."""
        from mltrace.scene.scene import Light

        light = Light((1, 2, 3), (1, 1, 1))
        with pytest.raises(ValueError):
            light.position[0] = 5.0
        with pytest.raises(ValueError):
            light.color[0] = 5.0

    def test_negative_color_raises(self):
        """Test negative light colours are rejected."""
        from mltrace.scene.scene import Light

        with pytest.raises(ValueError):
            Light((0, 0, 0), (1, -1, 1))

    def test_propose_density(self, rng):
        """Test the emission density is 1 / (4 pi) and directions are unit."""
        from mltrace.core.ray import length
        from mltrace.scene.scene import LIGHT_PDF, Light

        light = Light((0, 0, 0), (1, 1, 1))
        for _ in range(50):
            pdf, direction = light.propose(rng)
            assert pdf == LIGHT_PDF == pytest.approx(1.0 / (4.0 * math.pi))
            assert length(direction) == pytest.approx(1.0)

    def test_propose_is_uniform(self, rng):
        """Test emission directions cover the sphere evenly."""
        from mltrace.scene.scene import Light

        light = Light((0, 0, 0), (1, 1, 1))
        directions = np.array([light.propose(rng)[1] for _ in range(4000)])
        assert np.allclose(directions.mean(axis=0), 0.0, atol=0.05)
        # Each octant holds about 1/8 of the samples
        octants = (directions > 0.0) @ np.array([1, 2, 4])
        counts = np.bincount(octants, minlength=8) / len(directions)
        assert np.allclose(counts, 0.125, atol=0.03)


class TestScene:
    """Tests for Scene construction and cast."""

    def test_requires_lights(self, camera):
        """Test a scene without lights is rejected."""
        from mltrace.geometry.sphere import Sphere
        from mltrace.scene.scene import Scene, SceneObject

        with pytest.raises(ValueError):
            Scene(camera, [], [SceneObject(Sphere((0, 0, 0), 1.0), _white())])

    def test_requires_objects(self, camera):
        """Test a scene without objects is rejected."""
        from mltrace.scene.scene import Light, Scene

        with pytest.raises(ValueError):
            Scene(camera, [Light((0, 0, 0), (1, 1, 1))], [])

    def test_cast_returns_nearest(self, camera):
        """Test cast picks the closest of several hits, regardless of order."""
        from mltrace.core.ray import Ray, vec3
        from mltrace.geometry.sphere import Sphere
        from mltrace.scene.scene import Light, Scene, SceneObject

        far = SceneObject(Sphere((0, 0, 5), 1.0), _white())
        near = SceneObject(Sphere((0, 0, 0), 1.0), _white())
        scene = Scene(camera, [Light((0, 5, 0), (1, 1, 1))], [far, near])

        hit = scene.cast(Ray(vec3(0, 0, -4), vec3(0, 0, 1)))
        assert hit is not None
        assert hit.obj is near
        assert hit.t == pytest.approx(3.0)
        assert np.allclose(hit.normal, [0, 0, -1])

    def test_cast_miss(self, single_sphere_scene):
        """Test a ray that hits nothing returns None."""
        from mltrace.core.ray import Ray, vec3

        assert single_sphere_scene.cast(Ray(vec3(0, 0, -4), vec3(0, 1, 0))) is None

    def test_cast_degenerate_direction(self, single_sphere_scene):
        """Test zero and NaN directions are treated as misses."""
        from mltrace.core.ray import Ray, vec3

        assert single_sphere_scene.cast(Ray(vec3(0, 0, -4), vec3(0, 0, 0))) is None
        assert single_sphere_scene.cast(Ray(vec3(0, 0, -4), vec3(np.nan, 0, 1))) is None

    def test_objects_are_shared(self, single_sphere_scene):
        """Test hits reference the scene's own objects, not copies."""
        from mltrace.core.ray import Ray, vec3

        hit = single_sphere_scene.cast(Ray(vec3(0, 0, -4), vec3(0, 0, 1)))
        assert hit.obj is single_sphere_scene.objects[0]

    def test_mixed_shapes(self, camera):
        """Test spheres and planes can share a scene."""
        from mltrace.core.ray import Ray, vec3
        from mltrace.geometry.plane import Plane
        from mltrace.geometry.sphere import Sphere
        from mltrace.scene.scene import Light, Scene, SceneObject

        floor = SceneObject(Plane((0, -1, 0), (0, 1, 0)), _white())
        ball = SceneObject(Sphere((0, 0, 0), 1.0), _white())
        scene = Scene(camera, [Light((0, 5, 0), (1, 1, 1))], [floor, ball])

        hit = scene.cast(Ray(vec3(0, 3, 0), vec3(0, -1, 0)))
        assert hit.obj is ball
        hit = scene.cast(Ray(vec3(3, 3, 0), vec3(0, -1, 0)))
        assert hit.obj is floor


class TestSphereScene:
    """Tests for the reference sphere scene."""

    def test_default_layout(self):
        """Test the default scene has three spheres and one light."""
        from mltrace.scene.spheres import create_sphere_scene

        scene = create_sphere_scene()
        assert len(scene.objects) == 3
        assert len(scene.lights) == 1
        assert np.allclose(scene.lights[0].position, [2, 2, -2])
        assert np.allclose(scene.camera.position, [0, 0, -4])

    def test_floor_and_gloss(self):
        """Test the optional floor and glossy main sphere."""
        from mltrace.materials.combined import Combined
        from mltrace.scene.spheres import SphereSceneParams, create_sphere_scene

        scene = create_sphere_scene(SphereSceneParams(with_floor=True, glossiness=0.3))
        assert len(scene.objects) == 4
        assert isinstance(scene.objects[0].material, Combined)

    def test_invalid_glossiness(self):
        """Test glossiness outside [0, 1] is rejected."""
        from mltrace.scene.spheres import SphereSceneParams, create_sphere_scene

        with pytest.raises(ValueError):
            create_sphere_scene(SphereSceneParams(glossiness=1.5))
