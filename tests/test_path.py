"""Unit tests for the path model.

Tests cover:
- Path shape invariant and immutability
- Measure: light density, geometry and scattering terms, occlusion
- Initial bidirectional proposal
- Bidirectional mutation: locality, shape and failure cases
"""

import math

import numpy as np
import pytest


def _one_bounce_path(scene):
    """Light -> (0, 0, -1) on the unit sphere -> camera."""
    from mltrace.core.path import Path
    from mltrace.core.ray import vec3

    light = scene.lights[0]
    return Path(
        light,
        (light.position, vec3(0, 0, -1), vec3(0, 0, -4)),
        (vec3(0, 0, -1),),
        (scene.objects[0],),
    )


class TestPathShape:
    """Tests for Path construction."""

    def test_shape_invariant(self, single_sphere_scene):
        """Test len(points) == len(objects) + 2 == len(normals) + 2."""
        path = _one_bounce_path(single_sphere_scene)
        assert len(path.points) == len(path.objects) + 2 == len(path.normals) + 2
        assert path.interior_count == 1
        assert len(path) == 3

    def test_shape_mismatch_raises(self, single_sphere_scene):
        """Test mismatched point/normal/object counts are rejected."""
        from mltrace.core.path import Path
        from mltrace.core.ray import vec3

        light = single_sphere_scene.lights[0]
        with pytest.raises(ValueError):
            Path(light, (light.position, vec3(0, 0, -4)), (vec3(0, 0, 1),), ())
        with pytest.raises(ValueError):
            Path(
                light,
                (light.position, vec3(0, 0, -4)),
                (vec3(0, 0, 1),),
                (single_sphere_scene.objects[0],),
            )

    def test_points_are_read_only(self, single_sphere_scene):
        """Test path vertices cannot be edited in place."""
        path = _one_bounce_path(single_sphere_scene)
        with pytest.raises(ValueError):
            path.points[1][0] = 3.0

    def test_endpoints(self, single_sphere_scene):
        """Test the first point is the light and the last the camera."""
        path = _one_bounce_path(single_sphere_scene)
        assert np.array_equal(path.points[0], path.light.position)
        assert np.allclose(path.camera_position, [0, 0, -4])


class TestMeasure:
    """Tests for measure and contribution."""

    def test_direct_path_measure_is_light_density(self, single_sphere_scene):
        """Test a path without surfaces measures 1 / (4 pi)."""
        from mltrace.core.path import Path, measure
        from mltrace.core.ray import vec3

        light = single_sphere_scene.lights[0]
        path = Path(light, (light.position, vec3(0, 0, -4)), (), ())
        assert measure(path, single_sphere_scene) == pytest.approx(1.0 / (4.0 * math.pi))

    def test_one_bounce_measure(self, single_sphere_scene):
        """Test the measure multiplies the geometry term and bsdf luminance."""
        from mltrace.core.path import measure

        path = _one_bounce_path(single_sphere_scene)
        dist2 = 1.5**2 + 1.5**2 + 0.5**2
        geometry = (0.5 / math.sqrt(dist2)) / (1.0 + 0.1 * dist2)
        expected = geometry / (4.0 * math.pi)
        assert measure(path, single_sphere_scene) == pytest.approx(expected)

    def test_colour_scales_contribution(self, camera):
        """Test the contribution carries the surface colour per channel."""
        from mltrace.core.path import Path, contribution
        from mltrace.core.ray import vec3
        from mltrace.geometry.sphere import Sphere
        from mltrace.materials.lambertian import Lambertian
        from mltrace.scene.scene import Light, Scene, SceneObject

        ball = SceneObject(Sphere((0, 0, 0), 1.0), Lambertian((1.0, 0.5, 0.0)))
        light = Light((1.5, 1.5, -1.5), (1, 1, 1))
        scene = Scene(camera, [light], [ball])
        path = Path(
            light,
            (light.position, vec3(0, 0, -1), vec3(0, 0, -4)),
            (vec3(0, 0, -1),),
            (ball,),
        )
        value = contribution(path, scene)
        assert value[0] > 0.0
        assert value[1] == pytest.approx(0.5 * value[0])
        assert value[2] == 0.0

    def test_occluded_path_measures_zero(self, camera):
        """Test an occluder strictly between two vertices zeroes the measure."""
        from mltrace.core.path import Path, contribution, measure
        from mltrace.core.ray import vec3
        from mltrace.geometry.sphere import Sphere
        from mltrace.materials.lambertian import Lambertian
        from mltrace.scene.scene import Light, Scene, SceneObject

        ball = SceneObject(Sphere((0, 0, 0), 1.0), Lambertian((1, 1, 1)))
        blocker = SceneObject(Sphere((0.75, 0.75, -1.25), 0.2), Lambertian((1, 1, 1)))
        light = Light((1.5, 1.5, -1.5), (1, 1, 1))
        scene = Scene(camera, [light], [ball, blocker])
        path = Path(
            light,
            (light.position, vec3(0, 0, -1), vec3(0, 0, -4)),
            (vec3(0, 0, -1),),
            (ball,),
        )
        assert measure(path, scene) == 0.0
        assert not np.any(contribution(path, scene))

    def test_back_facing_vertex_measures_zero(self, single_sphere_scene):
        """Test a vertex lit from behind its surface contributes nothing."""
        from mltrace.core.path import Path, measure
        from mltrace.core.ray import vec3

        light = single_sphere_scene.lights[0]
        # far side of the sphere, facing away from the light
        path = Path(
            light,
            (light.position, vec3(0, 0, 1), vec3(0, 0, -4)),
            (vec3(0, 0, 1),),
            (single_sphere_scene.objects[0],),
        )
        assert measure(path, single_sphere_scene) == 0.0

    def test_black_surface_measures_zero(self, camera):
        """Test a black surface short-circuits the measure to zero."""
        from mltrace.core.path import Path, measure
        from mltrace.core.ray import vec3
        from mltrace.geometry.sphere import Sphere
        from mltrace.materials.lambertian import Lambertian
        from mltrace.scene.scene import Light, Scene, SceneObject

        ball = SceneObject(Sphere((0, 0, 0), 1.0), Lambertian((0, 0, 0)))
        light = Light((1.5, 1.5, -1.5), (1, 1, 1))
        scene = Scene(camera, [light], [ball])
        path = Path(
            light,
            (light.position, vec3(0, 0, -1), vec3(0, 0, -4)),
            (vec3(0, 0, -1),),
            (ball,),
        )
        assert measure(path, scene) == 0.0

    def test_measure_non_negative_and_zero_only_when_blocked(self, enclosed_scene, rng):
        """Test proposed paths have finite measure >= 0, zero exactly when blocked."""
        from mltrace.core.path import measure, propose_path, vertex_factors

        light = enclosed_scene.lights[0]
        for _ in range(200):
            x, y = rng.uniform(-1.0, 1.0, size=2)
            _, path = propose_path(x, y, light, enclosed_scene, rng)
            m = measure(path, enclosed_scene)
            assert m >= 0.0
            assert math.isfinite(m)
            blocked = vertex_factors(path, enclosed_scene) is None
            assert (m == 0.0) == blocked


class TestProposePath:
    """Tests for the initial bidirectional proposal."""

    def test_primary_hit_is_camera_neighbour(self, single_sphere_scene, rng):
        """Test the camera ray's hit becomes the vertex next to the camera."""
        from mltrace.core.path import propose_path

        light = single_sphere_scene.lights[0]
        for _ in range(20):
            probability, path = propose_path(0.0, 0.0, light, single_sphere_scene, rng)
            assert path.interior_count >= 1
            assert np.allclose(path.points[-2], [0, 0, -1])
            assert np.allclose(path.points[-1], [0, 0, -4])
            assert np.array_equal(path.points[0], light.position)
            assert 0.0 < probability <= 1.0

    def test_camera_miss_gives_direct_path(self, single_sphere_scene, rng):
        """Test a primary ray that misses leaves just the light and the camera."""
        from mltrace.core.path import propose_path

        light = single_sphere_scene.lights[0]
        probability, path = propose_path(0.99, 0.99, light, single_sphere_scene, rng)
        assert path.interior_count == 0
        assert len(path.points) == 2
        assert probability == 1.0

    def test_paths_keep_shape_and_are_bounded(self, enclosed_scene, rng):
        """Test proposals satisfy the shape invariant and the chain cap."""
        from mltrace.core.path import MAX_CHAIN_VERTICES, propose_path

        light = enclosed_scene.lights[0]
        for _ in range(200):
            x, y = rng.uniform(-1.0, 1.0, size=2)
            probability, path = propose_path(x, y, light, enclosed_scene, rng)
            assert len(path.points) == len(path.objects) + 2 == len(path.normals) + 2
            assert 1 <= path.interior_count <= 2 * MAX_CHAIN_VERTICES
            assert 0.0 < probability <= 1.0
            for obj in path.objects:
                assert any(obj is o for o in enclosed_scene.objects)

    def test_chains_stop_at_vertex_cap(self, enclosed_scene, rng, monkeypatch):
        """Test construction stops at MAX_CHAIN_VERTICES per chain when every flip continues."""
        import mltrace.core.path as path_module
        from mltrace.core.path import MAX_CHAIN_VERTICES, propose_path

        monkeypatch.setattr(path_module, "CONTINUE_CHANCE", 1.0)
        light = enclosed_scene.lights[0]
        probability, path = propose_path(0.0, 0.0, light, enclosed_scene, rng)

        assert path.interior_count == 2 * MAX_CHAIN_VERTICES
        assert len(path.points) == 2 * MAX_CHAIN_VERTICES + 2
        assert probability > 0.0

    def test_probability_counts_coin_flips_and_densities(self, enclosed_scene, rng):
        """Test the returned probability multiplies successful flips and densities."""
        from mltrace.core.path import CONTINUE_CHANCE, propose_path
        from mltrace.scene.scene import LIGHT_PDF

        light = enclosed_scene.lights[0]
        light_started = CONTINUE_CHANCE * LIGHT_PDF
        seen = set()
        for _ in range(300):
            probability, path = propose_path(0.0, 0.0, light, enclosed_scene, rng)
            n = path.interior_count
            seen.add(n)
            if n == 1:
                # the light chain was never started
                assert probability == 1.0
            elif n == 2:
                # light chain started, no scattering step followed
                assert probability == pytest.approx(light_started)
            else:
                assert probability < light_started
        assert {1, 2} <= seen


def _long_path(scene, rng, minimum):
    from mltrace.core.path import propose_path

    light = scene.lights[0]
    for _ in range(2000):
        _, path = propose_path(0.0, 0.0, light, scene, rng)
        if path.interior_count >= minimum:
            return path
    raise AssertionError("could not build a long enough path")


class TestMutation:
    """Tests for bidirectional mutation."""

    def test_nothing_to_mutate(self, single_sphere_scene, rng):
        """Test a path without interior vertices cannot be mutated."""
        from mltrace.core.path import Path, mutate
        from mltrace.core.ray import vec3

        light = single_sphere_scene.lights[0]
        path = Path(light, (light.position, vec3(0, 0, -4)), (), ())
        assert mutate(path, single_sphere_scene, rng) is None

    def test_invalid_ranges_raise(self, enclosed_scene, rng):
        """Test out-of-range indices and counts are rejected."""
        from mltrace.core.path import bidirectional_mutation

        path = _long_path(enclosed_scene, rng, 2)
        n = path.interior_count
        with pytest.raises(ValueError):
            bidirectional_mutation(path, enclosed_scene, rng, 1, 0, 1, 1)
        with pytest.raises(ValueError):
            bidirectional_mutation(path, enclosed_scene, rng, 0, n, 1, 1)
        with pytest.raises(ValueError):
            bidirectional_mutation(path, enclosed_scene, rng, 0, 0, 3, 0)

    def test_empty_join_aborts(self, enclosed_scene, rng):
        """Test start == end with nothing regenerated is rejected as degenerate."""
        from mltrace.core.path import bidirectional_mutation

        path = _long_path(enclosed_scene, rng, 1)
        assert bidirectional_mutation(path, enclosed_scene, rng, 0, 0, 0, 0) is None

    @pytest.mark.parametrize("counts", [(1, 0), (0, 1), (1, 1), (2, 2)])
    def test_mutation_is_local(self, enclosed_scene, rng, counts):
        """Test vertices outside the replaced segment are kept verbatim."""
        from mltrace.core.path import bidirectional_mutation

        path = _long_path(enclosed_scene, rng, 3)
        n = path.interior_count
        start, end = 0, 2
        light_count, camera_count = counts

        result = bidirectional_mutation(
            path, enclosed_scene, rng, start, end, light_count, camera_count
        )
        assert result is not None
        probability, new_path = result
        assert probability > 0.0

        assert new_path.interior_count == (start + 1) + light_count + camera_count + (n - end)
        assert new_path.light is path.light
        for old, new in zip(path.points[: start + 2], new_path.points):
            assert np.array_equal(old, new)
        for old, new in zip(reversed(path.points[end + 1 :]), reversed(new_path.points)):
            assert np.array_equal(old, new)
        for old, new in zip(path.objects[: start + 1], new_path.objects):
            assert old is new
        for old, new in zip(reversed(path.objects[end:]), reversed(new_path.objects)):
            assert old is new

    def test_mutation_leaves_original_untouched(self, enclosed_scene, rng):
        """Test the current path is unchanged by mutating it."""
        from mltrace.core.path import mutate

        path = _long_path(enclosed_scene, rng, 2)
        before = [p.copy() for p in path.points]
        for _ in range(20):
            mutate(path, enclosed_scene, rng)
        assert all(np.array_equal(a, b) for a, b in zip(before, path.points))

    def test_mutate_keeps_shape(self, enclosed_scene, rng):
        """Test successful mutations yield valid paths with positive density."""
        from mltrace.core.path import mutate

        path = _long_path(enclosed_scene, rng, 2)
        successes = 0
        for _ in range(100):
            result = mutate(path, enclosed_scene, rng)
            if result is None:
                continue
            successes += 1
            probability, new_path = result
            assert 0.0 < probability < 1.0
            assert len(new_path.points) == len(new_path.objects) + 2
            assert np.array_equal(new_path.points[-1], path.points[-1])
            assert np.array_equal(new_path.points[-2], path.points[-2])
        assert successes > 0

    def test_miss_aborts(self, single_sphere_scene, rng):
        """Test regenerating from a convex sphere into empty space fails."""
        from mltrace.core.path import bidirectional_mutation

        path = _one_bounce_path(single_sphere_scene)
        assert bidirectional_mutation(path, single_sphere_scene, rng, 0, 0, 1, 0) is None

    def test_non_finite_hit_aborts(self, enclosed_scene, rng, monkeypatch):
        """Test a regenerated vertex at a non-finite point aborts the mutation."""
        from mltrace.core.path import bidirectional_mutation
        from mltrace.core.ray import vec3
        from mltrace.scene.scene import Hit

        path = _one_bounce_path(enclosed_scene)
        far = enclosed_scene.objects[1]
        monkeypatch.setattr(
            enclosed_scene, "cast", lambda ray: Hit(math.inf, vec3(0, 0, -1), far)
        )
        assert bidirectional_mutation(path, enclosed_scene, rng, 0, 0, 1, 0) is None
