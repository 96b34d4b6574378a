"""Unit tests for scene storage and scene-level queries.

Tests cover:
- Uploading primitives and lights, counts and capacity errors
- Closest hit across spheres, planes and mesh triangles
- Deterministic tie-breaking by test order
- Any-hit (shadow) queries and their agreement with closest hit
- Batch queries matching single-ray queries
- Direct lighting with occlusion
"""

import math

import numpy as np
import pytest
import taichi as ti


def _add_quad_mesh(z, cull_mode, material_id, half_size=1.0):
    """Upload a square in the plane z = const, facing +z, as two triangles."""
    from raycore.geometry.mesh import TriangleMesh
    from raycore.scene.intersection import add_mesh, add_triangles

    s = half_size
    mesh = TriangleMesh.from_arrays(
        [(-s, -s, z), (s, -s, z), (s, s, z), (-s, s, z)],
        [0, 1, 2, 0, 2, 3],
        cull_mode=cull_mode,
        material_id=material_id,
    )
    mesh_index = add_mesh(int(mesh.cull_mode), mesh.material_id)
    vertices, normals = mesh.world_triangles()
    return add_triangles(mesh_index, vertices, normals)


class TestSceneStorage:
    """Tests for adding primitives and counting them."""

    def test_add_and_count(self):
        from raycore.geometry.triangle import CullMode
        from raycore.scene.intersection import (
            add_light,
            add_plane,
            add_sphere,
            get_light_count,
            get_mesh_count,
            get_plane_count,
            get_sphere_count,
            get_triangle_count,
        )
        from raycore.scene.lights import LightType

        assert add_sphere((0, 0, 5), 1.0, 0) == 0
        assert add_sphere((0, 0, 9), 1.0, 0) == 1
        assert add_plane((0, 0, 0), (0, 1, 0), 0) == 0
        assert _add_quad_mesh(3.0, CullMode.NONE, 0) == 0
        assert _add_quad_mesh(4.0, CullMode.NONE, 0) == 2
        assert add_light(int(LightType.POINT), (0, 5, 0), (0, 0, 0), 1.0, (1, 1, 1)) == 0

        assert get_sphere_count() == 2
        assert get_plane_count() == 1
        assert get_mesh_count() == 2
        assert get_triangle_count() == 4
        assert get_light_count() == 1

    def test_clear_scene(self):
        from raycore.scene.intersection import (
            add_sphere,
            clear_scene,
            get_active_owner,
            get_sphere_count,
            set_active_owner,
        )

        class Owner:
            pass

        add_sphere((0, 0, 5), 1.0, 0)
        owner = Owner()
        set_active_owner(owner)
        assert get_active_owner() is owner

        clear_scene()
        assert get_sphere_count() == 0
        assert get_active_owner() is None

    def test_active_owner_is_not_kept_alive(self):
        """The storage holds its owner weakly; a dropped scene is collected."""
        import gc
        import weakref

        from raycore.scene.intersection import get_active_owner
        from raycore.scene.manager import Scene

        scene = Scene()
        scene.add_sphere((0, 0, 5), 1.0)
        scene.freeze()
        assert get_active_owner() is scene

        ref = weakref.ref(scene)
        del scene
        gc.collect()
        assert ref() is None
        assert get_active_owner() is None

    def test_triangle_upload_kernel_fills_storage(self):
        """add_triangles copies vertex and normal arrays into the fields."""
        from raycore.scene.intersection import (
            add_mesh,
            add_triangles,
            triangle_mesh_ids,
            triangle_normals,
            triangle_v0,
            triangle_v2,
        )

        mesh_index = add_mesh(2, 0)
        vertices = np.array([[[0, 0, 1], [1, 0, 1], [0, 1, 1]]], dtype=np.float64)
        normals = np.array([[0, 0, 1]], dtype=np.float64)
        first = add_triangles(mesh_index, vertices, normals)

        assert tuple(triangle_v0[first]) == pytest.approx((0.0, 0.0, 1.0))
        assert tuple(triangle_v2[first]) == pytest.approx((0.0, 1.0, 1.0))
        assert tuple(triangle_normals[first]) == pytest.approx((0.0, 0.0, 1.0))
        assert triangle_mesh_ids[first] == mesh_index

    def test_triangle_capacity(self):
        from raycore.scene.intersection import MAX_TRIANGLES, add_mesh, add_triangles

        mesh_index = add_mesh(2, 0)
        vertices = np.zeros((MAX_TRIANGLES + 1, 3, 3), dtype=np.float32)
        normals = np.zeros((MAX_TRIANGLES + 1, 3), dtype=np.float32)
        with pytest.raises(RuntimeError, match="triangles"):
            add_triangles(mesh_index, vertices, normals)

    def test_triangles_need_registered_mesh(self):
        from raycore.scene.intersection import add_triangles

        with pytest.raises(ValueError, match="mesh index"):
            add_triangles(0, np.zeros((1, 3, 3)), np.zeros((1, 3)))

    def test_triangle_normal_count_mismatch(self):
        from raycore.scene.intersection import add_mesh, add_triangles

        mesh_index = add_mesh(2, 0)
        with pytest.raises(ValueError, match="normals"):
            add_triangles(mesh_index, np.zeros((2, 3, 3)), np.zeros((1, 3)))


class TestIntersectSceneKernel:
    """Tests for intersect_scene and intersect_scene_any inside a kernel."""

    def test_closest_of_two_spheres(self):
        from raycore.core.ray import make_ray
        from raycore.scene.intersection import add_sphere, intersect_scene, intersect_scene_any, vec3

        add_sphere((0.0, 0.0, 20.0), 1.0, 1)
        add_sphere((0.0, 0.0, 10.0), 1.0, 2)

        t_val = ti.field(dtype=ti.f32, shape=())
        mat = ti.field(dtype=ti.i32, shape=())
        any_hit = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            # Serial outer loop; the scene loops must not be the outermost ones
            for _ in range(1):
                ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 1.0), 0.0, ti.math.inf)
                rec = intersect_scene(ray)
                t_val[None] = rec.t
                mat[None] = rec.material_id
                any_hit[None] = intersect_scene_any(ray)

        test_kernel()
        assert abs(t_val[None] - 9.0) < 1e-5
        assert mat[None] == 2
        assert any_hit[None] == 1

    def test_empty_scene(self):
        from raycore.core.ray import make_ray
        from raycore.scene.intersection import intersect_scene, intersect_scene_any, vec3

        hit = ti.field(dtype=ti.i32, shape=())
        any_hit = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 1.0), 0.0, ti.math.inf)
                hit[None] = intersect_scene(ray).hit
                any_hit[None] = intersect_scene_any(ray)

        test_kernel()
        assert hit[None] == 0
        assert any_hit[None] == 0


class TestClosestHitQueries:
    """Tests for query_closest_hit over mixed primitive types."""

    def test_reference_sphere(self):
        from raycore.scene.intersection import add_sphere, query_closest_hit

        add_sphere((0.0, 0.0, 100.0), 50.0, 0)
        hit = query_closest_hit((0, 0, 0), (0, 0, 1), 0.0, math.inf)

        assert hit.did_hit
        assert hit.t == pytest.approx(50.0, abs=1e-4)
        assert hit.normal == pytest.approx((0.0, 0.0, -1.0), abs=1e-6)
        assert hit.point == pytest.approx((0.0, 0.0, 50.0), abs=1e-4)
        assert hit.material_id == 0

    def test_miss(self):
        from raycore.scene.intersection import add_sphere, query_closest_hit

        add_sphere((0.0, 0.0, 100.0), 50.0, 0)
        hit = query_closest_hit((0, 0, 0), (0, 0, -1))

        assert not hit.did_hit
        assert math.isinf(hit.t)
        assert hit.material_id == -1

    def test_closer_sphere_wins_regardless_of_order(self):
        from raycore.scene.intersection import add_sphere, query_closest_hit

        add_sphere((0.0, 0.0, 30.0), 5.0, 1)
        add_sphere((0.0, 0.0, 10.0), 5.0, 2)
        hit = query_closest_hit((0, 0, 0), (0, 0, 1))

        assert hit.material_id == 2
        assert hit.t == pytest.approx(5.0, abs=1e-5)

    def test_plane_closer_than_sphere(self):
        from raycore.scene.intersection import add_plane, add_sphere, query_closest_hit

        add_sphere((0.0, 0.0, 30.0), 5.0, 1)
        add_plane((0.0, 0.0, 10.0), (0.0, 0.0, -1.0), 2)
        hit = query_closest_hit((0, 0, 0), (0, 0, 1))

        assert hit.material_id == 2
        assert hit.t == pytest.approx(10.0, abs=1e-5)
        assert hit.normal == pytest.approx((0.0, 0.0, -1.0))

    def test_triangle_closer_than_plane(self):
        from raycore.geometry.triangle import CullMode
        from raycore.scene.intersection import add_plane, query_closest_hit

        add_plane((0.0, 0.0, 10.0), (0.0, 0.0, -1.0), 1)
        _add_quad_mesh(4.0, CullMode.NONE, 3)
        hit = query_closest_hit((0.25, -0.5, 0.0), (0, 0, 1))

        assert hit.did_hit
        assert hit.material_id == 3
        assert hit.t == pytest.approx(4.0, abs=1e-5)
        assert hit.normal == pytest.approx((0.0, 0.0, 1.0))

    def test_back_face_culled_mesh_is_transparent_from_behind(self):
        from raycore.geometry.triangle import CullMode
        from raycore.scene.intersection import add_plane, query_any_hit, query_closest_hit

        add_plane((0.0, 0.0, 10.0), (0.0, 0.0, -1.0), 1)
        # The quad faces +z; a ray travelling along +z sees its back face
        _add_quad_mesh(4.0, CullMode.BACK_FACE, 3)

        hit = query_closest_hit((0.0, 0.0, 0.0), (0, 0, 1))
        assert hit.material_id == 1
        assert hit.t == pytest.approx(10.0, abs=1e-5)

        from_front = query_closest_hit((0.25, -0.5, 8.0), (0, 0, -1))
        assert from_front.material_id == 3
        assert query_any_hit((0.25, -0.5, 8.0), (0, 0, -1), 0.0, 3.0) is False
        assert query_any_hit((0.25, -0.5, 8.0), (0, 0, -1), 0.0, 5.0) is True

    def test_interval_respected(self):
        from raycore.scene.intersection import add_plane, query_closest_hit

        add_plane((0.0, 0.0, 10.0), (0.0, 0.0, -1.0), 1)

        assert not query_closest_hit((0, 0, 0), (0, 0, 1), 0.0, 9.0).did_hit
        assert not query_closest_hit((0, 0, 0), (0, 0, 1), 11.0, math.inf).did_hit
        assert query_closest_hit((0, 0, 0), (0, 0, 1), 10.0, 10.0).did_hit

    def test_parallel_ray_does_not_hit_plane(self):
        from raycore.scene.intersection import add_plane, query_any_hit, query_closest_hit

        add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 1)

        assert not query_closest_hit((0, 3, 0), (1, 0, 0)).did_hit
        assert not query_any_hit((0, 3, 0), (1, 0, 0))


class TestTieBreaking:
    """Equal distances keep the primitive tested first."""

    def test_identical_spheres_keep_first_added(self):
        from raycore.scene.intersection import add_sphere, query_closest_hit

        add_sphere((0.0, 0.0, 10.0), 2.0, 4)
        add_sphere((0.0, 0.0, 10.0), 2.0, 5)

        assert query_closest_hit((0, 0, 0), (0, 0, 1)).material_id == 4

    def test_sphere_before_plane(self):
        from raycore.scene.intersection import add_plane, add_sphere, query_closest_hit

        # Both surfaces are at exactly t = 50; the plane is added first
        add_plane((0.0, 0.0, 50.0), (0.0, 0.0, -1.0), 7)
        add_sphere((0.0, 0.0, 100.0), 50.0, 8)

        hit = query_closest_hit((0, 0, 0), (0, 0, 1))
        assert hit.t == pytest.approx(50.0, abs=1e-5)
        assert hit.material_id == 8

    def test_plane_before_triangle(self):
        from raycore.geometry.triangle import CullMode
        from raycore.scene.intersection import add_plane, query_closest_hit

        _add_quad_mesh(5.0, CullMode.NONE, 3)
        add_plane((0.0, 0.0, 5.0), (0.0, 0.0, 1.0), 6)

        hit = query_closest_hit((0.5, 0.25, 0.0), (0, 0, 1))
        assert hit.t == pytest.approx(5.0, abs=1e-5)
        assert hit.material_id == 6


class TestAnyHitAgreement:
    """Any-hit must agree with closest-hit's did_hit for every ray."""

    def _build_random_scene(self, rng):
        from raycore.geometry.triangle import CullMode
        from raycore.scene.intersection import add_plane, add_sphere

        for i in range(6):
            center = rng.uniform(-6.0, 6.0, size=3)
            add_sphere(center, float(rng.uniform(0.3, 1.5)), i)
        add_plane((0.0, -8.0, 0.0), (0.0, 1.0, 0.0), 10)
        add_plane((9.0, 0.0, 0.0), (-0.6, 0.0, 0.8), 11)
        _add_quad_mesh(3.0, CullMode.BACK_FACE, 12, half_size=2.0)
        _add_quad_mesh(-3.0, CullMode.FRONT_FACE, 13, half_size=2.0)

    def test_scalar_queries_agree(self):
        from raycore.scene.intersection import query_any_hit, query_closest_hit

        rng = np.random.default_rng(1234)
        self._build_random_scene(rng)

        for _ in range(40):
            origin = rng.uniform(-10.0, 10.0, size=3)
            direction = rng.normal(size=3)
            t_max = float(rng.choice([2.0, 8.0, math.inf]))
            closest = query_closest_hit(origin, direction, 0.0, t_max)
            assert query_any_hit(origin, direction, 0.0, t_max) == closest.did_hit

    def test_batch_queries_agree(self):
        from raycore.scene.intersection import query_any_hit_batch, query_closest_hit_batch

        rng = np.random.default_rng(99)
        self._build_random_scene(rng)

        origins = rng.uniform(-10.0, 10.0, size=(500, 3))
        directions = rng.normal(size=(500, 3))
        for t_max in (3.0, math.inf):
            closest = query_closest_hit_batch(origins, directions, 0.0, t_max)
            any_hit = query_any_hit_batch(origins, directions, 0.0, t_max)
            np.testing.assert_array_equal(closest.did_hit, any_hit)
            assert np.all(np.isinf(closest.t[~closest.did_hit]))
            assert np.all(closest.t[closest.did_hit] <= t_max)
            assert np.all(closest.material_ids[~closest.did_hit] == -1)


class TestBatchQueries:
    """Tests for batch query wrappers."""

    def test_batch_matches_scalar(self):
        from raycore.scene.intersection import (
            add_plane,
            add_sphere,
            query_closest_hit,
            query_closest_hit_batch,
        )

        add_sphere((0.0, 0.0, 10.0), 2.0, 1)
        add_plane((0.0, -1.0, 0.0), (0.0, 1.0, 0.0), 2)

        origins = np.zeros((4, 3), dtype=np.float32)
        directions = np.array([(0, 0, 1), (0, -1, 1), (0, 1, 0), (0.1, 0.0, 1.0)], dtype=np.float32)
        batch = query_closest_hit_batch(origins, directions)

        assert len(batch) == 4
        assert batch.points.shape == (4, 3)
        for i in range(4):
            single = query_closest_hit(origins[i], directions[i])
            assert bool(batch.did_hit[i]) == single.did_hit
            assert int(batch.material_ids[i]) == single.material_id
            if single.did_hit:
                assert batch.t[i] == pytest.approx(single.t, abs=1e-5)
                np.testing.assert_allclose(batch.normals[i], single.normal, atol=1e-5)
        assert batch.did_hit.tolist() == [True, True, False, True]

    def test_empty_batch(self):
        from raycore.scene.intersection import query_any_hit_batch, query_closest_hit_batch

        empty = np.zeros((0, 3), dtype=np.float32)
        assert len(query_closest_hit_batch(empty, empty)) == 0
        assert query_any_hit_batch(empty, empty).shape == (0,)

    def test_shape_validation(self):
        from raycore.scene.intersection import query_closest_hit_batch

        with pytest.raises(ValueError, match="origins"):
            query_closest_hit_batch(np.zeros((3, 2)), np.zeros((3, 2)))
        with pytest.raises(ValueError, match="directions"):
            query_closest_hit_batch(np.zeros((3, 3)), np.zeros((2, 3)))


class TestDirectLighting:
    """Tests for compute_direct_lighting through query_direct_lighting."""

    def _point_light(self, origin, intensity, color=(1.0, 1.0, 1.0)):
        from raycore.scene.intersection import add_light
        from raycore.scene.lights import LightType

        return add_light(int(LightType.POINT), origin, (0.0, 0.0, 0.0), intensity, color)

    def _directional_light(self, direction, intensity, color=(1.0, 1.0, 1.0)):
        from raycore.scene.intersection import add_light
        from raycore.scene.lights import LightType

        d = np.asarray(direction, dtype=np.float64)
        return add_light(int(LightType.DIRECTIONAL), (0.0, 0.0, 0.0), d / np.linalg.norm(d), intensity, color)

    def test_reference_point_light(self):
        """Light at (0,5,5), intensity 50: radiance 1 at the origin."""
        from raycore.scene.intersection import query_direct_lighting

        self._point_light((0.0, 5.0, 5.0), 50.0)
        # Normal facing the light gives cos = 1
        result = query_direct_lighting((0, 0, 0), (0, 1, 1))
        assert result == pytest.approx((1.0, 1.0, 1.0), abs=1e-5)

    def test_cosine_uses_normalized_direction(self):
        from raycore.scene.intersection import query_direct_lighting

        self._point_light((0.0, 5.0, 5.0), 50.0, color=(1.0, 0.5, 0.0))
        result = query_direct_lighting((0, 0, 0), (0, 1, 0))
        c = math.sqrt(0.5)
        assert result == pytest.approx((c, 0.5 * c, 0.0), abs=1e-5)

    def test_light_behind_surface_contributes_nothing(self):
        from raycore.scene.intersection import query_direct_lighting

        self._point_light((0.0, 5.0, 5.0), 50.0)
        assert query_direct_lighting((0, 0, 0), (0, -1, 0)) == pytest.approx((0.0, 0.0, 0.0))

    def test_occluded_light(self):
        from raycore.scene.intersection import add_sphere, query_direct_lighting

        self._point_light((0.0, 5.0, 5.0), 50.0)
        add_sphere((0.0, 2.5, 2.5), 0.5, 0)
        assert query_direct_lighting((0, 0, 0), (0, 1, 1)) == pytest.approx((0.0, 0.0, 0.0))

    def test_occluder_beyond_point_light_does_not_shadow(self):
        from raycore.scene.intersection import add_sphere, query_direct_lighting

        self._point_light((0.0, 5.0, 5.0), 50.0)
        add_sphere((0.0, 10.0, 10.0), 1.0, 0)
        assert query_direct_lighting((0, 0, 0), (0, 1, 1)) == pytest.approx((1.0, 1.0, 1.0), abs=1e-5)

    def test_surface_does_not_shadow_itself(self):
        from raycore.scene.intersection import add_plane, query_direct_lighting

        add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 0)
        self._point_light((0.0, 4.0, 0.0), 16.0)
        assert query_direct_lighting((1.0, 0.0, 1.0), (0, 1, 0))[0] > 0.0

    def test_lights_are_summed(self):
        from raycore.scene.intersection import query_direct_lighting

        self._point_light((0.0, 5.0, 5.0), 50.0)
        self._point_light((0.0, 5.0, 5.0), 50.0, color=(0.0, 1.0, 0.0))
        result = query_direct_lighting((0, 0, 0), (0, 1, 1))
        assert result == pytest.approx((1.0, 2.0, 1.0), abs=1e-5)

    def test_directional_light(self):
        from raycore.scene.intersection import query_direct_lighting

        self._directional_light((0.0, -1.0, 0.0), 2.0, color=(1.0, 0.5, 0.25))
        result = query_direct_lighting((0, 0, 0), (0, 1, 0))
        assert result == pytest.approx((2.0, 1.0, 0.5), abs=1e-5)

    def test_directional_light_shadowed_at_any_distance(self):
        from raycore.scene.intersection import add_plane, query_direct_lighting

        self._directional_light((0.0, -1.0, 0.0), 2.0)
        add_plane((0.0, 1000.0, 0.0), (0.0, -1.0, 0.0), 0)
        assert query_direct_lighting((0, 0, 0), (0, 1, 0)) == pytest.approx((0.0, 0.0, 0.0))
