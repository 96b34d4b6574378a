"""Triangle primitive with cull-mode aware ray-triangle intersection.

Triangles come from meshes, which store three vertex positions and a face
normal per triangle plus one cull mode and one material for the whole mesh.

The intersection uses the Moller-Trumbore algorithm:
1. Solve for the barycentric coordinates (u, v) and distance t of the point
   where the ray crosses the triangle's plane
2. Accept the hit only if u >= 0, v >= 0, u + v <= 1 and t is inside the
   ray interval

Culling compares the ray direction with the face normal:
- BACK_FACE culling rejects rays travelling along the normal, i.e. rays that
  see the back of the triangle (dot(normal, direction) > 0)
- FRONT_FACE culling rejects rays travelling against the normal
  (dot(normal, direction) < 0)
- NONE accepts both sides

Rays lying in the triangle's plane never hit it.
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from raycore.core.ray import Ray, in_interval, ray_at

from .sphere import HitRecord, make_miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Determinants smaller than this mean the ray lies in the triangle's plane
TRIANGLE_EPSILON = 1e-8


class CullMode(IntEnum):
    """Which side of a triangle is ignored by intersection tests."""

    FRONT_FACE = 0
    BACK_FACE = 1
    NONE = 2


_CULL_FRONT = int(CullMode.FRONT_FACE)
_CULL_BACK = int(CullMode.BACK_FACE)


@ti.dataclass
class Triangle:
    """A single triangle with its face normal.

    Attributes:
        v0: First vertex position.
        v1: Second vertex position.
        v2: Third vertex position.
        normal: Unit face normal, normalize(cross(v1 - v0, v2 - v0)).
        cull_mode: A CullMode value.
        material_id: Index into the owning scene's material list.
    """

    v0: vec3
    v1: vec3
    v2: vec3
    normal: vec3
    cull_mode: ti.i32
    material_id: ti.i32


@ti.func
def _is_culled(triangle: Triangle, direction: vec3) -> ti.i32:
    facing = tm.dot(triangle.normal, direction)
    culled = 0
    if triangle.cull_mode == _CULL_BACK and facing > 0.0:
        culled = 1
    elif triangle.cull_mode == _CULL_FRONT and facing < 0.0:
        culled = 1
    return culled


@ti.func
def hit_triangle(triangle: Triangle, ray: Ray) -> HitRecord:
    """Test for ray-triangle intersection.

    Args:
        triangle: The triangle to test intersection against.
        ray: The ray, including its valid [t_min, t_max] interval.

    Returns:
        A HitRecord whose normal is the triangle's face normal. Check the hit
        field to determine whether an intersection occurred.
    """
    result = make_miss_record()

    if _is_culled(triangle, ray.direction) == 0:
        edge1 = triangle.v1 - triangle.v0
        edge2 = triangle.v2 - triangle.v0
        p = tm.cross(ray.direction, edge2)
        det = tm.dot(edge1, p)

        if ti.abs(det) > TRIANGLE_EPSILON:
            inv_det = 1.0 / det
            s = ray.origin - triangle.v0
            u = tm.dot(s, p) * inv_det
            q = tm.cross(s, edge1)
            v = tm.dot(ray.direction, q) * inv_det
            t = tm.dot(edge2, q) * inv_det

            if u >= 0.0 and v >= 0.0 and u + v <= 1.0 and in_interval(t, ray.t_min, ray.t_max):
                result = HitRecord(
                    hit=1,
                    t=t,
                    point=ray_at(ray, t),
                    normal=triangle.normal,
                    material_id=triangle.material_id,
                )

    return result


@ti.func
def hit_triangle_any(triangle: Triangle, ray: Ray) -> ti.i32:
    """Check whether the ray hits the triangle inside its interval.

    Returns:
        1 if hit, 0 otherwise.
    """
    return hit_triangle(triangle, ray).hit


@ti.func
def make_triangle(
    v0: vec3,
    v1: vec3,
    v2: vec3,
    cull_mode: ti.i32,
    material_id: ti.i32,
) -> Triangle:
    """Create a triangle, deriving its face normal from the winding order."""
    normal = tm.normalize(tm.cross(v1 - v0, v2 - v0))
    return Triangle(
        v0=v0,
        v1=v1,
        v2=v2,
        normal=normal,
        cull_mode=cull_mode,
        material_id=material_id,
    )
