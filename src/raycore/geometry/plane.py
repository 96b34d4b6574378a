"""Infinite plane primitive with ray-plane intersection.

A plane is defined by any point on it and its unit normal. The hit distance
is the solution of the single linear equation

    t = dot(plane.origin - ray.origin, normal) / dot(ray.direction, normal)

A ray parallel to the plane divides by zero. The resulting infinite or NaN t
is rejected by the ray interval check (see raycore.core.ray.in_interval), so
no parallel-ray special case is needed. This relies on IEEE-754 arithmetic,
which is why Taichi must not run with fast_math enabled.

The reported normal is the plane's own normal regardless of which side the
ray arrives from.
"""

import taichi as ti
import taichi.math as tm

from raycore.core.ray import Ray, in_interval, ray_at

from .sphere import HitRecord, make_miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        origin: Any point on the plane (vec3).
        normal: The unit plane normal (vec3).
        material_id: Index into the owning scene's material list.
    """

    origin: vec3
    normal: vec3
    material_id: ti.i32


@ti.func
def hit_plane(plane: Plane, ray: Ray) -> HitRecord:
    """Test for ray-plane intersection.

    Args:
        plane: The plane to test intersection against.
        ray: The ray, including its valid [t_min, t_max] interval.

    Returns:
        A HitRecord containing intersection information. Check the hit field
        to determine whether an intersection occurred.
    """
    t = tm.dot(plane.origin - ray.origin, plane.normal) / tm.dot(ray.direction, plane.normal)

    result = make_miss_record()
    if in_interval(t, ray.t_min, ray.t_max):
        result = HitRecord(
            hit=1,
            t=t,
            point=ray_at(ray, t),
            normal=plane.normal,
            material_id=plane.material_id,
        )
    return result


@ti.func
def hit_plane_any(plane: Plane, ray: Ray) -> ti.i32:
    """Check whether the ray hits the plane inside its interval.

    Returns:
        1 if hit, 0 otherwise.
    """
    t = tm.dot(plane.origin - ray.origin, plane.normal) / tm.dot(ray.direction, plane.normal)
    return in_interval(t, ray.t_min, ray.t_max)


@ti.func
def make_plane(origin: vec3, normal: vec3, material_id: ti.i32) -> Plane:
    """Create a plane from a point, a unit normal and a material index."""
    return Plane(origin=origin, normal=normal, material_id=material_id)
