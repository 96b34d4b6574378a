"""Sphere primitive with analytic ray-sphere intersection.

This module provides the Sphere dataclass, the HitRecord shared by every
primitive, and the ray-sphere test.

The ray-sphere intersection solves the quadratic
    a*t^2 + b*t + c = 0
with
    a = dot(direction, direction)
    b = 2 * dot(direction, origin - center)
    c = dot(origin - center, origin - center) - radius^2

A discriminant d = b^2 - 4ac that is zero or negative is a miss. Tangent
(grazing) rays are therefore never reported as single-point hits.

An origin lying on the surface rarely gives c == 0 exactly in float32, so
the root at the origin can land just below t = 0 and be rejected. When
|c| <= SPHERE_SURFACE_EPSILON * radius^2 and the ray heads outward (b > 0),
the origin is treated as on the surface and the hit is reported at t = 0.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raycore.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 100), radius=50.0, material_id=0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from raycore.core.ray import Ray, in_interval, ray_at

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Relative tolerance on |origin - center|^2 - radius^2 for an on-surface origin
SPHERE_SURFACE_EPSILON = 1e-4


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
        material_id: Index into the owning scene's material list.
    """

    center: vec3
    radius: ti.f32
    material_id: ti.i32


@ti.dataclass
class HitRecord:
    """Result of an intersection query.

    Attributes:
        hit: Whether the ray intersected the surface (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Infinity on a miss, so any real hit compares smaller.
        point: The 3D point where the ray intersected the surface.
            Only valid if hit == 1.
        normal: The unit surface normal at the intersection point.
            Only valid if hit == 1.
        material_id: The material index of the hit surface.
            Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection.

    Returns:
        A HitRecord with hit=0, t=inf and material_id=-1.
    """
    return HitRecord(
        hit=0,
        t=tm.inf,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )


@ti.func
def hit_sphere(sphere: Sphere, ray: Ray) -> HitRecord:
    """Test for ray-sphere intersection.

    The nearer root is tried first; if it lies outside the ray interval the
    farther root is tried. A ray starting inside the sphere therefore hits
    the far side. An outward ray starting on the surface (within
    SPHERE_SURFACE_EPSILON) hits at t = 0. The normal always points away
    from the center.

    Args:
        sphere: The sphere to test intersection against.
        ray: The ray, including its valid [t_min, t_max] interval.

    Returns:
        A HitRecord for the nearest hit inside the interval. Check the hit
        field to determine whether an intersection occurred.
    """
    oc = ray.origin - sphere.center

    a = tm.dot(ray.direction, ray.direction)
    b = 2.0 * tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = b * b - 4.0 * a * c

    result = make_miss_record()
    t = 0.0
    valid = 0

    if b > 0.0 and ti.abs(c) <= SPHERE_SURFACE_EPSILON * sphere.radius * sphere.radius:
        # Outward ray from the surface: the far root is the origin itself.
        valid = in_interval(t, ray.t_min, ray.t_max)
    elif discriminant > 0.0:
        sqrt_d = ti.sqrt(discriminant)

        t = (-b - sqrt_d) / (2.0 * a)
        valid = in_interval(t, ray.t_min, ray.t_max)

        if not valid:
            t = (-b + sqrt_d) / (2.0 * a)
            valid = in_interval(t, ray.t_min, ray.t_max)

    if valid:
        point = ray_at(ray, t)
        result = HitRecord(
            hit=1,
            t=t,
            point=point,
            normal=tm.normalize(point - sphere.center),
            material_id=sphere.material_id,
        )

    return result


@ti.func
def hit_sphere_any(sphere: Sphere, ray: Ray) -> ti.i32:
    """Check whether the ray hits the sphere anywhere inside its interval.

    Used for shadow rays. Gives the same answer as hit_sphere(...).hit.

    Returns:
        1 if hit, 0 otherwise.
    """
    return hit_sphere(sphere, ray).hit


@ti.func
def make_sphere(center: vec3, radius: ti.f32, material_id: ti.i32) -> Sphere:
    """Create a sphere from center, radius and material index.

    This is a convenience function for creating spheres within Taichi kernels.
    """
    return Sphere(center=center, radius=radius, material_id=material_id)
