"""Ray data structure and vector utilities for ray queries.

A ray carries its own valid parametric interval [t_min, t_max]. Every
intersection routine accepts a hit only if its distance t lies inside that
interval, which is how callers clip near/far distances and keep shadow rays
from running past the light.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, 1.0)
    >>> # Inside a Taichi kernel:
    >>> # ray = make_ray(origin, direction, 0.0, ti.math.inf)
    >>> # point = ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin, a direction and a valid distance interval.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Need not be unit
            length; t is then measured in multiples of the direction.
        t_min: Smallest accepted hit distance.
        t_max: Largest accepted hit distance (may be infinity).
    """

    origin: vec3
    direction: vec3
    t_min: ti.f32
    t_max: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> Ray:
    """Create a ray from origin, direction and interval.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector.
        t_min: Near bound of the valid interval.
        t_max: Far bound of the valid interval.

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, t_min=t_min, t_max=t_max)


@ti.func
def in_interval(t: ti.f32, t_min: ti.f32, t_max: ti.f32) -> ti.i32:
    """Check whether a hit distance is accepted by a ray interval.

    Both bounds are inclusive. NaN fails every comparison and infinite
    distances fail the finiteness check, so degenerate solves (for example a
    ray parallel to a plane) are rejected here without special cases.

    Args:
        t: Candidate hit distance.
        t_min: Near bound.
        t_max: Far bound.

    Returns:
        1 if t is finite and t_min <= t <= t_max, 0 otherwise.
    """
    return (t >= t_min) and (t <= t_max) and (ti.abs(t) < tm.inf)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v.
    """
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product of two vectors."""
    return tm.cross(a, b)
