"""Light definitions and the radiance model.

Lights are a tagged variant over point and directional lights. Three pure
functions turn a light and a shading point into the terms a shader needs:

- get_direction_to_light: Vector from the shading point toward the light.
  For point lights this is NOT normalized; its length is the distance used
  for inverse-square falloff. For directional lights it is the unit vector
  opposite the light's direction of travel.
- get_radiance: Radiance arriving at the target.
  Point: color * intensity / distance^2 (distance^2 floored at
  MIN_LIGHT_DISTANCE_SQUARED). Directional: color * intensity.
- get_observed_area: Cosine-of-incidence term.
  Point: dot(dir_to_light, normal) using the direction exactly as passed.
  Callers that want a true cosine must normalize the direction first.
  Directional: dot(-light.direction, normal).

All functions are Taichi functions (@ti.func) with no side effects.
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Lower bound on squared light distance to keep radiance finite
MIN_LIGHT_DISTANCE_SQUARED = 1e-6


class LightType(IntEnum):
    """Enumeration of supported light types."""

    POINT = 0
    DIRECTIONAL = 1


_POINT = int(LightType.POINT)
_DIRECTIONAL = int(LightType.DIRECTIONAL)


@ti.dataclass
class Light:
    """A point or directional light.

    Attributes:
        light_type: A LightType value.
        origin: Light position (point lights).
        direction: Unit direction the light travels in (directional lights).
        intensity: Scalar intensity.
        color: RGB color.
    """

    light_type: ti.i32
    origin: vec3
    direction: vec3
    intensity: ti.f32
    color: vec3


@ti.func
def make_point_light(origin: vec3, intensity: ti.f32, color: vec3) -> Light:
    """Create a point light within a Taichi kernel."""
    return Light(
        light_type=_POINT,
        origin=origin,
        direction=vec3(0.0, 0.0, 0.0),
        intensity=intensity,
        color=color,
    )


@ti.func
def make_directional_light(direction: vec3, intensity: ti.f32, color: vec3) -> Light:
    """Create a directional light within a Taichi kernel.

    The direction is normalized on construction.
    """
    return Light(
        light_type=_DIRECTIONAL,
        origin=vec3(0.0, 0.0, 0.0),
        direction=tm.normalize(direction),
        intensity=intensity,
        color=color,
    )


@ti.func
def get_direction_to_light(light: Light, origin: vec3) -> vec3:
    """Direction from a shading point toward the light.

    Args:
        light: The light.
        origin: The shading point.

    Returns:
        For point lights, light.origin - origin (unnormalized). For
        directional lights, -light.direction.
    """
    result = vec3(0.0, 0.0, 0.0)
    if light.light_type == _POINT:
        result = light.origin - origin
    elif light.light_type == _DIRECTIONAL:
        result = -light.direction
    return result


@ti.func
def get_radiance(light: Light, target: vec3) -> vec3:
    """Radiance from the light arriving at a target point.

    Args:
        light: The light.
        target: The point receiving light.

    Returns:
        The RGB radiance.
    """
    result = vec3(0.0, 0.0, 0.0)
    if light.light_type == _POINT:
        to_light = light.origin - target
        distance_squared = ti.max(tm.dot(to_light, to_light), MIN_LIGHT_DISTANCE_SQUARED)
        result = light.color * light.intensity / distance_squared
    elif light.light_type == _DIRECTIONAL:
        result = light.color * light.intensity
    return result


@ti.func
def get_observed_area(light: Light, dir_to_light: vec3, normal: vec3) -> ti.f32:
    """Cosine term between the surface normal and the light.

    Args:
        light: The light.
        dir_to_light: Direction toward the light, as passed by the caller.
            Not normalized here.
        normal: Unit surface normal.

    Returns:
        The (possibly negative) observed area term.
    """
    result = 0.0
    if light.light_type == _POINT:
        result = tm.dot(dir_to_light, normal)
    elif light.light_type == _DIRECTIONAL:
        result = tm.dot(-light.direction, normal)
    return result
