"""Core module.

This module contains the fundamental building blocks for ray queries:

Components:
    ray: Ray data structure with its valid interval, and vector utilities
    transform: Affine Matrix used to place primitives, meshes and cameras

Ray utilities are Taichi functions for use inside kernels. The Matrix is a
Python-scope NumPy class used during scene setup.
"""

from .ray import (
    Ray,
    cross,
    dot,
    in_interval,
    length,
    length_squared,
    make_ray,
    normalize,
    ray_at,
    vec3,
)
from .transform import Matrix

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "in_interval",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "Matrix",
]
