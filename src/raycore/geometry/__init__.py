"""Geometry module for shape primitives and intersection tests.

This module provides geometric primitives and intersection algorithms:

Components:
    sphere: Sphere primitive, the shared HitRecord and ray-sphere intersection
    plane: Infinite plane with ray-plane intersection
    triangle: Cull-mode aware ray-triangle intersection (Moller-Trumbore)
    mesh: Python-side triangle mesh data with transforms and face normals

All intersection routines are implemented as Taichi functions (@ti.func).
Each primitive offers both a closest-hit test that fills a HitRecord and an
any-hit test for shadow rays that only reports whether a hit exists.

Ray-object intersection follows the pattern:
    record = hit_shape(shape, ray)       # closest hit within ray interval
    blocked = hit_shape_any(shape, ray)  # occlusion only
"""

from .mesh import TriangleMesh, compute_face_normals, validate_index_buffer
from .plane import Plane, hit_plane, hit_plane_any, make_plane
from .sphere import HitRecord, Sphere, hit_sphere, hit_sphere_any, make_miss_record, make_sphere
from .triangle import CullMode, Triangle, hit_triangle, hit_triangle_any, make_triangle

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "hit_sphere_any",
    "make_sphere",
    "make_miss_record",
    "Plane",
    "hit_plane",
    "hit_plane_any",
    "make_plane",
    "CullMode",
    "Triangle",
    "hit_triangle",
    "hit_triangle_any",
    "make_triangle",
    "TriangleMesh",
    "compute_face_normals",
    "validate_index_buffer",
]
