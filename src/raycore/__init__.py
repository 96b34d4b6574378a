"""Geometric core of an offline ray tracer, built on Taichi.

This package answers ray queries against a scene of analytic primitives and
triangle meshes, and evaluates the radiance arriving from point and
directional lights. It provides:
- Affine transforms for placing primitives and meshes
- Closest-hit and any-hit (occlusion) queries
- Light direction, radiance and observed-area terms

Subpackages:
    core: Ray structure, vector utilities and the affine Matrix
    geometry: Sphere, plane and triangle intersection plus mesh data
    materials: Opaque material parameter holders referenced by index
    scene: Scene storage, queries, lights, OBJ loading and preset scenes

Taichi must be initialised (see raycore.config.init_taichi) before importing
the scene subpackage, since it allocates Taichi fields at import time.
"""

__version__ = "0.1.0"
