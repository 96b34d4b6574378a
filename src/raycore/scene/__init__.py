"""Scene module for scene management and ray queries.

This module handles scene representation and ray-scene queries:

Components:
    lights: Point and directional lights and the radiance model
    intersection: Device-side scene storage, closest-hit, any-hit and
        direct lighting queries
    manager: Scene class owning primitives, lights and materials
    obj_loader: Wavefront OBJ reader producing triangle mesh arrays
    presets: Factory functions for the standard test scenes

Scene data is organized for efficient parallel access:
    - Structure-of-Arrays layout for geometric data
    - One shared triangle buffer for all meshes
    - Per-mesh cull mode and material lookup

Importing this module allocates Taichi fields, so ti.init() must run first.
"""

from .intersection import (
    MAX_LIGHTS,
    MAX_MESHES,
    MAX_PLANES,
    MAX_SPHERES,
    MAX_TRIANGLES,
    SHADOW_EPSILON,
    BatchHits,
    HitInfo,
    clear_scene,
    compute_direct_lighting,
    intersect_scene,
    intersect_scene_any,
)
from .lights import (
    MIN_LIGHT_DISTANCE_SQUARED,
    Light,
    LightType,
    get_direction_to_light,
    get_observed_area,
    get_radiance,
    make_directional_light,
    make_point_light,
)
from .manager import (
    MAX_MATERIALS,
    LightInfo,
    MeshInfo,
    PlaneInfo,
    Scene,
    SceneConfig,
    SceneFrozenError,
    SphereInfo,
)
from .obj_loader import ObjData, parse_obj
from .presets import (
    PRESETS,
    PresetView,
    create_cook_torrance_scene,
    create_lambert_test_scene,
    create_solid_color_scene,
    create_sphere_grid_scene,
)

__all__ = [
    # Lights
    "Light",
    "LightType",
    "MIN_LIGHT_DISTANCE_SQUARED",
    "make_point_light",
    "make_directional_light",
    "get_direction_to_light",
    "get_radiance",
    "get_observed_area",
    # Intersection module
    "HitInfo",
    "BatchHits",
    "clear_scene",
    "intersect_scene",
    "intersect_scene_any",
    "compute_direct_lighting",
    "SHADOW_EPSILON",
    "MAX_SPHERES",
    "MAX_PLANES",
    "MAX_MESHES",
    "MAX_TRIANGLES",
    "MAX_LIGHTS",
    # Manager module
    "Scene",
    "SceneConfig",
    "SceneFrozenError",
    "SphereInfo",
    "PlaneInfo",
    "MeshInfo",
    "LightInfo",
    "MAX_MATERIALS",
    # OBJ loading
    "ObjData",
    "parse_obj",
    # Preset scenes
    "PRESETS",
    "PresetView",
    "create_solid_color_scene",
    "create_sphere_grid_scene",
    "create_lambert_test_scene",
    "create_cook_torrance_scene",
]
