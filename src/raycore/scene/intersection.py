"""Scene storage and scene-level ray queries.

This module holds the device-side copy of a scene in Taichi fields and
answers ray queries against it:

- intersect_scene: closest hit over every sphere, then every plane, then
  every mesh triangle. A later primitive replaces the current best only if
  its t is strictly smaller, so equal distances keep the first one tested.
- intersect_scene_any: stops at the first primitive hit (shadow rays).
- compute_direct_lighting: sums unoccluded light contributions at a point.

Primitives are stored as Structure-of-Arrays fields. Triangles from all
meshes share one triangle buffer; each triangle records its mesh, and the
mesh supplies the cull mode and material.

The storage holds one scene at a time. raycore.scene.manager.Scene builds a
scene on the Python side and uploads it here when frozen; the low-level
add_* functions below are the upload path.

Queries are single-threaded per ray and read-only. Batch kernels run one ray
per parallel iteration; the scene must not be modified while they run.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raycore.scene.intersection import add_sphere, clear_scene, query_closest_hit
    >>> clear_scene()
    >>> add_sphere((0, 0, 100), 50.0, material_id=0)
    0
    >>> query_closest_hit((0, 0, 0), (0, 0, 1)).t
    50.0
"""

import math
import weakref
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from raycore.core.ray import Ray, make_ray
from raycore.geometry.plane import Plane, hit_plane, hit_plane_any
from raycore.geometry.sphere import HitRecord, Sphere, hit_sphere, hit_sphere_any, make_miss_record
from raycore.geometry.triangle import Triangle, hit_triangle, hit_triangle_any
from raycore.scene.lights import (
    Light,
    LightType,
    get_direction_to_light,
    get_observed_area,
    get_radiance,
)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_PLANES = 256
MAX_TRIANGLES = 65536
MAX_MESHES = 256
MAX_LIGHTS = 64

# Offset applied along the surface normal to shadow ray origins
SHADOW_EPSILON = 1e-4

_POINT_LIGHT = int(LightType.POINT)

# Sphere storage: Structure of Arrays layout for GPU efficiency
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage
plane_origins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_material_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Mesh storage: per-mesh attributes shared by its triangles
mesh_cull_modes = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_material_ids = ti.field(dtype=ti.i32, shape=MAX_MESHES)
num_meshes = ti.field(dtype=ti.i32, shape=())

# Triangle storage: world-space vertices and face normals of every mesh
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_mesh_ids = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# Light storage
light_types = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_origins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_directions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())

# Results of single-ray queries issued from Python scope
_result_hit = ti.field(dtype=ti.i32, shape=())
_result_t = ti.field(dtype=ti.f32, shape=())
_result_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_result_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_result_material_id = ti.field(dtype=ti.i32, shape=())

# Identity of the Python-side scene currently uploaded (None if cleared)
_active_owner: weakref.ref | None = None


@dataclass
class HitInfo:
    """Python-side copy of a HitRecord.

    Attributes:
        did_hit: Whether anything was hit inside the ray interval.
        t: Hit distance, or infinity on a miss.
        point: World-space hit point. Meaningless on a miss.
        normal: Unit surface normal. Meaningless on a miss.
        material_id: Material index of the hit surface, -1 on a miss.
    """

    did_hit: bool
    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    material_id: int


@dataclass
class BatchHits:
    """Results of a batch closest-hit query, one row per ray.

    Attributes:
        did_hit: (N,) bool array.
        t: (N,) float32 array, infinity where nothing was hit.
        points: (N, 3) float32 hit points.
        normals: (N, 3) float32 unit normals.
        material_ids: (N,) int32 material indices, -1 where nothing was hit.
    """

    did_hit: np.ndarray
    t: np.ndarray
    points: np.ndarray
    normals: np.ndarray
    material_ids: np.ndarray

    def __len__(self) -> int:
        return len(self.t)


# =============================================================================
# Upload (Python scope)
# =============================================================================


def _to_list3(values: Sequence[float]) -> list[float]:
    return [float(values[0]), float(values[1]), float(values[2])]


def clear_scene() -> None:
    """Clear all primitives and lights from the device storage.

    Resets the counts to zero. The field data is not cleared but will be
    overwritten when new primitives are added.
    """
    global _active_owner
    num_spheres[None] = 0
    num_planes[None] = 0
    num_meshes[None] = 0
    num_triangles[None] = 0
    num_lights[None] = 0
    _active_owner = None


def set_active_owner(owner: object | None) -> None:
    """Record which Python-side scene the storage currently holds.

    Only a weak reference is kept, so the storage never keeps a discarded
    scene alive. The owner must therefore support weak references.
    """
    global _active_owner
    _active_owner = weakref.ref(owner) if owner is not None else None


def get_active_owner() -> object | None:
    """Return the Python-side scene the storage currently holds.

    Returns None when the storage was cleared or the owning scene has been
    garbage collected.
    """
    if _active_owner is None:
        return None
    return _active_owner()


def add_sphere(center: Sequence[float], radius: float, material_id: int = 0) -> int:
    """Add a sphere to the device storage.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = _to_list3(center)
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def add_plane(origin: Sequence[float], normal: Sequence[float], material_id: int = 0) -> int:
    """Add a plane to the device storage.

    The normal is stored as given; callers pass a unit normal.

    Returns:
        The index of the added plane.

    Raises:
        RuntimeError: If the maximum number of planes is exceeded.
    """
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_origins[idx] = _to_list3(origin)
    plane_normals[idx] = _to_list3(normal)
    plane_material_ids[idx] = material_id
    num_planes[None] = idx + 1
    return idx


def add_mesh(cull_mode: int, material_id: int = 0) -> int:
    """Register a mesh whose triangles are added with add_triangles().

    Returns:
        The index of the added mesh.

    Raises:
        RuntimeError: If the maximum number of meshes is exceeded.
    """
    idx = num_meshes[None]
    if idx >= MAX_MESHES:
        raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")
    mesh_cull_modes[idx] = int(cull_mode)
    mesh_material_ids[idx] = material_id
    num_meshes[None] = idx + 1
    return idx


@ti.kernel
def _upload_triangles(
    vertices: ti.types.ndarray(),
    normals: ti.types.ndarray(),
    mesh_index: ti.i32,
    start: ti.i32,
):
    for i in range(vertices.shape[0]):
        j = start + i
        triangle_v0[j] = vec3(vertices[i, 0, 0], vertices[i, 0, 1], vertices[i, 0, 2])
        triangle_v1[j] = vec3(vertices[i, 1, 0], vertices[i, 1, 1], vertices[i, 1, 2])
        triangle_v2[j] = vec3(vertices[i, 2, 0], vertices[i, 2, 1], vertices[i, 2, 2])
        triangle_normals[j] = vec3(normals[i, 0], normals[i, 1], normals[i, 2])
        triangle_mesh_ids[j] = mesh_index


def add_triangles(mesh_index: int, vertices: npt.ArrayLike, normals: npt.ArrayLike) -> int:
    """Append world-space triangles belonging to a registered mesh.

    Args:
        mesh_index: Index returned by add_mesh().
        vertices: (T, 3, 3) array, three vertex positions per triangle.
        normals: (T, 3) array of unit face normals.

    Returns:
        The index of the first added triangle.

    Raises:
        ValueError: If the mesh index is unknown or the shapes disagree.
        RuntimeError: If the maximum number of triangles is exceeded.
    """
    if not 0 <= mesh_index < num_meshes[None]:
        raise ValueError(f"Invalid mesh index: {mesh_index}")
    verts = np.ascontiguousarray(vertices, dtype=np.float32).reshape(-1, 3, 3)
    nrms = np.ascontiguousarray(normals, dtype=np.float32).reshape(-1, 3)
    if len(verts) != len(nrms):
        raise ValueError(f"Got {len(verts)} triangles but {len(nrms)} normals")

    start = num_triangles[None]
    if start + len(verts) > MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    if len(verts):
        _upload_triangles(verts, nrms, mesh_index, start)
    num_triangles[None] = start + len(verts)
    return start


def add_light(
    light_type: int,
    origin: Sequence[float],
    direction: Sequence[float],
    intensity: float,
    color: Sequence[float],
) -> int:
    """Add a light to the device storage.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_types[idx] = int(light_type)
    light_origins[idx] = _to_list3(origin)
    light_directions[idx] = _to_list3(direction)
    light_intensities[idx] = intensity
    light_colors[idx] = _to_list3(color)
    num_lights[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the device storage."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the device storage."""
    return int(num_planes[None])


def get_mesh_count() -> int:
    """Get the number of meshes in the device storage."""
    return int(num_meshes[None])


def get_triangle_count() -> int:
    """Get the number of triangles in the device storage."""
    return int(num_triangles[None])


def get_light_count() -> int:
    """Get the number of lights in the device storage."""
    return int(num_lights[None])


# =============================================================================
# Scene queries (Taichi scope)
# =============================================================================


@ti.func
def _load_sphere(i: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[i], radius=sphere_radii[i], material_id=sphere_material_ids[i])


@ti.func
def _load_plane(i: ti.i32) -> Plane:
    return Plane(origin=plane_origins[i], normal=plane_normals[i], material_id=plane_material_ids[i])


@ti.func
def _load_triangle(i: ti.i32) -> Triangle:
    mesh = triangle_mesh_ids[i]
    return Triangle(
        v0=triangle_v0[i],
        v1=triangle_v1[i],
        v2=triangle_v2[i],
        normal=triangle_normals[i],
        cull_mode=mesh_cull_modes[mesh],
        material_id=mesh_material_ids[mesh],
    )


@ti.func
def _load_light(i: ti.i32) -> Light:
    return Light(
        light_type=light_types[i],
        origin=light_origins[i],
        direction=light_directions[i],
        intensity=light_intensities[i],
        color=light_colors[i],
    )


@ti.func
def intersect_scene(ray: Ray) -> HitRecord:
    """Find the closest hit of a ray against every primitive in the scene.

    Spheres are tested first, then planes, then mesh triangles. The best
    record starts with t = inf, so the first real hit always wins, and a
    later hit replaces it only when strictly closer.

    Args:
        ray: The ray, including its valid [t_min, t_max] interval.

    Returns:
        The closest HitRecord, or a miss record if nothing was hit.
    """
    closest = make_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(_load_sphere(i), ray)
        if rec.hit == 1 and rec.t < closest.t:
            closest = rec

    for i in range(num_planes[None]):
        rec = hit_plane(_load_plane(i), ray)
        if rec.hit == 1 and rec.t < closest.t:
            closest = rec

    for i in range(num_triangles[None]):
        rec = hit_triangle(_load_triangle(i), ray)
        if rec.hit == 1 and rec.t < closest.t:
            closest = rec

    return closest


@ti.func
def intersect_scene_any(ray: Ray) -> ti.i32:
    """Test if the ray hits any primitive in the scene (shadow ray query).

    Returns early on the first hit. The answer always equals
    intersect_scene(ray).hit; only the amount of work differs.

    Returns:
        1 if any primitive was hit, 0 otherwise.
    """
    hit_any = 0

    for i in range(num_spheres[None]):
        if hit_any == 0:
            hit_any = hit_sphere_any(_load_sphere(i), ray)

    for i in range(num_planes[None]):
        if hit_any == 0:
            hit_any = hit_plane_any(_load_plane(i), ray)

    for i in range(num_triangles[None]):
        if hit_any == 0:
            hit_any = hit_triangle_any(_load_triangle(i), ray)

    return hit_any


@ti.func
def compute_direct_lighting(point: vec3, normal: vec3) -> vec3:
    """Sum the radiance of every unoccluded light at a surface point.

    Each light contributes radiance * cos, where cos is the observed area
    for the normalized direction to the light. Lights behind the surface
    contribute nothing. Occlusion is tested with a shadow ray starting
    SHADOW_EPSILON above the surface and ending at the light (point lights)
    or running to infinity (directional lights).

    Args:
        point: World-space shading point.
        normal: Unit surface normal at the point.

    Returns:
        The summed RGB contribution, not yet weighted by any material.
    """
    total = vec3(0.0, 0.0, 0.0)

    for i in range(num_lights[None]):
        light = _load_light(i)
        to_light = get_direction_to_light(light, point)
        distance = tm.length(to_light)
        if distance > 0.0:
            direction = to_light / distance
            cos_term = get_observed_area(light, direction, normal)
            if cos_term > 0.0:
                t_max = tm.inf
                if light.light_type == _POINT_LIGHT:
                    t_max = distance
                shadow_ray = make_ray(point + SHADOW_EPSILON * normal, direction, 0.0, t_max)
                if intersect_scene_any(shadow_ray) == 0:
                    total += get_radiance(light, point) * cos_term

    return total


# =============================================================================
# Query kernels
# =============================================================================


@ti.kernel
def _query_closest_hit_kernel(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32):
    # One-iteration outer loop keeps the primitive loops serial.
    for _ in range(1):
        rec = intersect_scene(make_ray(origin, direction, t_min, t_max))
        _result_hit[None] = rec.hit
        _result_t[None] = rec.t
        _result_point[None] = rec.point
        _result_normal[None] = rec.normal
        _result_material_id[None] = rec.material_id


@ti.kernel
def _query_any_hit_kernel(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> ti.i32:
    result = 0
    for _ in range(1):
        result = intersect_scene_any(make_ray(origin, direction, t_min, t_max))
    return result


@ti.kernel
def _query_direct_lighting_kernel(point: vec3, normal: vec3) -> vec3:
    result = vec3(0.0, 0.0, 0.0)
    for _ in range(1):
        result = compute_direct_lighting(point, tm.normalize(normal))
    return result


@ti.kernel
def _batch_closest_hit_kernel(
    origins: ti.types.ndarray(),
    directions: ti.types.ndarray(),
    t_min: ti.f32,
    t_max: ti.f32,
    out_hit: ti.types.ndarray(),
    out_t: ti.types.ndarray(),
    out_points: ti.types.ndarray(),
    out_normals: ti.types.ndarray(),
    out_material_ids: ti.types.ndarray(),
):
    for i in range(origins.shape[0]):
        origin = vec3(origins[i, 0], origins[i, 1], origins[i, 2])
        direction = vec3(directions[i, 0], directions[i, 1], directions[i, 2])
        rec = intersect_scene(make_ray(origin, direction, t_min, t_max))
        out_hit[i] = rec.hit
        out_t[i] = rec.t
        out_material_ids[i] = rec.material_id
        for k in ti.static(range(3)):
            out_points[i, k] = rec.point[k]
            out_normals[i, k] = rec.normal[k]


@ti.kernel
def _batch_any_hit_kernel(
    origins: ti.types.ndarray(),
    directions: ti.types.ndarray(),
    t_min: ti.f32,
    t_max: ti.f32,
    out_hit: ti.types.ndarray(),
):
    for i in range(origins.shape[0]):
        origin = vec3(origins[i, 0], origins[i, 1], origins[i, 2])
        direction = vec3(directions[i, 0], directions[i, 1], directions[i, 2])
        out_hit[i] = intersect_scene_any(make_ray(origin, direction, t_min, t_max))


# =============================================================================
# Query wrappers (Python scope)
# =============================================================================


def _vec3(values: Sequence[float]) -> tm.vec3:
    return vec3(float(values[0]), float(values[1]), float(values[2]))


def _ray_arrays(origins: npt.ArrayLike, directions: npt.ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    o = np.ascontiguousarray(origins, dtype=np.float32)
    d = np.ascontiguousarray(directions, dtype=np.float32)
    if o.ndim != 2 or o.shape[1] != 3:
        raise ValueError(f"origins must have shape (N, 3), got {o.shape}")
    if d.shape != o.shape:
        raise ValueError(f"directions shape {d.shape} does not match origins shape {o.shape}")
    return o, d


def query_closest_hit(
    origin: Sequence[float],
    direction: Sequence[float],
    t_min: float = 0.0,
    t_max: float = math.inf,
) -> HitInfo:
    """Closest hit of one ray against the uploaded scene."""
    _query_closest_hit_kernel(_vec3(origin), _vec3(direction), t_min, t_max)
    p = _result_point[None]
    n = _result_normal[None]
    return HitInfo(
        did_hit=bool(_result_hit[None]),
        t=float(_result_t[None]),
        point=(float(p[0]), float(p[1]), float(p[2])),
        normal=(float(n[0]), float(n[1]), float(n[2])),
        material_id=int(_result_material_id[None]),
    )


def query_any_hit(
    origin: Sequence[float],
    direction: Sequence[float],
    t_min: float = 0.0,
    t_max: float = math.inf,
) -> bool:
    """Whether one ray hits anything in the uploaded scene."""
    return bool(_query_any_hit_kernel(_vec3(origin), _vec3(direction), t_min, t_max))


def query_direct_lighting(point: Sequence[float], normal: Sequence[float]) -> tuple[float, float, float]:
    """Unoccluded light arriving at a point, see compute_direct_lighting()."""
    c = _query_direct_lighting_kernel(_vec3(point), _vec3(normal))
    return float(c[0]), float(c[1]), float(c[2])


def query_closest_hit_batch(
    origins: npt.ArrayLike,
    directions: npt.ArrayLike,
    t_min: float = 0.0,
    t_max: float = math.inf,
) -> BatchHits:
    """Closest hits for many rays, evaluated in parallel.

    Args:
        origins: (N, 3) ray origins.
        directions: (N, 3) ray directions.
        t_min: Near bound shared by all rays.
        t_max: Far bound shared by all rays.

    Raises:
        ValueError: If the arrays are not matching (N, 3) shapes.
    """
    o, d = _ray_arrays(origins, directions)
    n = len(o)
    hits = np.zeros(n, dtype=np.int32)
    ts = np.zeros(n, dtype=np.float32)
    points = np.zeros((n, 3), dtype=np.float32)
    normals = np.zeros((n, 3), dtype=np.float32)
    material_ids = np.zeros(n, dtype=np.int32)
    if n:
        _batch_closest_hit_kernel(o, d, t_min, t_max, hits, ts, points, normals, material_ids)
    return BatchHits(
        did_hit=hits.astype(bool),
        t=ts,
        points=points,
        normals=normals,
        material_ids=material_ids,
    )


def query_any_hit_batch(
    origins: npt.ArrayLike,
    directions: npt.ArrayLike,
    t_min: float = 0.0,
    t_max: float = math.inf,
) -> np.ndarray:
    """Occlusion test for many rays, evaluated in parallel.

    Returns:
        (N,) bool array.
    """
    o, d = _ray_arrays(origins, directions)
    hits = np.zeros(len(o), dtype=np.int32)
    if len(o):
        _batch_any_hit_kernel(o, d, t_min, t_max, hits)
    return hits.astype(bool)
