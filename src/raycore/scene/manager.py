"""Scene ownership, setup and query API.

A Scene owns every primitive, light and material of one renderable scene and
answers ray queries against them. Work happens in two phases:

1. Setup: add_* calls append primitives, lights and materials and return
   stable integer handles. update_* calls modify an entry through its
   handle. Handles are never invalidated because entries are never removed
   or reordered.
2. Query: freeze() validates the scene, uploads it to the device storage in
   raycore.scene.intersection and rejects further mutation with
   SceneFrozenError. Query methods freeze the scene automatically.
   unfreeze() returns to setup.

The device storage holds one scene at a time. Querying a frozen scene that
is not the one currently uploaded uploads it again.

The scene starts with a red SolidColorMaterial at material index 0, so any
primitive added without a material still resolves to a valid material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raycore.scene.manager import Scene
    >>> from raycore.materials import SolidColorMaterial
    >>> scene = Scene()
    >>> blue = scene.add_material(SolidColorMaterial((0, 0, 1)))
    >>> scene.add_sphere(center=(0, 0, 100), radius=50, material_id=blue)
    0
    >>> hit = scene.get_closest_hit(origin=(0, 0, 0), direction=(0, 0, 1))
    >>> hit.t, hit.material_id
    (50.0, 1)
"""

from __future__ import annotations

import copy
import json
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from raycore.core.transform import Matrix
from raycore.geometry.mesh import TriangleMesh
from raycore.geometry.triangle import CullMode
from raycore.materials.material import Material, SolidColorMaterial, material_from_config
from raycore.scene import intersection
from raycore.scene.intersection import (
    MAX_LIGHTS,
    MAX_MESHES,
    MAX_PLANES,
    MAX_SPHERES,
    MAX_TRIANGLES,
    BatchHits,
    HitInfo,
)
from raycore.scene.lights import LightType
from raycore.scene.obj_loader import parse_obj

logger = logging.getLogger(__name__)

# Material indices are small integers
MAX_MATERIALS = 256

Vector3 = tuple[float, float, float]


class SceneFrozenError(RuntimeError):
    """Raised when a frozen scene is modified."""


def _vector3(values: Sequence[float], name: str) -> Vector3:
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def _unit_vector3(values: Sequence[float], name: str) -> Vector3:
    v = _vector3(values, name)
    norm = math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])
    if norm == 0.0 or not math.isfinite(norm):
        raise ValueError(f"{name} must be a non-zero finite vector, got {v}")
    return (v[0] / norm, v[1] / norm, v[2] / norm)


def _check_radius(radius: float) -> float:
    radius = float(radius)
    if not radius > 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")
    return radius


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        handle: The handle returned by Scene.add_sphere().
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material index assigned to the sphere.
    """

    handle: int
    center: Vector3
    radius: float
    material_id: int


@dataclass
class PlaneInfo:
    """Information about a plane in the scene.

    Attributes:
        handle: The handle returned by Scene.add_plane().
        origin: A point on the plane.
        normal: The unit plane normal.
        material_id: The material index assigned to the plane.
    """

    handle: int
    origin: Vector3
    normal: Vector3
    material_id: int


@dataclass
class MeshInfo:
    """Information about a triangle mesh in the scene.

    Attributes:
        handle: The handle returned by Scene.add_triangle_mesh().
        mesh: The mesh data, including cull mode, material and transform.
        source: Path of the OBJ file the mesh was loaded from, if any.
    """

    handle: int
    mesh: TriangleMesh
    source: str | None = None


@dataclass
class LightInfo:
    """Information about a light in the scene.

    Attributes:
        handle: The handle returned by Scene.add_point_light() or
            Scene.add_directional_light().
        light_type: Point or directional.
        origin: Light position (point lights).
        direction: Unit direction of travel (directional lights).
        intensity: Scalar intensity.
        color: RGB color.
    """

    handle: int
    light_type: LightType
    origin: Vector3
    direction: Vector3
    intensity: float
    color: Vector3


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Material index 0 is the built-in default and is not listed; the first
    entry of materials gets index 1.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations.
        planes: List of plane configurations.
        meshes: List of triangle mesh configurations.
        lights: List of light configurations.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    planes: list[dict[str, Any]] = field(default_factory=list)
    meshes: list[dict[str, Any]] = field(default_factory=list)
    lights: list[dict[str, Any]] = field(default_factory=list)


class Scene:
    """Owner of all primitives, lights and materials of one scene.

    Attributes:
        materials: Materials indexed by material index.
        spheres: SphereInfo for every sphere, indexed by handle.
        planes: PlaneInfo for every plane, indexed by handle.
        meshes: MeshInfo for every triangle mesh, indexed by handle.
        lights: LightInfo for every light, indexed by handle.

    Example:
        >>> scene = Scene()
        >>> yellow = scene.add_material(SolidColorMaterial((1, 1, 0)))
        >>> scene.add_plane(origin=(0, 0, 0), normal=(0, 1, 0), material_id=yellow)
        0
        >>> scene.add_point_light(origin=(0, 5, 5), intensity=50.0)
        0
        >>> scene.does_hit(origin=(0, 1, 0), direction=(0, -1, 0))
        True
    """

    def __init__(self) -> None:
        """Initialize an empty scene holding only the default material."""
        self.materials: list[Material] = []
        self.spheres: list[SphereInfo] = []
        self.planes: list[PlaneInfo] = []
        self.meshes: list[MeshInfo] = []
        self.lights: list[LightInfo] = []
        self._frozen = False
        self._clear_all()

    def _clear_all(self) -> None:
        if intersection.get_active_owner() is self:
            intersection.clear_scene()
        self.materials[:] = [SolidColorMaterial((1.0, 0.0, 0.0))]
        self.spheres.clear()
        self.planes.clear()
        self.meshes.clear()
        self.lights.clear()
        self._frozen = False

    def clear(self) -> None:
        """Remove every primitive, light and added material.

        The scene returns to setup with only the default material.

        Raises:
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        self._clear_all()
        logger.debug("Scene cleared")

    # =========================================================================
    # Phase control
    # =========================================================================

    @property
    def is_frozen(self) -> bool:
        """Whether the scene is in the query phase."""
        return self._frozen

    def freeze(self) -> None:
        """Validate the scene, upload it and block further mutation.

        Freezing an already frozen scene only re-uploads it if another scene
        was uploaded since.

        Raises:
            RuntimeError: If the scene exceeds a storage capacity.
        """
        if self._frozen and intersection.get_active_owner() is self:
            return
        self._validate_capacity()
        self._upload()
        self._frozen = True
        logger.info(
            "Scene frozen: %d spheres, %d planes, %d meshes (%d triangles), %d lights, %d materials",
            len(self.spheres),
            len(self.planes),
            len(self.meshes),
            self.get_triangle_count(),
            len(self.lights),
            len(self.materials),
        )

    def unfreeze(self) -> None:
        """Return the scene to setup so it can be modified again."""
        self._frozen = False

    def _check_mutable(self) -> None:
        if self._frozen:
            raise SceneFrozenError("Scene is frozen; call unfreeze() before modifying it")

    def _validate_capacity(self) -> None:
        limits = (
            ("spheres", len(self.spheres), MAX_SPHERES),
            ("planes", len(self.planes), MAX_PLANES),
            ("meshes", len(self.meshes), MAX_MESHES),
            ("triangles", self.get_triangle_count(), MAX_TRIANGLES),
            ("lights", len(self.lights), MAX_LIGHTS),
        )
        for name, count, limit in limits:
            if count > limit:
                raise RuntimeError(f"Maximum number of {name} ({limit}) exceeded: {count}")

    def _upload(self) -> None:
        intersection.clear_scene()
        try:
            for sphere in self.spheres:
                intersection.add_sphere(sphere.center, sphere.radius, sphere.material_id)
            for plane in self.planes:
                intersection.add_plane(plane.origin, plane.normal, plane.material_id)
            for info in self.meshes:
                mesh = info.mesh
                mesh_index = intersection.add_mesh(int(mesh.cull_mode), mesh.material_id)
                vertices, normals = mesh.world_triangles()
                intersection.add_triangles(mesh_index, vertices, normals)
            for light in self.lights:
                intersection.add_light(
                    int(light.light_type),
                    light.origin,
                    light.direction,
                    light.intensity,
                    light.color,
                )
        except Exception:
            intersection.clear_scene()
            raise
        intersection.set_active_owner(self)

    def _ensure_uploaded(self) -> None:
        if not self._frozen or intersection.get_active_owner() is not self:
            self.freeze()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Take ownership of a material and return its material index.

        Raises:
            TypeError: If material is not a Material.
            RuntimeError: If the maximum number of materials is exceeded.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        if not isinstance(material, Material):
            raise TypeError(f"Expected a Material, got {type(material).__name__}")
        if len(self.materials) >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
        self.materials.append(material)
        material_id = len(self.materials) - 1
        logger.debug("Added material %d: %r", material_id, material)
        return material_id

    def get_material(self, material_id: int) -> Material:
        """Look up a material by index.

        Raises:
            ValueError: If the index does not name a material.
        """
        self._check_material_id(material_id)
        return self.materials[material_id]

    def get_material_count(self) -> int:
        """Get the number of materials, including the default."""
        return len(self.materials)

    def _check_material_id(self, material_id: int) -> int:
        if isinstance(material_id, bool) or not 0 <= int(material_id) < len(self.materials):
            raise ValueError(f"Invalid material_id: {material_id}")
        return int(material_id)

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: Sequence[float],
        radius: float,
        material_id: int = 0,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere.
            material_id: Material index; defaults to the built-in material.

        Returns:
            The handle of the added sphere.

        Raises:
            ValueError: If the radius is not positive or material_id is invalid.
            RuntimeError: If the maximum number of spheres is exceeded.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        if len(self.spheres) >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
        info = SphereInfo(
            handle=len(self.spheres),
            center=_vector3(center, "center"),
            radius=_check_radius(radius),
            material_id=self._check_material_id(material_id),
        )
        self.spheres.append(info)
        logger.debug("Added sphere %d at %s, radius %g", info.handle, info.center, info.radius)
        return info.handle

    def update_sphere(
        self,
        handle: int,
        center: Sequence[float] | None = None,
        radius: float | None = None,
        material_id: int | None = None,
    ) -> None:
        """Modify a sphere in place. Arguments left as None are unchanged.

        Raises:
            ValueError: If the handle is unknown or a new value is invalid.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        info = self.spheres[self._check_handle(handle, self.spheres, "sphere")]
        if center is not None:
            info.center = _vector3(center, "center")
        if radius is not None:
            info.radius = _check_radius(radius)
        if material_id is not None:
            info.material_id = self._check_material_id(material_id)

    def get_sphere(self, handle: int) -> SphereInfo:
        """Return a copy of a sphere's data.

        Raises:
            ValueError: If the handle is unknown.
        """
        return replace(self.spheres[self._check_handle(handle, self.spheres, "sphere")])

    def add_plane(
        self,
        origin: Sequence[float],
        normal: Sequence[float],
        material_id: int = 0,
    ) -> int:
        """Add an infinite plane to the scene.

        Args:
            origin: Any point on the plane as (x, y, z).
            normal: The plane normal; it is normalized before storing.
            material_id: Material index; defaults to the built-in material.

        Returns:
            The handle of the added plane.

        Raises:
            ValueError: If the normal is zero or material_id is invalid.
            RuntimeError: If the maximum number of planes is exceeded.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        if len(self.planes) >= MAX_PLANES:
            raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
        info = PlaneInfo(
            handle=len(self.planes),
            origin=_vector3(origin, "origin"),
            normal=_unit_vector3(normal, "normal"),
            material_id=self._check_material_id(material_id),
        )
        self.planes.append(info)
        logger.debug("Added plane %d at %s, normal %s", info.handle, info.origin, info.normal)
        return info.handle

    def update_plane(
        self,
        handle: int,
        origin: Sequence[float] | None = None,
        normal: Sequence[float] | None = None,
        material_id: int | None = None,
    ) -> None:
        """Modify a plane in place. Arguments left as None are unchanged.

        Raises:
            ValueError: If the handle is unknown or a new value is invalid.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        info = self.planes[self._check_handle(handle, self.planes, "plane")]
        if origin is not None:
            info.origin = _vector3(origin, "origin")
        if normal is not None:
            info.normal = _unit_vector3(normal, "normal")
        if material_id is not None:
            info.material_id = self._check_material_id(material_id)

    def get_plane(self, handle: int) -> PlaneInfo:
        """Return a copy of a plane's data.

        Raises:
            ValueError: If the handle is unknown.
        """
        return replace(self.planes[self._check_handle(handle, self.planes, "plane")])

    def add_triangle_mesh(
        self,
        positions: npt.ArrayLike | None = None,
        indices: npt.ArrayLike | None = None,
        normals: npt.ArrayLike | None = None,
        cull_mode: CullMode = CullMode.BACK_FACE,
        material_id: int = 0,
        transform: Matrix | None = None,
    ) -> int:
        """Add a triangle mesh to the scene.

        The mesh may start empty and be filled later with
        update_triangle_mesh().

        Args:
            positions: (V, 3) object-space vertex positions.
            indices: Flat 0-based index buffer, three indices per triangle.
            normals: (T, 3) face normals; computed from the winding order
                when omitted.
            cull_mode: Which side of the triangles is ignored.
            material_id: Material index; defaults to the built-in material.
            transform: Object-to-world transform, identity when omitted.

        Returns:
            The handle of the added mesh.

        Raises:
            ValueError: If the geometry is malformed or material_id is invalid.
            RuntimeError: If the maximum number of meshes is exceeded.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        if len(self.meshes) >= MAX_MESHES:
            raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")
        mesh = TriangleMesh(
            cull_mode=CullMode(cull_mode),
            material_id=self._check_material_id(material_id),
            transform=transform.copy() if transform is not None else Matrix.identity(),
        )
        if positions is not None or indices is not None:
            mesh.set_geometry(
                positions if positions is not None else np.zeros((0, 3)),
                indices if indices is not None else np.zeros(0, dtype=np.int64),
                normals,
            )
        return self._append_mesh(mesh, source=None)

    def add_triangle_mesh_from_obj(
        self,
        path: str | Path,
        cull_mode: CullMode = CullMode.BACK_FACE,
        material_id: int = 0,
        transform: Matrix | None = None,
    ) -> int | None:
        """Load an OBJ file and add it as a triangle mesh.

        Returns:
            The handle of the added mesh, or None if the file could not be
            loaded. The failure is logged as a warning.

        Raises:
            ValueError: If material_id is invalid.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        material_id = self._check_material_id(material_id)
        data = parse_obj(path)
        if data is None:
            return None
        if len(self.meshes) >= MAX_MESHES:
            raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")
        mesh = TriangleMesh(
            positions=data.positions,
            indices=data.indices,
            normals=data.normals,
            cull_mode=CullMode(cull_mode),
            material_id=material_id,
            transform=transform.copy() if transform is not None else Matrix.identity(),
        )
        return self._append_mesh(mesh, source=str(path))

    def _append_mesh(self, mesh: TriangleMesh, source: str | None) -> int:
        info = MeshInfo(handle=len(self.meshes), mesh=mesh, source=source)
        self.meshes.append(info)
        logger.debug(
            "Added mesh %d: %d triangles, cull mode %s",
            info.handle,
            mesh.triangle_count,
            mesh.cull_mode.name,
        )
        return info.handle

    def update_triangle_mesh(
        self,
        handle: int,
        positions: npt.ArrayLike | None = None,
        indices: npt.ArrayLike | None = None,
        normals: npt.ArrayLike | None = None,
        cull_mode: CullMode | None = None,
        material_id: int | None = None,
        transform: Matrix | None = None,
    ) -> None:
        """Modify a mesh in place. Arguments left as None are unchanged.

        Passing positions or indices replaces the geometry; the missing one
        of the two is kept from the current mesh. Normals are recomputed
        unless given.

        Raises:
            ValueError: If the handle is unknown or a new value is invalid.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        mesh = self.meshes[self._check_handle(handle, self.meshes, "mesh")].mesh
        if material_id is not None:
            material_id = self._check_material_id(material_id)
        if positions is not None or indices is not None:
            mesh.set_geometry(
                positions if positions is not None else mesh.positions,
                indices if indices is not None else mesh.indices,
                normals,
            )
        elif normals is not None:
            mesh.set_geometry(mesh.positions, mesh.indices, normals)
        if cull_mode is not None:
            mesh.cull_mode = CullMode(cull_mode)
        if material_id is not None:
            mesh.material_id = material_id
        if transform is not None:
            mesh.transform = transform.copy()

    def get_triangle_mesh(self, handle: int) -> TriangleMesh:
        """Return a copy of a mesh.

        Raises:
            ValueError: If the handle is unknown.
        """
        return copy.deepcopy(self.meshes[self._check_handle(handle, self.meshes, "mesh")].mesh)

    # =========================================================================
    # Light Management
    # =========================================================================

    def add_point_light(
        self,
        origin: Sequence[float],
        intensity: float,
        color: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Add a point light with inverse-square falloff.

        Returns:
            The handle of the added light.

        Raises:
            RuntimeError: If the maximum number of lights is exceeded.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        return self._append_light(
            LightType.POINT,
            origin=_vector3(origin, "origin"),
            direction=(0.0, 0.0, 0.0),
            intensity=float(intensity),
            color=_vector3(color, "color"),
        )

    def add_directional_light(
        self,
        direction: Sequence[float],
        intensity: float,
        color: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Add a light at infinity shining along direction.

        The direction is normalized before storing.

        Returns:
            The handle of the added light.

        Raises:
            ValueError: If the direction is zero.
            RuntimeError: If the maximum number of lights is exceeded.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        return self._append_light(
            LightType.DIRECTIONAL,
            origin=(0.0, 0.0, 0.0),
            direction=_unit_vector3(direction, "direction"),
            intensity=float(intensity),
            color=_vector3(color, "color"),
        )

    def _append_light(
        self,
        light_type: LightType,
        origin: Vector3,
        direction: Vector3,
        intensity: float,
        color: Vector3,
    ) -> int:
        if len(self.lights) >= MAX_LIGHTS:
            raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
        info = LightInfo(
            handle=len(self.lights),
            light_type=light_type,
            origin=origin,
            direction=direction,
            intensity=intensity,
            color=color,
        )
        self.lights.append(info)
        logger.debug("Added %s light %d, intensity %g", light_type.name.lower(), info.handle, intensity)
        return info.handle

    def update_light(
        self,
        handle: int,
        origin: Sequence[float] | None = None,
        direction: Sequence[float] | None = None,
        intensity: float | None = None,
        color: Sequence[float] | None = None,
    ) -> None:
        """Modify a light in place. Arguments left as None are unchanged.

        Origin only affects point lights and direction only affects
        directional lights, but both are stored either way.

        Raises:
            ValueError: If the handle is unknown or a new value is invalid.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        info = self.lights[self._check_handle(handle, self.lights, "light")]
        if origin is not None:
            info.origin = _vector3(origin, "origin")
        if direction is not None:
            info.direction = _unit_vector3(direction, "direction")
        if intensity is not None:
            info.intensity = float(intensity)
        if color is not None:
            info.color = _vector3(color, "color")

    def get_light(self, handle: int) -> LightInfo:
        """Return a copy of a light's data.

        Raises:
            ValueError: If the handle is unknown.
        """
        return replace(self.lights[self._check_handle(handle, self.lights, "light")])

    @staticmethod
    def _check_handle(handle: int, entries: list, kind: str) -> int:
        if isinstance(handle, bool) or not isinstance(handle, (int, np.integer)):
            raise ValueError(f"Invalid {kind} handle: {handle!r}")
        if not 0 <= handle < len(entries):
            raise ValueError(f"Unknown {kind} handle: {handle}")
        return int(handle)

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_closest_hit(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        t_min: float = 0.0,
        t_max: float = math.inf,
    ) -> HitInfo:
        """Find the closest surface along a ray.

        Spheres are tested before planes and planes before mesh triangles;
        on equal distances the first one tested is reported.

        Args:
            origin: Ray origin.
            direction: Ray direction, not required to be unit length.
            t_min: Near bound of the accepted interval.
            t_max: Far bound of the accepted interval.

        Returns:
            A HitInfo; did_hit is False and t is infinite on a miss.
        """
        self._ensure_uploaded()
        return intersection.query_closest_hit(origin, direction, t_min, t_max)

    def does_hit(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        t_min: float = 0.0,
        t_max: float = math.inf,
    ) -> bool:
        """Whether anything lies along a ray within [t_min, t_max].

        Always agrees with get_closest_hit(...).did_hit.
        """
        self._ensure_uploaded()
        return intersection.query_any_hit(origin, direction, t_min, t_max)

    def closest_hit_batch(
        self,
        origins: npt.ArrayLike,
        directions: npt.ArrayLike,
        t_min: float = 0.0,
        t_max: float = math.inf,
    ) -> BatchHits:
        """Closest hits for (N, 3) arrays of rays, evaluated in parallel."""
        self._ensure_uploaded()
        return intersection.query_closest_hit_batch(origins, directions, t_min, t_max)

    def does_hit_batch(
        self,
        origins: npt.ArrayLike,
        directions: npt.ArrayLike,
        t_min: float = 0.0,
        t_max: float = math.inf,
    ) -> np.ndarray:
        """Occlusion for (N, 3) arrays of rays, as an (N,) bool array."""
        self._ensure_uploaded()
        return intersection.query_any_hit_batch(origins, directions, t_min, t_max)

    def direct_lighting(
        self,
        point: Sequence[float],
        normal: Sequence[float],
    ) -> tuple[float, float, float]:
        """Summed radiance * cosine of every light visible from a surface point.

        Args:
            point: The shading point, usually a hit point.
            normal: The surface normal at the point; normalized before use.

        Returns:
            The RGB contribution, not weighted by any material.
        """
        self._ensure_uploaded()
        return intersection.query_direct_lighting(point, normal)

    # =========================================================================
    # Counts
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return len(self.spheres)

    def get_plane_count(self) -> int:
        """Get the number of planes in the scene."""
        return len(self.planes)

    def get_mesh_count(self) -> int:
        """Get the number of triangle meshes in the scene."""
        return len(self.meshes)

    def get_triangle_count(self) -> int:
        """Get the total number of triangles over all meshes."""
        return sum(info.mesh.triangle_count for info in self.meshes)

    def get_light_count(self) -> int:
        """Get the number of lights in the scene."""
        return len(self.lights)

    def get_primitive_count(self) -> int:
        """Get the number of spheres, planes and triangles."""
        return self.get_sphere_count() + self.get_plane_count() + self.get_triangle_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object.

        Returns:
            A SceneConfig containing all added materials, primitives and lights.
        """
        config = SceneConfig()

        # Index 0 is the built-in default and is recreated on load
        for material in self.materials[1:]:
            config.materials.append(material.to_config())

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for plane in self.planes:
            config.planes.append(
                {
                    "origin": list(plane.origin),
                    "normal": list(plane.normal),
                    "material_id": plane.material_id,
                }
            )

        for info in self.meshes:
            mesh = info.mesh
            config.meshes.append(
                {
                    "positions": mesh.positions.tolist(),
                    "indices": mesh.indices.tolist(),
                    "normals": mesh.normals.tolist(),
                    "cull_mode": mesh.cull_mode.name.lower(),
                    "material_id": mesh.material_id,
                    "transform": mesh.transform.to_numpy().tolist(),
                }
            )

        for light in self.lights:
            light_config: dict[str, Any] = {
                "type": light.light_type.name.lower(),
                "intensity": light.intensity,
                "color": list(light.color),
            }
            if light.light_type == LightType.POINT:
                light_config["origin"] = list(light.origin)
            else:
                light_config["direction"] = list(light.direction)
            config.lights.append(light_config)

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Args:
            config: The scene configuration to load.

        Raises:
            ValueError: If the configuration contains invalid data.
            SceneFrozenError: If the scene is frozen.
        """
        self._check_mutable()
        self.clear()

        # Load materials first (needed for primitives)
        for mat_config in config.materials:
            self.add_material(material_from_config(mat_config))

        for sphere_config in config.spheres:
            self.add_sphere(
                center=sphere_config.get("center", [0.0, 0.0, 0.0]),
                radius=sphere_config.get("radius", 1.0),
                material_id=sphere_config.get("material_id", 0),
            )

        for plane_config in config.planes:
            self.add_plane(
                origin=plane_config.get("origin", [0.0, 0.0, 0.0]),
                normal=plane_config.get("normal", [0.0, 1.0, 0.0]),
                material_id=plane_config.get("material_id", 0),
            )

        for mesh_config in config.meshes:
            cull_name = str(mesh_config.get("cull_mode", "back_face")).upper()
            if cull_name not in CullMode.__members__:
                raise ValueError(f"Unknown cull mode: {cull_name.lower()}")
            transform = mesh_config.get("transform")
            self.add_triangle_mesh(
                positions=mesh_config.get("positions", []),
                indices=mesh_config.get("indices", []),
                normals=mesh_config.get("normals"),
                cull_mode=CullMode[cull_name],
                material_id=mesh_config.get("material_id", 0),
                transform=Matrix.from_numpy(transform) if transform is not None else None,
            )

        for light_config in config.lights:
            light_type = str(light_config.get("type", "")).lower()
            intensity = light_config.get("intensity", 1.0)
            color = light_config.get("color", [1.0, 1.0, 1.0])
            if light_type == "point":
                self.add_point_light(light_config.get("origin", [0.0, 0.0, 0.0]), intensity, color)
            elif light_type == "directional":
                self.add_directional_light(
                    light_config.get("direction", [0.0, -1.0, 0.0]), intensity, color
                )
            else:
                raise ValueError(f"Unknown light type: {light_type}")

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization).

        Returns:
            A dictionary representation of the scene.
        """
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "planes": config.planes,
            "meshes": config.meshes,
            "lights": config.lights,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with 'materials', 'spheres', 'planes', 'meshes'
                and 'lights' keys; missing keys are treated as empty.
        """
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            planes=data.get("planes", []),
            meshes=data.get("meshes", []),
            lights=data.get("lights", []),
        )
        self.from_config(config)

    def save_scene_json(self, path: str | Path) -> None:
        """Write the scene description to a JSON file."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.info("Saved scene to %s", path)

    def load_scene_json(self, path: str | Path) -> None:
        """Replace this scene with the description stored in a JSON file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not valid JSON or holds invalid data.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        self.from_dict(data)
        logger.info("Loaded scene from %s", path)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_planes() -> int:
        """Get the maximum number of planes supported."""
        return MAX_PLANES

    @staticmethod
    def get_max_triangles() -> int:
        """Get the maximum number of triangles supported over all meshes."""
        return MAX_TRIANGLES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS
