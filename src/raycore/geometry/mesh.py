"""Triangle mesh data held on the Python side during scene setup.

A TriangleMesh owns three parallel pieces of data:
- positions: (V, 3) vertex positions in object space
- indices: flat triangle index buffer; each group of three consecutive
  0-based indices forms one triangle
- normals: (T, 3) per-face unit normals, one per triangle

plus a cull mode, a material index and an object-to-world Matrix. The scene
applies the transform and flattens every mesh into its triangle storage when
it is frozen, so editing a mesh or its transform between frames only costs a
re-upload.

Example:
    >>> from raycore.geometry.mesh import TriangleMesh
    >>> from raycore.geometry.triangle import CullMode
    >>> mesh = TriangleMesh(cull_mode=CullMode.BACK_FACE)
    >>> mesh.append_triangle((-1, 0, 0), (0, 1, 0), (1, 0, 0))
    >>> mesh.triangle_count
    1
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from raycore.core.transform import Matrix

from .triangle import CullMode

logger = logging.getLogger(__name__)


def compute_face_normals(positions: npt.ArrayLike, indices: npt.ArrayLike) -> np.ndarray:
    """Compute one unit normal per triangle from its winding order.

    The normal of triangle (i0, i1, i2) is
    normalize(cross(p[i1] - p[i0], p[i2] - p[i0])). Degenerate triangles
    (zero area) get a zero normal and are reported with a warning.

    Args:
        positions: (V, 3) vertex positions.
        indices: Flat index buffer whose length is a multiple of 3.

    Returns:
        A (T, 3) float64 array of face normals.
    """
    pos = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    tris = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    if len(tris) == 0:
        return np.zeros((0, 3), dtype=np.float64)

    edge1 = pos[tris[:, 1]] - pos[tris[:, 0]]
    edge2 = pos[tris[:, 2]] - pos[tris[:, 0]]
    normals = np.cross(edge1, edge2)
    lengths = np.linalg.norm(normals, axis=1)

    degenerate = lengths <= 0.0
    if np.any(degenerate):
        logger.warning("%d degenerate triangle(s) have no normal", int(np.count_nonzero(degenerate)))
    safe = np.where(degenerate, 1.0, lengths)
    return normals / safe[:, None]


def validate_index_buffer(indices: npt.ArrayLike, vertex_count: int) -> np.ndarray:
    """Check that an index buffer describes whole triangles over existing vertices.

    Returns:
        The indices as a flat int64 array.

    Raises:
        ValueError: If the length is not a multiple of 3 or an index is out
            of range.
    """
    idx = np.asarray(indices, dtype=np.int64).reshape(-1)
    if len(idx) % 3 != 0:
        raise ValueError(f"Index buffer length {len(idx)} is not a multiple of 3")
    if len(idx) and (idx.min() < 0 or idx.max() >= vertex_count):
        raise ValueError(f"Index buffer references vertices outside [0, {vertex_count})")
    return idx


@dataclass
class TriangleMesh:
    """A triangle mesh with culling, material and transform.

    Attributes:
        positions: (V, 3) object-space vertex positions.
        indices: Flat 0-based triangle index buffer.
        normals: (T, 3) object-space face normals.
        cull_mode: Which triangle side intersection tests ignore.
        material_id: Index into the owning scene's material list.
        transform: Object-to-world transform applied when uploading.
    """

    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float64))
    indices: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    normals: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float64))
    cull_mode: CullMode = CullMode.BACK_FACE
    material_id: int = 0
    transform: Matrix = field(default_factory=Matrix.identity)

    @classmethod
    def from_arrays(
        cls,
        positions: npt.ArrayLike,
        indices: npt.ArrayLike,
        normals: npt.ArrayLike | None = None,
        cull_mode: CullMode = CullMode.BACK_FACE,
        material_id: int = 0,
    ) -> TriangleMesh:
        """Build a mesh from vertex and index arrays.

        Face normals are computed from the winding order when not given.

        Raises:
            ValueError: If the index buffer or normals do not match.
        """
        mesh = cls(cull_mode=CullMode(cull_mode), material_id=material_id)
        mesh.set_geometry(positions, indices, normals)
        return mesh

    def set_geometry(
        self,
        positions: npt.ArrayLike,
        indices: npt.ArrayLike,
        normals: npt.ArrayLike | None = None,
    ) -> None:
        """Replace the mesh's vertices, indices and face normals.

        Raises:
            ValueError: If the index buffer is malformed or the number of
                normals differs from the number of triangles.
        """
        pos = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        idx = validate_index_buffer(indices, len(pos))
        if normals is None:
            nrm = compute_face_normals(pos, idx)
        else:
            nrm = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
            if len(nrm) != len(idx) // 3:
                raise ValueError(
                    f"Expected {len(idx) // 3} face normals, got {len(nrm)}"
                )
        self.positions = pos
        self.indices = idx
        self.normals = nrm

    def append_triangle(
        self,
        v0: Sequence[float],
        v1: Sequence[float],
        v2: Sequence[float],
    ) -> None:
        """Append one triangle with its own three vertices."""
        start = len(self.positions)
        new_positions = np.asarray([v0, v1, v2], dtype=np.float64).reshape(3, 3)
        new_indices = np.arange(start, start + 3, dtype=np.int64)
        self.positions = np.vstack([self.positions, new_positions])
        self.indices = np.concatenate([self.indices, new_indices])
        self.normals = np.vstack([self.normals, compute_face_normals(new_positions, [0, 1, 2])])

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    def transformed_positions(self) -> np.ndarray:
        """Vertex positions in world space."""
        return self.transform.transform_points(self.positions)

    def transformed_normals(self) -> np.ndarray:
        """Face normals in world space, renormalised.

        Uses the transform's vector part directly, which is exact only for
        rotations, translations and uniform scales.
        """
        normals = self.transform.transform_vectors(self.normals)
        lengths = np.linalg.norm(normals, axis=1)
        lengths = np.where(lengths > 0.0, lengths, 1.0)
        return normals / lengths[:, None]

    def world_triangles(self) -> tuple[np.ndarray, np.ndarray]:
        """Flatten the mesh into world-space triangles.

        Returns:
            Tuple of (vertices, normals) where vertices has shape (T, 3, 3)
            and normals has shape (T, 3).
        """
        positions = self.transformed_positions()
        tris = self.indices.reshape(-1, 3)
        return positions[tris], self.transformed_normals()
