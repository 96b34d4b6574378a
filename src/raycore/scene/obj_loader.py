"""Minimal Wavefront OBJ reader for triangle meshes.

Only the records a triangle mesh needs are read:
- ``v x y z`` vertex positions
- ``f a b c`` triangular faces with 1-based vertex indices. Tokens of the
  form ``a/b/c`` or ``a//c`` use the vertex index before the first slash.

Comments (``#``) and every other record type are skipped. Indices are
converted to 0-based and one face normal per triangle is computed from the
winding order, normalize(cross(v1 - v0, v2 - v0)).

A file that cannot be read or contains a malformed record is reported by
returning None and logging a warning; the caller decides whether to abort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from raycore.geometry.mesh import compute_face_normals, validate_index_buffer

logger = logging.getLogger(__name__)


@dataclass
class ObjData:
    """Arrays read from an OBJ file.

    Attributes:
        positions: (V, 3) float64 vertex positions.
        indices: Flat 0-based int64 index buffer, three per triangle.
        normals: (T, 3) float64 face normals.
    """

    positions: np.ndarray
    indices: np.ndarray
    normals: np.ndarray

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3


def _parse_face_index(token: str) -> int:
    return int(token.split("/", 1)[0]) - 1


def parse_obj(path: str | Path) -> ObjData | None:
    """Read vertex positions and triangles from an OBJ file.

    Args:
        path: Path of the OBJ file.

    Returns:
        The parsed ObjData, or None if the file is missing, unreadable or
        malformed.
    """
    path = Path(path)
    positions: list[tuple[float, float, float]] = []
    indices: list[int] = []

    try:
        with path.open("r", encoding="utf-8") as fh:
            for line_number, line in enumerate(fh, start=1):
                parts = line.split("#", 1)[0].split()
                if not parts:
                    continue
                record = parts[0]
                try:
                    if record == "v":
                        positions.append((float(parts[1]), float(parts[2]), float(parts[3])))
                    elif record == "f":
                        if len(parts) != 4:
                            raise ValueError(f"expected 3 face indices, got {len(parts) - 1}")
                        indices.extend(_parse_face_index(token) for token in parts[1:4])
                except (IndexError, ValueError) as e:
                    logger.warning("Malformed record on line %d of %s: %s", line_number, path, e)
                    return None
    except OSError as e:
        logger.warning("Could not read OBJ file %s: %s", path, e)
        return None

    try:
        index_buffer = validate_index_buffer(indices, len(positions))
    except ValueError as e:
        logger.warning("Invalid faces in %s: %s", path, e)
        return None

    vertex_array = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    data = ObjData(
        positions=vertex_array,
        indices=index_buffer,
        normals=compute_face_normals(vertex_array, index_buffer),
    )
    logger.info(
        "Loaded %s: %d vertices, %d triangles", path, len(vertex_array), data.triangle_count
    )
    return data
