"""
Mesh Normal Utilities

Per-triangle and per-vertex normals for sampling. The vertex normal strategy
is selectable because thin features react differently to averaging.
"""

from enum import Enum

import numpy as np
import trimesh


class NormalType(Enum):
    """Strategies for combining face normals into a vertex normal."""
    AVERAGE = "average"                # Plain mean of incident face normals
    AREA_WEIGHTED = "area_weighted"    # Weighted by face area
    ANGLE_WEIGHTED = "angle_weighted"  # Weighted by corner angle


def compute_triangle_normals(mesh: trimesh.Trimesh) -> np.ndarray:
    """
    Unit normal of every triangle, aligned with ``mesh.faces``.

    Degenerate triangles get a zero normal.
    """
    return np.array(mesh.face_normals, dtype=np.float64).reshape(-1, 3)


def compute_vertex_normals(
    mesh: trimesh.Trimesh,
    normal_type: NormalType = NormalType.ANGLE_WEIGHTED
) -> np.ndarray:
    """
    Compute a unit normal for every vertex.

    Args:
        mesh: Input mesh
        normal_type: How incident face normals are weighted

    Returns:
        (V, 3) array of unit normals, zero for unreferenced vertices
    """
    vertices = np.asarray(mesh.vertices, dtype=np.float64)
    faces = np.asarray(mesh.faces, dtype=np.int64).reshape(-1, 3)
    face_normals = compute_triangle_normals(mesh)

    if normal_type == NormalType.AVERAGE:
        weights = np.ones((len(faces), 3))
    elif normal_type == NormalType.AREA_WEIGHTED:
        weights = np.repeat(np.asarray(mesh.area_faces)[:, None], 3, axis=1)
    elif normal_type == NormalType.ANGLE_WEIGHTED:
        weights = np.nan_to_num(trimesh.triangles.angles(vertices[faces]))
    else:
        raise ValueError(f"Unknown normal type: {normal_type}")

    normal_accum = np.zeros((len(vertices), 3), dtype=np.float64)
    for corner in range(3):
        np.add.at(normal_accum, faces[:, corner], face_normals * weights[:, corner, None])

    norms = np.linalg.norm(normal_accum, axis=1, keepdims=True)
    norms = np.where(norms > 1e-10, norms, 1.0)
    return normal_accum / norms
