"""
Triangle measurements used by sampling and its diagnostics.
"""

import numpy as np
import trimesh


def triangle_area(v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> float:
    """Area of a single triangle."""
    triangle = np.array([v0, v1, v2], dtype=np.float64).reshape(1, 3, 3)
    return float(trimesh.triangles.area(triangle)[0])


def triangle_areas(mesh: trimesh.Trimesh) -> np.ndarray:
    """Area of every triangle, aligned with ``mesh.faces``."""
    return np.array(mesh.area_faces, dtype=np.float64).reshape(-1)


def surface_area(mesh: trimesh.Trimesh) -> float:
    """Sum of all triangle areas."""
    return float(mesh.area)


def min_triangle_side_length(mesh: trimesh.Trimesh) -> float:
    """
    Length of the shortest triangle side in the mesh.

    Args:
        mesh: Mesh with at least one face

    Returns:
        Shortest edge length over all faces
    """
    if len(mesh.faces) == 0:
        raise ValueError("Mesh has no faces")
    return float(np.min(mesh.edges_unique_length))
