"""
Ray Acceleration Index

Wraps a mesh with trimesh's BVH-backed ray intersector (Embree when the
embreex package is installed, rtree otherwise) together with per-triangle
normals aligned to the same triangle ids.

The index is read-only after construction and may be queried from several
threads at once. Embree queries run concurrently, rtree queries (trimesh's
fallback) are not thread safe and are serialized by a lock.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import trimesh

from shape_diameter.normals import compute_triangle_normals

logger = logging.getLogger(__name__)


def _is_embree_intersector(intersector) -> bool:
    ray_type = type(intersector).__name__
    ray_module = type(intersector).__module__
    return ('embree' in ray_type.lower() or
            'embree' in ray_module.lower())


def _check_embree_available() -> bool:
    """Check if trimesh is using Embree-backed ray tracing."""
    try:
        test_mesh = trimesh.creation.box()
        return _is_embree_intersector(test_mesh.ray)
    except ImportError:
        return False

EMBREE_AVAILABLE = _check_embree_available()

if EMBREE_AVAILABLE:
    logger.info("Embree ray tracing available via trimesh - using hardware-accelerated raycasting")
else:
    logger.info("Embree not available - using trimesh default raycasting")


@dataclass(frozen=True)
class RayHit:
    """Nearest intersection of one ray."""
    distance: float
    triangle_id: int


class AccelerationIndex:
    """
    First-hit ray queries over a fixed mesh.
    """

    def __init__(self, mesh: trimesh.Trimesh):
        """
        Build the index.

        Args:
            mesh: Mesh to cast against, must not be modified afterwards
        """
        self.mesh = mesh
        self.triangle_normals = compute_triangle_normals(mesh)
        self._v0 = np.asarray(mesh.vertices, dtype=np.float64)[np.asarray(mesh.faces)[:, 0]]
        self._face_count = len(mesh.faces)
        self._intersector = mesh.ray
        # rtree crashes on concurrent queries, Embree does not
        self._query_lock = None if _is_embree_intersector(self._intersector) else threading.Lock()
        # Build the lazy BVH now, worker threads must only read it
        if self._face_count > 0:
            self._intersector.intersects_first(
                ray_origins=np.zeros((1, 3)),
                ray_directions=np.array([[0.0, 0.0, 1.0]])
            )
        logger.debug(
            f"Acceleration index: {len(mesh.faces)} triangles, "
            f"ray tracer {type(self._intersector).__name__}, "
            f"serialized queries: {self._query_lock is not None}"
        )

    def first_hits(self, origin: np.ndarray, directions: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Nearest hit of many rays sharing one origin.

        Args:
            origin: Ray start point (3,)
            directions: Unit ray directions (N, 3)

        Returns:
            Tuple of (distances (N,), triangle_ids (N,)); misses have
            triangle id -1 and distance NaN
        """
        directions = np.asarray(directions, dtype=np.float64).reshape(-1, 3)
        n_rays = len(directions)
        distances = np.full(n_rays, np.nan)
        if n_rays == 0 or self._face_count == 0:
            return distances, np.full(n_rays, -1, dtype=np.int64)

        origins = np.tile(np.asarray(origin, dtype=np.float64), (n_rays, 1))
        triangle_ids = np.asarray(self._intersects_first(origins, directions), dtype=np.int64)

        hit = triangle_ids >= 0
        if hit.any():
            normals = self.triangle_normals[triangle_ids[hit]]
            denominator = np.einsum('ij,ij->i', directions[hit], normals)
            numerator = np.einsum('ij,ij->i', self._v0[triangle_ids[hit]] - origins[hit], normals)
            with np.errstate(divide='ignore', invalid='ignore'):
                distances[hit] = numerator / denominator

        # Degenerate or grazing hits carry no usable distance
        invalid = ~np.isfinite(distances) | (distances < 0.0)
        triangle_ids[invalid] = -1
        distances[invalid] = np.nan
        return distances, triangle_ids

    def _intersects_first(self, origins: np.ndarray, directions: np.ndarray) -> np.ndarray:
        if self._query_lock is None:
            return self._intersector.intersects_first(ray_origins=origins, ray_directions=directions)
        with self._query_lock:
            return self._intersector.intersects_first(ray_origins=origins, ray_directions=directions)

    def first_hit(self, origin: np.ndarray, direction: np.ndarray) -> Optional[RayHit]:
        """Nearest hit of a single ray, or None when nothing is hit."""
        distances, triangle_ids = self.first_hits(origin, np.asarray(direction).reshape(1, 3))
        if triangle_ids[0] < 0:
            return None
        return RayHit(distance=float(distances[0]), triangle_id=int(triangle_ids[0]))
