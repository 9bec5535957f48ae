"""
Tiny Part Support Sampling

Entry point of the support point generator for thin model parts:
1. Collapse micro edges of a copy of the mesh
2. Build the ray acceleration index over the collapsed mesh
3. Subdivide the collapsed mesh to the sampling resolution
4. Estimate thickness in every subdivided vertex
5. Sample support candidates proportionally to thickness
6. Declutter candidates against each other and already placed supports
"""

import logging
import time
from typing import Optional

import numpy as np
import trimesh

from shape_diameter.config import Config
from shape_diameter.declutter import poisson_sphere_from_samples
from shape_diameter.edge_collapse import connect_small_triangles
from shape_diameter.normals import compute_vertex_normals
from shape_diameter.point_grid import PointGrid
from shape_diameter.ray_index import AccelerationIndex, EMBREE_AVAILABLE
from shape_diameter.subdivision import subdivide
from shape_diameter.support_points import generate_support_points
from shape_diameter.width_estimation import calc_widths

logger = logging.getLogger(__name__)


def sample_tiny_parts(
    mesh: trimesh.Trimesh,
    grid: PointGrid,
    config: Config,
    rng: np.random.Generator,
    num_workers: Optional[int] = None
) -> np.ndarray:
    """
    Generate support points for thin parts of a model.

    Args:
        mesh: Model mesh (not modified)
        grid: Supports placed earlier, queried for collisions only
        config: Pipeline configuration
        rng: Random generator, seed it for reproducible output
        num_workers: Threads for thickness estimation (default: CPU count - 1)

    Returns:
        (N, 3) array of support positions
    """
    start_time = time.perf_counter()
    logger.info(f"Sampling tiny parts: {len(mesh.vertices)} vertices, {len(mesh.faces)} faces")
    logger.info(f"Ray tracer Embree: {EMBREE_AVAILABLE}")

    collapsed = trimesh.Trimesh(
        vertices=np.array(mesh.vertices, dtype=np.float64),
        faces=np.array(mesh.faces, dtype=np.int64),
        process=False
    )
    connect_small_triangles(collapsed, config.min_length, config.max_error)
    if len(collapsed.faces) == 0:
        logger.warning("Mesh has no faces left after edge collapse")
        return np.empty((0, 3), dtype=np.float64)

    index = AccelerationIndex(collapsed)

    divided = subdivide(collapsed, config.max_length)
    vertex_normals = compute_vertex_normals(divided, config.normal_type)

    widths = calc_widths(divided.vertices, vertex_normals, index, config.rays, num_workers=num_workers)
    if len(widths) != len(divided.vertices):
        logger.warning("Thickness estimation returned no result")
        return np.empty((0, 3), dtype=np.float64)

    points = generate_support_points(divided, widths, config.sample, rng)
    points = poisson_sphere_from_samples(points, grid)

    result = np.array([p.point for p in points], dtype=np.float64).reshape(-1, 3)

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"Tiny parts sampling complete: {len(result)} support points in {elapsed_ms:.0f}ms")
    return result
