"""
Local Thickness (Shape Diameter) Estimation

Casts a cone of rays from each surface point along its inverted normal and
reduces the hit distances to one thickness value:
1. Reject nearly top-facing points
2. Rotate the shared +Z direction cone onto the inverted normal
3. Drop hits on back-facing triangles (ray escaped through an edge)
4. Drop hits far from the mean (outliers beyond k * standard deviation)
5. Weighted mean of the rest, weights favour rays close to the cone axis

Points without a usable measurement get NO_WIDTH.
"""

import logging
import multiprocessing
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np
import trimesh

from shape_diameter.config import RaysConfig
from shape_diameter.ray_index import AccelerationIndex

logger = logging.getLogger(__name__)

# Value of width when there is no measurement
NO_WIDTH = -1.0

# Points evaluated by one task in calc_widths
CHUNK_SIZE = 64

Z_AXIS = np.array([0.0, 0.0, 1.0])


def calc_width(
    point: np.ndarray,
    normal: np.ndarray,
    index: AccelerationIndex,
    config: RaysConfig
) -> float:
    """
    Estimate the thickness of the model under one surface point.

    Args:
        point: Surface point (3,)
        normal: Unit outward normal at the point (3,)
        index: Acceleration index of the model
        config: Ray casting configuration

    Returns:
        Thickness, or NO_WIDTH when it can't be measured
    """
    normal = np.asarray(normal, dtype=np.float64)
    if normal[2] > config.normal_z_max:
        return NO_WIDTH

    ray_dir = -normal
    ray_point = np.asarray(point, dtype=np.float64) + ray_dir * config.safe_move

    rotation = trimesh.geometry.align_vectors(Z_AXIS, ray_dir)[:3, :3]
    dirs, all_weights = config.direction_arrays
    rays = dirs @ rotation.T

    widths, triangle_ids = index.first_hits(ray_point, rays)
    valid = triangle_ids >= 0

    if config.angle_filtering and valid.any():
        hit_normals = index.triangle_normals[triangle_ids[valid]]
        dots = np.clip(hit_normals @ ray_dir, -1.0, 1.0)
        # More than 90 deg means the face was hit from its back side,
        # the ray went through an edge or the face is inside the model
        angle_ok = np.arccos(dots) <= config.allowed_angle
        valid[np.flatnonzero(valid)[~angle_ok]] = False

    widths = widths[valid]
    weights = all_weights[valid]
    if len(widths) == 0:
        return NO_WIDTH
    if len(widths) == 1:
        return float(widths[0])

    mean = float(widths.mean())
    standard_deviation = float(widths.std())

    keep = np.ones(len(widths), dtype=bool)
    if config.deviation_filtering:
        threshold_deviation = standard_deviation * config.allowed_deviation
        keep = np.abs(widths - mean) <= threshold_deviation

    sum_weight = float(weights[keep].sum())
    if sum_weight <= 0.0:
        return mean
    return float((widths[keep] * weights[keep]).sum() / sum_weight) + config.safe_move


def calc_widths(
    points: np.ndarray,
    normals: np.ndarray,
    index: AccelerationIndex,
    config: RaysConfig,
    num_workers: Optional[int] = None
) -> np.ndarray:
    """
    Estimate thickness for a batch of points in parallel.

    Work is split into fixed chunks, each writing only its own slots, so the
    result does not depend on the number of workers.

    Args:
        points: (N, 3) surface points
        normals: (N, 3) unit normals, aligned with points
        index: Acceleration index of the model
        config: Ray casting configuration
        num_workers: Thread count (default: CPU count - 1)

    Returns:
        (N,) thickness per point, empty array on invalid input
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)

    if len(points) == 0 or len(config.dirs) == 0 or len(points) != len(normals):
        logger.warning(
            f"Invalid thickness input: {len(points)} points, {len(normals)} normals, "
            f"{len(config.dirs)} directions"
        )
        return np.empty(0, dtype=np.float64)

    if num_workers is None:
        num_workers = max(1, multiprocessing.cpu_count() - 1)

    start_time = time.perf_counter()
    size = len(points)
    widths = np.empty(size, dtype=np.float64)

    def process_range(begin: int) -> None:
        end = min(begin + CHUNK_SIZE, size)
        for i in range(begin, end):
            widths[i] = calc_width(points[i], normals[i], index, config)

    starts = range(0, size, CHUNK_SIZE)
    if num_workers <= 1:
        for begin in starts:
            process_range(begin)
    else:
        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            # list() re-raises errors from workers
            list(executor.map(process_range, starts))

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    measured = int(np.count_nonzero(widths >= 0.0))
    logger.info(
        f"Thickness estimated for {size} points ({measured} measurable, "
        f"{len(config.dirs)} rays each) in {elapsed_ms:.0f}ms"
    )
    return widths
