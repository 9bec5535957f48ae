"""
Support Point Generation

Turns per-vertex thickness into randomly placed support candidates. Each
triangle receives points proportionally to its area divided by the area one
support covers, the covered area comes from the thickness-mapped radius.

Triangles with any unmeasured corner are skipped entirely.
Thickness below the minimal width is not clamped, the radius keeps falling
linearly under the minimal radius. Triangles whose corners all map to a
zero radius cover no area and are skipped.
"""

import logging
import math
from dataclasses import dataclass
from typing import List

import numpy as np
import trimesh

from shape_diameter.config import SampleConfig
from shape_diameter.mesh_metrics import triangle_areas
from shape_diameter.normals import compute_triangle_normals

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PointRadius:
    """Support candidate: position and radius of the area it supports."""
    point: np.ndarray  # (3,)
    radius: float

    def __eq__(self, other):
        if not isinstance(other, PointRadius):
            return NotImplemented
        return self.radius == other.radius and np.array_equal(self.point, other.point)

    def __hash__(self):
        return hash((tuple(np.asarray(self.point).tolist()), self.radius))


def generate_support_points(
    mesh: trimesh.Trimesh,
    widths: np.ndarray,
    config: SampleConfig,
    rng: np.random.Generator
) -> List[PointRadius]:
    """
    Sample support candidates over the mesh surface.

    Random draws happen in a fixed order (one count draw per measured
    triangle, then two barycentric draws per point), so a seeded generator
    reproduces the same points.

    Args:
        mesh: Sampled (subdivided) mesh
        widths: Thickness per vertex, NO_WIDTH (negative) when unmeasured
        config: Sampling configuration
        rng: Random generator owned by the caller

    Returns:
        List of PointRadius
    """
    widths = np.asarray(widths, dtype=np.float64)
    vertices = np.asarray(mesh.vertices, dtype=np.float64)
    faces = np.asarray(mesh.faces, dtype=np.int64).reshape(-1, 3)
    if len(widths) != len(vertices):
        raise ValueError(f"Got {len(widths)} widths for {len(vertices)} vertices")

    areas = triangle_areas(mesh)
    face_normals = compute_triangle_normals(mesh)

    result: List[PointRadius] = []
    skipped_partial = 0
    for face_index, triangle_indices in enumerate(faces):
        corner_widths = widths[triangle_indices]
        # TODO: cover triangles with only some corners measured
        if np.any(corner_widths > config.max_width) or np.any(corner_widths < 0.0):
            skipped_partial += 1
            continue

        radiuses = config.width_to_radius(corner_widths)
        area_for_one_support = float(np.mean(math.pi * radiuses * radiuses))
        if area_for_one_support <= 0.0:
            # Thickness far below min_width maps to a zero radius
            continue

        countf = areas[face_index] / area_for_one_support * config.multiplicator
        fraction, int_part = math.modf(countf)
        count = int(int_part)
        # Probability of one more point instead of rounding the area
        if rng.random() < fraction:
            count += 1
        if count == 0:
            continue

        # Filtrate top side triangles
        if face_normals[face_index][2] > config.normal_z_max:
            continue

        triangle = vertices[triangle_indices]
        for _ in range(count):
            b0 = rng.random()
            b1 = rng.random()
            if b0 + b1 > 1.0:
                b0 = 1.0 - b0
                b1 = 1.0 - b1
            barycentric = np.array([b0, b1, 1.0 - b0 - b1])
            result.append(PointRadius(
                point=barycentric @ triangle,
                radius=float(barycentric @ radiuses)
            ))

    logger.info(
        f"Generated {len(result)} support candidates from {len(faces)} triangles "
        f"({skipped_partial} without full thickness coverage)"
    )
    return result
