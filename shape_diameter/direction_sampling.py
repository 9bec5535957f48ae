"""
Ray Direction Sampling

Generates the cone of ray directions used for local thickness estimation.
Directions follow a Fibonacci (golden angle) spiral around +Z, so a single
set is generated once and rotated onto each vertex normal.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
import trimesh

logger = logging.getLogger(__name__)

DIRECTIONS_DEBUG_FILE = "unit_z_rays.stl"


@dataclass(frozen=True, eq=False)
class Direction:
    """Unit ray direction around +Z with its confidence weight."""
    dir: np.ndarray   # Unit vector (3,)
    weight: float     # z component, rays closer to the axis count more

    def __eq__(self, other):
        if not isinstance(other, Direction):
            return NotImplemented
        return self.weight == other.weight and np.array_equal(self.dir, other.dir)

    def __hash__(self):
        return hash((tuple(np.asarray(self.dir).tolist()), self.weight))


def create_fibonacci_sphere_samples(angle: float, count_samples: int) -> List[Direction]:
    """
    Create unit directions inside a cone around +Z using Fibonacci sampling.

    The spiral walks z from 1 down to 0 in ``count_samples`` steps and stops
    as soon as it leaves the cone, so fewer directions than requested are
    usually returned.

    Args:
        angle: Full cone angle in degrees, must be in (1, 180)
        count_samples: Number of samples for the whole hemisphere

    Returns:
        List of Direction, first one is always +Z
    """
    if count_samples <= 1:
        return [Direction(dir=np.array([0.0, 0.0, 1.0]), weight=1.0)]

    if not 1.0 < angle < 180.0:
        raise ValueError(f"Cone angle must be in (1, 180) degrees, got {angle}")
    min_z = math.cos(math.radians(angle / 2.0))

    phi = math.pi * (3.0 - math.sqrt(5.0))  # Golden angle
    directions: List[Direction] = []
    for i in range(count_samples):
        z = 1.0 - i / float(count_samples - 1)
        if z < min_z:
            break
        radius = math.sqrt(1.0 - z * z)
        theta = phi * i
        vec = np.array([math.cos(theta) * radius, math.sin(theta) * radius, z])
        directions.append(Direction(dir=vec, weight=z))

    logger.debug(f"Created {len(directions)} ray directions (cone {angle:.1f} deg, {count_samples} samples)")
    return directions


def directions_to_array(directions: Sequence[Direction]):
    """
    Split directions into contiguous arrays.

    Returns:
        Tuple of (dirs (N, 3), weights (N,))
    """
    dirs = np.array([d.dir for d in directions], dtype=np.float64).reshape(-1, 3)
    weights = np.array([d.weight for d in directions], dtype=np.float64)
    return dirs, weights


def store_directions_as_mesh(
    directions: Sequence[Direction],
    file_path: str = DIRECTIONS_DEBUG_FILE
) -> bool:
    """
    Store directions as thin triangles for visual inspection.

    Each direction becomes two crossed skinny triangles with the tip at
    three times the unit direction.

    Args:
        directions: Directions to visualize
        file_path: Output ASCII STL path

    Returns:
        True when the file was written
    """
    triangle_size = 0.1
    triangle_length = 3.0
    vertices = []
    faces = []
    for index, direction in enumerate(directions):
        ray = np.asarray(direction.dir, dtype=np.float64)
        base = index * 5
        vertices.append(ray * triangle_length)
        vertices.append(ray + [triangle_size / 2.0, 0.0, 0.0])
        vertices.append(ray + [-triangle_size / 2.0, 0.0, 0.0])
        faces.append([base, base + 1, base + 2])
        vertices.append(ray + [0.0, triangle_size / 2.0, 0.0])
        vertices.append(ray + [0.0, -triangle_size / 2.0, 0.0])
        faces.append([base, base + 3, base + 4])

    mesh = trimesh.Trimesh(
        vertices=np.array(vertices, dtype=np.float64).reshape(-1, 3),
        faces=np.array(faces, dtype=np.int64).reshape(-1, 3),
        process=False
    )
    try:
        mesh.export(file_path, file_type='stl_ascii')
    except OSError as e:
        logger.warning(f"Storing ray directions to {file_path} failed: {e}")
        return False

    logger.info(f"Stored {len(directions)} ray directions to {file_path}")
    return True
