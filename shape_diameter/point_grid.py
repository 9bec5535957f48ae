"""
Point Grid

Uniform hash grid of spheres answering "does a sphere at P with radius R
touch anything already inserted". Used for the local state of decluttering
and as a ready-made implementation of the caller's grid of already placed
supports.
"""

import math
from collections import defaultdict
from typing import Dict, List, Protocol, Tuple

import numpy as np


class PointGrid(Protocol):
    """Collision queries consumed by the declutter filter."""

    def collides_with(self, point: np.ndarray, radius: float) -> bool:
        ...

    def insert(self, point: np.ndarray, radius: float = 0.0) -> None:
        ...


class PointGrid3D:
    """
    Sparse grid of spheres bucketed by cubic cells.

    Two spheres collide when the distance of their centers is smaller than
    the sum of their radii. Points inserted without a radius act as plain
    points.
    """

    def __init__(self, cell_size: float):
        if cell_size <= 0.0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = float(cell_size)
        self._cells: Dict[Tuple[int, int, int], List[Tuple[np.ndarray, float]]] = defaultdict(list)
        self._max_radius = 0.0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def _cell_id(self, point: np.ndarray) -> Tuple[int, int, int]:
        cell = np.floor(np.asarray(point, dtype=np.float64) / self.cell_size).astype(np.int64)
        return int(cell[0]), int(cell[1]), int(cell[2])

    def insert(self, point: np.ndarray, radius: float = 0.0) -> None:
        point = np.asarray(point, dtype=np.float64).reshape(3)
        self._cells[self._cell_id(point)].append((point, float(radius)))
        self._max_radius = max(self._max_radius, float(radius))
        self._count += 1

    def collides_with(self, point: np.ndarray, radius: float) -> bool:
        if self._count == 0:
            return False
        point = np.asarray(point, dtype=np.float64).reshape(3)
        reach = int(math.ceil((radius + self._max_radius) / self.cell_size))
        cx, cy, cz = self._cell_id(point)
        for ix in range(cx - reach, cx + reach + 1):
            for iy in range(cy - reach, cy + reach + 1):
                for iz in range(cz - reach, cz + reach + 1):
                    bucket = self._cells.get((ix, iy, iz))
                    if not bucket:
                        continue
                    for other, other_radius in bucket:
                        limit = radius + other_radius
                        if np.sum((other - point) ** 2) < limit * limit:
                            return True
        return False
