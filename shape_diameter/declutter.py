"""
Support Point Declutter

Greedy Poisson-disk style thinning of support candidates. Candidates with
bigger radius go first so a swarm of small supports can never crowd out the
ones covering the most area.
"""

import logging
from typing import List, Sequence

from shape_diameter.point_grid import PointGrid, PointGrid3D
from shape_diameter.support_points import PointRadius

logger = logging.getLogger(__name__)


def poisson_sphere_from_samples(
    samples: Sequence[PointRadius],
    grid: PointGrid
) -> List[PointRadius]:
    """
    Keep only candidates that overlap neither each other nor ``grid``.

    Sorting is stable, so among equal radii the earlier generated
    candidate wins.

    Args:
        samples: Support candidates
        grid: Already placed supports (read only)

    Returns:
        Accepted candidates in descending radius order
    """
    if len(samples) == 0:
        return []

    ordered = sorted(samples, key=lambda sample: sample.radius, reverse=True)
    max_r = ordered[0].radius
    act_grid = PointGrid3D(cell_size=max_r if max_r > 0.0 else 1.0)

    result: List[PointRadius] = []
    for sample in ordered:
        r = sample.radius
        if act_grid.collides_with(sample.point, r):
            continue
        if grid.collides_with(sample.point, r):
            continue
        act_grid.insert(sample.point, r)
        result.append(sample)

    logger.info(f"Declutter kept {len(result)} of {len(samples)} support candidates")
    return result
