"""
Small Edge Collapse

Removes micro edges before ray casting and subdivision. Very short edges
create sliver triangles with unstable normals, rays slip through their
shared edges and subdivision produces useless vertices.

An edge shorter than the minimal length is collapsed into its midpoint
when the midpoint stays within the allowed error of the planes of all
triangles around both end vertices.
"""

import logging
import time

import numpy as np
import trimesh

logger = logging.getLogger(__name__)


def connect_small_triangles(mesh: trimesh.Trimesh, min_length: float, max_error: float) -> int:
    """
    Collapse short edges of the mesh in place.

    Every vertex takes part in at most one collapse, which keeps the
    displacement of each surface point bounded by ``max_error``.

    Args:
        mesh: Mesh to modify (built with process=False)
        min_length: Edges shorter than this are collapse candidates
        max_error: Maximal distance of the merged vertex from the
            original planes of the affected triangles

    Returns:
        Number of collapsed edges
    """
    if min_length <= 0.0 or len(mesh.faces) == 0:
        return 0

    start_time = time.perf_counter()
    positions = np.array(mesh.vertices, dtype=np.float64)
    faces = np.array(mesh.faces, dtype=np.int64).reshape(-1, 3)

    edges = np.array(mesh.edges_unique, dtype=np.int64)
    lengths = np.array(mesh.edges_unique_length, dtype=np.float64)
    short = np.flatnonzero(lengths < min_length)
    if len(short) == 0:
        return 0
    # Shortest edges first
    short = short[np.argsort(lengths[short], kind='stable')]

    vertex_faces = mesh.vertex_faces
    remap = np.arange(len(positions))
    touched = np.zeros(len(positions), dtype=bool)
    collapsed = 0

    for edge_index in short:
        a, b = int(edges[edge_index, 0]), int(edges[edge_index, 1])
        if touched[a] or touched[b]:
            continue

        mid = (positions[a] + positions[b]) / 2.0
        incident = np.union1d(vertex_faces[a], vertex_faces[b])
        incident = incident[incident >= 0]
        triangles = positions[remap[faces[incident]]]
        normals = np.cross(triangles[:, 1] - triangles[:, 0], triangles[:, 2] - triangles[:, 0])
        norms = np.linalg.norm(normals, axis=1)
        # Triangles containing the edge vanish, degenerate ones have no plane
        measurable = norms > 1e-20
        distances = np.abs(np.einsum(
            'ij,ij->i', mid - triangles[measurable, 0], normals[measurable]
        )) / norms[measurable]
        if len(distances) and distances.max() > max_error:
            continue

        positions[a] = mid
        remap[b] = a
        touched[a] = touched[b] = True
        collapsed += 1

    if collapsed == 0:
        return 0

    mesh.vertices = positions
    mesh.faces = remap[faces]
    # Triangles containing a collapsed edge are flat now
    valid_faces = mesh.nondegenerate_faces()
    if not valid_faces.all():
        mesh.update_faces(valid_faces)
    mesh.remove_unreferenced_vertices()

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"Collapsed {collapsed} edges shorter than {min_length:g}: "
        f"{len(mesh.vertices)} vertices, {len(mesh.faces)} faces ({elapsed_ms:.0f}ms)"
    )
    return collapsed
