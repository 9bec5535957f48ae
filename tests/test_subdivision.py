import numpy as np
import pytest
import trimesh

from shape_diameter.mesh_metrics import surface_area
from shape_diameter.subdivision import (
    EdgeDivideRecord,
    edge_key,
    edge_vertex_index,
    reversed_record,
    sub_edge_record,
    subdivide,
)


def _edge_lengths(mesh):
    vertices = np.asarray(mesh.vertices)
    faces = np.asarray(mesh.faces)
    return np.linalg.norm(vertices[faces] - vertices[np.roll(faces, -1, axis=1)], axis=2)


def _plain_mesh(mesh):
    return trimesh.Trimesh(vertices=np.array(mesh.vertices), faces=np.array(mesh.faces), process=False)


def test_edge_key_is_canonical():
    assert edge_key(3, 7) == ((3, 7), False)
    assert edge_key(7, 3) == ((3, 7), True)


def test_record_helpers():
    record = EdgeDivideRecord(first_index=10, count=4, step=1)
    assert [edge_vertex_index(record, p) for p in range(4)] == [10, 11, 12, 13]

    back = reversed_record(record)
    assert [edge_vertex_index(back, p) for p in range(4)] == [13, 12, 11, 10]

    # Vertices between key[0] and position 2
    left = sub_edge_record(record, -1, 2)
    assert (left.first_index, left.count, left.step) == (10, 2, 1)
    # Vertices between position 1 and key[1]
    right = sub_edge_record(back, 1, 4)
    assert [edge_vertex_index(right, p) for p in range(right.count)] == [11, 10]


def test_original_vertices_are_kept():
    box = _plain_mesh(trimesh.creation.box(extents=[4.0, 4.0, 4.0]))

    out = subdivide(box, 1.0)

    np.testing.assert_array_equal(np.asarray(out.vertices)[:len(box.vertices)], box.vertices)
    assert len(out.vertices) > len(box.vertices)


def test_all_edges_are_short_enough():
    box = _plain_mesh(trimesh.creation.box(extents=[4.0, 3.0, 2.5]))

    out = subdivide(box, 1.0)

    assert _edge_lengths(out).max() <= 1.0 + 1e-9
    assert surface_area(out) == pytest.approx(surface_area(box))


def test_shared_edges_stay_connected():
    box = _plain_mesh(trimesh.creation.box(extents=[4.0, 3.0, 2.5]))

    out = subdivide(box, 0.7)

    # A T-junction or duplicated edge vertex would open the surface
    assert out.is_watertight
    assert out.is_winding_consistent
    unique = np.unique(np.round(np.asarray(out.vertices), 9), axis=0)
    assert len(unique) == len(out.vertices)


def test_shared_diagonal_of_open_square():
    vertices = np.array([
        [0.0, 0.0, 0.0],
        [3.0, 0.0, 0.0],
        [3.0, 3.0, 0.0],
        [0.0, 3.0, 0.0],
    ])
    faces = np.array([[0, 1, 2], [0, 2, 3]])
    square = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)

    out = subdivide(square, 1.0)
    out_vertices = np.asarray(out.vertices)

    # Every edge used by a single face must lie on the square border
    edges = np.sort(out.edges, axis=1)
    unique_edges, counts = np.unique(edges, axis=0, return_counts=True)
    assert counts.max() <= 2
    for a, b in unique_edges[counts == 1]:
        mid = (out_vertices[a] + out_vertices[b]) / 2.0
        on_border = np.isclose(mid[:2], 0.0).any() or np.isclose(mid[:2], 3.0).any()
        assert on_border

    unique = np.unique(np.round(out_vertices, 9), axis=0)
    assert len(unique) == len(out_vertices)
    assert surface_area(out) == pytest.approx(9.0)


def test_small_triangles_are_untouched():
    box = _plain_mesh(trimesh.creation.box(extents=[1.0, 1.0, 1.0]))

    out = subdivide(box, 10.0)

    np.testing.assert_array_equal(out.faces, box.faces)
    np.testing.assert_array_equal(out.vertices, box.vertices)


def test_invalid_max_length_raises():
    box = _plain_mesh(trimesh.creation.box())
    with pytest.raises(ValueError):
        subdivide(box, 0.0)
