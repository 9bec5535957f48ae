import math

import numpy as np
import pytest
import trimesh

from shape_diameter.config import SampleConfig
from shape_diameter.support_points import PointRadius, generate_support_points


def _downward_triangle(size=10.0):
    # Counter-clockwise seen from below, normal points to -Z
    vertices = np.array([[0.0, 0.0, 0.0], [0.0, size, 0.0], [size, 0.0, 0.0]])
    return trimesh.Trimesh(vertices=vertices, faces=np.array([[0, 1, 2]]), process=False)


def test_unmeasured_corner_rejects_triangle():
    mesh = _downward_triangle()
    config = SampleConfig()
    rng = np.random.default_rng(1)

    assert generate_support_points(mesh, np.array([1.0, 1.0, -1.0]), config, rng) == []
    # Too thick is not a tiny part either
    assert generate_support_points(mesh, np.array([1.0, 1.0, 5.0]), config, rng) == []


def test_point_count_converges_to_expected_density():
    mesh = _downward_triangle()
    config = SampleConfig(multiplicator=1.3)
    width = 1.0
    radius = config.width_to_radius(width)
    expected = 50.0 / (math.pi * radius * radius) * config.multiplicator

    rng = np.random.default_rng(1234)
    widths = np.full(3, width)
    trials = 2000
    counts = [len(generate_support_points(mesh, widths, config, rng)) for _ in range(trials)]

    assert set(counts) <= {math.floor(expected), math.floor(expected) + 1}
    assert np.mean(counts) == pytest.approx(expected, abs=0.05)


def test_points_lie_inside_triangle_with_interpolated_radius():
    mesh = _downward_triangle()
    config = SampleConfig(multiplicator=20.0)
    widths = np.array([config.min_width, config.max_width, 1.55])

    points = generate_support_points(mesh, widths, config, np.random.default_rng(5))

    assert len(points) > 0
    for p in points:
        x, y, z = p.point
        assert z == pytest.approx(0.0)
        assert x >= -1e-9 and y >= -1e-9 and x + y <= 10.0 + 1e-9
        assert config.min_radius - 1e-9 <= p.radius <= config.max_radius + 1e-9


def test_uniform_thickness_gives_uniform_radius():
    mesh = _downward_triangle()
    config = SampleConfig()

    points = generate_support_points(mesh, np.full(3, 2.0), config, np.random.default_rng(3))

    assert len(points) > 0
    for p in points:
        assert p.radius == pytest.approx(config.width_to_radius(2.0))


def test_top_facing_triangle_is_skipped():
    vertices = np.array([[0.0, 0.0, 0.0], [10.0, 0.0, 0.0], [0.0, 10.0, 0.0]])
    mesh = trimesh.Trimesh(vertices=vertices, faces=np.array([[0, 1, 2]]), process=False)

    points = generate_support_points(mesh, np.full(3, 1.0), SampleConfig(), np.random.default_rng(0))
    assert points == []


def test_same_seed_same_points():
    mesh = _downward_triangle()
    config = SampleConfig()
    widths = np.array([0.5, 1.0, 2.0])

    first = generate_support_points(mesh, widths, config, np.random.default_rng(42))
    second = generate_support_points(mesh, widths, config, np.random.default_rng(42))

    assert first == second
    assert PointRadius(np.array([1.0, 2.0, 3.0]), 0.5) == PointRadius(np.array([1.0, 2.0, 3.0]), 0.5)


def test_widths_must_match_vertices():
    mesh = _downward_triangle()
    with pytest.raises(ValueError):
        generate_support_points(mesh, np.ones(2), SampleConfig(), np.random.default_rng(0))


def test_thickness_mapping_to_zero_radius_is_skipped():
    mesh = _downward_triangle()
    # Width 0 maps to radius 0 under this mapping
    config = SampleConfig(min_width=1.0, max_width=3.0, min_radius=0.5, max_radius=1.5)
    assert config.width_to_radius(0.0) == pytest.approx(0.0)

    points = generate_support_points(mesh, np.zeros(3), config, np.random.default_rng(0))

    assert points == []
