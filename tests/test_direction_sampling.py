import math

import numpy as np
import pytest

from shape_diameter.direction_sampling import (
    create_fibonacci_sphere_samples,
    directions_to_array,
    store_directions_as_mesh,
)


def test_directions_stay_inside_cone():
    dirs = create_fibonacci_sphere_samples(60.0, 10)
    min_z = math.cos(math.radians(30.0))

    assert len(dirs) >= 1
    for d in dirs:
        assert d.dir[2] >= min_z
        assert d.weight == pytest.approx(d.dir[2])
        assert np.linalg.norm(d.dir) == pytest.approx(1.0)


@pytest.mark.parametrize("count", [-3, 0, 1])
def test_single_sample_is_on_axis(count):
    dirs = create_fibonacci_sphere_samples(60.0, count)

    assert len(dirs) == 1
    np.testing.assert_allclose(dirs[0].dir, [0.0, 0.0, 1.0])
    assert dirs[0].weight == 1.0


def test_spiral_stops_early_at_cone_border():
    # Half of a hemisphere sampling falls into a 120 deg cone
    dirs = create_fibonacci_sphere_samples(120.0, 60)

    assert 0 < len(dirs) < 60
    np.testing.assert_allclose(dirs[0].dir, [0.0, 0.0, 1.0])
    z = np.array([d.dir[2] for d in dirs])
    assert np.all(np.diff(z) < 0.0)


def test_sampling_is_deterministic():
    first, first_weights = directions_to_array(create_fibonacci_sphere_samples(90.0, 40))
    second, second_weights = directions_to_array(create_fibonacci_sphere_samples(90.0, 40))

    np.testing.assert_array_equal(first, second)
    np.testing.assert_array_equal(first_weights, second_weights)


@pytest.mark.parametrize("angle", [0.5, 180.0, 200.0])
def test_invalid_cone_angle_raises(angle):
    with pytest.raises(ValueError):
        create_fibonacci_sphere_samples(angle, 10)


def test_store_directions_as_mesh(tmp_path):
    dirs = create_fibonacci_sphere_samples(90.0, 20)
    path = tmp_path / "rays.stl"

    assert store_directions_as_mesh(dirs, str(path)) is True
    text = path.read_text()
    assert text.startswith("solid")
    assert text.count("facet normal") == 2 * len(dirs)


def test_store_directions_reports_io_failure(tmp_path):
    dirs = create_fibonacci_sphere_samples(90.0, 5)
    path = tmp_path / "missing_dir" / "rays.stl"

    assert store_directions_as_mesh(dirs, str(path)) is False


def test_directions_compare_by_value():
    first = create_fibonacci_sphere_samples(90.0, 40)
    second = create_fibonacci_sphere_samples(90.0, 40)

    assert first == second
    assert hash(first[3]) == hash(second[3])
    assert first[0] != first[1]
