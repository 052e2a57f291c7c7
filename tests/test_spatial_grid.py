import numpy as np
import pytest

from collision import brute_force_pairs
from spatial_grid import SpatialHashGrid


def _cloud(n, side, seed):
    rng = np.random.default_rng(seed)
    return rng.uniform(-side / 2, side / 2, size=(n, 3))


def test_every_body_lands_in_exactly_one_bucket():
    positions = _cloud(300, 40.0, 0)
    grid = SpatialHashGrid(4.0)
    grid.rebuild(positions)

    cells = {grid.cell_of(i) for i in range(len(positions))}
    assert len(cells) == grid.cell_count

    seen = np.concatenate([grid.bucket(c) for c in cells])
    assert sorted(seen.tolist()) == list(range(len(positions)))

    for i in (0, 17, 299):
        cell = grid.cell_of(i)
        expected = tuple(int(np.floor(x / 4.0)) for x in positions[i])
        assert cell == expected
        assert i in grid.bucket(cell)


def test_pairs_are_unique_ordered_and_sorted():
    grid = SpatialHashGrid(3.0)
    grid.rebuild(_cloud(400, 30.0, 1))
    pairs = grid.neighbor_pairs()

    assert pairs.shape[1] == 2
    assert np.all(pairs[:, 0] < pairs[:, 1])
    as_tuples = [tuple(p) for p in pairs.tolist()]
    assert len(set(as_tuples)) == len(as_tuples)
    assert as_tuples == sorted(as_tuples)


def test_for_each_neighbor_pair_visits_each_pair_once():
    grid = SpatialHashGrid(2.0)
    grid.rebuild(_cloud(200, 20.0, 2))
    visited = []
    grid.for_each_neighbor_pair(lambda i, j: visited.append((i, j)))
    assert visited == [tuple(p) for p in grid.neighbor_pairs().tolist()]


def test_no_overlapping_pair_is_missed_and_pruning_pays_off():
    n = 2000
    radius = 1.0
    positions = _cloud(n, 60.0, 3)
    radii = np.full(n, radius)

    grid = SpatialHashGrid(2.0 * radius)
    grid.rebuild(positions)
    candidates = {tuple(p) for p in grid.neighbor_pairs().tolist()}

    truth = brute_force_pairs(positions, radii)
    assert truth, "cloud should contain some overlaps"
    assert truth <= candidates

    brute_force_count = n * (n - 1) // 2
    assert brute_force_count / max(len(candidates), 1) > 5.0


def test_mixed_radii_stay_a_superset_with_largest_contact_cells():
    rng = np.random.default_rng(4)
    positions = _cloud(1500, 80.0, 4)
    radii = rng.uniform(0.1, 3.0, size=1500)
    radii[:10] = 6.0

    grid = SpatialHashGrid(2.0 * float(radii.max()))
    grid.rebuild(positions)
    candidates = {tuple(p) for p in grid.neighbor_pairs().tolist()}

    truth = brute_force_pairs(positions, radii)
    assert any(i < 10 or j < 10 for i, j in truth)
    assert truth <= candidates


def test_pairs_across_the_origin_are_found():
    positions = np.array([[-0.1, -0.1, -0.1], [0.1, 0.1, 0.1], [50.0, 0.0, 0.0]])
    grid = SpatialHashGrid(1.0)
    grid.rebuild(positions)
    assert grid.cell_of(0) == (-1, -1, -1)
    assert grid.cell_of(1) == (0, 0, 0)
    assert grid.neighbor_pairs().tolist() == [[0, 1]]


def test_subset_rebuild_only_contains_given_rows():
    positions = np.zeros((4, 3))
    grid = SpatialHashGrid(1.0)
    grid.rebuild(positions, np.array([0, 2, 3]))
    assert grid.neighbor_pairs().tolist() == [[0, 2], [0, 3], [2, 3]]
    with pytest.raises(ValueError):
        grid.cell_of(1)


def test_extreme_coordinates_do_not_break_the_grid():
    positions = np.array([[1e15, 0.0, 0.0], [1e15, 0.0, 0.0], [-1e15, 5.0, 5.0], [np.nan, 0.0, 0.0]])
    grid = SpatialHashGrid(1.0)
    grid.rebuild(positions)
    assert [0, 1] in grid.neighbor_pairs().tolist()


def test_empty_grid_has_no_pairs():
    grid = SpatialHashGrid(1.0)
    grid.rebuild(np.zeros((0, 3)))
    assert grid.neighbor_pairs().shape == (0, 2)
    assert grid.cell_count == 0


def test_queries_before_rebuild_fail_and_cell_size_is_validated():
    grid = SpatialHashGrid(1.0)
    with pytest.raises(RuntimeError):
        grid.neighbor_pairs()
    with pytest.raises(ValueError):
        SpatialHashGrid(0.0)
