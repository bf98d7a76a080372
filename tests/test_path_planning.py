import math

import pytest

from gridnav.costmap_client import LETHAL_OBSTACLE, Costmap2D
from gridnav.path_planning import CellIndex, PathPlanning


def _free_map(size=9, resolution=1.0, origin=(0.0, 0.0)):
    return Costmap2D(size, size, resolution, origin[0], origin[1], 0)


def test_src_map_is_flipped_vertically():
    costmap = _free_map()
    costmap.set_cost(0, 0, LETHAL_OBSTACLE)
    planner = PathPlanning(costmap, 3)
    assert planner.src_map[8, 0] == LETHAL_OBSTACLE
    assert planner.src_map[0, 0] == 0


def test_blocked_cell_excluded_from_free_space():
    costmap = _free_map()
    costmap.set_cost(4, 4, 1)
    planner = PathPlanning(costmap, 3)
    cells = {(c.row, c.col) for c in planner.free_space}
    assert (1, 1) not in cells
    assert len(cells) == 8
    assert planner.cell_mat[1, 1] == LETHAL_OBSTACLE
    assert planner.neural_mat[1, 1] < 0
    assert planner.neural_mat[0, 0] > 0


def test_plan_covers_open_map_without_repeats():
    planner = PathPlanning(_free_map(), 3)
    path = planner.plan(0.5, 0.5)
    assert path[0] == CellIndex(2, 0, 0.0)
    assert path[1] == CellIndex(2, 1, 0.0)
    cells = [(c.row, c.col) for c in path]
    assert len(cells) == len(set(cells))
    assert set(cells) == {(r, c) for r in range(3) for c in range(3)}


def test_plan_steps_are_neighbours_on_open_map():
    planner = PathPlanning(_free_map(), 3)
    path = planner.plan(4.5, 4.5)
    for a, b in zip(path, path[1:]):
        assert max(abs(a.row - b.row), abs(a.col - b.col)) == 1
        assert b.theta in {0.0, 45.0, 90.0, 135.0, 180.0, 225.0, 270.0, 315.0}


def test_plan_covers_all_free_cells_around_wall():
    costmap = _free_map(size=15)
    for r in range(4):
        my = 15 - (r * 3 + 1) - 1
        costmap.set_cost(7, my, LETHAL_OBSTACLE)
    planner = PathPlanning(costmap, 3)
    path = planner.plan(0.5, 0.5)
    cells = [(c.row, c.col) for c in path]
    free = {(c.row, c.col) for c in planner.free_space}
    assert len(cells) == len(set(cells))
    assert set(cells) == free
    assert all((r, 2) not in cells for r in range(4))


def test_plan_is_repeatable():
    planner = PathPlanning(_free_map(size=12), 3)
    first = planner.plan(0.5, 0.5)
    second = planner.plan(0.5, 0.5)
    assert first == second


def test_plan_rejects_robot_off_map():
    planner = PathPlanning(_free_map(), 3)
    with pytest.raises(ValueError):
        planner.plan(-1.0, 0.5)


def test_plan_rejects_robot_outside_coarse_grid():
    planner = PathPlanning(_free_map(size=10), 3)
    with pytest.raises(ValueError):
        planner.plan(9.5, 9.5)


def test_zero_cell_size_rejected():
    with pytest.raises(ValueError):
        PathPlanning(_free_map(), 0)


def test_path_in_world_matches_cells():
    costmap = _free_map()
    planner = PathPlanning(costmap, 3)
    poses = planner.path_in_world(0.5, 0.5)
    assert len(poses) == len(planner.path)
    first = poses[0]
    assert (first.x, first.y) == costmap.map_to_world(1, 1)
    assert first.orientation == (1.0, 0.0, 0.0, 0.0)
    assert first.frame_id == "map"
    for pose, cell in zip(poses, planner.path):
        w, x, y, z = pose.orientation
        assert w * w + z * z == pytest.approx(1.0)
        assert (x, y) == (0.0, 0.0)
        if cell.theta == 90.0:
            assert w == pytest.approx(math.cos(math.pi / 4), abs=1e-5)


def test_covered_grid_copies_costmap():
    costmap = Costmap2D(4, 3, 0.5, 1.0, 2.0, 0)
    costmap.set_cost(1, 2, LETHAL_OBSTACLE)
    grid = PathPlanning(costmap, 1).covered_grid()
    assert (grid.width, grid.height) == (4, 3)
    assert grid.resolution == 0.5
    assert grid.origin_x == pytest.approx(1.0)
    assert grid.origin_y == pytest.approx(2.0)
    assert grid.frame_id == "map"
    assert len(grid.data) == 12
    assert grid.data[costmap.get_index(1, 2)] == -2
    assert grid.data.count(0) == 11