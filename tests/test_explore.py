import pytest

from gridnav.costmap_client import FREE_SPACE, NO_INFORMATION, Costmap2D
from gridnav.explore import Explore, MarkerAction, MarkerType, same_point
from gridnav.frontier_search import Frontier, FrontierSearch


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def half_known_map():
    costmap = Costmap2D(10, 10, 1.0, 0.0, 0.0, NO_INFORMATION)
    for y in range(10):
        for x in range(5):
            costmap.set_cost(x, y, FREE_SPACE)
    return costmap


def make_explore(costmap, clock):
    return Explore(costmap, 1e-3, 1.0, 0.5, 30.0, clock)


def test_same_point():
    assert same_point((0.0, 0.0), (0.005, 0.0))
    assert not same_point((0.0, 0.0), (0.02, 0.0))


def test_make_plan_sends_cheapest_frontier():
    costmap = half_known_map()
    explore = make_explore(costmap, FakeClock())
    expected = FrontierSearch(costmap, 1e-3, 1.0, 0.5).search_from(1.5, 1.5)[0]
    goal = explore.make_plan(1.5, 1.5)
    assert goal == expected.centroid
    assert explore.current_goal == goal


def test_same_goal_is_not_resent():
    explore = make_explore(half_known_map(), FakeClock())
    first = explore.make_plan(1.5, 1.5)
    assert first is not None
    assert explore.make_plan(1.5, 1.5) is None
    assert explore.current_goal == first


def test_no_progress_blacklists_and_stops():
    clock = FakeClock()
    explore = make_explore(half_known_map(), clock)
    goal = explore.make_plan(1.5, 1.5)
    clock.now = 31.0
    assert explore.make_plan(1.5, 1.5) is None
    assert explore.frontier_blacklist == [goal]
    assert explore.running is False
    assert explore.current_goal is None


def test_no_timeout_before_limit():
    clock = FakeClock()
    explore = make_explore(half_known_map(), clock)
    explore.make_plan(1.5, 1.5)
    clock.now = 29.0
    explore.make_plan(1.5, 1.5)
    assert explore.frontier_blacklist == []
    assert explore.running is True


def test_fully_known_map_stops():
    costmap = Costmap2D(6, 6, 1.0, 0.0, 0.0, FREE_SPACE)
    explore = make_explore(costmap, FakeClock())
    assert explore.make_plan(2.5, 2.5) is None
    assert explore.running is False


def test_reached_goal_aborted_blacklists():
    explore = make_explore(half_known_map(), FakeClock())
    explore.reached_goal(True, (5.0, 5.0))
    assert explore.goal_on_blacklist((5.0, 5.0))
    assert explore.replan_pending is True


def test_reached_goal_success_does_not_blacklist():
    explore = make_explore(half_known_map(), FakeClock())
    explore.reached_goal(False, (5.0, 5.0))
    assert explore.frontier_blacklist == []
    assert not explore.goal_on_blacklist((5.0, 5.0))


def test_blacklist_tolerance_uses_resolution():
    explore = make_explore(half_known_map(), FakeClock())
    explore.frontier_blacklist.append((0.0, 0.0))
    assert explore.goal_on_blacklist((4.0, -4.0))
    assert not explore.goal_on_blacklist((6.0, 0.0))


def test_stop_and_start():
    explore = make_explore(half_known_map(), FakeClock())
    explore.make_plan(1.5, 1.5)
    explore.stop()
    assert explore.running is False
    assert explore.current_goal is None
    explore.start()
    assert explore.running is True


def frontier(cost, centroid):
    return Frontier(cost=cost, centroid=centroid, initial=centroid, points=[centroid])


def test_visualize_markers_and_colors():
    explore = make_explore(half_known_map(), FakeClock())
    explore.frontier_blacklist.append((8.0, 8.0))
    frontiers = [frontier(-4.0, (1.0, 1.0)), frontier(-2.0, (8.0, 8.0))]
    markers = explore.visualize_frontiers(frontiers, "map")
    assert [m.id for m in markers] == [0, 1, 2, 3]
    assert [m.type for m in markers] == [
        MarkerType.POINTS,
        MarkerType.SPHERE,
        MarkerType.POINTS,
        MarkerType.SPHERE,
    ]
    assert markers[0].color == (0.0, 0.0, 1.0, 1.0)
    assert markers[2].color == (1.0, 0.0, 0.0, 1.0)
    assert all(m.frame_id == "map" for m in markers)
    assert all(m.scale <= 0.5 for m in markers)
    assert markers[1].position == (1.0, 1.0)


def test_visualize_deletes_stale_markers():
    explore = make_explore(half_known_map(), FakeClock())
    explore.visualize_frontiers(
        [frontier(-4.0, (1.0, 1.0)), frontier(-2.0, (2.0, 2.0))], "map"
    )
    markers = explore.visualize_frontiers([frontier(-4.0, (1.0, 1.0))], "map")
    added = [m for m in markers if m.action is MarkerAction.ADD]
    deleted = [m for m in markers if m.action is MarkerAction.DELETE]
    assert [m.id for m in added] == [0, 1]
    assert [m.id for m in deleted] == [2, 3]
    assert explore.last_markers_count == 2


def test_visualize_empty():
    explore = make_explore(half_known_map(), FakeClock())
    assert explore.visualize_frontiers([], "map") == []
    assert explore.last_markers_count == 0


@pytest.mark.parametrize("position", [(-1.0, 1.0), (20.0, 1.0)])
def test_out_of_bounds_robot_stops(position):
    explore = make_explore(half_known_map(), FakeClock())
    assert explore.make_plan(*position) is None
    assert explore.running is False