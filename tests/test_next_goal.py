import math

import pytest

from gridnav.next_goal import GoalFollower, euler_to_quaternion

PATH = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]


def test_quaternion_identity():
    assert euler_to_quaternion(0.0) == (1.0, 0.0, 0.0, 0.0)


@pytest.mark.parametrize("yaw", [0.3, -1.2, math.pi, 2.5])
def test_quaternion_is_unit_and_about_z(yaw):
    w, x, y, z = euler_to_quaternion(yaw)
    assert x == 0.0 and y == 0.0
    assert w * w + z * z == pytest.approx(1.0)
    assert 2 * math.atan2(z, w) == pytest.approx(yaw)


def test_no_path_no_goal():
    follower = GoalFollower(0.1)
    assert follower.next_goal() is None


def test_first_goal_heads_to_next_point():
    follower = GoalFollower(0.1)
    follower.on_odometry(5.0, 5.0)
    follower.on_path(PATH)
    goal = follower.next_goal()
    assert (goal.x, goal.y) == PATH[0]
    assert goal.orientation == euler_to_quaternion(0.0)
    assert goal.frame_id == "odom"


def test_goal_published_once():
    follower = GoalFollower(0.1)
    follower.on_odometry(5.0, 5.0)
    follower.on_path(PATH)
    assert follower.next_goal() is not None
    assert follower.next_goal() is None


def test_advances_and_wraps_heading():
    follower = GoalFollower(0.1)
    follower.on_odometry(5.0, 5.0)
    follower.on_path(PATH)
    follower.next_goal()

    follower.on_odometry(0.0, 0.0)
    goal = follower.next_goal()
    assert (goal.x, goal.y) == PATH[1]
    assert goal.orientation == euler_to_quaternion(math.atan2(1.0, 0.0))

    follower.on_odometry(1.0, 0.0)
    goal = follower.next_goal()
    assert (goal.x, goal.y) == PATH[2]
    assert goal.orientation == euler_to_quaternion(math.atan2(-1.0, -1.0))

    follower.on_odometry(1.0, 1.0)
    assert follower.next_goal() is None


def test_same_length_path_not_reloaded():
    follower = GoalFollower(0.1)
    follower.on_path(PATH)
    follower.on_path([(9.0, 9.0), (8.0, 8.0), (7.0, 7.0)])
    assert follower.path == PATH


def test_new_length_path_resets_progress():
    follower = GoalFollower(0.1)
    follower.on_odometry(5.0, 5.0)
    follower.on_path(PATH)
    follower.next_goal()
    follower.on_odometry(0.0, 0.0)
    follower.next_goal()
    assert follower.count == 1
    follower.on_odometry(5.0, 5.0)
    follower.on_path([(3.0, 3.0), (4.0, 4.0)])
    follower.goal_reached = False
    goal = follower.next_goal()
    assert follower.count == 0
    assert (goal.x, goal.y) == (3.0, 3.0)


def test_passed_path_accumulates():
    follower = GoalFollower(0.1)
    follower.on_odometry(1.0, 2.0)
    passed = follower.on_odometry(3.0, 4.0)
    assert passed == [(1.0, 2.0), (3.0, 4.0)]