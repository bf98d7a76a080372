"""Feeds waypoints of a planned path to the robot one goal at a time."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

Point = tuple[float, float]
Quaternion = tuple[float, float, float, float]


def euler_to_quaternion(yaw: float) -> Quaternion:
    """Quaternion (w, x, y, z) of a rotation by yaw about the z axis."""
    cy, sy = math.cos(yaw * 0.5), math.sin(yaw * 0.5)
    cr, sr = 1.0, 0.0
    cp, sp = 1.0, 0.0
    return (
        cy * cr * cp + sy * sr * sp,
        cy * sr * cp - sy * cr * sp,
        cy * cr * sp + sy * sr * cp,
        sy * cr * cp - cy * sr * sp,
    )


@dataclass(frozen=True)
class GoalPose:
    """A goal position with its heading quaternion (w, x, y, z)."""

    x: float
    y: float
    orientation: Quaternion
    frame_id: str = "odom"


class GoalFollower:
    """Advances along a path as the robot comes within tolerance of each goal."""

    def __init__(self, tolerance: float) -> None:
        self.tolerance = tolerance
        self.x = 0.0
        self.y = 0.0
        self.path: list[Point] = []
        self.passed_path: list[Point] = []
        self.count = 0
        self.goal_reached = False
        self._new_path = False
        self._last_path_size = 0

    def on_odometry(self, x: float, y: float) -> list[Point]:
        """Record the robot position; return the path travelled so far."""
        self.x, self.y = x, y
        self.passed_path.append((x, y))
        return self.passed_path

    def on_path(self, points: Iterable[Point]) -> None:
        """Load a planned path unless one of the same length is already loaded."""
        points = [(float(px), float(py)) for px, py in points]
        if not self.path or len(points) != self._last_path_size:
            self.path = points
            self._new_path = True
            self._last_path_size = len(points)

    def next_goal(self) -> GoalPose | None:
        """One control step: the goal to publish now, or None."""
        if self._new_path:
            self.count = 0
            self._new_path = False
        if not self.path or self.count >= len(self.path):
            return None

        gx, gy = self.path[self.count]
        if math.hypot(self.x - gx, self.y - gy) <= self.tolerance:
            self.count += 1
            self.goal_reached = False
            if self.count >= len(self.path):
                return None
        if self.goal_reached:
            return None

        gx, gy = self.path[self.count]
        nx, ny = self.path[(self.count + 1) % len(self.path)]
        angle = math.atan2(ny - gy, nx - gx)
        self.goal_reached = True
        return GoalPose(gx, gy, euler_to_quaternion(angle))