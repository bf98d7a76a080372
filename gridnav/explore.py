"""Frontier-based exploration: picks goals, tracks progress and blacklists."""

from __future__ import annotations

import enum
import logging
import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from gridnav.costmap_client import Costmap2D
from gridnav.frontier_search import Frontier, FrontierSearch

logger = logging.getLogger(__name__)

Point = tuple[float, float]
Color = tuple[float, float, float, float]

BLUE: Color = (0.0, 0.0, 1.0, 1.0)
RED: Color = (1.0, 0.0, 0.0, 1.0)
GREEN: Color = (0.0, 1.0, 0.0, 1.0)

BLACKLIST_TOLERANCE_CELLS = 5


def same_point(a: Point, b: Point) -> bool:
    """True when two points lie closer than one centimetre."""
    return math.hypot(a[0] - b[0], a[1] - b[1]) < 0.01


class MarkerType(enum.Enum):
    POINTS = "points"
    SPHERE = "sphere"


class MarkerAction(enum.Enum):
    ADD = "add"
    DELETE = "delete"


@dataclass
class Marker:
    """A visualisation marker for a frontier."""

    id: int
    type: MarkerType
    action: MarkerAction = MarkerAction.ADD
    frame_id: str = ""
    ns: str = "frontiers"
    position: Point = (0.0, 0.0)
    scale: float = 1.0
    points: list[Point] = field(default_factory=list)
    color: Color = BLUE


def _marker_scale(min_cost: float, cost: float) -> float:
    numerator = min_cost * 0.4
    if cost == 0:
        ratio = math.nan if numerator == 0 else math.inf
    else:
        ratio = abs(numerator / cost)
    return min(ratio, 0.5)


class Explore:
    """Chooses exploration goals among frontiers of a costmap."""

    def __init__(
        self,
        costmap: Costmap2D,
        potential_scale: float = 1e-3,
        gain_scale: float = 1.0,
        min_frontier_size: float = 0.5,
        progress_timeout: float = 30.0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.costmap = costmap
        self.search = FrontierSearch(
            costmap, potential_scale, gain_scale, min_frontier_size
        )
        self.progress_timeout = progress_timeout
        self.clock = clock if clock is not None else time.monotonic
        self.frontier_blacklist: list[Point] = []
        self.prev_goal: Point = (0.0, 0.0)
        self.prev_distance = 0.0
        self.last_progress = self.clock()
        self.last_markers_count = 0
        self.current_goal: Point | None = None
        self.last_frontiers: list[Frontier] = []
        self.running = True
        self.replan_pending = False

    def make_plan(self, x: float, y: float) -> Point | None:
        """Plan from the robot position; return a newly sent goal or None."""
        self.replan_pending = False
        frontiers = self.search.search_from(x, y)
        logger.debug("found %d frontiers", len(frontiers))
        self.last_frontiers = frontiers
        if not frontiers:
            self.stop()
            return None

        frontier = next(
            (f for f in frontiers if not self.goal_on_blacklist(f.centroid)), None
        )
        if frontier is None:
            self.stop()
            return None
        target = frontier.centroid

        same_goal = same_point(self.prev_goal, target)
        self.prev_goal = target
        now = self.clock()
        if not same_goal or self.prev_distance > frontier.min_distance:
            self.last_progress = now
            self.prev_distance = frontier.min_distance

        if now - self.last_progress > self.progress_timeout:
            self.frontier_blacklist.append(target)
            logger.debug("Adding current goal to black list")
            return self.make_plan(x, y)

        if same_goal:
            return None

        self.current_goal = target
        return target

    def goal_on_blacklist(self, goal: Point) -> bool:
        """True when the goal lies near a blacklisted goal."""
        limit = BLACKLIST_TOLERANCE_CELLS * self.costmap.resolution
        return any(
            abs(goal[0] - bx) < limit and abs(goal[1] - by) < limit
            for bx, by in self.frontier_blacklist
        )

    def reached_goal(self, aborted: bool, goal: Point) -> None:
        """Handle the end of a goal; aborted goals are blacklisted."""
        if aborted:
            self.frontier_blacklist.append(goal)
            logger.debug("Adding current goal to black list")
        if self.current_goal is not None and same_point(self.current_goal, goal):
            self.current_goal = None
        self.replan_pending = True

    def visualize_frontiers(
        self, frontiers: Sequence[Frontier], frame_id: str = ""
    ) -> list[Marker]:
        """Markers for frontiers, plus deletions for markers no longer used."""
        min_cost = frontiers[0].cost if frontiers else 0.0
        markers: list[Marker] = []
        marker_id = 0
        for frontier in frontiers:
            markers.append(
                Marker(
                    id=marker_id,
                    type=MarkerType.POINTS,
                    frame_id=frame_id,
                    scale=0.1,
                    points=list(frontier.points),
                    color=RED if self.goal_on_blacklist(frontier.centroid) else BLUE,
                )
            )
            marker_id += 1
            markers.append(
                Marker(
                    id=marker_id,
                    type=MarkerType.SPHERE,
                    frame_id=frame_id,
                    position=frontier.initial,
                    scale=_marker_scale(min_cost, frontier.cost),
                    color=GREEN,
                )
            )
            marker_id += 1

        current_count = len(markers)
        last_type = markers[-1].type if markers else MarkerType.POINTS
        markers.extend(
            Marker(
                id=stale_id,
                type=last_type,
                action=MarkerAction.DELETE,
                frame_id=frame_id,
            )
            for stale_id in range(marker_id, self.last_markers_count)
        )
        self.last_markers_count = current_count
        return markers

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        """Cancel the active goal and stop exploring."""
        self.current_goal = None
        self.running = False
        logger.info("Exploration stopped.")