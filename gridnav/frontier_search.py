"""Breadth-first search for frontiers between known free space and unknown cells."""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field

from gridnav.costmap_client import FREE_SPACE, NO_INFORMATION, Costmap2D
from gridnav.costmap_tools import nearest_cell, nhood4, nhood8

logger = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass
class Frontier:
    """A connected group of unknown cells bordering free space."""

    size: int = 1
    min_distance: float = math.inf
    cost: float = 0.0
    initial: Point = (0.0, 0.0)
    centroid: Point = (0.0, 0.0)
    middle: Point = (0.0, 0.0)
    points: list[Point] = field(default_factory=list)


class FrontierSearch:
    """Finds and ranks frontiers on a costmap."""

    def __init__(
        self,
        costmap: Costmap2D,
        potential_scale: float,
        gain_scale: float,
        min_frontier_size: float,
    ) -> None:
        self.costmap = costmap
        self.potential_scale = potential_scale
        self.gain_scale = gain_scale
        self.min_frontier_size = min_frontier_size

    def search_from(self, x: float, y: float) -> list[Frontier]:
        """Frontiers reachable from the world position, cheapest first."""
        costmap = self.costmap
        cell = costmap.world_to_map(x, y)
        if cell is None:
            logger.error("Robot out of costmap bounds, cannot search for frontiers")
            return []

        frontiers: list[Frontier] = []
        with costmap.lock:
            grid = costmap.data.tolist()
            size = costmap.size_x * costmap.size_y
            frontier_flag = [False] * size
            visited = [False] * size

            pos = costmap.get_index(*cell)
            clear = nearest_cell(pos, FREE_SPACE, costmap)
            if clear is None:
                logger.warning("Could not find nearby clear cell to start search")
                start = pos
            else:
                start = clear
            visited[start] = True
            queue = deque([start])

            while queue:
                idx = queue.popleft()
                for nbr in nhood4(idx, costmap):
                    if grid[nbr] <= grid[idx] and not visited[nbr]:
                        visited[nbr] = True
                        queue.append(nbr)
                    elif self._is_new_frontier_cell(nbr, frontier_flag, grid):
                        frontier_flag[nbr] = True
                        frontier = self._build_new_frontier(
                            nbr, pos, frontier_flag, grid
                        )
                        if frontier.size * costmap.resolution >= self.min_frontier_size:
                            frontiers.append(frontier)

        for frontier in frontiers:
            frontier.cost = self.frontier_cost(frontier)
        frontiers.sort(key=lambda f: f.cost)
        return frontiers

    def _build_new_frontier(
        self,
        initial_cell: int,
        reference: int,
        frontier_flag: list[bool],
        grid: list[int],
    ) -> Frontier:
        costmap = self.costmap
        output = Frontier()
        output.initial = costmap.map_to_world(*costmap.index_to_cells(initial_cell))
        reference_x, reference_y = costmap.map_to_world(
            *costmap.index_to_cells(reference)
        )

        sum_x = sum_y = 0.0
        queue = deque([initial_cell])
        while queue:
            idx = queue.popleft()
            for nbr in nhood8(idx, costmap):
                if not self._is_new_frontier_cell(nbr, frontier_flag, grid):
                    continue
                frontier_flag[nbr] = True
                wx, wy = costmap.map_to_world(*costmap.index_to_cells(nbr))
                output.points.append((wx, wy))
                output.size += 1
                sum_x += wx
                sum_y += wy
                distance = math.hypot(reference_x - wx, reference_y - wy)
                if distance < output.min_distance:
                    output.min_distance = distance
                    output.middle = (wx, wy)
                queue.append(nbr)

        output.centroid = (sum_x / output.size, sum_y / output.size)
        return output

    def _is_new_frontier_cell(
        self, idx: int, frontier_flag: list[bool], grid: list[int]
    ) -> bool:
        if grid[idx] != NO_INFORMATION or frontier_flag[idx]:
            return False
        return any(grid[nbr] == FREE_SPACE for nbr in nhood4(idx, self.costmap))

    def frontier_cost(self, frontier: Frontier) -> float:
        """Cost from distance (potential) minus size (gain), in world units."""
        resolution = self.costmap.resolution
        return (
            self.potential_scale * frontier.min_distance * resolution
            - self.gain_scale * frontier.size * resolution
        )