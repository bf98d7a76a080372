"""Full-coverage path planning over a coarsened costmap grid."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass

import numpy as np

from gridnav.costmap_client import (
    FREE_SPACE,
    LETHAL_OBSTACLE,
    Costmap2D,
    OccupancyGrid,
)

logger = logging.getLogger(__name__)

PI = 3.14159

MAX_STEPS = 9000
OBSTACLE_ACTIVITY = -100000.0
FREE_ACTIVITY = 50.0
VISITED_ACTIVITY = -250.0
DIRECTION_WEIGHT = 50.0
DIAGONAL_PENALTY = 200.0
INITIAL_MAX_ACTIVITY = -300.0
_NO_DISTANCE = 100000000.0

# (row offset, column offset, diagonal) for headings 0, 45, ..., 315 degrees.
_MOVES = (
    (0, 1, False),
    (-1, 1, True),
    (-1, 0, False),
    (-1, -1, True),
    (0, -1, False),
    (1, -1, True),
    (1, 0, False),
    (1, 1, True),
)
_HEADINGS = tuple(45.0 * i for i in range(len(_MOVES)))


@dataclass(frozen=True)
class CellIndex:
    """A cell of the coarse grid with the heading used to reach it, in degrees."""

    row: int
    col: int
    theta: float = 0.0


@dataclass(frozen=True)
class WorldPose:
    """A pose in the map frame with its orientation quaternion (w, x, y, z)."""

    x: float
    y: float
    orientation: tuple[float, float, float, float]
    frame_id: str = "map"
    stamp: float = 0.0


class PathPlanning:
    """Plans a path that sweeps every free cell of a coarsened costmap."""

    def __init__(self, costmap: Costmap2D, cell_size: int = 3) -> None:
        if cell_size <= 0:
            raise ValueError(f"cell size must be positive, got {cell_size}")
        self.costmap = costmap
        self.cell_size = int(cell_size)
        with costmap.lock:
            grid = costmap.data.reshape(costmap.size_y, costmap.size_x)
            # Row 0 of the image is the top of the map.
            self.src_map = grid[::-1].copy()
        self.initialized = self.src_map.size > 0
        self.path: list[CellIndex] = []
        self.world_path: list[WorldPose] = []
        self._init_mat()

    def _init_mat(self) -> None:
        cs = self.cell_size
        rows = self.src_map.shape[0] // cs
        cols = self.src_map.shape[1] // cs
        blocks = self.src_map[: rows * cs, : cols * cs].reshape(rows, cs, cols, cs)
        free = (blocks == FREE_SPACE).all(axis=(1, 3))
        self.cell_mat = np.where(free, FREE_SPACE, LETHAL_OBSTACLE).astype(np.uint8)
        self.free_space = [
            CellIndex(int(r), int(c), 0.0) for r, c in zip(*np.nonzero(free))
        ]
        self._reset_neural()

    def _reset_neural(self) -> None:
        self.neural_mat = np.where(
            self.cell_mat == LETHAL_OBSTACLE, OBSTACLE_ACTIVITY, FREE_ACTIVITY
        ).astype(np.float32)

    def _start_cell(self, robot_x: float, robot_y: float) -> CellIndex:
        cell = self.costmap.world_to_map(robot_x, robot_y)
        if cell is None:
            raise ValueError(f"robot position ({robot_x}, {robot_y}) is off the map")
        mx, my = cell
        rows, cols = self.neural_mat.shape
        row = rows - my // self.cell_size - 1
        col = mx // self.cell_size
        if not (0 <= row < rows and 0 <= col < cols):
            raise ValueError(
                f"robot position ({robot_x}, {robot_y}) lies outside the planning grid"
            )
        return CellIndex(row, col, 0.0)

    def plan(self, robot_x: float, robot_y: float) -> list[CellIndex]:
        """Coverage path over coarse cells, starting at the robot's cell."""
        current = self._start_cell(robot_x, robot_y)
        self._reset_neural()
        values = self.neural_mat.astype(np.float64).tolist()
        rows, cols = self.neural_mat.shape
        path = [current]

        for _ in range(MAX_STEPS):
            values[current.row][current.col] = VISITED_ACTIVITY
            max_v, max_index = INITIAL_MAX_ACTIVITY, 0
            for index, ((dr, dc, diagonal), heading) in enumerate(
                zip(_MOVES, _HEADINGS)
            ):
                delta = abs(heading - current.theta)
                if delta > 180:
                    delta = 360 - delta
                e = 1 - delta / 180
                nr, nc = current.row + dr, current.col + dc
                if 0 <= nr < rows and 0 <= nc < cols:
                    v = values[nr][nc] + DIRECTION_WEIGHT * e
                    if diagonal:
                        v -= DIAGONAL_PENALTY
                else:
                    v = OBSTACLE_ACTIVITY
                if v >= max_v:
                    max_v, max_index = v, index

            if max_v <= 0:
                target = self._nearest_unvisited(current, values)
                if target is None:
                    logger.info("The program has been dead because of the self-locking")
                    logger.info("The program has gone through %d steps", len(path))
                    break
                current = target
                path.append(current)
                continue

            dr, dc, _ = _MOVES[max_index]
            current = CellIndex(
                current.row + dr, current.col + dc, _HEADINGS[max_index]
            )
            path.append(current)

        self.neural_mat = np.asarray(values, dtype=np.float32).reshape(rows, cols)
        self.path = path
        return list(path)

    def _nearest_unvisited(
        self, current: CellIndex, values: list[list[float]]
    ) -> CellIndex | None:
        min_dist, best = _NO_DISTANCE, None
        for index, cell in enumerate(self.free_space):
            if values[cell.row][cell.col] <= 0:
                continue
            if not self._touches_visited(cell.row, cell.col, values):
                continue
            dist = math.hypot(current.row - cell.row, current.col - cell.col)
            if dist < min_dist:
                min_dist, best = dist, index
        if best is None:
            return None
        logger.debug("next point index: %d", best)
        logger.debug("distance: %f", min_dist)
        return self.free_space[best]

    @staticmethod
    def _touches_visited(row: int, col: int, values: list[list[float]]) -> bool:
        rows, cols = len(values), len(values[0])
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if dr == 0 and dc == 0:
                    continue
                r, c = row + dr, col + dc
                if 0 <= r < rows and 0 <= c < cols and values[r][c] == VISITED_ACTIVITY:
                    return True
        return False

    def path_in_world(self, robot_x: float, robot_y: float) -> list[WorldPose]:
        """Plan from the robot position and return the path as map-frame poses."""
        cells = self.plan(robot_x, robot_y)
        cs = self.cell_size
        size_y = self.cell_mat.shape[0]
        stamp = time.time()
        poses = []
        for cell in cells:
            wx, wy = self.costmap.map_to_world(
                cell.col * cs + cs // 2, (size_y - cell.row - 1) * cs + cs // 2
            )
            half = cell.theta * PI / 180 / 2
            poses.append(
                WorldPose(wx, wy, (math.cos(half), 0.0, 0.0, math.sin(half)), "map", stamp)
            )
        self.world_path = poses
        return list(poses)

    def covered_grid(self) -> OccupancyGrid:
        """The costmap as an occupancy grid in the map frame."""
        costmap = self.costmap
        with costmap.lock:
            resolution = costmap.resolution
            wx, wy = costmap.map_to_world(0, 0)
            raw = costmap.data.astype(np.int64)
            signed = ((raw + 128) % 256 - 128).tolist()
            return OccupancyGrid(
                width=costmap.size_x,
                height=costmap.size_y,
                resolution=resolution,
                origin_x=wx - resolution / 2,
                origin_y=wy - resolution / 2,
                data=signed,
                frame_id="map",
                stamp=time.time(),
            )