"""Costmap storage and a client that keeps it in sync with occupancy grids."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

import numpy as np

logger = logging.getLogger(__name__)

FREE_SPACE = 0
INSCRIBED_INFLATED_OBSTACLE = 253
LETHAL_OBSTACLE = 254
NO_INFORMATION = 255


def _build_translation_table() -> tuple[int, ...]:
    # Occupancy values [0..100] are mapped linearly onto costs [0..255];
    # the arithmetic wraps like unsigned machine integers.
    table = [(1 + (251 * ((i - 1) % 2**64) % 2**64) // 97) & 0xFF for i in range(256)]
    table[0] = FREE_SPACE
    table[99] = INSCRIBED_INFLATED_OBSTACLE
    table[100] = LETHAL_OBSTACLE
    table[0xFF] = NO_INFORMATION
    return tuple(table)


_COST_TRANSLATION_TABLE = _build_translation_table()


def translate_cost(value: int) -> int:
    """Translate an occupancy value (signed byte) into a costmap cost."""
    return _COST_TRANSLATION_TABLE[value & 0xFF]


class Costmap2D:
    """A 2D grid of byte costs with a world origin and resolution."""

    def __init__(
        self,
        size_x: int = 0,
        size_y: int = 0,
        resolution: float = 0.0,
        origin_x: float = 0.0,
        origin_y: float = 0.0,
        default_value: int = 0,
    ) -> None:
        self.default_value = default_value
        self.lock = threading.RLock()
        self.resize_map(size_x, size_y, resolution, origin_x, origin_y)

    def resize_map(
        self,
        size_x: int,
        size_y: int,
        resolution: float,
        origin_x: float,
        origin_y: float,
    ) -> None:
        """Change size, resolution and origin; all cells get the default value."""
        with self.lock:
            self.size_x = int(size_x)
            self.size_y = int(size_y)
            self.resolution = float(resolution)
            self.origin_x = float(origin_x)
            self.origin_y = float(origin_y)
            self.data = np.full(
                self.size_x * self.size_y, self.default_value, dtype=np.uint8
            )

    def get_index(self, mx: int, my: int) -> int:
        return my * self.size_x + mx

    def index_to_cells(self, index: int) -> tuple[int, int]:
        my, mx = divmod(index, self.size_x)
        return mx, my

    def map_to_world(self, mx: int, my: int) -> tuple[float, float]:
        """World coordinates of the centre of cell (mx, my)."""
        return (
            self.origin_x + (mx + 0.5) * self.resolution,
            self.origin_y + (my + 0.5) * self.resolution,
        )

    def world_to_map(self, wx: float, wy: float) -> tuple[int, int] | None:
        """Cell containing the world point, or None when it lies off the map."""
        if wx < self.origin_x or wy < self.origin_y:
            return None
        mx = int((wx - self.origin_x) / self.resolution)
        my = int((wy - self.origin_y) / self.resolution)
        if mx < self.size_x and my < self.size_y:
            return mx, my
        return None

    def get_cost(self, mx: int, my: int) -> int:
        return int(self.data[self.get_index(mx, my)])

    def set_cost(self, mx: int, my: int, cost: int) -> None:
        self.data[self.get_index(mx, my)] = cost


@dataclass
class OccupancyGrid:
    """An occupancy grid message: row-major signed occupancy values."""

    width: int = 0
    height: int = 0
    resolution: float = 0.0
    origin_x: float = 0.0
    origin_y: float = 0.0
    data: list[int] = field(default_factory=list)
    frame_id: str = ""
    stamp: float = 0.0


@dataclass
class OccupancyGridUpdate:
    """A rectangular patch of occupancy values for an existing grid."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    data: list[int] = field(default_factory=list)
    frame_id: str = ""
    stamp: float = 0.0


class Costmap2DClient:
    """Keeps a Costmap2D up to date from full and partial grid messages."""

    def __init__(
        self, robot_base_frame: str = "base_link", transform_tolerance: float = 0.3
    ) -> None:
        self.costmap = Costmap2D()
        self.global_frame = ""
        self.robot_base_frame = robot_base_frame
        self.transform_tolerance = transform_tolerance

    def update_full_map(self, msg: OccupancyGrid) -> None:
        """Replace the whole costmap with the contents of a grid message."""
        self.global_frame = msg.frame_id
        logger.debug(
            "received full new map, resizing to: %d, %d", msg.width, msg.height
        )
        costmap = self.costmap
        costmap.resize_map(
            msg.width, msg.height, msg.resolution, msg.origin_x, msg.origin_y
        )
        with costmap.lock:
            count = min(costmap.size_x * costmap.size_y, len(msg.data))
            costmap.data[:count] = [translate_cost(v) for v in msg.data[:count]]

    def update_partial_map(self, msg: OccupancyGridUpdate) -> None:
        """Write a patch of occupancy values into the costmap."""
        self.global_frame = msg.frame_id
        if msg.x < 0 or msg.y < 0:
            raise ValueError(
                f"negative coordinates, invalid update. x: {msg.x}, y: {msg.y}"
            )
        x0, y0 = msg.x, msg.y
        xn, yn = msg.width + x0, msg.height + y0

        costmap = self.costmap
        with costmap.lock:
            map_xn, map_yn = costmap.size_x, costmap.size_y
            if xn > map_xn or x0 > map_xn or yn > map_yn or y0 > map_yn:
                logger.warning(
                    "received update doesn't fully fit into existing map, "
                    "only part will be copied. received: [%d, %d], [%d, %d] "
                    "map is: [0, %d], [0, %d]",
                    x0, xn, y0, yn, map_xn, map_yn,
                )
            values = iter(msg.data)
            for y in range(y0, min(yn, map_yn)):
                for x in range(x0, min(xn, map_xn)):
                    costmap.data[costmap.get_index(x, y)] = translate_cost(
                        next(values)
                    )