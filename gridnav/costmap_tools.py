"""Neighbourhood and nearest-cell queries on a Costmap2D."""

from __future__ import annotations

import logging
from collections import deque

from gridnav.costmap_client import Costmap2D

logger = logging.getLogger(__name__)


def nhood4(idx: int, costmap: Costmap2D) -> list[int]:
    """Indexes of the 4-connected neighbours of a cell, within map bounds."""
    size_x, size_y = costmap.size_x, costmap.size_y
    if idx >= size_x * size_y:
        logger.warning("Evaluating nhood for offmap point")
        return []

    out = []
    if idx % size_x > 0:
        out.append(idx - 1)
    if idx % size_x < size_x - 1:
        out.append(idx + 1)
    if idx >= size_x:
        out.append(idx - size_x)
    if idx < size_x * (size_y - 1):
        out.append(idx + size_x)
    return out


def nhood8(idx: int, costmap: Costmap2D) -> list[int]:
    """Indexes of the 8-connected neighbours of a cell, within map bounds."""
    out = nhood4(idx, costmap)
    size_x, size_y = costmap.size_x, costmap.size_y
    if idx >= size_x * size_y:
        return out

    left = idx % size_x > 0
    right = idx % size_x < size_x - 1
    up = idx >= size_x
    down = idx < size_x * (size_y - 1)
    if left and up:
        out.append(idx - 1 - size_x)
    if left and down:
        out.append(idx - 1 + size_x)
    if right and up:
        out.append(idx + 1 - size_x)
    if right and down:
        out.append(idx + 1 + size_x)
    return out


def nearest_cell(start: int, value: int, costmap: Costmap2D) -> int | None:
    """Breadth-first search for the nearest cell holding value, or None."""
    size = costmap.size_x * costmap.size_y
    if start >= size:
        return None

    data = costmap.data
    visited = {start}
    queue = deque([start])
    while queue:
        idx = queue.popleft()
        if data[idx] == value:
            return idx
        for nbr in nhood8(idx, costmap):
            if nbr not in visited:
                visited.add(nbr)
                queue.append(nbr)
    return None