"""Composition of warped grids into one occupancy grid."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from gridnav.costmap_client import OccupancyGrid
from gridnav.grid_warper import Rect


def result_roi(rois: Sequence[Rect]) -> Rect:
    """Smallest rectangle containing every given rectangle."""
    if not rois:
        raise ValueError("at least one region is required")
    tl_x = min(r.x for r in rois)
    tl_y = min(r.y for r in rois)
    br_x = max(r.x + r.width for r in rois)
    br_y = max(r.y + r.height for r in rois)
    return Rect(tl_x, tl_y, br_x - tl_x, br_y - tl_y)


def _as_signed(grid) -> np.ndarray:
    values = np.asarray(grid).astype(np.int64)
    return ((values + 128) % 256 - 128).astype(np.int8)


class GridCompositor:
    """Overlays grids into a shared frame, keeping the highest occupancy."""

    def compose(self, grids: Sequence, rois: Sequence[Rect]) -> OccupancyGrid:
        """Merge grids placed at their regions; uncovered cells are unknown (-1)."""
        if len(grids) != len(rois):
            raise ValueError("grids and regions must have the same length")
        dst = result_roi(rois)
        result = np.full((dst.height, dst.width), -1, dtype=np.int8)

        for grid, roi in zip(grids, rois):
            signed = _as_signed(grid)
            if signed.shape != (roi.height, roi.width):
                raise ValueError(
                    f"grid of shape {signed.shape} does not match region {roi}"
                )
            x0, y0 = roi.x - dst.x, roi.y - dst.y
            view = result[y0 : y0 + roi.height, x0 : x0 + roi.width]
            np.maximum(view, signed, out=view)

        return OccupancyGrid(
            width=dst.width, height=dst.height, data=result.ravel().tolist()
        )