"""Merging of overlapping occupancy grids placed by known transforms."""

from __future__ import annotations

import logging
import math
import sys
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from gridnav.costmap_client import OccupancyGrid
from gridnav.grid_compositor import GridCompositor
from gridnav.grid_warper import GridWarper

logger = logging.getLogger(__name__)


@dataclass
class Transform:
    """A rigid transform: translation (tx, ty, tz) and quaternion (qx, qy, qz, qw).

    The default, with an all-zero quaternion, stands for an unknown transform.
    """

    tx: float = 0.0
    ty: float = 0.0
    tz: float = 0.0
    qx: float = 0.0
    qy: float = 0.0
    qz: float = 0.0
    qw: float = 0.0


def _is_identity(matrix: np.ndarray | None) -> bool:
    if matrix is None:
        return False
    return bool(np.array_equal(matrix, np.eye(matrix.shape[0], matrix.shape[1])))


def _transform_to_matrix(transform: Transform) -> np.ndarray | None:
    norm = (
        transform.qx * transform.qx
        + transform.qy * transform.qy
        + transform.qz * transform.qz
        + transform.qw * transform.qw
    )
    if norm < sys.float_info.epsilon:
        return None
    s = 2.0 / norm
    a = 1 - transform.qy * transform.qy * s - transform.qz * transform.qz * s
    b = transform.qx * transform.qy * s + transform.qz * transform.qw * s
    matrix = np.eye(3, dtype=np.float64)
    matrix[0, 0] = matrix[1, 1] = a
    matrix[1, 0] = b
    matrix[0, 1] = -b
    matrix[0, 2] = transform.tx
    matrix[1, 2] = transform.ty
    return matrix


def _matrix_to_transform(matrix: np.ndarray) -> Transform:
    a = float(matrix[0, 0])
    b = float(matrix[1, 0])
    # The rotation is planar, so the quaternion has only w and z parts.
    return Transform(
        tx=float(matrix[0, 2]),
        ty=float(matrix[1, 2]),
        tz=0.0,
        qx=0.0,
        qy=0.0,
        qz=math.copysign(math.sqrt(max(2.0 - 2.0 * a, 0.0)) * 0.5, b),
        qw=math.sqrt(max(2.0 + 2.0 * a, 0.0)) * 0.5,
    )


class MergingPipeline:
    """Holds grids and their transforms and composes them into one grid."""

    def __init__(self) -> None:
        self.grids: list[OccupancyGrid | None] = []
        self.images: list[np.ndarray | None] = []
        self.transforms: list[np.ndarray | None] = []

    def feed(self, grids: Iterable[OccupancyGrid | None]) -> None:
        """Replace the stored grids; missing or empty grids keep their slot."""
        self.grids = []
        self.images = []
        for grid in grids:
            if grid is not None and len(grid.data) > 0:
                image = (
                    np.asarray(grid.data, dtype=np.int64).reshape(
                        grid.height, grid.width
                    )
                    & 0xFF
                ).astype(np.uint8)
                self.grids.append(grid)
                self.images.append(image)
            else:
                self.grids.append(None)
                self.images.append(None)

    def set_transforms(self, transforms: Iterable[Transform]) -> None:
        """Set one transform per fed grid; raise ValueError on a count mismatch."""
        matrices = [_transform_to_matrix(t) for t in transforms]
        if len(matrices) != len(self.images):
            raise ValueError(
                f"got {len(matrices)} transforms for {len(self.images)} grids"
            )
        self.transforms = matrices

    def get_transforms(self) -> list[Transform]:
        """The stored transforms; unknown ones come back as Transform()."""
        return [
            Transform() if matrix is None else _matrix_to_transform(matrix)
            for matrix in self.transforms
        ]

    def compose_grids(self) -> OccupancyGrid | None:
        """Merge all grids with known transforms, or None if there is nothing."""
        if len(self.images) != len(self.transforms) or len(self.images) != len(
            self.grids
        ):
            raise ValueError("grids and transforms are out of step")
        if not self.images:
            return None

        logger.debug("warping grids")
        warper = GridWarper()
        warped = []
        rois = []
        for image, matrix in zip(self.images, self.transforms):
            if matrix is not None and image is not None:
                roi, warped_image = warper.warp(image, matrix)
                rois.append(roi)
                warped.append(warped_image)
        if not warped:
            return None

        logger.debug("compositing result grid")
        result = GridCompositor().compose(warped, rois)

        any_resolution = 0.0
        for grid, matrix in zip(self.grids, self.transforms):
            if _is_identity(matrix):
                if grid is not None:
                    result.resolution = grid.resolution
                break
            if grid is not None:
                any_resolution = grid.resolution
        if result.resolution <= 0.0:
            result.resolution = any_resolution

        result.origin_x = -(result.width / 2.0) * result.resolution
        result.origin_y = -(result.height / 2.0) * result.resolution
        return result