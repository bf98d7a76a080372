"""Affine warping of occupancy images with their bounding regions."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

UNKNOWN_BYTE = 255  # -1 when read as a signed occupancy value


@dataclass(frozen=True)
class Rect:
    """An integer rectangle given by its top-left corner and size."""

    x: int
    y: int
    width: int
    height: int

    @property
    def tl(self) -> tuple[int, int]:
        return self.x, self.y

    @property
    def br(self) -> tuple[int, int]:
        return self.x + self.width, self.y + self.height

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def area(self) -> int:
        return self.width * self.height


def _affine_part(transform) -> np.ndarray:
    matrix = np.asarray(transform, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] < 2 or matrix.shape[1] != 3:
        raise ValueError(f"expected a 2x3 or 3x3 affine transform, got {matrix.shape}")
    return matrix[:2]


def _invert_affine(matrix: np.ndarray) -> np.ndarray:
    a, b, c = matrix[0]
    d, e, f = matrix[1]
    det = a * e - b * d
    inv_det = 1.0 / det if det != 0 else 0.0
    a11, a12 = e * inv_det, -b * inv_det
    a21, a22 = -d * inv_det, a * inv_det
    return np.array(
        [
            [a11, a12, -a11 * c - a12 * f],
            [a21, a22, -a21 * c - a22 * f],
        ]
    )


def warp_roi(shape, transform) -> Rect:
    """Bounding rectangle of an image of the given (rows, cols) shape mapped forward."""
    matrix = _affine_part(transform)
    rows, cols = shape[0], shape[1]
    corners = np.array(
        [[0, 0], [cols - 1, 0], [0, rows - 1], [cols - 1, rows - 1]], dtype=np.float64
    )
    mapped = corners @ matrix[:, :2].T + matrix[:, 2]
    tl_x, tl_y = int(mapped[:, 0].min()), int(mapped[:, 1].min())
    br_x, br_y = int(mapped[:, 0].max()), int(mapped[:, 1].max())
    return Rect(tl_x, tl_y, br_x + 1 - tl_x, br_y + 1 - tl_y)


class GridWarper:
    """Warps a grid image by an affine transform, nearest-neighbour sampling."""

    def warp(self, grid, transform) -> tuple[Rect, np.ndarray]:
        """Return the region the warped grid occupies and the warped image."""
        image = np.asarray(grid)
        forward = _invert_affine(_affine_part(transform))
        roi = warp_roi(image.shape, forward)

        shifted = forward.copy()
        shifted[0, 2] -= roi.x
        shifted[1, 2] -= roi.y
        inverse = _invert_affine(shifted)

        ys, xs = np.mgrid[0 : roi.height, 0 : roi.width]
        src_x = np.floor(
            inverse[0, 0] * xs + inverse[0, 1] * ys + inverse[0, 2] + 0.5
        ).astype(np.int64)
        src_y = np.floor(
            inverse[1, 0] * xs + inverse[1, 1] * ys + inverse[1, 2] + 0.5
        ).astype(np.int64)

        rows, cols = image.shape[:2]
        valid = (src_x >= 0) & (src_x < cols) & (src_y >= 0) & (src_y < rows)
        warped = np.full((roi.height, roi.width), UNKNOWN_BYTE, dtype=np.uint8)
        warped[valid] = image.astype(np.uint8, copy=False)[src_y[valid], src_x[valid]]
        return roi, warped