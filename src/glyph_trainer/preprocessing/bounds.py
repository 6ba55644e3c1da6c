"""Locate the drawn ink inside a raw pixel grid."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from glyph_trainer.constants import BACKGROUND_THRESHOLD


@dataclass(frozen=True)
class Bounds:
    """Tight rectangle around the ink, in pixel coordinates (inclusive).

    For an empty drawing the coordinates are a sentinel:
    min_x/min_y hold the grid width/height and max_x/max_y hold 0.
    """

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    is_empty: bool

    @property
    def width(self) -> int:
        return 0 if self.is_empty else self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return 0 if self.is_empty else self.max_y - self.min_y + 1


def color_channels(grid: np.ndarray) -> np.ndarray:
    """Return the (height, width, k) color part of a grid, without alpha.

    RGB(A) grids keep their first three channels; gray(+alpha) grids keep
    only the gray channel.
    """
    if grid.ndim == 2:
        return grid[..., np.newaxis]
    return grid[..., :3] if grid.shape[2] >= 3 else grid[..., :1]


def ink_mask(grid: np.ndarray) -> np.ndarray:
    """Return a (height, width) mask of samples darker than near-white.

    A sample is ink when any of its color channels is below the
    background threshold.
    """
    color = color_channels(grid)
    return (color < BACKGROUND_THRESHOLD).any(axis=-1)


def find_drawing_bounds(grid: np.ndarray) -> Bounds:
    """Scan every sample and return the bounding box of the ink."""
    height, width = grid.shape[:2]
    mask = ink_mask(grid)
    rows = np.where(mask.any(axis=1))[0]
    cols = np.where(mask.any(axis=0))[0]
    if len(rows) == 0 or len(cols) == 0:
        return Bounds(min_x=width, min_y=height, max_x=0, max_y=0, is_empty=True)

    return Bounds(
        min_x=int(cols[0]),
        min_y=int(rows[0]),
        max_x=int(cols[-1]),
        max_y=int(rows[-1]),
        is_empty=False,
    )
