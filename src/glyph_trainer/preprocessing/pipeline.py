"""End-to-end conversion of a raw drawing into a feature vector.

Pipeline summary:
1) Find the ink bounding box (white background is ignored).
2) Crop with padding, rescale the long side to 20 px, center on 28x28.
3) Average to grayscale, invert and flatten to 784 values.
"""

from __future__ import annotations

import logging

import numpy as np

from glyph_trainer.errors import EmptyCanvas, Result
from glyph_trainer.preprocessing.bounds import find_drawing_bounds
from glyph_trainer.preprocessing.grayscale import empty_feature_vector, to_feature_vector
from glyph_trainer.preprocessing.resample import resample_to_canonical

logger = logging.getLogger(__name__)


def as_pixel_grid(image: np.ndarray) -> np.ndarray:
    """Return `image` as a (height, width, channels) array.

    Grayscale (height, width) input gains a single channel axis.
    """
    grid = np.asarray(image)
    if grid.ndim == 2:
        grid = grid[..., np.newaxis]
    if grid.ndim != 3 or not 1 <= grid.shape[2] <= 4:
        raise ValueError(f"expected (height, width[, channels<=4]) pixels, got shape {grid.shape}")
    if grid.shape[0] == 0 or grid.shape[1] == 0:
        raise ValueError("pixel grid has no samples")
    return grid


def drawing_to_features(image: np.ndarray) -> Result:
    """Normalize one drawing.

    On success the result holds the feature vector. An empty drawing is
    reported as an `EmptyCanvas` failure whose value is the all-zero vector,
    so callers can still show or store a blank input.
    """
    grid = as_pixel_grid(image)
    bounds = find_drawing_bounds(grid)
    if bounds.is_empty:
        logger.debug("Drawing of shape %s has no ink", grid.shape)
        return Result.failure(EmptyCanvas("nothing has been drawn"), value=empty_feature_vector())

    canonical = resample_to_canonical(grid, bounds)
    logger.debug(
        "Ink at x=%d..%d y=%d..%d normalized to canonical grid",
        bounds.min_x,
        bounds.max_x,
        bounds.min_y,
        bounds.max_y,
    )
    return Result.success(to_feature_vector(canonical))
