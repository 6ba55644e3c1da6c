"""Map the ink region of a drawing onto the canonical 28x28 grid.

Goal:
- Crop the drawing to its ink (plus a small padding).
- Scale the longest side to 20 pixels while keeping the aspect ratio.
- Center the result on a white 28x28 canvas, like MNIST digits.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import tensorflow as tf

from glyph_trainer.constants import (
    BACKGROUND_VALUE,
    BOUNDS_PADDING,
    CANONICAL_SIZE,
    TARGET_MARGIN,
    TARGET_SIZE,
)
from glyph_trainer.errors import EmptyCanvas
from glyph_trainer.preprocessing.bounds import Bounds


@dataclass(frozen=True)
class Placement:
    """Source crop and destination rectangle for one resample."""

    source_x: int
    source_y: int
    source_width: int
    source_height: int
    dest_x: int
    dest_y: int
    dest_width: int
    dest_height: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 going up (not to even)."""
    return int(math.floor(value + 0.5))


def compute_placement(grid_shape: tuple[int, ...], bounds: Bounds) -> Placement:
    """Work out the padded source crop and where it lands on the canvas."""
    if bounds.is_empty:
        raise EmptyCanvas("cannot place an empty drawing")

    height, width = grid_shape[:2]

    # Pad the ink box on every side, without leaving the grid.
    source_x = max(0, bounds.min_x - BOUNDS_PADDING)
    source_y = max(0, bounds.min_y - BOUNDS_PADDING)
    source_width = min(width - source_x, bounds.max_x - bounds.min_x + BOUNDS_PADDING * 2)
    source_height = min(height - source_y, bounds.max_y - bounds.min_y + BOUNDS_PADDING * 2)
    # A single pixel touching the far edge can collapse the crop.
    source_width = max(1, source_width)
    source_height = max(1, source_height)

    if source_width > source_height:
        dest_width = TARGET_SIZE
        dest_height = max(1, round_half_up(source_height * TARGET_SIZE / source_width))
        dest_x = TARGET_MARGIN
        dest_y = round_half_up((CANONICAL_SIZE - dest_height) / 2)
    else:
        dest_height = TARGET_SIZE
        dest_width = max(1, round_half_up(source_width * TARGET_SIZE / source_height))
        dest_y = TARGET_MARGIN
        dest_x = round_half_up((CANONICAL_SIZE - dest_width) / 2)

    return Placement(
        source_x=source_x,
        source_y=source_y,
        source_width=source_width,
        source_height=source_height,
        dest_x=dest_x,
        dest_y=dest_y,
        dest_width=dest_width,
        dest_height=dest_height,
    )


def resample_to_canonical(grid: np.ndarray, bounds: Bounds) -> np.ndarray:
    """Return a float32 (28, 28, channels) grid with the ink placed centrally.

    The canvas starts as uniform background; only the destination rectangle
    is written. Raises `EmptyCanvas` for empty bounds, callers are expected
    to short-circuit before getting here.
    """
    placement = compute_placement(grid.shape, bounds)
    channels = grid.shape[2]

    crop = grid[
        placement.source_y : placement.source_y + placement.source_height,
        placement.source_x : placement.source_x + placement.source_width,
    ].astype(np.float32)

    # Antialiasing averages over the covered area when shrinking, which
    # keeps thin strokes visible instead of skipping them.
    resized = tf.image.resize(
        crop,
        size=(placement.dest_height, placement.dest_width),
        method="bilinear",
        antialias=True,
    ).numpy()

    canvas = np.full((CANONICAL_SIZE, CANONICAL_SIZE, channels), BACKGROUND_VALUE, dtype=np.float32)
    canvas[
        placement.dest_y : placement.dest_y + placement.dest_height,
        placement.dest_x : placement.dest_x + placement.dest_width,
    ] = np.clip(resized, 0.0, 255.0)
    return canvas
