"""Deterministic augmentation of canonical training examples.

Each stored drawing is expanded at training time into a small batch:
- the original,
- four single-pixel shifts (right, left, down, up),
- two slight rotations (+/-0.1 rad).

There is no randomness, so the same corpus always yields the same batch.
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from glyph_trainer.constants import AUGMENT_ROTATIONS, AUGMENT_SHIFTS, CANONICAL_SIZE
from glyph_trainer.data.example_store import Example


def shift_image(image: np.ndarray, dx: int, dy: int) -> np.ndarray:
    """Translate a 2-D image by (dx, dy) pixels, keeping its shape.

    Positive dx moves ink right, positive dy moves it down. Values pushed
    past an edge are lost and the uncovered strip is 0 (no wraparound).
    """
    h, w = image.shape
    shifted = np.zeros_like(image)
    if abs(dx) >= w or abs(dy) >= h:
        return shifted

    # Destination window in the output and the matching window in the input.
    out_x = slice(max(dx, 0), w + min(dx, 0))
    out_y = slice(max(dy, 0), h + min(dy, 0))
    in_x = slice(max(-dx, 0), w + min(-dx, 0))
    in_y = slice(max(-dy, 0), h + min(-dy, 0))
    shifted[out_y, out_x] = image[in_y, in_x]
    return shifted


def rotate_image(image: np.ndarray, angle: float) -> np.ndarray:
    """Rotate an image about its center by inverse nearest-neighbor lookup.

    Every destination pixel asks which source pixel maps onto it, so the
    output has no holes. Lookups that fall outside the image give 0.
    """
    h, w = image.shape
    center_x = w / 2
    center_y = h / 2
    cos = math.cos(angle)
    sin = math.sin(angle)

    ys, xs = np.indices((h, w), dtype=np.float64)
    x_diff = xs - center_x
    y_diff = ys - center_y
    # floor(v + 0.5) rounds halves upward, matching the canvas convention.
    source_x = np.floor(x_diff * cos - y_diff * sin + center_x + 0.5).astype(np.int64)
    source_y = np.floor(x_diff * sin + y_diff * cos + center_y + 0.5).astype(np.int64)

    inside = (source_x >= 0) & (source_x < w) & (source_y >= 0) & (source_y < h)
    rotated = np.zeros_like(image)
    rotated[inside] = image[source_y[inside], source_x[inside]]
    return rotated


def _as_example(image_2d: np.ndarray, label: str) -> Example:
    feature = image_2d.reshape(-1)
    feature.setflags(write=False)
    return Example(feature=feature, label=label)


def augment_example(example: Example, enabled: bool = True) -> list[Example]:
    """Return the augmented batch for one example, source first.

    With augmentation disabled the batch is just the source example.
    """
    batch = [example]
    if not enabled:
        return batch

    # Copy so the source feature can never be touched by the transforms.
    image_2d = np.array(example.feature, dtype=np.float32).reshape(CANONICAL_SIZE, CANONICAL_SIZE)

    for dx, dy in AUGMENT_SHIFTS:
        batch.append(_as_example(shift_image(image_2d, dx=dx, dy=dy), example.label))

    for angle in AUGMENT_ROTATIONS:
        batch.append(_as_example(rotate_image(image_2d, angle), example.label))

    return batch


def augment_examples(examples: Iterable[Example], enabled: bool = True) -> list[Example]:
    """Concatenate the augmented batches of several examples, in order."""
    augmented: list[Example] = []
    for example in examples:
        augmented.extend(augment_example(example, enabled=enabled))
    return augmented
