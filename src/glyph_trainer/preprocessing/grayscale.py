"""Convert a canonical color grid into the classifier's feature vector."""

from __future__ import annotations

import numpy as np

from glyph_trainer.constants import CANONICAL_SIZE, FEATURE_LENGTH
from glyph_trainer.preprocessing.bounds import color_channels


def to_feature_vector(canonical: np.ndarray) -> np.ndarray:
    """Average the color channels, invert polarity and scale to [0, 1].

    Dark ink ends up near 1.0 and white background near 0.0, the same
    convention as MNIST. The result is flat (784,) and read-only.
    """
    if canonical.shape[:2] != (CANONICAL_SIZE, CANONICAL_SIZE):
        raise ValueError(f"expected a {CANONICAL_SIZE}x{CANONICAL_SIZE} grid, got {canonical.shape[:2]}")

    color = color_channels(canonical)
    average = color.astype(np.float32).mean(axis=-1)
    features = ((255.0 - average) / 255.0).astype(np.float32).reshape(FEATURE_LENGTH)
    features.setflags(write=False)
    return features


def empty_feature_vector() -> np.ndarray:
    """All-zero vector used when nothing has been drawn."""
    features = np.zeros((FEATURE_LENGTH,), dtype=np.float32)
    features.setflags(write=False)
    return features
