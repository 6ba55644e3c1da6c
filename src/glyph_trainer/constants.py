"""Centralized constants for the glyph training pipeline.

This file only stores values (sizes, thresholds, file names).
Keeping them in one place means the preprocessing, augmentation and
classifier modules always agree on the canonical image geometry.
"""

from pathlib import Path

# Every drawing is reduced to a 28x28 grid (MNIST format).
CANONICAL_SIZE = 28
# The classifier consumes one flat vector per example: 28 * 28 values.
FEATURE_LENGTH = CANONICAL_SIZE * CANONICAL_SIZE

# Longest side of the ink region after rescaling, and the margin that
# remains on each side of it inside the canonical grid.
TARGET_SIZE = 20
TARGET_MARGIN = (CANONICAL_SIZE - TARGET_SIZE) // 2

# Extra pixels kept around the detected ink before rescaling.
BOUNDS_PADDING = 2

# A channel value at or above this counts as (near-)white background.
BACKGROUND_THRESHOLD = 250
# Fill value of a freshly created canonical grid.
BACKGROUND_VALUE = 255

# Single-pixel translations used for augmentation, as (dx, dy):
# right, left, down, up.
AUGMENT_SHIFTS = ((1, 0), (-1, 0), (0, 1), (0, -1))
# Small rotations (radians) used for augmentation.
AUGMENT_ROTATIONS = (0.1, -0.1)

# Training defaults.
DEFAULT_EPOCHS = 50
DEFAULT_BATCH_SIZE = 32
DEFAULT_LEARNING_RATE = 0.0005
DEFAULT_VALIDATION_SPLIT = 0.1
# Validation is skipped for tiny corpora where the split would be empty.
MIN_ROWS_FOR_VALIDATION = 10

# Persistence layout.
CORPUS_VERSION = "2.0"
DEFAULT_CORPUS_PATH = Path("data/corpus.json")
DEFAULT_MODEL_DIR = Path("models/glyph_classifier")
MODEL_FILENAME = "model.keras"
LABELS_FILENAME = "labels.json"
