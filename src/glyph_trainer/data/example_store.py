"""Ordered, in-memory store of labeled training examples.

The store is the only mutable state in the pipeline. It keeps:
- examples in insertion order (indices are positional, not stable ids),
- the set of labels in first-seen order, which defines the classifier's
  output index for each label.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from glyph_trainer.constants import FEATURE_LENGTH
from glyph_trainer.errors import (
    GlyphTrainerError,
    IndexOutOfRange,
    InvalidFeature,
    InvalidLabel,
    Result,
    TrainingInProgress,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Example:
    """One canonical feature vector and its label."""

    feature: np.ndarray
    label: str


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of the store taken at the start of a read pass."""

    examples: tuple[Example, ...]
    labels: tuple[str, ...]


class ExampleStore:
    """Training corpus with label bookkeeping.

    A label is listed by `labels()` exactly while at least one stored
    example carries it. Mutations are refused during a `read_pass()`.
    """

    def __init__(self) -> None:
        self._examples: list[Example] = []
        # Label -> number of examples carrying it. Dicts keep insertion
        # order, which gives first-seen ordering for free.
        self._label_counts: dict[str, int] = {}
        self._readers = 0

    def __len__(self) -> int:
        return len(self._examples)

    def __iter__(self) -> Iterator[Example]:
        return iter(tuple(self._examples))

    def __getitem__(self, index: int) -> Example:
        return self._examples[index]

    def count(self) -> int:
        """Number of stored examples."""
        return len(self._examples)

    def labels(self) -> tuple[str, ...]:
        """Distinct labels in first-seen order."""
        return tuple(self._label_counts)

    def label_index(self) -> dict[str, int]:
        """Map each label to its classifier output position."""
        return {label: i for i, label in enumerate(self._label_counts)}

    def add(self, feature: np.ndarray, label: str | None) -> Result:
        """Append an example; the result value is its index."""
        if self._readers:
            return self._reject(TrainingInProgress("cannot add examples while training reads the corpus"))
        if not label:
            return self._reject(InvalidLabel("a label is required for training data"))

        vector = np.array(feature, dtype=np.float32).reshape(-1)
        if vector.shape != (FEATURE_LENGTH,):
            return self._reject(
                InvalidFeature(f"feature must have {FEATURE_LENGTH} values, got {vector.shape[0]}")
            )
        vector.setflags(write=False)

        self._examples.append(Example(feature=vector, label=label))
        self._label_counts[label] = self._label_counts.get(label, 0) + 1
        return Result.success(len(self._examples) - 1)

    def remove_at(self, index: int) -> Result:
        """Delete the example at `index`; the result value is the removed example."""
        if self._readers:
            return self._reject(TrainingInProgress("cannot remove examples while training reads the corpus"))
        if not 0 <= index < len(self._examples):
            return self._reject(
                IndexOutOfRange(f"index {index} is out of range for {len(self._examples)} examples")
            )

        removed = self._examples.pop(index)
        remaining = self._label_counts[removed.label] - 1
        if remaining:
            self._label_counts[removed.label] = remaining
        else:
            del self._label_counts[removed.label]
        return Result.success(removed)

    def clear(self) -> Result:
        """Remove every example and label."""
        if self._readers:
            return self._reject(TrainingInProgress("cannot clear the corpus while training reads it"))
        self._examples = []
        self._label_counts = {}
        return Result.success()

    def reorder_labels(self, order: list[str] | tuple[str, ...]) -> None:
        """Put the given labels first, keeping the rest in their current order.

        Used when reloading a corpus whose label order was saved explicitly.
        Labels with no examples are ignored.
        """
        reordered = {label: self._label_counts[label] for label in order if label in self._label_counts}
        for label, count in self._label_counts.items():
            reordered.setdefault(label, count)
        self._label_counts = reordered

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(examples=tuple(self._examples), labels=self.labels())

    @contextmanager
    def read_pass(self) -> Iterator[StoreSnapshot]:
        """Hold the store read-only while the caller consumes a snapshot."""
        self._readers += 1
        try:
            yield self.snapshot()
        finally:
            self._readers -= 1

    def _reject(self, error: GlyphTrainerError) -> Result:
        logger.warning("Example store rejected operation: %s", error)
        return Result.failure(error)
