"""Error taxonomy and the success/failure result type.

Operations at the pipeline boundary do not raise for expected failures.
They return a `Result`, and the error it carries is an exception instance
so callers that prefer exceptions can simply call `unwrap()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class GlyphTrainerError(Exception):
    """Base class for all recoverable pipeline errors."""


class InvalidLabel(GlyphTrainerError):
    """An example was added without a usable label."""


class InvalidFeature(GlyphTrainerError):
    """A feature vector does not have the canonical length."""


class IndexOutOfRange(GlyphTrainerError):
    """A positional index does not refer to a stored example."""


class EmptyCanvas(GlyphTrainerError):
    """The drawing contains no ink."""


class NoTrainingData(GlyphTrainerError):
    """Training was requested on an empty corpus."""


class TrainingInProgress(GlyphTrainerError):
    """A training pass is already reading the corpus."""


class ModelNotTrained(GlyphTrainerError):
    """Prediction was requested before a model exists."""


@dataclass(frozen=True)
class Result:
    """Outcome of one operation.

    `value` is the produced value on success. A few failures also carry a
    substitute value (an empty canvas yields an all-zero feature vector).
    """

    ok: bool
    value: Any = None
    error: GlyphTrainerError | None = None

    @classmethod
    def success(cls, value: Any = None) -> Result:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: GlyphTrainerError, value: Any = None) -> Result:
        return cls(ok=False, value=value, error=error)

    def unwrap(self) -> Any:
        """Return the value, or raise the carried error."""
        if not self.ok:
            raise self.error if self.error is not None else GlyphTrainerError("operation failed")
        return self.value
