"""Keras classifier trained on the example store.

The model itself is intentionally small: a two-block CNN over the 28x28
canonical grid. What matters for the rest of the package is the contract:
- label i of the store's label list is softmax output i,
- training is a generator of progress events ending in one final status,
- the label list is saved next to the model so reloading never reorders
  output classes.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Sequence, Union

import numpy as np
import tensorflow as tf
from tensorflow import keras
from tensorflow.keras import layers

from glyph_trainer.constants import (
    CANONICAL_SIZE,
    DEFAULT_BATCH_SIZE,
    DEFAULT_EPOCHS,
    DEFAULT_LEARNING_RATE,
    DEFAULT_VALIDATION_SPLIT,
    FEATURE_LENGTH,
    LABELS_FILENAME,
    MIN_ROWS_FOR_VALIDATION,
    MODEL_FILENAME,
)
from glyph_trainer.data.augmentation import augment_examples
from glyph_trainer.data.example_store import Example, ExampleStore, StoreSnapshot
from glyph_trainer.errors import (
    EmptyCanvas,
    GlyphTrainerError,
    InvalidFeature,
    ModelNotTrained,
    NoTrainingData,
    Result,
    TrainingInProgress,
)
from glyph_trainer.preprocessing.pipeline import drawing_to_features

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class TrainingConfig:
    """Settings for one training run."""

    epochs: int = DEFAULT_EPOCHS
    batch_size: int = DEFAULT_BATCH_SIZE
    learning_rate: float = DEFAULT_LEARNING_RATE
    validation_split: float = DEFAULT_VALIDATION_SPLIT
    data_augmentation: bool = True
    seed: int | None = None


@dataclass(frozen=True)
class TrainingProgress:
    """Metrics reported after each completed epoch."""

    epoch: int
    loss: float
    accuracy: float
    val_loss: float | None = None
    val_accuracy: float | None = None


@dataclass(frozen=True)
class TrainingFinished:
    """Final event of a training run."""

    status: str
    epochs_completed: int
    message: str = ""
    error: GlyphTrainerError | None = None


TrainingEvent = Union[TrainingProgress, TrainingFinished]


@dataclass(frozen=True)
class Prediction:
    label: str
    confidence: float


def build_model(num_classes: int, learning_rate: float = DEFAULT_LEARNING_RATE) -> keras.Model:
    """Create and compile the CNN for `num_classes` labels."""
    model = keras.Sequential(
        [
            # Flat 784 feature vectors come in; convolutions want an image.
            layers.Input(shape=(FEATURE_LENGTH,)),
            layers.Reshape((CANONICAL_SIZE, CANONICAL_SIZE, 1)),
            layers.Conv2D(32, kernel_size=3, padding="same", activation="relu", kernel_initializer="variance_scaling"),
            layers.MaxPooling2D(pool_size=2, strides=2),
            layers.Conv2D(64, kernel_size=3, padding="same", activation="relu", kernel_initializer="variance_scaling"),
            layers.MaxPooling2D(pool_size=2, strides=2),
            layers.Flatten(),
            layers.Dense(128, activation="relu", kernel_initializer="variance_scaling"),
            layers.Dropout(0.3),
            # One softmax output per label, in label-list order.
            layers.Dense(num_classes, activation="softmax", kernel_initializer="variance_scaling"),
        ]
    )
    model.compile(
        optimizer=keras.optimizers.Adam(learning_rate=learning_rate),
        loss="categorical_crossentropy",
        metrics=["accuracy"],
    )
    return model


def prepare_training_data(
    examples: Sequence[Example],
    labels: Sequence[str],
    augmentation: bool = True,
) -> tuple[np.ndarray, np.ndarray]:
    """Augment the examples and stack them into (xs, one-hot ys)."""
    label_index = {label: i for i, label in enumerate(labels)}
    augmented = augment_examples(examples, enabled=augmentation)

    xs = np.stack([np.asarray(example.feature, dtype=np.float32) for example in augmented])
    ys = np.zeros((len(augmented), len(labels)), dtype=np.float32)
    for row, example in enumerate(augmented):
        ys[row, label_index[example.label]] = 1.0
    return xs, ys


class GlyphClassifier:
    """Trainable classifier bound to an explicit, ordered label list."""

    def __init__(self, model: keras.Model | None = None, labels: Sequence[str] = ()) -> None:
        self._model = model
        self._labels: tuple[str, ...] = tuple(labels)
        self._is_training = False

    @property
    def labels(self) -> tuple[str, ...]:
        return self._labels

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def is_training(self) -> bool:
        return self._is_training

    def train(
        self,
        source: ExampleStore | StoreSnapshot,
        config: TrainingConfig = TrainingConfig(),
        should_stop: Callable[[], bool] | None = None,
    ) -> Iterator[TrainingEvent]:
        """Train a fresh model, yielding one event per epoch then a final status.

        A live store is held in a read pass for the whole run, so it cannot
        be mutated until the generator finishes or is closed.
        """
        if self._is_training:
            error = TrainingInProgress("training already in progress")
            logger.warning("%s", error)
            yield TrainingFinished(STATUS_FAILED, 0, str(error), error)
            return

        if isinstance(source, ExampleStore):
            with source.read_pass() as snapshot:
                yield from self._train_snapshot(snapshot, config, should_stop)
        else:
            yield from self._train_snapshot(source, config, should_stop)

    def _train_snapshot(
        self,
        snapshot: StoreSnapshot,
        config: TrainingConfig,
        should_stop: Callable[[], bool] | None,
    ) -> Iterator[TrainingEvent]:
        if not snapshot.examples:
            error = NoTrainingData("no training data available")
            logger.warning("%s", error)
            yield TrainingFinished(STATUS_FAILED, 0, str(error), error)
            return

        self._is_training = True
        completed = 0
        try:
            if config.seed is not None:
                tf.random.set_seed(config.seed)
                np.random.seed(config.seed)

            labels = snapshot.labels
            xs, ys = prepare_training_data(snapshot.examples, labels, augmentation=config.data_augmentation)
            model = build_model(len(labels), learning_rate=config.learning_rate)

            # Small corpora get small batches so every epoch takes a few steps.
            batch_size = max(1, min(config.batch_size, math.floor(len(snapshot.examples) * 0.8)))
            validation_split = config.validation_split if len(xs) >= MIN_ROWS_FOR_VALIDATION else 0.0
            logger.info(
                "Training on %d rows (%d examples, %d labels), batch size %d",
                len(xs),
                len(snapshot.examples),
                len(labels),
                batch_size,
            )

            for epoch in range(config.epochs):
                if should_stop is not None and should_stop():
                    if completed:
                        self._model, self._labels = model, labels
                    logger.info("Training cancelled after %d epochs", completed)
                    yield TrainingFinished(STATUS_CANCELLED, completed, "training cancelled")
                    return

                history = model.fit(
                    xs,
                    ys,
                    initial_epoch=epoch,
                    epochs=epoch + 1,
                    batch_size=batch_size,
                    shuffle=True,
                    validation_split=validation_split,
                    verbose=0,
                )
                logs = {key: values[-1] for key, values in history.history.items()}
                completed += 1
                progress = TrainingProgress(
                    epoch=epoch,
                    loss=float(logs["loss"]),
                    accuracy=float(logs.get("accuracy", float("nan"))),
                    val_loss=float(logs["val_loss"]) if "val_loss" in logs else None,
                    val_accuracy=float(logs["val_accuracy"]) if "val_accuracy" in logs else None,
                )
                logger.debug("Epoch %d: loss %.4f accuracy %.4f", epoch, progress.loss, progress.accuracy)
                yield progress

            self._model, self._labels = model, labels
            logger.info("Training complete after %d epochs", completed)
            yield TrainingFinished(STATUS_COMPLETED, completed)
        except Exception as exc:
            logger.exception("Error during training")
            yield TrainingFinished(STATUS_FAILED, completed, str(exc))
        finally:
            self._is_training = False

    def predict(self, feature: np.ndarray) -> Result:
        """Rank every label for one feature vector, most confident first."""
        if self._model is None:
            return Result.failure(ModelNotTrained("model not initialized, train or load one first"))

        x = np.asarray(feature, dtype=np.float32).reshape(-1)
        if x.shape != (FEATURE_LENGTH,):
            return Result.failure(InvalidFeature(f"feature must have {FEATURE_LENGTH} values, got {x.shape[0]}"))

        probs = self._model(np.expand_dims(x, axis=0), training=False).numpy()[0]
        ranked = sorted(
            (Prediction(label=label, confidence=float(p)) for label, p in zip(self._labels, probs)),
            key=lambda prediction: prediction.confidence,
            reverse=True,
        )
        return Result.success(ranked)

    def predict_drawing(self, image: np.ndarray) -> Result:
        """Normalize a raw drawing and rank labels for it."""
        features = drawing_to_features(image)
        if not features.ok:
            return Result.failure(EmptyCanvas("draw something first, then run prediction"))
        return self.predict(features.value)

    def save(self, directory: Path) -> Result:
        """Write the model and its label list side by side."""
        if self._model is None:
            return Result.failure(ModelNotTrained("no model to save"))

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        self._model.save(directory / MODEL_FILENAME)
        with (directory / LABELS_FILENAME).open("w", encoding="utf-8") as handle:
            json.dump({"labels": list(self._labels)}, handle)
        logger.info("Saved model with %d labels to %s", len(self._labels), directory)
        return Result.success(directory)

    @classmethod
    def load(cls, directory: Path) -> Result:
        """Load a model saved by `save`; the result value is the classifier."""
        directory = Path(directory)
        model_path = directory / MODEL_FILENAME
        labels_path = directory / LABELS_FILENAME
        if not model_path.exists() or not labels_path.exists():
            error = ModelNotTrained(f"no saved model in {directory}, train one first")
            logger.warning("%s", error)
            return Result.failure(error)

        try:
            model = keras.models.load_model(model_path)
            with labels_path.open("r", encoding="utf-8") as handle:
                labels = [str(label) for label in json.load(handle)["labels"]]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.exception("Could not read saved model from %s", directory)
            return Result.failure(ModelNotTrained(f"unreadable model in {directory}: {exc}"))

        outputs = int(model.output_shape[-1])
        if outputs != len(labels):
            error = ModelNotTrained(f"model has {outputs} outputs but {len(labels)} labels were saved")
            logger.warning("%s", error)
            return Result.failure(error)
        logger.info("Loaded model with %d labels from %s", len(labels), directory)
        return Result.success(cls(model=model, labels=labels))
