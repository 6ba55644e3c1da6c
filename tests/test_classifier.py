"""Tests for classifier data preparation, training events and persistence."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from conftest import ink, white_grid
from glyph_trainer.data.example_store import Example, ExampleStore
from glyph_trainer.errors import EmptyCanvas, ModelNotTrained, NoTrainingData
from glyph_trainer.model.classifier import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
    GlyphClassifier,
    TrainingConfig,
    TrainingFinished,
    TrainingProgress,
    build_model,
    prepare_training_data,
)
from glyph_trainer.preprocessing.pipeline import drawing_to_features


def _bar_store() -> ExampleStore:
    """Two easily separable classes: vertical and horizontal bars."""
    store = ExampleStore()
    for offset in range(3):
        vertical = ink(white_grid(100, 100), 45 + offset, 10, 55 + offset, 90)
        horizontal = ink(white_grid(100, 100), 10, 45 + offset, 90, 55 + offset)
        store.add(drawing_to_features(vertical).value, "|")
        store.add(drawing_to_features(horizontal).value, "-")
    return store


def test_prepare_training_data_one_hot_follows_label_order() -> None:
    examples = [
        Example(feature=np.zeros(784, dtype=np.float32), label="b"),
        Example(feature=np.ones(784, dtype=np.float32), label="a"),
    ]
    xs, ys = prepare_training_data(examples, labels=("b", "a"), augmentation=True)

    assert xs.shape == (14, 784)
    assert ys.shape == (14, 2)
    assert np.all(ys[:7, 0] == 1.0)
    assert np.all(ys[7:, 1] == 1.0)
    assert np.all(ys.sum(axis=1) == 1.0)


def test_prepare_training_data_without_augmentation() -> None:
    examples = [Example(feature=np.zeros(784, dtype=np.float32), label="a")]
    xs, ys = prepare_training_data(examples, labels=("a",), augmentation=False)
    assert xs.shape == (1, 784)
    assert ys.tolist() == [[1.0]]


def test_build_model_output_matches_label_count() -> None:
    model = build_model(num_classes=3)
    out = model(np.zeros((2, 784), dtype=np.float32), training=False).numpy()

    assert out.shape == (2, 3)
    assert np.allclose(out.sum(axis=1), 1.0, atol=1e-5)


def test_training_yields_progress_then_completed() -> None:
    classifier = GlyphClassifier()
    events = list(classifier.train(_bar_store(), TrainingConfig(epochs=2, seed=1)))

    progress = [event for event in events if isinstance(event, TrainingProgress)]
    assert [event.epoch for event in progress] == [0, 1]
    assert all(np.isfinite(event.loss) for event in progress)
    assert isinstance(events[-1], TrainingFinished)
    assert events[-1].status == STATUS_COMPLETED
    assert events[-1].epochs_completed == 2
    assert classifier.labels == ("|", "-")
    assert not classifier.is_training


def test_training_on_empty_store_fails_cleanly() -> None:
    events = list(GlyphClassifier().train(ExampleStore(), TrainingConfig(epochs=1)))

    assert len(events) == 1
    assert events[0].status == STATUS_FAILED
    assert isinstance(events[0].error, NoTrainingData)


def test_training_can_be_cancelled_between_epochs() -> None:
    calls = {"n": 0}

    def should_stop() -> bool:
        calls["n"] += 1
        return calls["n"] > 1

    classifier = GlyphClassifier()
    events = list(classifier.train(_bar_store(), TrainingConfig(epochs=5), should_stop=should_stop))

    assert events[-1].status == STATUS_CANCELLED
    assert events[-1].epochs_completed == 1
    # One completed epoch is enough to keep the model.
    assert classifier.is_trained


def test_store_is_locked_while_training_generator_is_active() -> None:
    store = _bar_store()
    events = GlyphClassifier().train(store, TrainingConfig(epochs=1))

    next(events)
    assert not store.add(np.zeros(784, dtype=np.float32), "x").ok
    list(events)
    assert store.add(np.zeros(784, dtype=np.float32), "x").ok


def test_predict_before_training_reports_model_not_trained() -> None:
    result = GlyphClassifier().predict(np.zeros(784, dtype=np.float32))
    assert isinstance(result.error, ModelNotTrained)


def test_predict_ranks_every_label_and_rejects_empty_drawing() -> None:
    classifier = GlyphClassifier()
    list(classifier.train(_bar_store(), TrainingConfig(epochs=2, seed=1)))

    drawing = ink(white_grid(100, 100), 48, 10, 56, 90)
    ranked = classifier.predict_drawing(drawing).unwrap()

    assert sorted(p.label for p in ranked) == ["-", "|"]
    assert ranked[0].confidence >= ranked[1].confidence
    assert sum(p.confidence for p in ranked) == pytest.approx(1.0, abs=1e-4)

    empty = classifier.predict_drawing(white_grid(100, 100))
    assert isinstance(empty.error, EmptyCanvas)


def test_save_and_load_keep_label_order(tmp_path: Path) -> None:
    classifier = GlyphClassifier()
    list(classifier.train(_bar_store(), TrainingConfig(epochs=1, seed=1)))
    assert classifier.save(tmp_path / "model").ok

    loaded = GlyphClassifier.load(tmp_path / "model").unwrap()
    x = _bar_store()[0].feature

    assert loaded.labels == ("|", "-")
    before = [p.label for p in classifier.predict(x).unwrap()]
    after = [p.label for p in loaded.predict(x).unwrap()]
    assert before == after


def test_save_without_model_fails() -> None:
    assert isinstance(GlyphClassifier().save(Path("unused")).error, ModelNotTrained)


def test_load_without_saved_model_reports_model_not_trained(tmp_path: Path) -> None:
    result = GlyphClassifier.load(tmp_path / "missing")
    assert not result.ok
    assert isinstance(result.error, ModelNotTrained)


def test_load_rejects_label_count_mismatch(tmp_path: Path) -> None:
    classifier = GlyphClassifier()
    list(classifier.train(_bar_store(), TrainingConfig(epochs=1, seed=1)))
    classifier.save(tmp_path / "model").unwrap()
    # Three saved labels against a two-output model.
    (tmp_path / "model" / "labels.json").write_text('{"labels": ["a", "b", "c"]}', encoding="utf-8")

    result = GlyphClassifier.load(tmp_path / "model")

    assert isinstance(result.error, ModelNotTrained)
    assert "3 labels" in str(result.error)
