"""Command entrypoint for the glyph_trainer package."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import numpy as np
import tensorflow as tf

from glyph_trainer.constants import DEFAULT_BATCH_SIZE, DEFAULT_CORPUS_PATH, DEFAULT_EPOCHS, DEFAULT_MODEL_DIR
from glyph_trainer.data.persistence import load_corpus, save_corpus
from glyph_trainer.model.classifier import (
    STATUS_COMPLETED,
    GlyphClassifier,
    TrainingConfig,
    TrainingFinished,
)
from glyph_trainer.preprocessing.pipeline import drawing_to_features


def read_drawing(path: Path) -> np.ndarray:
    """Read a PNG drawing as an RGBA (height, width, 4) uint8 grid."""
    return tf.io.decode_png(tf.io.read_file(str(path)), channels=4).numpy()


def _cmd_add(args: argparse.Namespace) -> int:
    store, augmentation = load_corpus(args.corpus)
    features = drawing_to_features(read_drawing(args.image))
    if not features.ok:
        print(f"Warning: {features.error}; storing a blank example.")

    result = store.add(features.value, args.label)
    if not result.ok:
        print(f"Error: {result.error}")
        return 1
    save_corpus(store, args.corpus, data_augmentation=augmentation)
    print(f"Added example {result.value} with label {args.label!r} ({store.count()} total)")
    return 0


def _cmd_remove(args: argparse.Namespace) -> int:
    store, augmentation = load_corpus(args.corpus)
    result = store.remove_at(args.index)
    if not result.ok:
        print(f"Error: {result.error}")
        return 1
    save_corpus(store, args.corpus, data_augmentation=augmentation)
    print(f"Removed example {args.index} (label {result.value.label!r}), {store.count()} left")
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    store, augmentation = load_corpus(args.corpus)
    print(f"{store.count()} examples, augmentation {'on' if augmentation else 'off'}")
    counts = {label: 0 for label in store.labels()}
    for example in store:
        counts[example.label] += 1
    for index, label in enumerate(store.labels()):
        print(f"  [{index}] {label}: {counts[label]}")
    return 0


def _cmd_clear(args: argparse.Namespace) -> int:
    store, augmentation = load_corpus(args.corpus)
    store.clear()
    save_corpus(store, args.corpus, data_augmentation=augmentation)
    print("Training data cleared.")
    return 0


def _cmd_train(args: argparse.Namespace) -> int:
    store, augmentation = load_corpus(args.corpus)
    if args.no_augment:
        augmentation = False
    config = TrainingConfig(
        epochs=args.epochs,
        batch_size=args.batch_size,
        data_augmentation=augmentation,
        seed=args.seed,
    )

    classifier = GlyphClassifier()
    final: TrainingFinished | None = None
    for event in classifier.train(store, config):
        if isinstance(event, TrainingFinished):
            final = event
            continue
        print(f"Epoch {event.epoch + 1}/{config.epochs} - loss: {event.loss:.4f}, accuracy: {event.accuracy:.4f}")

    if final is None or final.status != STATUS_COMPLETED:
        print(f"Training {final.status if final else 'failed'}: {final.message if final else ''}")
        return 1

    classifier.save(args.model_dir).unwrap()
    save_corpus(store, args.corpus, data_augmentation=augmentation)
    print(f"Saved trained model to: {args.model_dir}")
    return 0


def _cmd_predict(args: argparse.Namespace) -> int:
    loaded = GlyphClassifier.load(args.model_dir)
    if not loaded.ok:
        print(f"Error: {loaded.error}")
        return 1
    result = loaded.value.predict_drawing(read_drawing(args.image))
    if not result.ok:
        print(f"Error: {result.error}")
        return 1
    for prediction in result.value[: args.top]:
        print(f"{prediction.label}: {prediction.confidence * 100:.2f}%")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hand-drawn glyph corpus and classifier")
    parser.add_argument("--corpus", type=Path, default=DEFAULT_CORPUS_PATH, help="Corpus JSON file.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Normalize a PNG drawing and store it with a label.")
    add.add_argument("image", type=Path)
    add.add_argument("label")
    add.set_defaults(func=_cmd_add)

    remove = sub.add_parser("remove", help="Delete the example at a position.")
    remove.add_argument("index", type=int)
    remove.set_defaults(func=_cmd_remove)

    sub.add_parser("list", help="Show labels and example counts.").set_defaults(func=_cmd_list)
    sub.add_parser("clear", help="Delete every example.").set_defaults(func=_cmd_clear)

    train = sub.add_parser("train", help="Train a classifier on the corpus.")
    train.add_argument("--epochs", type=int, default=DEFAULT_EPOCHS)
    train.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    train.add_argument("--no-augment", action="store_true", help="Train on the stored examples only.")
    train.add_argument("--seed", type=int, default=None)
    train.add_argument("--model-dir", type=Path, default=DEFAULT_MODEL_DIR)
    train.set_defaults(func=_cmd_train)

    predict = sub.add_parser("predict", help="Rank labels for a PNG drawing.")
    predict.add_argument("image", type=Path)
    predict.add_argument("--model-dir", type=Path, default=DEFAULT_MODEL_DIR)
    predict.add_argument("--top", type=int, default=5)
    predict.set_defaults(func=_cmd_predict)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
