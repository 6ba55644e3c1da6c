"""Tests for the command-line entrypoint (no training)."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import tensorflow as tf

from conftest import ink, white_grid
from glyph_trainer.__main__ import main, read_drawing
from glyph_trainer.data.persistence import load_corpus


def _write_png(path: Path, grid: np.ndarray) -> Path:
    tf.io.write_file(str(path), tf.io.encode_png(grid))
    return path


def test_read_drawing_returns_rgba_grid(tmp_path: Path) -> None:
    png = _write_png(tmp_path / "d.png", ink(white_grid(40, 30), 5, 5, 10, 10))
    grid = read_drawing(png)

    assert grid.shape == (30, 40, 4)
    assert grid[7, 7, 0] == 0


def test_add_list_remove_round_trip(tmp_path: Path, capsys) -> None:
    corpus = tmp_path / "corpus.json"
    png = _write_png(tmp_path / "a.png", ink(white_grid(60, 60), 20, 10, 30, 50))

    assert main(["--corpus", str(corpus), "add", str(png), "one"]) == 0
    assert main(["--corpus", str(corpus), "add", str(png), "one"]) == 0
    store, _ = load_corpus(corpus)
    assert store.count() == 2
    assert store.labels() == ("one",)

    assert main(["--corpus", str(corpus), "list"]) == 0
    assert "[0] one: 2" in capsys.readouterr().out

    assert main(["--corpus", str(corpus), "remove", "5"]) == 1
    assert main(["--corpus", str(corpus), "remove", "0"]) == 0
    assert load_corpus(corpus)[0].count() == 1

    assert main(["--corpus", str(corpus), "clear"]) == 0
    assert load_corpus(corpus)[0].labels() == ()


def test_add_with_empty_label_fails(tmp_path: Path) -> None:
    corpus = tmp_path / "corpus.json"
    png = _write_png(tmp_path / "a.png", white_grid(20, 20))

    assert main(["--corpus", str(corpus), "add", str(png), ""]) == 1
    assert not corpus.exists()


def test_train_on_empty_corpus_fails(tmp_path: Path) -> None:
    code = main(["--corpus", str(tmp_path / "c.json"), "train", "--epochs", "1", "--model-dir", str(tmp_path / "m")])
    assert code == 1


def test_predict_without_saved_model_fails_with_message(tmp_path: Path, capsys) -> None:
    png = _write_png(tmp_path / "a.png", ink(white_grid(60, 60), 20, 10, 30, 50))

    code = main(["predict", str(png), "--model-dir", str(tmp_path / "nomodel")])

    assert code == 1
    assert "Error:" in capsys.readouterr().out
