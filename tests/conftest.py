"""Test configuration shared across this project's pytest suite."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


# Ensure tests can import modules from src/ without requiring editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def white_grid(width: int, height: int) -> np.ndarray:
    """Blank RGBA drawing surface (white, fully opaque)."""
    return np.full((height, width, 4), 255, dtype=np.uint8)


def ink(grid: np.ndarray, x0: int, y0: int, x1: int, y1: int) -> np.ndarray:
    """Paint a black rectangle covering [x0, x1) x [y0, y1)."""
    grid[y0:y1, x0:x1, :3] = 0
    return grid


@pytest.fixture
def square_drawing() -> np.ndarray:
    # 280x280 canvas with a filled 10x10 square at (100,100)-(110,110).
    return ink(white_grid(280, 280), 100, 100, 110, 110)
