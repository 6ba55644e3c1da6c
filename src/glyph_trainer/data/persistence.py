"""Save and load the training corpus as a JSON payload.

Payload shape:
- `examples`: list of {"feature": [784 floats], "label": str}
- `labels`: distinct labels in classifier output order
- metadata: version, augmentation flag, input size, timestamp
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from glyph_trainer.constants import CORPUS_VERSION, FEATURE_LENGTH
from glyph_trainer.data.example_store import ExampleStore

logger = logging.getLogger(__name__)


def store_to_payload(store: ExampleStore, data_augmentation: bool = True) -> dict[str, Any]:
    """Build the JSON-ready payload for `store`."""
    snapshot = store.snapshot()
    return {
        "version": CORPUS_VERSION,
        "data_augmentation": bool(data_augmentation),
        "input_size": FEATURE_LENGTH,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "labels": list(snapshot.labels),
        "examples": [
            {"feature": [float(v) for v in example.feature], "label": example.label}
            for example in snapshot.examples
        ],
    }


def store_from_payload(payload: dict[str, Any]) -> tuple[ExampleStore, bool]:
    """Rebuild a store from a payload.

    Returns the store and the saved augmentation flag. The saved label order
    wins over example order so class indices survive a reload.
    """
    records = payload.get("examples", [])
    saved_labels = [str(label) for label in payload.get("labels", [])]
    record_labels = {record.get("label") for record in records}

    ordered = [label for label in saved_labels if label in record_labels]
    dropped = [label for label in saved_labels if label not in record_labels]
    if dropped:
        logger.warning("Dropping saved labels with no examples: %s", ", ".join(dropped))

    store = ExampleStore()
    for record in records:
        result = store.add(record.get("feature", []), record.get("label"))
        if not result.ok:
            logger.warning("Skipping unreadable example: %s", result.error)

    unlisted = [label for label in store.labels() if label not in ordered]
    if unlisted:
        logger.warning("Appending labels missing from the saved label list: %s", ", ".join(unlisted))
    store.reorder_labels(ordered)

    return store, bool(payload.get("data_augmentation", True))


def save_corpus(store: ExampleStore, path: Path, data_augmentation: bool = True) -> Path:
    """Write the corpus payload to `path` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(store_to_payload(store, data_augmentation), handle)
    logger.info("Saved %d examples (%d labels) to %s", store.count(), len(store.labels()), path)
    return path


def load_corpus(path: Path) -> tuple[ExampleStore, bool]:
    """Load a corpus file; a missing file gives an empty store."""
    path = Path(path)
    if not path.exists():
        logger.info("No corpus at %s, starting empty", path)
        return ExampleStore(), True

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    store, data_augmentation = store_from_payload(payload)
    logger.info("Loaded %d examples (%d labels) from %s", store.count(), len(store.labels()), path)
    return store, data_augmentation
