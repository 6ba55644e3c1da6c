"""Background training job.

This module owns the threading/queue behavior used to train without
blocking the caller. Training itself is a plain generator of events; the
job just runs it on a worker thread and hands events back through a queue
that the caller polls.
"""

from __future__ import annotations

import logging
from queue import Empty, Queue
from threading import Event, Thread
from typing import Callable, Iterator

from glyph_trainer.model.classifier import STATUS_FAILED, TrainingEvent, TrainingFinished, TrainingProgress

logger = logging.getLogger(__name__)

# Called with a "should stop" predicate, returns the event stream.
TrainFn = Callable[[Callable[[], bool]], Iterator[TrainingEvent]]


class TrainingJob:
    """Threaded runner around a training event generator.

    Design goals:
    - `start()` returns immediately, training continues on a daemon thread
    - `stop()` requests cancellation, honored between epochs
    - `poll_events()` drains every event produced so far, in order
    """

    def __init__(self, train_fn: TrainFn) -> None:
        self._train_fn = train_fn
        self._events: Queue[TrainingEvent] = Queue()
        self._stop_event = Event()
        self._thread: Thread | None = None
        self._latest_progress: TrainingProgress | None = None
        self._final: TrainingFinished | None = None

    @property
    def latest_progress(self) -> TrainingProgress | None:
        """Most recent progress event returned by `poll_events()`."""
        return self._latest_progress

    @property
    def final(self) -> TrainingFinished | None:
        """Final status, once it has been returned by `poll_events()`."""
        return self._final

    def start(self) -> bool:
        """Start the worker thread once.

        Returns `False` if a run is already in progress.
        """
        if self.is_running():
            return False
        self._stop_event.clear()
        self._final = None
        self._latest_progress = None
        self._thread = Thread(target=self._run, daemon=True)
        self._thread.start()
        return True

    def stop(self) -> None:
        """Signal cancellation."""
        self._stop_event.set()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def is_stopped(self) -> bool:
        """Check whether cancellation has been requested."""
        return self._stop_event.is_set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def poll_events(self) -> list[TrainingEvent]:
        """Return every queued event, oldest first."""
        events: list[TrainingEvent] = []
        try:
            while True:
                events.append(self._events.get_nowait())
        except Empty:
            pass

        for event in events:
            if isinstance(event, TrainingProgress):
                self._latest_progress = event
            elif isinstance(event, TrainingFinished):
                self._final = event
        return events

    def _run(self) -> None:
        """Internal worker loop; only moves events from generator to queue.

        A crash in the training function still ends with a failed status so
        pollers always see a final event.
        """
        completed = 0
        try:
            for event in self._train_fn(self._stop_event.is_set):
                if isinstance(event, TrainingProgress):
                    completed += 1
                self._events.put(event)
        except Exception as exc:
            logger.exception("Training job crashed")
            self._events.put(TrainingFinished(STATUS_FAILED, completed, str(exc)))
