"""Bounded, lossy progress channel and its reporter thread.

The dump worker publishes without blocking; the reporter thread only ever
needs the newest observation, so intermediate events may be dropped.
"""

from __future__ import annotations

import queue
import threading

from core.constants import DEFAULT_PROGRESS_POLL_INTERVAL_SECONDS, DEFAULT_PROGRESS_QUEUE_CAPACITY
from core.logging_config import get_logger
from core.types import ProgressEvent

_LOGGER = get_logger(__name__)


class ProgressChannel:
    """Single-producer, single-consumer channel of progress events."""

    def __init__(self, capacity: int = DEFAULT_PROGRESS_QUEUE_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._queue: queue.Queue[tuple[int, ProgressEvent]] = queue.Queue(maxsize=capacity)
        self._lock = threading.Lock()
        self._sequence = 0
        self._overflow: tuple[int, ProgressEvent] | None = None
        self._last: tuple[int, ProgressEvent] | None = None

    def publish(self, event: ProgressEvent) -> None:
        """Publish an event without blocking the producer."""
        self._sequence += 1
        item = (self._sequence, event)
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            with self._lock:
                self._overflow = item

    def poll(self) -> ProgressEvent | None:
        """Drain pending events and return the newest one seen so far."""
        candidates = [] if self._last is None else [self._last]
        with self._lock:
            if self._overflow is not None:
                candidates.append(self._overflow)
                self._overflow = None
        while True:
            try:
                candidates.append(self._queue.get_nowait())
            except queue.Empty:
                break
        if candidates:
            self._last = max(candidates, key=lambda item: item[0])
        return None if self._last is None else self._last[1]


class ProgressReporter:
    """Daemon thread logging the newest progress observation."""

    def __init__(
        self,
        channel: ProgressChannel,
        interval_seconds: float = DEFAULT_PROGRESS_POLL_INTERVAL_SECONDS,
        operation: str = "dump",
    ) -> None:
        self._channel = channel
        self._interval_seconds = interval_seconds
        self._operation = operation
        self._stopped = threading.Event()
        self._reported: ProgressEvent | None = None
        self._thread = threading.Thread(
            target=self._run, name=f"dumpvault-{operation}-progress", daemon=True
        )

    def start(self) -> "ProgressReporter":
        self._thread.start()
        return self

    def stop(self) -> ProgressEvent | None:
        """Stop polling, log the final value, and return it."""
        self._stopped.set()
        if self._thread.is_alive():
            self._thread.join()
        final = self._channel.poll()
        if final is not None:
            _LOGGER.info(
                "transfer_finished",
                operation=self._operation,
                transferred_bytes=final.transferred_bytes,
                total_bytes=final.total_bytes,
            )
        return final

    def __enter__(self) -> "ProgressReporter":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval_seconds):
            self._report()

    def _report(self) -> None:
        event = self._channel.poll()
        if event is None or event == self._reported:
            return
        self._reported = event
        percent = 100.0 * event.transferred_bytes / event.total_bytes if event.total_bytes else 0.0
        _LOGGER.info(
            "transfer_progress",
            operation=self._operation,
            transferred_bytes=event.transferred_bytes,
            total_bytes=event.total_bytes,
            percent=round(percent, 1),
        )
