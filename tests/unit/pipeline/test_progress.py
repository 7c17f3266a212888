"""Unit tests for the progress channel and reporter."""

from __future__ import annotations

from core.types import ProgressEvent
from pipeline.progress import ProgressChannel, ProgressReporter


def test_poll_returns_none_before_any_event() -> None:
    """An empty channel has no observation."""
    assert ProgressChannel().poll() is None


def test_poll_returns_newest_event() -> None:
    """Polling should drain the queue and keep the newest event."""
    channel = ProgressChannel(capacity=10)
    for transferred in (1, 2, 3):
        channel.publish(ProgressEvent(transferred, 10))

    assert channel.poll() == ProgressEvent(3, 10)
    assert channel.poll() == ProgressEvent(3, 10)


def test_publish_never_blocks_when_full() -> None:
    """A full channel should keep the latest event in the overflow slot."""
    channel = ProgressChannel(capacity=2)

    for transferred in range(1, 101):
        channel.publish(ProgressEvent(transferred, 100))

    assert channel.poll() == ProgressEvent(100, 100)


def test_events_after_overflow_are_newer() -> None:
    """Events queued after an overflow drain should win over the overflow."""
    channel = ProgressChannel(capacity=1)
    channel.publish(ProgressEvent(1, 10))
    channel.publish(ProgressEvent(2, 10))
    channel.poll()

    channel.publish(ProgressEvent(3, 10))

    assert channel.poll() == ProgressEvent(3, 10)


def test_reporter_stop_returns_final_event() -> None:
    """Stopping the reporter should join it and return the final value."""
    channel = ProgressChannel()
    reporter = ProgressReporter(channel, interval_seconds=0.01).start()
    channel.publish(ProgressEvent(5, 5))

    final = reporter.stop()

    assert final == ProgressEvent(5, 5)
