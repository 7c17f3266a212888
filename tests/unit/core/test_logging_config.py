"""Unit tests for structured logging setup."""

from __future__ import annotations

import json

from core.logging_config import configure_logging, get_logger


def test_logs_render_as_json_on_stderr(capsys) -> None:
    """Events should be JSON lines on stderr, leaving stdout clean."""
    configure_logging("info")

    get_logger("dumpvault.test").info("dump_created", dump="prod-2024")
    captured = capsys.readouterr()

    payload = json.loads(captured.err.strip().splitlines()[-1])
    assert captured.out == ""
    assert payload["event"] == "dump_created" and payload["dump"] == "prod-2024"
    assert payload["level"] == "info"


def test_level_filter_drops_debug_events(capsys) -> None:
    """Events below the configured level are not emitted."""
    configure_logging("warning")

    get_logger("dumpvault.test").info("chunk_flushed")

    assert capsys.readouterr().err == ""
