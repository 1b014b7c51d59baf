"""Tests for console helpers and structlog file output."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from hostpulse import logging as hp_logging
from hostpulse.config import Config


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory at a temp dir and restore logging afterwards."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    yield tmp_path
    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    structlog.reset_defaults()


def _read_events(path: Path) -> list[dict]:
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [json.loads(line) for line in path.read_text().splitlines() if line]


def test_configure_writes_json_lines(home: Path):
    """Events are written as JSON with timestamp, level and source."""
    config = Config()
    hp_logging.configure(config, source="tui")

    hp_logging.get_structlog().info("collect_complete", elapsed_ms=12, failed=["cpu_info"])

    events = _read_events(config.log_path)
    assert len(events) == 1
    event = events[0]
    assert event["event"] == "collect_complete"
    assert event["elapsed_ms"] == 12
    assert event["failed"] == ["cpu_info"]
    assert event["level"] == "info"
    assert event["source"] == "tui"
    assert "ts" in event


def test_configure_creates_state_dir(home: Path):
    """The log directory is created on demand."""
    config = Config()
    assert not config.state_dir.exists()
    hp_logging.configure(config)
    assert config.state_dir.is_dir()


def test_level_filters_debug(home: Path):
    """Debug events are dropped at the default level."""
    config = Config()
    hp_logging.configure(config)

    log = hp_logging.get_structlog()
    log.debug("probe_failed", probe="swap_memory")
    log.warning("domain_failed", domain="disk")

    events = _read_events(config.log_path)
    assert [e["event"] for e in events] == ["domain_failed"]


def test_stdlib_records_are_rendered_as_json(home: Path):
    """Foreign stdlib log records go through the same JSON renderer."""
    config = Config()
    hp_logging.configure(config)

    logging.getLogger("asyncio").warning("loop slow")

    events = _read_events(config.log_path)
    assert events[0]["event"] == "loop slow"
    assert events[0]["level"] == "warning"


def test_console_helpers_print(capsys):
    """Console helpers write human-readable lines."""
    hp_logging.snapshot_collected(85, "Good")
    hp_logging.config_invalid("/tmp/config.toml", "deadline must be > 0")

    out = capsys.readouterr().out
    assert "Health" in out
    assert "85" in out
    assert "Invalid config" in out
    assert "deadline must be > 0" in out
