"""Tests for diagnostics — structured blur logging."""

import json
import logging
import os
import sys
import time

import numpy as np
import pytest

from diagnostics import (
    LOG_NAME,
    JSONFormatter,
    init_diagnostics,
    prune_logs,
    resolve_log_dir,
    setup_structured_logging,
)
from engine.pipeline import apply_gaussian_blur

pytestmark = pytest.mark.smoke


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point ~ at a temp dir and detach any handlers added by the test."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("APP_LOG_DIR", raising=False)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield tmp_path
    for h in root.handlers[:]:
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


def _entries(log_dir):
    for h in logging.getLogger().handlers:
        h.flush()
    return [json.loads(line) for line in (log_dir / LOG_NAME).read_text().splitlines()]


def test_resolve_log_dir_default(home):
    assert resolve_log_dir(None) == home / ".gaussblur" / "logs"


def test_resolve_log_dir_inside_app_dir(home):
    inside = home / ".gaussblur" / "custom"
    assert resolve_log_dir(str(inside)) == inside.resolve()


def test_resolve_log_dir_outside_falls_back(home, tmp_path_factory):
    outside = tmp_path_factory.mktemp("elsewhere")
    assert resolve_log_dir(str(outside)) == home / ".gaussblur" / "logs"


def test_plain_record_has_no_blur_fields():
    record = logging.LogRecord("engine.pipeline", logging.WARNING, __file__, 1, "slow %d", (5,), None)
    entry = json.loads(JSONFormatter().format(record))
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "engine.pipeline"
    assert entry["message"] == "slow 5"
    assert "timestamp" in entry
    assert "blur" not in entry


def test_extra_fields_grouped_under_blur():
    record = logging.LogRecord("engine.pipeline", logging.DEBUG, __file__, 1, "done", (), None)
    record.width = 8
    record.radii = [1, 2, 2]
    record.unrelated = "x"
    entry = json.loads(JSONFormatter().format(record))
    assert entry["blur"] == {"width": 8, "radii": [1, 2, 2]}


def test_exception_serialized():
    try:
        raise ValueError("bad buffer")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    entry = json.loads(JSONFormatter().format(record))
    assert entry["exception"]["type"] == "ValueError"
    assert "bad buffer" in entry["exception"]["traceback"]


def test_blur_run_logged_with_fields(home, monkeypatch):
    monkeypatch.setenv("APP_LOG_LEVEL", "DEBUG")
    log_dir = setup_structured_logging()
    apply_gaussian_blur(np.zeros(4 * 4 * 4), 4, 4, 2.0, skip_alpha=True, in_place=False)

    runs = [e for e in _entries(log_dir) if e["logger"] == "engine.pipeline" and "blur" in e]
    assert len(runs) == 1
    blur = runs[0]["blur"]
    assert blur["width"] == 4
    assert blur["height"] == 4
    assert blur["radii"] == [1, 2, 2]
    assert blur["in_place"] is False
    assert blur["skip_alpha"] is True
    assert blur["elapsed_ms"] >= 0


def test_prune_removes_only_stale_logs(tmp_path):
    stale = tmp_path / f"{LOG_NAME}.3"
    fresh = tmp_path / LOG_NAME
    stale.write_text("{}")
    fresh.write_text("{}")
    old = time.time() - 30 * 86400
    os.utime(stale, (old, old))

    assert prune_logs(tmp_path) == 1
    assert not stale.exists()
    assert fresh.exists()


def test_init_diagnostics_returns_dir(home):
    log_dir = init_diagnostics()
    assert log_dir == home / ".gaussblur" / "logs"
    assert log_dir.is_dir()
