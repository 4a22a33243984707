"""Tests for structured logging setup and run_id propagation."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from trading_journal.observability.logger import (
    get_logger,
    get_run_id,
    new_run_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestRunId:
    def test_new_run_id_is_current(self):
        rid = new_run_id()
        assert get_run_id() == rid
        assert len(rid) == 12

    def test_new_run_id_changes(self):
        assert new_run_id() != new_run_id()


class TestSetupLogging:
    def test_json_output_carries_run_id(self, capsys):
        setup_logging(level="INFO", format="json")
        rid = new_run_id()

        get_logger("trading_journal.test").info("report_built", trades=3)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "report_built"
        assert entry["trades"] == 3
        assert entry["run_id"] == rid
        assert entry["level"] == "info"

    def test_stdlib_loggers_share_output(self, capsys):
        setup_logging(level="WARNING", format="json")
        logging.getLogger("trading_journal.risk.calculator").warning("limit hit")

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["event"] == "limit hit"
        assert "run_id" in entry

    def test_level_filters(self, capsys):
        setup_logging(level="ERROR", format="console")
        get_logger("trading_journal.test").info("hidden")
        assert "hidden" not in capsys.readouterr().err
