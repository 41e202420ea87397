"""Tests for feecheck/logging_config.py."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from feecheck.logging_config import JSONFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_formatter_fields() -> None:
    record = logging.LogRecord(
        "feecheck.fetchers.bags", logging.WARNING, __file__, 1, "timeout on %s", ("/x",), None
    )
    entry = json.loads(JSONFormatter().format(record))

    assert entry["level"] == "WARNING"
    assert entry["logger"] == "feecheck.fetchers.bags"
    assert entry["msg"] == "timeout on /x"
    assert "ts" in entry
    assert "exception" not in entry


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    entry = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: boom" in entry["exception"]


def test_setup_logging_json(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging("info", "json")
    logging.getLogger("feecheck.test").info("hello")

    err = capsys.readouterr().err.strip().splitlines()[-1]
    assert json.loads(err)["msg"] == "hello"


def test_setup_logging_level_and_single_handler() -> None:
    setup_logging("DEBUG")
    setup_logging("ERROR")

    root = logging.getLogger()
    assert root.level == logging.ERROR
    assert len(root.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_unknown_level_falls_back() -> None:
    setup_logging("chatty")
    assert logging.getLogger().level == logging.WARNING
