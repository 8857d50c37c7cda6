from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

import statement_import.logging_setup as logging_setup
from statement_import.audit import log_security_event


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    loggers = [logging.getLogger(n) for n in ("statement_import", "statement_import.security")]
    saved = [(lg, list(lg.handlers), lg.level, lg.propagate) for lg in loggers]
    yield
    for lg, handlers, level, propagate in saved:
        for h in list(lg.handlers):
            if h not in handlers:
                h.close()
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate


def test_console_handler_honours_level(fresh_logging):
    stream = io.StringIO()
    logging_setup.configure_logging("warning", stream=stream, fmt="%(levelname)s %(message)s")

    log = logging_setup.get_logger("statement_import.test")
    log.info("hidden")
    log.warning("shown")

    assert stream.getvalue() == "WARNING shown\n"


def test_env_level_and_second_call_is_noop(fresh_logging, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STATEMENT_IMPORT_LOG_LEVEL", "DEBUG")
    stream = io.StringIO()
    logging_setup.configure_logging(stream=stream)
    logging_setup.configure_logging("ERROR", stream=io.StringIO())

    pkg = logging.getLogger("statement_import")
    assert pkg.level == logging.DEBUG
    assert len([h for h in pkg.handlers if isinstance(h, logging.StreamHandler)]) == 1


def test_audit_events_are_copied_to_file(fresh_logging, tmp_path: Path):
    audit_file = tmp_path / "audit" / "security.jsonl"
    logging_setup.configure_logging("ERROR", stream=io.StringIO(), audit_path=audit_file)

    log_security_event("csv_validation_failed", {"user_id": "u1", "rule": "script_tag"})
    log_security_event("csv_import_completed", {"user_id": "u1"})
    for h in logging.getLogger("statement_import.security").handlers:
        h.flush()

    lines = audit_file.read_text(encoding="utf-8").splitlines()
    events = [json.loads(line.removeprefix("[SECURITY] ")) for line in lines]
    assert [e["event"] for e in events] == ["csv_validation_failed", "csv_import_completed"]
    assert events[0]["rule"] == "script_tag"
