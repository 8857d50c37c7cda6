"""Centralized logging configuration for the ``statement_import`` package.

Two loggers matter:

- ``"statement_import"``: package root. ``configure_logging`` gives it a single
  ``StreamHandler``; every module logs through a child of it.
- ``"statement_import.security"``: the audit trail written by
  :mod:`statement_import.audit`. It propagates to the package root like any
  other child and can additionally be copied to a JSON-lines file
  (``audit_path=`` or ``STATEMENT_IMPORT_AUDIT_LOG``).

Library modules never attach handlers themselves; they call
``get_logger("statement_import.<module>")`` and leave routing to the CLI or
the host application. Until that happens the package root carries a
``NullHandler`` so library use stays silent.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import IO

_PKG_LOGGER_NAME = "statement_import"
_AUDIT_LOGGER_NAME = f"{_PKG_LOGGER_NAME}.security"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _resolve_level(level: int | str | None) -> int:
    """Explicit level first, then ``STATEMENT_IMPORT_LOG_LEVEL``, then INFO.

    Strings may be level names (``"debug"``) or numbers (``"10"``); anything
    unrecognized resolves to INFO.
    """

    for candidate in (level, os.getenv("STATEMENT_IMPORT_LOG_LEVEL")):
        if isinstance(candidate, int):
            return candidate
        if isinstance(candidate, str) and candidate.strip():
            name = candidate.strip().upper()
            if name.isdigit():
                return int(name)
            numeric = logging.getLevelName(name)
            return numeric if isinstance(numeric, int) else logging.INFO
    return logging.INFO


def _attach_audit_file(path: str | os.PathLike[str]) -> None:
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit = logging.getLogger(_AUDIT_LOGGER_NAME)
    audit.setLevel(logging.INFO)
    audit.addHandler(handler)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
    audit_path: str | os.PathLike[str] | None = None,
) -> None:
    """Configure package logging once per process; later calls are no-ops.

    Parameters
    ----------
    level:
        ``int`` or level name. Falls back to ``STATEMENT_IMPORT_LOG_LEVEL``,
        then INFO.
    fmt:
        Format for the console handler (default: time, logger, level, message).
    stream:
        Console stream, ``sys.stderr`` by default so command output on stdout
        stays machine-readable.
    audit_path:
        Optional JSON-lines file receiving a copy of every security audit
        event regardless of ``level``. Defaults to ``STATEMENT_IMPORT_AUDIT_LOG``.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _resolve_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(resolved)
    console.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    logger.addHandler(console)
    logger.setLevel(resolved)
    logger.propagate = False

    audit_target = audit_path or os.getenv("STATEMENT_IMPORT_AUDIT_LOG")
    if audit_target:
        _attach_audit_file(audit_target)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, installing the silent default first."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
