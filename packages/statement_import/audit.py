"""Security audit trail.

Audit sinks accept ``(event_name, details)`` and are fire-and-forget: an audit
failure must never block or alter an import. The default sink serializes each
event as one JSON line on the ``statement_import.security`` logger, so the
trail goes wherever the host application routes package logs.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from .logging_setup import get_logger

type AuditSink = Callable[[str, Mapping[str, Any]], None]

_logger = get_logger("statement_import.security")

# Events at or above WARNING; everything else is INFO.
_WARNING_EVENTS = frozenset(
    {
        "csv_validation_failed",
        "rate_limit_exceeded",
    }
)


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


def log_security_event(event: str, details: Mapping[str, Any] | None = None) -> None:
    """Write one structured audit entry to the security logger."""

    payload: dict[str, Any] = {"event": event, "timestamp": utc_timestamp()}
    payload.update(details or {})
    line = json.dumps(payload, sort_keys=True, default=str, ensure_ascii=False)
    if event in _WARNING_EVENTS:
        _logger.warning("[SECURITY] %s", line)
    else:
        _logger.info("[SECURITY] %s", line)


def emit(sink: AuditSink | None, event: str, details: Mapping[str, Any]) -> None:
    """Deliver ``event`` to ``sink`` (default: the security logger).

    Exceptions raised by a custom sink are logged and dropped.
    """

    target = sink or log_security_event
    try:
        target(event, dict(details))
    except Exception:
        _logger.debug("audit sink failed for event=%s", event, exc_info=True)


class RecordingAuditLog:
    """Append-only in-process sink that keeps every event it receives.

    Useful for hosts that surface recent security events and for tests.
    Events are also forwarded to the security logger.
    """

    def __init__(self, *, forward: bool = True) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []
        self._forward = forward

    def __call__(self, event: str, details: Mapping[str, Any]) -> None:
        self.events.append((event, dict(details)))
        if self._forward:
            log_security_event(event, details)

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


__all__ = [
    "AuditSink",
    "RecordingAuditLog",
    "emit",
    "log_security_event",
    "utc_timestamp",
]
