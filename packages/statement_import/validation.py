"""Up-front validation of untrusted CSV payloads, plus field sanitizers.

``validate_csv_content`` runs every payload check once, before any line is
tokenized. Each attempt (pass or fail) is reported to the audit sink with the
triggering rule, the caller's user id and the content length.

The sanitizers and the date/amount validators are shared by the row parsers
and the entity extractor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from .audit import AuditSink, emit, utc_timestamp
from .config import DEFAULT_MAX_BYTES, DEFAULT_MAX_LINES
from .errors import AmountValidationError, SecurityError

MAX_AMOUNT = Decimal("1000000000")

# ---------------------------------------------------------------------------
# Payload validation
# ---------------------------------------------------------------------------

# Ordered (rule name, pattern). Names are reported in audit entries and on
# ``SecurityError.rule``.
SUSPICIOUS_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("script_tag", re.compile(r"<script", re.IGNORECASE)),
    ("javascript_uri", re.compile(r"javascript:", re.IGNORECASE)),
    ("inline_event_handler", re.compile(r"on\w+\s*=", re.IGNORECASE)),
    ("vbscript_uri", re.compile(r"vbscript:", re.IGNORECASE)),
    ("html_data_uri", re.compile(r"data:text/html", re.IGNORECASE)),
    ("eval_call", re.compile(r"eval\s*\(", re.IGNORECASE)),
    ("exec_call", re.compile(r"exec\s*\(", re.IGNORECASE)),
    ("template_literal", re.compile(r"\$\{.*\}")),
    ("import_statement", re.compile(r"import\s+", re.IGNORECASE)),
    ("require_call", re.compile(r"require\s*\(", re.IGNORECASE)),
    ("prototype_pollution", re.compile(r"__proto__", re.IGNORECASE)),
    ("constructor_call", re.compile(r"constructor\s*\(", re.IGNORECASE)),
)


@dataclass(frozen=True, slots=True)
class ValidationLimits:
    """Payload caps. ``max_bytes`` is compared against the character count."""

    max_bytes: int = DEFAULT_MAX_BYTES
    max_lines: int = DEFAULT_MAX_LINES


def _check(content: str, limits: ValidationLimits) -> None:
    if len(content) > limits.max_bytes:
        mb = limits.max_bytes / (1024 * 1024)
        raise SecurityError(
            f"File size too large. Maximum allowed size is {mb:g}MB.", rule="max_size"
        )

    for rule, pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(content):
            raise SecurityError("File contains potentially malicious content.", rule=rule)

    if content.count("\n") + 1 > limits.max_lines:
        raise SecurityError(
            f"File contains too many rows. Maximum allowed is {limits.max_lines:,} rows.",
            rule="max_lines",
        )


def validate_csv_content(
    content: str,
    *,
    user_id: str | None = None,
    audit: AuditSink | None = None,
    limits: ValidationLimits | None = None,
) -> None:
    """Validate a raw CSV payload or raise :class:`SecurityError`.

    Checks, in order: overall size, injection-style patterns (script tags,
    ``javascript:``/``vbscript:`` URIs, inline event handlers, template
    literals, ``eval``/``exec``/``require``/``import`` tokens, prototype
    pollution), and the line count.
    """

    lim = limits or ValidationLimits()
    details = {
        "timestamp": utc_timestamp(),
        "user_id": user_id,
        "content_length": len(content),
    }
    try:
        _check(content, lim)
    except SecurityError as exc:
        emit(audit, "csv_validation_failed", {**details, "rule": exc.rule})
        raise
    emit(audit, "csv_validation_passed", {**details, "rule": None})


# ---------------------------------------------------------------------------
# Sanitizers
# ---------------------------------------------------------------------------

_SCRIPT_BLOCK_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_JS_URI_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
_DESCRIPTION_DROP_RE = re.compile(r"[<>'\"]")
_CLIENT_NAME_DROP_RE = re.compile(r"[^a-zA-ZšđčćžŠĐČĆŽ0-9\s\-.,]")
_WS_RE = re.compile(r"\s+")


def sanitize_input(text: str | None) -> str:
    """Strip markup and script affordances, then cap at 500 characters."""

    if not text or not isinstance(text, str):
        return ""
    cleaned = _SCRIPT_BLOCK_RE.sub("", text)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _JS_URI_RE.sub("", cleaned)
    cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
    return cleaned[:500].strip()


def sanitize_description(text: str | None) -> str:
    if not text:
        return ""
    cleaned = _DESCRIPTION_DROP_RE.sub("", text)
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    return cleaned[:1000]


def sanitize_client_name(name: str | None, *, fallback: str = "Unknown Client") -> str:
    """Keep letters (incl. Serbian diacritics), digits, spaces and ``-.,``.

    Whitespace is collapsed and the result capped at 100 characters. An empty
    result becomes ``fallback``.
    """

    if not name:
        return fallback
    cleaned = _CLIENT_NAME_DROP_RE.sub("", name)
    cleaned = _WS_RE.sub(" ", cleaned).strip()[:100].strip()
    return cleaned or fallback


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------

_DATE_RE = re.compile(r"^[0-9]{2}\.[0-9]{2}\.[0-9]{4}$")
_AMOUNT_NOISE_RE = re.compile(r"[^0-9.\-]")


def validate_date(value: str | None, *, today: date | None = None) -> date | None:
    """Return the calendar date for a ``DD.MM.YYYY`` string, else ``None``.

    Impossible dates (e.g. ``31.02.2024``) are rejected rather than rolled
    over, and the year must lie within ``[1900, current year + 1]``.
    """

    if not value or not isinstance(value, str):
        return None
    if not _DATE_RE.match(value):
        return None
    day, month, year = (int(p) for p in value.split("."))
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None
    max_year = (today or date.today()).year + 1
    if not 1900 <= parsed.year <= max_year:
        return None
    return parsed


def validate_amount(value: str | int | float | Decimal) -> Decimal:
    """Convert ``value`` to ``Decimal`` and enforce the magnitude bound.

    Strings are reduced to digits, ``.`` and ``-`` before conversion. Raises
    :class:`AmountValidationError` for non-finite or unparseable input, or
    when ``abs(value)`` exceeds 1,000,000,000.
    """

    if isinstance(value, bool):
        raise AmountValidationError("Invalid amount format")
    try:
        if isinstance(value, str):
            amount = Decimal(_AMOUNT_NOISE_RE.sub("", value))
        else:
            amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise AmountValidationError(f"Invalid amount format: {value!r}") from exc

    if not amount.is_finite():
        raise AmountValidationError(f"Invalid amount format: {value!r}")
    if abs(amount) > MAX_AMOUNT:
        raise AmountValidationError("Amount exceeds maximum allowed value")
    return amount


__all__ = [
    "MAX_AMOUNT",
    "SUSPICIOUS_PATTERNS",
    "ValidationLimits",
    "validate_csv_content",
    "sanitize_input",
    "sanitize_description",
    "sanitize_client_name",
    "validate_date",
    "validate_amount",
]
