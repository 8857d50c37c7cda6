"""Locale-aware field parsing for Serbian bank statement rows.

Dates are ``DD.MM.YYYY``. Amounts use ``.`` to group thousands and ``,`` as
the decimal separator, with an optional leading ``+``/``-`` direction marker
and an optional currency token, e.g. ``"- 2.495,51 RSD"``. Parsed amounts are
always positive; the sign is reported separately as ``negative``.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

from ..errors import RowParseError
from ..logging_setup import get_logger
from ..models import Currency
from ..validation import sanitize_description, validate_amount, validate_date

_logger = get_logger("statement_import.ingest.fields")

# Grouped ("2.495") or plain ("2495") integer part, comma, exactly two decimals.
_AMOUNT_RE = re.compile(r"(?<![0-9.])([0-9]{1,3}(?:\.[0-9]{3})+|[0-9]+),([0-9]{2})(?![0-9])")
_CENTS = Decimal("0.01")


class ParsedAmount(NamedTuple):
    value: Decimal
    currency: Currency
    negative: bool


class RowFragment(NamedTuple):
    """Typed values recovered from one ``(date, description, amount)`` triple."""

    date: date
    description: str
    amount: Decimal
    currency: Currency
    negative: bool


def parse_date(value: str) -> date:
    parsed = validate_date(value.strip() if isinstance(value, str) else value)
    if parsed is None:
        raise RowParseError(f"invalid date: {value!r} (expected DD.MM.YYYY)")
    return parsed


def detect_currency(value: str) -> Currency:
    if "USD" in value:
        return "USD"
    if "EUR" in value:
        return "EUR"
    return "RSD"


def parse_amount(value: str) -> ParsedAmount:
    """Parse a Serbian-formatted amount field.

    Raises :class:`RowParseError` when no amount can be found and
    :class:`~statement_import.errors.AmountValidationError` when the value is
    out of bounds.
    """

    clean = value.replace('"', "").strip()

    negative = False
    if clean.startswith("+"):
        clean = clean[1:].strip()
    elif clean.startswith("-"):
        negative = True
        clean = clean[1:].strip()

    currency = detect_currency(clean)

    match = _AMOUNT_RE.search(clean)
    if match is None:
        raise RowParseError(f"invalid amount: {value!r}")

    integer_part, decimals = match.groups()
    numeric = integer_part.replace(".", "") + "." + decimals
    amount = abs(validate_amount(numeric)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise RowParseError(f"amount must be positive: {value!r}")
    return ParsedAmount(value=amount, currency=currency, negative=negative)


def parse_row_or_raise(date_field: str, description_field: str, amount_field: str) -> RowFragment:
    """Parse one row's fields, raising :class:`RowParseError` on bad input."""

    parsed_date = parse_date(date_field)
    amount = parse_amount(amount_field)
    return RowFragment(
        date=parsed_date,
        description=sanitize_description(description_field.strip()),
        amount=amount.value,
        currency=amount.currency,
        negative=amount.negative,
    )


def parse_row(date_field: str, description_field: str, amount_field: str) -> RowFragment | None:
    """Like :func:`parse_row_or_raise` but returns ``None`` for malformed rows."""

    try:
        return parse_row_or_raise(date_field, description_field, amount_field)
    except RowParseError as exc:
        _logger.warning("skipping row: %s", exc)
        return None


__all__ = [
    "ParsedAmount",
    "RowFragment",
    "parse_date",
    "detect_currency",
    "parse_amount",
    "parse_row",
    "parse_row_or_raise",
]
