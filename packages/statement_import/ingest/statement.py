"""Statement parsers: whole-file text → parsed transactions plus row failures.

Contract
--------
- The header is the first line carrying the required markers (``DATUM`` for
  expenses; ``DATUM``, ``OPIS`` and ``IZNOS`` for incomes). Anything above it
  (bank preamble, account summary) is ignored.
- Data columns are ``DATUM, TIP TRANSAKCIJE, OPIS, IZNOS``; extra trailing
  columns are ignored.
- Blank lines are ignored. A row with fewer than four columns, an invalid date
  or an unparseable amount becomes a :class:`RowFailure` and parsing
  continues with the next line.

Failure mode
------------
Only a missing header is fatal (:class:`~statement_import.errors.HeaderNotFound`).
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from ..categorize import CategoryRuleEngine
from ..entities import extract_client, is_positive_income
from ..errors import RowParseError
from ..logging_setup import get_logger
from ..models import ParsedTransaction, RowFailure
from .fields import parse_row_or_raise
from .tokenizer import EXPENSE_HEADER_MARKERS, INCOME_HEADER_MARKERS, find_header, tokenize_line

_logger = get_logger("statement_import.ingest.statement")

MIN_COLUMNS = 4
_PURCHASE_PREFIX = "Kupovina "


@dataclass(slots=True)
class StatementParse:
    transactions: list[ParsedTransaction] = field(default_factory=list)
    failures: list[RowFailure] = field(default_factory=list)


def _data_rows(text: str, required: Sequence[str]) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(line_number, fields)`` for every non-blank line after the header."""

    lines = text.split("\n")
    header_idx = find_header(lines, required=required)
    for idx in range(header_idx + 1, len(lines)):
        line = lines[idx].strip()
        if not line:
            continue
        yield idx + 1, tokenize_line(line)


def _strip_purchase_prefix(description: str) -> str:
    stripped = description.strip()
    if stripped.startswith(_PURCHASE_PREFIX):
        return stripped[len(_PURCHASE_PREFIX) :].strip()
    return stripped


def _is_incoming(amount_field: str) -> bool:
    return amount_field.replace('"', "").strip().startswith("+")


def parse_expense_statement(
    text: str, *, engine: CategoryRuleEngine | None = None
) -> StatementParse:
    """Parse an expense statement export.

    Parameters
    ----------
    text:
        Full file contents (already validated).
    engine:
        Categorizer to use; defaults to a rules-only :class:`CategoryRuleEngine`.

    Rows explicitly signed ``+`` are money coming in and are skipped without
    being counted as failures.
    """

    engine = engine or CategoryRuleEngine()
    result = StatementParse()

    for row_number, fields in _data_rows(text, EXPENSE_HEADER_MARKERS):
        if len(fields) < MIN_COLUMNS:
            result.failures.append(
                RowFailure(row_number, f"expected {MIN_COLUMNS} columns, got {len(fields)}")
            )
            continue

        date_field, _kind, description_field, amount_field = fields[:MIN_COLUMNS]
        if _is_incoming(amount_field):
            _logger.debug("line %d: incoming amount on expense statement, skipped", row_number)
            continue

        try:
            fragment = parse_row_or_raise(
                date_field, _strip_purchase_prefix(description_field), amount_field
            )
        except RowParseError as exc:
            _logger.warning("line %d: %s", row_number, exc)
            result.failures.append(RowFailure(row_number, str(exc)))
            continue

        suggestion = engine.classify(fragment.description, fragment.amount)
        result.transactions.append(
            ParsedTransaction(
                date=fragment.date,
                description=fragment.description,
                amount=fragment.amount,
                currency=fragment.currency,
                category=suggestion.category,
                kind="expense",
                row_number=row_number,
                confidence=suggestion.confidence,
            )
        )

    _logger.info(
        "parsed expense statement: %d transactions, %d failures",
        len(result.transactions),
        len(result.failures),
    )
    return result


def parse_income_statement(text: str) -> StatementParse:
    """Parse an income statement export.

    A row is kept when its amount is ``+``-signed or its description carries
    an income keyword; other rows are outgoing payments and are skipped.
    Counterparty and income category come from :func:`extract_client`.
    """

    result = StatementParse()

    for row_number, fields in _data_rows(text, INCOME_HEADER_MARKERS):
        if len(fields) < MIN_COLUMNS:
            _logger.warning("line %d: not enough columns (%d)", row_number, len(fields))
            result.failures.append(
                RowFailure(row_number, f"expected {MIN_COLUMNS} columns, got {len(fields)}")
            )
            continue

        date_field, _kind, description_field, amount_field = fields[:MIN_COLUMNS]
        if not _is_incoming(amount_field) and not is_positive_income(description_field):
            continue

        try:
            fragment = parse_row_or_raise(date_field, description_field, amount_field)
        except RowParseError as exc:
            _logger.warning("line %d: %s", row_number, exc)
            result.failures.append(RowFailure(row_number, str(exc)))
            continue

        client = extract_client(description_field)
        result.transactions.append(
            ParsedTransaction(
                date=fragment.date,
                description=fragment.description,
                amount=fragment.amount,
                currency=fragment.currency,
                category=client.category,
                kind="income",
                row_number=row_number,
                counterparty=client.client,
            )
        )

    _logger.info(
        "parsed income statement: %d transactions, %d failures",
        len(result.transactions),
        len(result.failures),
    )
    return result


__all__ = [
    "MIN_COLUMNS",
    "StatementParse",
    "parse_expense_statement",
    "parse_income_statement",
]
