"""Import orchestration: validate → rate-limit → parse → store.

Public API:
    - :class:`ImportOrchestrator`

Fatal problems (:class:`SecurityError`, :class:`HeaderNotFound`,
:class:`RateLimitExceeded`) are raised before any row is stored. Everything
after that is row-local: parse failures and store rejections are counted in
the returned :class:`ImportResult` and never abort the batch.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .audit import AuditSink, emit, utc_timestamp
from .categorize import CategoryRuleEngine
from .errors import StoreError
from .ingest.statement import StatementParse, parse_expense_statement, parse_income_statement
from .logging_setup import get_logger
from .models import ImportResult, ParsedTransaction, TransactionKind
from .persistence import RecordStore
from .rate_limit import RateLimiter
from .validation import ValidationLimits, validate_csv_content

_logger = get_logger("statement_import.importer")

type ImportRow = ParsedTransaction | Mapping[str, Any]


def _to_record(row: ImportRow, *, user_id: str) -> tuple[int, dict[str, Any]]:
    if isinstance(row, ParsedTransaction):
        return row.row_number, {**row.to_record(), "user_id": user_id}
    record = dict(row)
    record["user_id"] = user_id
    return int(record.pop("row_number", 0) or 0), record


class ImportOrchestrator:
    """Drive one import batch per call against a record store.

    Parameters
    ----------
    store:
        Destination for parsed rows.
    rate_limiter:
        Per-user limiter; defaults to 10 imports per rolling hour.
    audit:
        Security audit sink for validation and rate-limit events.
    limits:
        Payload caps applied by :func:`validate_csv_content`.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        rate_limiter: RateLimiter | None = None,
        audit: AuditSink | None = None,
        limits: ValidationLimits | None = None,
    ) -> None:
        self.store = store
        self.rate_limiter = rate_limiter or RateLimiter(audit=audit)
        self.audit = audit
        self.limits = limits

    def import_batch(
        self, rows: Sequence[ImportRow], *, user_id: str, kind: TransactionKind
    ) -> ImportResult:
        """Store ``rows`` for ``user_id`` after a rate-limit check.

        One ``bulk_insert`` round trip is attempted; rows the store leaves out
        count as failures. When the store rejects the whole call, every row of
        the batch counts as failed. There is no retry.
        """

        self.rate_limiter.acquire(user_id)
        result = ImportResult()
        self._store_rows(rows, user_id=user_id, kind=kind, result=result)
        return result

    def import_statement(
        self,
        text: str,
        *,
        user_id: str,
        kind: TransactionKind,
        engine: CategoryRuleEngine | None = None,
    ) -> ImportResult:
        """Run the full pipeline over raw statement ``text``."""

        validate_csv_content(text, user_id=user_id, audit=self.audit, limits=self.limits)
        self.rate_limiter.acquire(user_id)

        parsed: StatementParse
        if kind == "income":
            parsed = parse_income_statement(text)
        else:
            parsed = parse_expense_statement(text, engine=engine)

        result = ImportResult()
        for failure in parsed.failures:
            result.record_failure(failure.row_number, failure.reason)

        self._store_rows(parsed.transactions, user_id=user_id, kind=kind, result=result)
        emit(
            self.audit,
            "csv_import_completed",
            {
                "timestamp": utc_timestamp(),
                "user_id": user_id,
                "kind": kind,
                "success_count": result.success_count,
                "failure_count": result.failure_count,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _store_rows(
        self,
        rows: Sequence[ImportRow],
        *,
        user_id: str,
        kind: TransactionKind,
        result: ImportResult,
    ) -> None:
        numbered: list[tuple[int, dict[str, Any]]] = []
        for row in rows:
            if isinstance(row, ParsedTransaction) and row.kind != kind:
                result.record_failure(row.row_number, f"expected a {kind} row, got {row.kind}")
                continue
            numbered.append(_to_record(row, user_id=user_id))

        if not numbered:
            return

        records = [record for _, record in numbered]
        try:
            inserted = self.store.bulk_insert(kind, records)
        except StoreError as exc:
            _logger.error("bulk insert of %d %s rows failed: %s", len(records), kind, exc)
            for row_number, _ in numbered:
                result.record_failure(row_number, str(exc))
            return

        result.record_success(len(inserted))
        for _ in range(len(records) - len(inserted)):
            result.record_failure(0, "not inserted by record store")
        _logger.info(
            "imported %d/%d %s rows for user=%s", len(inserted), len(records), kind, user_id
        )


__all__ = ["ImportOrchestrator"]
