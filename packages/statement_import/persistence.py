# ruff: noqa: I001
"""Record stores for parsed statement rows.

Stores receive the flat mappings produced by
:meth:`~statement_import.models.ParsedTransaction.to_record`, each carrying
the owning ``user_id``.

- :class:`SqlRecordStore` writes to ``fa_expenses`` / ``fa_incomes`` in the
  shared database owned by ``libs/db`` (sessions from ``db.client``). A bulk
  insert is one transaction: any database error rejects the whole batch.
- :class:`InMemoryRecordStore` keeps rows in lists; used for dry runs and tests.

Both surface failures as :class:`~statement_import.errors.StoreError`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from db.client import create_schema, session_scope
from db.models.finance import FaExpense, FaIncome
from .errors import StoreError
from .logging_setup import get_logger
from .models import TransactionKind

_logger = get_logger("statement_import.persistence")


class RecordStore(Protocol):
    def insert(self, kind: TransactionKind, record: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def bulk_insert(
        self, kind: TransactionKind, records: Sequence[Mapping[str, Any]]
    ) -> list[Mapping[str, Any]]: ...


def _to_decimal_2(raw: Any) -> Decimal:
    try:
        d = Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise StoreError(f"invalid amount: {raw!r}") from exc
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _require(record: Mapping[str, Any], key: str) -> Any:
    value = record.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise StoreError(f"record is missing required field {key!r}")
    return value


# ----------------------------------------------------------------------------
# SQLAlchemy store
# ----------------------------------------------------------------------------


class SqlRecordStore:
    """Persist records through SQLAlchemy sessions.

    Parameters
    ----------
    database_url:
        Connection URL; defaults to ``DATABASE_URL`` from the environment.
    user_id:
        Owner used for records that do not carry their own ``user_id``.
    create_tables:
        Create missing tables on construction (handy for SQLite files).
    """

    def __init__(
        self,
        database_url: str | None = None,
        *,
        user_id: str | None = None,
        create_tables: bool = False,
    ) -> None:
        self.database_url = database_url
        self.user_id = user_id
        if create_tables:
            try:
                create_schema(database_url=database_url)
            except SQLAlchemyError as exc:
                raise StoreError(f"could not create schema: {exc}") from exc

    def _row(self, kind: TransactionKind, record: Mapping[str, Any]) -> FaExpense | FaIncome:
        user_id = record.get("user_id") or self.user_id
        if not user_id:
            raise StoreError("record has no user_id and the store has no default")
        row_date = _require(record, "date")
        if not isinstance(row_date, date):
            raise StoreError(f"invalid date: {row_date!r}")
        common: dict[str, Any] = {
            "user_id": str(user_id),
            "date": row_date,
            "description": str(_require(record, "description")),
            "amount": _to_decimal_2(_require(record, "amount")),
            "currency": str(_require(record, "currency")),
            "category": str(_require(record, "category")),
        }
        if kind == "income":
            return FaIncome(**common, client=str(_require(record, "client")))
        if kind == "expense":
            return FaExpense(**common, confidence=record.get("confidence"))
        raise StoreError(f"unsupported record kind: {kind!r}")

    @staticmethod
    def _as_mapping(row: FaExpense | FaIncome) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": row.id,
            "user_id": row.user_id,
            "date": row.date,
            "description": row.description,
            "amount": row.amount,
            "currency": row.currency,
            "category": row.category,
        }
        if isinstance(row, FaIncome):
            out["client"] = row.client
        else:
            out["confidence"] = row.confidence
        return out

    def insert(self, kind: TransactionKind, record: Mapping[str, Any]) -> Mapping[str, Any]:
        row = self._row(kind, record)
        try:
            with session_scope(database_url=self.database_url) as session:
                session.add(row)
                session.flush()
                return self._as_mapping(row)
        except SQLAlchemyError as exc:
            raise StoreError(f"insert into {kind} table failed: {exc}") from exc

    def bulk_insert(
        self, kind: TransactionKind, records: Sequence[Mapping[str, Any]]
    ) -> list[Mapping[str, Any]]:
        if not records:
            return []
        rows = [self._row(kind, r) for r in records]
        try:
            with session_scope(database_url=self.database_url) as session:
                session.add_all(rows)
                session.flush()
                inserted = [self._as_mapping(r) for r in rows]
        except SQLAlchemyError as exc:
            raise StoreError(f"bulk insert of {len(rows)} {kind} rows failed: {exc}") from exc
        _logger.debug("bulk inserted %d %s rows", len(inserted), kind)
        return inserted


# ----------------------------------------------------------------------------
# In-memory store
# ----------------------------------------------------------------------------


class InMemoryRecordStore:
    """List-backed store.

    ``reject`` marks records the store refuses: they are silently left out of
    a bulk insert (a partial insert) and make a single ``insert`` raise
    :class:`StoreError`. ``fail_bulk`` makes every ``bulk_insert`` raise.
    """

    def __init__(
        self,
        *,
        reject: Callable[[Mapping[str, Any]], bool] | None = None,
        fail_bulk: bool = False,
    ) -> None:
        self.records: dict[str, list[dict[str, Any]]] = {"expense": [], "income": []}
        self._reject = reject
        self._fail_bulk = fail_bulk
        self.bulk_calls = 0
        self.insert_calls = 0

    def _accepts(self, record: Mapping[str, Any]) -> bool:
        return self._reject is None or not self._reject(record)

    def insert(self, kind: TransactionKind, record: Mapping[str, Any]) -> Mapping[str, Any]:
        self.insert_calls += 1
        if not self._accepts(record):
            raise StoreError("record rejected by store")
        stored = {**record, "id": len(self.records[kind]) + 1}
        self.records[kind].append(stored)
        return stored

    def bulk_insert(
        self, kind: TransactionKind, records: Sequence[Mapping[str, Any]]
    ) -> list[Mapping[str, Any]]:
        self.bulk_calls += 1
        if self._fail_bulk:
            raise StoreError("bulk insert unavailable")
        inserted: list[Mapping[str, Any]] = []
        for record in records:
            if self._accepts(record):
                stored = {**record, "id": len(self.records[kind]) + 1}
                self.records[kind].append(stored)
                inserted.append(stored)
        return inserted


__all__ = [
    "RecordStore",
    "SqlRecordStore",
    "InMemoryRecordStore",
]
