"""Data models and type aliases for ``statement_import``.

Records produced by the pipeline are frozen dataclasses; the on-disk learning
file is described with strict Pydantic models so a corrupted or hand-edited
file is rejected instead of silently coerced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

type Currency = Literal["RSD", "USD", "EUR"]
type TransactionKind = Literal["expense", "income"]
type Confidence = Literal["high", "medium", "low"]
type IncomeCategory = Literal["full-time", "one-time"]
type SuggestionSource = Literal["learned", "rule", "default"]

CURRENCIES: tuple[str, ...] = ("RSD", "USD", "EUR")
TRANSACTION_KINDS: tuple[str, ...] = ("expense", "income")

UNKNOWN_CLIENT = "Unknown Client"


# ---------------------------------------------------------------------------
# Parsed records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParsedTransaction:
    """A single statement row after parsing and classification.

    ``amount`` is always positive; the direction of money flow is carried by
    ``kind``. ``counterparty`` is only populated for incomes and
    ``confidence`` only for expenses. ``row_number`` is the 1-based line
    number in the source file, kept for diagnostics.
    """

    date: date
    description: str
    amount: Decimal
    currency: Currency
    category: str
    kind: TransactionKind
    row_number: int = 0
    counterparty: str | None = None
    confidence: Confidence | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"ParsedTransaction.amount must be positive, got {self.amount}")
        if self.currency not in CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency!r}")
        if self.kind not in TRANSACTION_KINDS:
            raise ValueError(f"Unsupported transaction kind: {self.kind!r}")

    def to_record(self) -> dict[str, Any]:
        """Return the flat mapping handed to the record store."""

        record: dict[str, Any] = {
            "date": self.date,
            "description": self.description,
            "amount": self.amount,
            "currency": self.currency,
            "category": self.category,
        }
        if self.kind == "income":
            record["client"] = self.counterparty
        else:
            record["confidence"] = self.confidence
        return record


class ClientInfo(NamedTuple):
    """Counterparty and income category derived from a description."""

    client: str
    category: IncomeCategory


@dataclass(frozen=True, slots=True)
class CategorySuggestion:
    category: str
    confidence: Confidence
    source: SuggestionSource = "rule"


@dataclass(frozen=True, slots=True)
class CorrectionEntry:
    """A user correction: normalized description mapped to a category."""

    normalized_description: str
    category: str
    learned_at: datetime


# ---------------------------------------------------------------------------
# Import outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RowFailure:
    row_number: int
    reason: str


@dataclass(slots=True)
class ImportResult:
    """Aggregate outcome of one import batch.

    ``failures`` lists the rows that could not be parsed or stored, with a
    short reason each. Store-level failures for rows without a known line
    number use ``row_number=0``.
    """

    success_count: int = 0
    failure_count: int = 0
    failures: list[RowFailure] = field(default_factory=list)

    def record_success(self, n: int = 1) -> None:
        self.success_count += n

    def record_failure(self, row_number: int, reason: str) -> None:
        self.failure_count += 1
        self.failures.append(RowFailure(row_number=row_number, reason=reason))

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


# ---------------------------------------------------------------------------
# DTOs for the on-disk learning file
# ---------------------------------------------------------------------------


class LearnedItem(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid", str_strip_whitespace=True)

    category: str
    learned_at: datetime

    @field_validator("category")
    @classmethod
    def _category_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("category must be non-empty")
        return v


class LearningFile(BaseModel):
    """Top-level schema for a per-user learning JSON file."""

    model_config = ConfigDict(strict=True, extra="forbid")

    schema_version: int
    user_key: str
    entries: dict[str, LearnedItem]


__all__ = [
    "Currency",
    "TransactionKind",
    "Confidence",
    "IncomeCategory",
    "SuggestionSource",
    "CURRENCIES",
    "TRANSACTION_KINDS",
    "UNKNOWN_CLIENT",
    "ParsedTransaction",
    "ClientInfo",
    "CategorySuggestion",
    "CorrectionEntry",
    "RowFailure",
    "ImportResult",
    "LearnedItem",
    "LearningFile",
]
