from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
_PK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: fa_expenses
# ---------------------------


class FaExpense(Base):
    __tablename__ = "fa_expenses"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(CHAR(3), nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    # Rule-engine confidence at import time; NULL for manual entries.
    confidence: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_fa_expenses_amount_positive"),
        CheckConstraint("currency in ('RSD','USD','EUR')", name="ck_fa_expenses_currency"),
        CheckConstraint(
            "confidence IS NULL OR confidence in ('high','medium','low')",
            name="ck_fa_expenses_confidence",
        ),
        Index("ix_fa_expenses_user_date", "user_id", "date"),
    )


# ---------------------------
# Core: fa_incomes
# ---------------------------


class FaIncome(Base):
    __tablename__ = "fa_incomes"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(CHAR(3), nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    client: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_fa_incomes_amount_positive"),
        CheckConstraint("currency in ('RSD','USD','EUR')", name="ck_fa_incomes_currency"),
        CheckConstraint("category in ('full-time','one-time')", name="ck_fa_incomes_category"),
        Index("ix_fa_incomes_user_date", "user_id", "date"),
    )


__all__ = [
    "Base",
    "FaExpense",
    "FaIncome",
]
