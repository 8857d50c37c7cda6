"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the expense/income tables written by ``statement_import``.
"""

from .finance import Base, FaExpense, FaIncome

__all__ = [
    "Base",
    "FaExpense",
    "FaIncome",
]
