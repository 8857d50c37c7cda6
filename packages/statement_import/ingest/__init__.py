"""Statement ingestion: tokenizer, locale field parsing and file parsers."""

from .fields import ParsedAmount, RowFragment, parse_amount, parse_date, parse_row
from .statement import StatementParse, parse_expense_statement, parse_income_statement
from .tokenizer import find_header, tokenize_line

__all__ = [
    "ParsedAmount",
    "RowFragment",
    "StatementParse",
    "find_header",
    "parse_amount",
    "parse_date",
    "parse_expense_statement",
    "parse_income_statement",
    "parse_row",
    "tokenize_line",
]
