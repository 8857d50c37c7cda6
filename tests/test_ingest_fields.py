from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from statement_import.errors import AmountValidationError, HeaderNotFound, RowParseError
from statement_import.ingest.fields import parse_amount, parse_date, parse_row, parse_row_or_raise
from statement_import.ingest.tokenizer import INCOME_HEADER_MARKERS, find_header, tokenize_line


def test_tokenize_respects_quotes_and_trims():
    line = '01.07.2025 , PLAĆANJE KARTICOM,Kupovina Upwork -822939118REF,"- 5.102,96 RSD"'
    assert tokenize_line(line) == [
        "01.07.2025",
        "PLAĆANJE KARTICOM",
        "Kupovina Upwork -822939118REF",
        "- 5.102,96 RSD",
    ]


def test_tokenize_emits_trailing_and_empty_fields():
    assert tokenize_line("a,,b,") == ["a", "", "b", ""]
    # An unterminated quote swallows the rest of the line into one field.
    assert tokenize_line('a,"b,c') == ["a", "b,c"]


def test_find_header_skips_preamble_and_requires_all_markers():
    lines = ["Izvod za period", "Racun: 160-0000", "DATUM,TIP,OPIS,IZNOS", "01.07.2025,..."]
    assert find_header(lines) == 2
    assert find_header(["DATUM,IZNOS", "DATUM,OPIS,IZNOS"], required=INCOME_HEADER_MARKERS) == 1

    with pytest.raises(HeaderNotFound):
        find_header(["foo,bar", "datum,opis"])


@pytest.mark.parametrize(
    ("raw", "value", "currency", "negative"),
    [
        ("- 5.102,96 RSD", Decimal("5102.96"), "RSD", True),
        ("+ 50.000,00 RSD", Decimal("50000.00"), "RSD", False),
        ('"- 2.495,51 EUR"', Decimal("2495.51"), "EUR", True),
        ("1234,56", Decimal("1234.56"), "RSD", False),
        ("12,50 USD", Decimal("12.50"), "USD", False),
        ("-1.000.000,00", Decimal("1000000.00"), "RSD", True),
    ],
)
def test_parse_amount(raw: str, value: Decimal, currency: str, negative: bool):
    parsed = parse_amount(raw)
    assert parsed.value == value
    assert parsed.currency == currency
    assert parsed.negative is negative


def test_parse_amount_rejects_bad_values():
    with pytest.raises(RowParseError):
        parse_amount("abc")
    with pytest.raises(RowParseError):
        parse_amount("0,00 RSD")
    with pytest.raises(AmountValidationError):
        parse_amount("2.000.000.000,00 RSD")


def test_parse_date():
    assert parse_date(" 01.07.2025 ") == date(2025, 7, 1)
    with pytest.raises(RowParseError):
        parse_date("2025-07-01")


def test_parse_row_variants():
    fragment = parse_row_or_raise("30.06.2025", ' Wolt "doo" ', "- 1.619,32 RSD")
    assert fragment.description == "Wolt doo"
    assert fragment.amount == Decimal("1619.32")
    assert fragment.negative is True

    assert parse_row("bad", "Wolt", "- 1,00") is None
    with pytest.raises(RowParseError):
        parse_row_or_raise("30.06.2025", "Wolt", "n/a")
