"""Line tokenizer and header discovery for bank statement exports.

The exports use a simple CSV dialect: fields are split on ``,`` and a ``"``
toggles an "inside quotes" state, so commas inside a quoted span do not
split. Quote characters are not kept. There is no RFC 4180 escaped-quote
doubling, which is why :mod:`csv` is not used here.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..errors import HeaderNotFound

HEADER_MARKER = "DATUM"
EXPENSE_HEADER_MARKERS: tuple[str, ...] = (HEADER_MARKER,)
INCOME_HEADER_MARKERS: tuple[str, ...] = (HEADER_MARKER, "OPIS", "IZNOS")


def tokenize_line(line: str) -> list[str]:
    """Split one statement line into trimmed fields.

    >>> tokenize_line('01.07.2025,UPLATA,Upwork,"+ 50.000,00 RSD"')
    ['01.07.2025', 'UPLATA', 'Upwork', '+ 50.000,00 RSD']
    """

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False

    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)

    # The trailing field is emitted even without a closing delimiter.
    fields.append("".join(current).strip())
    return fields


def find_header(lines: Sequence[str], *, required: Sequence[str] = EXPENSE_HEADER_MARKERS) -> int:
    """Return the index of the first line containing every ``required`` marker.

    Matching is case-sensitive. Raises :class:`HeaderNotFound` when no such
    line exists.
    """

    for idx, line in enumerate(lines):
        if all(marker in line for marker in required):
            return idx
    raise HeaderNotFound(
        "CSV header not found. Please ensure the file contains a header row with "
        + ", ".join(required)
        + " column(s)."
    )


__all__ = [
    "HEADER_MARKER",
    "EXPENSE_HEADER_MARKERS",
    "INCOME_HEADER_MARKERS",
    "tokenize_line",
    "find_header",
]
