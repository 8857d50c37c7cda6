"""Pytest configuration for test isolation.

Learned corrections are persisted under a data directory that defaults to
``./.statement_import``. When tests run in the same working tree, those files
would leak corrections from one test into the next, so every test gets its
own data directory via an autouse fixture.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Make the workspace packages importable without an install.
_ROOT = Path(__file__).resolve().parents[1]
for _p in (_ROOT / "libs" / "db" / "src", _ROOT / "packages", _ROOT):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Force a per-test data root so tests don't share on-disk state."""

    data_root = tmp_path / "data"
    data_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("STATEMENT_IMPORT_DATA_DIR", os.fspath(data_root))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("STATEMENT_IMPORT_USER_ID", raising=False)
    return data_root


EXPENSE_HEADER = "DATUM,TIP TRANSAKCIJE,OPIS,IZNOS"


@pytest.fixture
def expense_csv() -> str:
    return "\n".join(
        [
            "Izvod za period 01.06.2025 - 01.07.2025",
            EXPENSE_HEADER,
            '01.07.2025,PLAĆANJE KARTICOM,Kupovina Upwork -822939118REF,"- 5.102,96 RSD"',
            '30.06.2025,PLAĆANJE KARTICOM,Kupovina Wolt doo,"- 1.619,32 RSD"',
            '29.06.2025,PLAĆANJE KARTICOM,Kupovina Amazon,"- 2.495,51 EUR"',
            "",
        ]
    )


@pytest.fixture
def income_csv() -> str:
    return "\n".join(
        [
            EXPENSE_HEADER,
            '01.07.2025,UPLATA,Upwork Payment REF12345,"+ 50.000,00 RSD"',
            '02.07.2025,UPLATA,BEZGOTOVINSKI PRENOS Marko Markovic 160000,"+ 12.000,00 RSD"',
            '03.07.2025,PLAĆANJE KARTICOM,Kupovina Maxi,"- 3.100,00 RSD"',
        ]
    )
