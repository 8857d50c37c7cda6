from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

import statement_import.cli as cli
from db.client import dispose_engines

from tests.helpers.db import bootstrap_sqlite_db, fetch_expenses


@pytest.fixture(autouse=True)
def _quiet_cli(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the root callback from touching global logging or a real .env.
    monkeypatch.setattr(cli, "configure_logging", lambda level=None: None)
    monkeypatch.setattr(cli, "load_dotenv", lambda *a, **k: False)


@pytest.fixture
def db_url(tmp_path: Path) -> Iterator[str]:
    yield bootstrap_sqlite_db(tmp_path / "cli.db")
    dispose_engines()


@pytest.fixture
def expense_file(tmp_path: Path, expense_csv: str) -> Path:
    path = tmp_path / "expenses.csv"
    path.write_text(expense_csv, encoding="utf-8")
    return path


runner = CliRunner()


def test_import_expenses_dry_run(expense_file: Path):
    result = runner.invoke(
        cli.app, ["import-expenses", "--csv-path", str(expense_file), "--dry-run"]
    )

    assert result.exit_code == 0, result.output
    assert "Imported 3 expense row(s), 0 failed. (dry run, nothing stored)" in result.output


def test_import_expenses_into_database(expense_file: Path, db_url: str):
    result = runner.invoke(
        cli.app,
        [
            "import-expenses",
            "--csv-path",
            str(expense_file),
            "--database-url",
            db_url,
            "--user-id",
            "ana",
        ],
    )

    assert result.exit_code == 0, result.output
    rows = fetch_expenses(db_url)
    assert [r.category for r in rows] == ["office-supplies", "food-delivery", "other-business"]
    assert {r.user_id for r in rows} == {"ana"}


def test_import_incomes_reads_database_url_from_env(
    tmp_path: Path, income_csv: str, db_url: str, monkeypatch: pytest.MonkeyPatch
):
    path = tmp_path / "incomes.csv"
    path.write_text(income_csv, encoding="utf-8")
    monkeypatch.setenv("DATABASE_URL", db_url)

    result = runner.invoke(cli.app, ["import-incomes", "--csv-path", str(path)])

    assert result.exit_code == 0, result.output
    assert "Imported 2 income row(s), 0 failed." in result.output


def test_import_without_database_url_fails(expense_file: Path, capsys: pytest.CaptureFixture[str]):
    code = cli.cmd_import_statement(str(expense_file), kind="expense")

    assert code == 1
    assert "Error: import failed: DATABASE_URL is not set" in capsys.readouterr().err


def test_import_errors_exit_non_zero(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    missing = tmp_path / "nope.csv"
    assert cli.cmd_import_statement(str(missing), kind="expense", dry_run=True) == 1
    assert "Error: File not found" in capsys.readouterr().err

    evil = tmp_path / "evil.csv"
    evil.write_text("DATUM,OPIS\n<script>x</script>", encoding="utf-8")
    assert cli.cmd_import_statement(str(evil), kind="expense", dry_run=True) == 1
    assert "Error: CSV rejected (script_tag)" in capsys.readouterr().err

    headless = tmp_path / "headless.csv"
    headless.write_text("foo,bar\n1,2\n", encoding="utf-8")
    assert cli.cmd_import_statement(str(headless), kind="expense", dry_run=True) == 1
    assert "Error: Failed to parse CSV" in capsys.readouterr().err

    result = runner.invoke(cli.app, ["import-expenses", "--csv-path", str(missing), "--dry-run"])
    assert result.exit_code == 1


def test_import_reports_failed_lines(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    path = tmp_path / "partial.csv"
    path.write_text(
        "DATUM,TIP TRANSAKCIJE,OPIS,IZNOS\n"
        "01.07.2025,SHORT\n"
        '01.07.2025,PLAĆANJE KARTICOM,Kupovina Wolt doo,"- 1.619,32 RSD"\n',
        encoding="utf-8",
    )

    assert cli.cmd_import_statement(str(path), kind="expense", dry_run=True) == 0
    out = capsys.readouterr().out
    assert "Imported 1 expense row(s), 1 failed." in out
    assert "line 2: expected 4 columns, got 2" in out


def test_classify_and_learn_round_trip():
    result = runner.invoke(cli.app, ["classify", "Wolt doo"])
    assert result.exit_code == 0, result.output
    assert "food-delivery\thigh\trule" in result.output

    result = runner.invoke(cli.app, ["learn", "Amazon", "equipment", "--user-id", "ana"])
    assert result.exit_code == 0, result.output
    assert "Learned: 'Amazon' -> equipment" in result.output

    result = runner.invoke(cli.app, ["classify", "amazon", "--user-id", "ana"])
    assert "equipment\thigh\tlearned" in result.output

    # Other users keep the rule-based answer.
    result = runner.invoke(cli.app, ["classify", "amazon"])
    assert "other-business\tlow\tdefault" in result.output


def test_user_id_falls_back_to_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STATEMENT_IMPORT_USER_ID", "ana")
    assert cli.cmd_learn("Amazon", "equipment") == 0
    assert cli.cmd_learn("Amazon", "equipment", user_id="bob") == 0

    from statement_import.api import build_engine

    assert build_engine("ana").classify("Amazon").source == "learned"
    assert build_engine(cli.DEFAULT_USER_ID).classify("Amazon").source == "default"


def test_learn_rejects_empty_category(capsys: pytest.CaptureFixture[str]):
    assert cli.cmd_learn("Amazon", "  ") == 1
    assert "Error: category must be non-empty" in capsys.readouterr().err


def test_review_command_uses_selector(
    expense_file: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    import statement_import.review as review_mod

    monkeypatch.setattr(
        review_mod, "_default_selector", lambda categories, default: "equipment"
    )

    assert cli.cmd_review(str(expense_file), user_id="ana") == 0
    out = capsys.readouterr().out
    assert "Reviewed 3 group(s); 3 correction(s) learned." in out
