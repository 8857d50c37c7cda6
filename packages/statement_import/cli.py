# ruff: noqa: I001
"""CLI for the ``statement_import`` package.

This module exposes callable command handlers (``cmd_import_statement``,
``cmd_classify``, ``cmd_learn``, ``cmd_review``) and a Typer-based console
interface. Environment variables (notably ``DATABASE_URL``) are loaded from a
local ``.env`` using ``python-dotenv`` before delegating to command logic.
Business logic lives in ``statement_import.api`` and related modules.

Handlers print ``Error: ...`` to stderr and return ``1`` on failure; the Typer
commands turn that into the process exit code.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .errors import HeaderNotFound, RateLimitExceeded, SecurityError, StatementImportError
from .logging_setup import configure_logging
from .models import TransactionKind

DEFAULT_USER_ID = "local"


def _resolve_user_id(user_id: str | None) -> str:
    return (user_id or os.getenv("STATEMENT_IMPORT_USER_ID") or DEFAULT_USER_ID).strip()


# ---- Command handlers ---------------------------------------------------------


def cmd_import_statement(
    csv_path: str,
    *,
    kind: TransactionKind,
    user_id: str | None = None,
    database_url: str | None = None,
    dry_run: bool = False,
) -> int:
    """Import a statement file and print a summary.

    Output: one ``Imported <n> <kind> row(s), <m> failed.`` line, followed by
    one ``line <n>: <reason>`` line per failed row.
    """

    from .api import import_statement_file

    uid = _resolve_user_id(user_id)
    try:
        result = import_statement_file(
            csv_path, kind=kind, user_id=uid, database_url=database_url, dry_run=dry_run
        )
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
        return 1
    except UnicodeDecodeError:
        print(f"Error: File is not valid UTF-8: {csv_path}", file=sys.stderr)
        return 1
    except SecurityError as e:
        print(f"Error: CSV rejected ({e.rule}): {e}", file=sys.stderr)
        return 1
    except HeaderNotFound as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1
    except RateLimitExceeded as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (StatementImportError, RuntimeError) as e:
        print(f"Error: import failed: {e}", file=sys.stderr)
        return 1

    suffix = " (dry run, nothing stored)" if dry_run else ""
    print(f"Imported {result.success_count} {kind} row(s), {result.failure_count} failed.{suffix}")
    for failure in result.failures:
        print(f"line {failure.row_number}: {failure.reason}")
    return 0


def cmd_classify(
    description: str, *, amount: float | None = None, user_id: str | None = None
) -> int:
    """Print ``<category>\\t<confidence>\\t<source>`` for ``description``."""

    from .api import classify_description

    suggestion = classify_description(description, user_id=_resolve_user_id(user_id), amount=amount)
    print(f"{suggestion.category}\t{suggestion.confidence}\t{suggestion.source}")
    return 0


def cmd_learn(description: str, category: str, *, user_id: str | None = None) -> int:
    from .api import build_engine

    try:
        build_engine(_resolve_user_id(user_id)).learn(description, category)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: could not save correction: {e}", file=sys.stderr)
        return 1
    print(f"Learned: {description.strip()!r} -> {category.strip()}")
    return 0


def cmd_review(csv_path: str, *, user_id: str | None = None, only_uncertain: bool = False) -> int:
    from .api import review_statement_file

    try:
        result = review_statement_file(
            csv_path, user_id=_resolve_user_id(user_id), only_uncertain=only_uncertain
        )
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except SecurityError as e:
        print(f"Error: CSV rejected ({e.rule}): {e}", file=sys.stderr)
        return 1
    except HeaderNotFound as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("Review aborted.", file=sys.stderr)
        return 1

    print(
        f"Reviewed {result.reviewed_groups} group(s); "
        f"{result.corrected_groups} correction(s) learned."
    )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import Serbian bank statement CSV exports, categorize expenses and "
        "learn from corrections. Loads DATABASE_URL from a local .env."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Inside ``Annotated`` the first positional argument is the option
# name; defaults come from the signature.
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a bank statement CSV export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files
    readable=True,
)
USER_ID_OPTION: OptionInfo = typer.Option(
    "--user-id", help="Owner of the imported rows (env STATEMENT_IMPORT_USER_ID)."
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
DRY_RUN_OPTION: OptionInfo = typer.Option(
    "--dry-run", help="Parse and categorize without writing to the database."
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("import-expenses")
def import_expenses_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    dry_run: Annotated[bool, DRY_RUN_OPTION] = False,
) -> None:
    """Import an expense statement."""

    _exit(
        cmd_import_statement(
            str(csv_path),
            kind="expense",
            user_id=user_id,
            database_url=database_url,
            dry_run=dry_run,
        )
    )


@app.command("import-incomes")
def import_incomes_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    dry_run: Annotated[bool, DRY_RUN_OPTION] = False,
) -> None:
    """Import an income statement."""

    _exit(
        cmd_import_statement(
            str(csv_path),
            kind="income",
            user_id=user_id,
            database_url=database_url,
            dry_run=dry_run,
        )
    )


@app.command("classify")
def classify_cmd(
    description: Annotated[str, typer.Argument(help="Transaction description")],
    amount: Annotated[float | None, typer.Option("--amount", help="Amount (RSD)")] = None,
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
) -> None:
    """Show the category the engine would assign."""

    _exit(cmd_classify(description, amount=amount, user_id=user_id))


@app.command("learn")
def learn_cmd(
    description: Annotated[str, typer.Argument(help="Transaction description")],
    category: Annotated[str, typer.Argument(help="Correct category code")],
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
) -> None:
    """Teach the engine a correction."""

    _exit(cmd_learn(description, category, user_id=user_id))


@app.command("review")
def review_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    only_uncertain: Annotated[
        bool, typer.Option("--only-uncertain", help="Skip high-confidence suggestions.")
    ] = False,
) -> None:
    """Interactively review suggested expense categories."""

    _exit(cmd_review(str(csv_path), user_id=user_id, only_uncertain=only_uncertain))


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override STATEMENT_IMPORT_LOG_LEVEL."),
    ] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:  # pragma: no cover - console script entry
    app()


if __name__ == "__main__":  # pragma: no cover
    app()
