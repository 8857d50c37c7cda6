"""Public API surface for ``statement_import``.

Composition helpers wire the pipeline pieces together with settings from the
environment. Lower-level building blocks stay importable from their own
modules for callers that need custom wiring.
"""

from __future__ import annotations

from collections.abc import Callable
from os import PathLike
from pathlib import Path

from .audit import AuditSink
from .categorize import CategoryRuleEngine
from .config import ImportSettings
from .importer import ImportOrchestrator
from .ingest.statement import parse_expense_statement
from .learning import CorrectionLearner, JsonFileLearningStore, LearningStore
from .models import CategorySuggestion, ImportResult, TransactionKind
from .persistence import InMemoryRecordStore, RecordStore, SqlRecordStore
from .rate_limit import RateLimiter
from .review import ReviewResult, Selector, review_expense_categories
from .validation import ValidationLimits, validate_csv_content


def build_engine(
    user_id: str,
    *,
    store: LearningStore | None = None,
    learning_dir: str | PathLike[str] | None = None,
) -> CategoryRuleEngine:
    """Rule engine backed by the user's learned corrections.

    Corrections are stored as JSON under ``learning_dir`` (default: the data
    directory from :func:`~statement_import.config.get_data_dir`).
    """

    if store is None:
        store = JsonFileLearningStore(Path(learning_dir) if learning_dir is not None else None)
    return CategoryRuleEngine(learner=CorrectionLearner(store, user_id=user_id))


def build_orchestrator(
    *,
    user_id: str,
    database_url: str | None = None,
    dry_run: bool = False,
    settings: ImportSettings | None = None,
    audit: AuditSink | None = None,
) -> ImportOrchestrator:
    settings = settings or ImportSettings.from_env()
    store: RecordStore
    if dry_run:
        store = InMemoryRecordStore()
    else:
        store = SqlRecordStore(
            database_url or settings.database_url, user_id=user_id, create_tables=True
        )
    return ImportOrchestrator(
        store,
        rate_limiter=RateLimiter(
            settings.max_imports_per_window, settings.window_seconds, audit=audit
        ),
        audit=audit,
        limits=ValidationLimits(max_bytes=settings.max_bytes, max_lines=settings.max_lines),
    )


def _read_text(csv_path: str | PathLike[str]) -> str:
    with open(csv_path, encoding="utf-8", newline="") as f:
        return f.read()


def import_statement_file(
    csv_path: str | PathLike[str],
    *,
    kind: TransactionKind,
    user_id: str,
    database_url: str | None = None,
    dry_run: bool = False,
    engine: CategoryRuleEngine | None = None,
    orchestrator: ImportOrchestrator | None = None,
) -> ImportResult:
    """End-to-end: read file → validate → parse → categorize → store."""

    orch = orchestrator or build_orchestrator(
        user_id=user_id, database_url=database_url, dry_run=dry_run
    )
    if kind == "expense" and engine is None:
        engine = build_engine(user_id)
    return orch.import_statement(_read_text(csv_path), user_id=user_id, kind=kind, engine=engine)


def classify_description(
    description: str,
    *,
    user_id: str,
    amount: float | None = None,
    engine: CategoryRuleEngine | None = None,
) -> CategorySuggestion:
    return (engine or build_engine(user_id)).classify(description, amount)


def review_statement_file(
    csv_path: str | PathLike[str],
    *,
    user_id: str,
    engine: CategoryRuleEngine | None = None,
    selector: Selector | None = None,
    only_uncertain: bool = False,
    print_fn: Callable[..., None] = print,
) -> ReviewResult:
    """Parse an expense statement and review its suggested categories.

    Nothing is written to the record store; corrections go to the learner so
    the next import of the same vendors is categorized accordingly.
    """

    text = _read_text(csv_path)
    validate_csv_content(text, user_id=user_id)
    engine = engine or build_engine(user_id)
    parsed = parse_expense_statement(text, engine=engine)
    for failure in parsed.failures:
        print_fn(f"Skipped line {failure.row_number}: {failure.reason}")
    return review_expense_categories(
        parsed.transactions,
        engine=engine,
        selector=selector,
        only_uncertain=only_uncertain,
        print_fn=print_fn,
    )


__all__ = [
    "build_engine",
    "build_orchestrator",
    "classify_description",
    "import_statement_file",
    "review_statement_file",
]
