"""Public interface for the ``statement_import`` package.

Symbol re-exports only; no runtime logic lives here.
"""

from .api import (
    build_engine,
    build_orchestrator,
    classify_description,
    import_statement_file,
    review_statement_file,
)
from .categorize import CategoryRuleEngine
from .entities import extract_client
from .errors import (
    AmountValidationError,
    HeaderNotFound,
    RateLimitExceeded,
    RowParseError,
    SecurityError,
    StatementImportError,
    StoreError,
)
from .importer import ImportOrchestrator
from .ingest.statement import StatementParse, parse_expense_statement, parse_income_statement
from .learning import CorrectionLearner, InMemoryLearningStore, JsonFileLearningStore
from .models import (
    CategorySuggestion,
    ClientInfo,
    ImportResult,
    ParsedTransaction,
    RowFailure,
)
from .persistence import InMemoryRecordStore, SqlRecordStore
from .rate_limit import RateLimiter
from .validation import validate_csv_content

__all__ = [
    # API
    "build_engine",
    "build_orchestrator",
    "classify_description",
    "import_statement_file",
    "review_statement_file",
    # Pipeline
    "CategoryRuleEngine",
    "CorrectionLearner",
    "ImportOrchestrator",
    "InMemoryLearningStore",
    "InMemoryRecordStore",
    "JsonFileLearningStore",
    "RateLimiter",
    "SqlRecordStore",
    "StatementParse",
    "extract_client",
    "parse_expense_statement",
    "parse_income_statement",
    "validate_csv_content",
    # Models
    "CategorySuggestion",
    "ClientInfo",
    "ImportResult",
    "ParsedTransaction",
    "RowFailure",
    # Errors
    "AmountValidationError",
    "HeaderNotFound",
    "RateLimitExceeded",
    "RowParseError",
    "SecurityError",
    "StatementImportError",
    "StoreError",
]
