"""Runtime settings resolved from the environment.

Values come from process environment variables (the CLI loads a local ``.env``
first via ``python-dotenv``). Invalid or non-positive integers fall back to
the defaults rather than failing at startup.

- ``DATABASE_URL``: record store connection (read by ``db.client``)
- ``STATEMENT_IMPORT_DATA_DIR``: root for the per-user learning files
- ``STATEMENT_IMPORT_MAX_IMPORTS_PER_HOUR``: rate limit per user
- ``STATEMENT_IMPORT_MAX_BYTES`` / ``STATEMENT_IMPORT_MAX_LINES``: payload caps
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_LINES = 10_000
DEFAULT_MAX_IMPORTS_PER_HOUR = 10
DEFAULT_WINDOW_SECONDS = 60 * 60


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def get_data_dir() -> Path:
    """Return the root directory for durable per-user state.

    Default: ``./.statement_import`` under the current working directory.
    Override: ``STATEMENT_IMPORT_DATA_DIR`` (absolute or relative).
    """

    root = os.getenv("STATEMENT_IMPORT_DATA_DIR")
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".statement_import").resolve()


@dataclass(frozen=True, slots=True)
class ImportSettings:
    max_bytes: int = DEFAULT_MAX_BYTES
    max_lines: int = DEFAULT_MAX_LINES
    max_imports_per_window: int = DEFAULT_MAX_IMPORTS_PER_HOUR
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    database_url: str | None = None

    @classmethod
    def from_env(cls) -> ImportSettings:
        return cls(
            max_bytes=_env_int("STATEMENT_IMPORT_MAX_BYTES", DEFAULT_MAX_BYTES),
            max_lines=_env_int("STATEMENT_IMPORT_MAX_LINES", DEFAULT_MAX_LINES),
            max_imports_per_window=_env_int(
                "STATEMENT_IMPORT_MAX_IMPORTS_PER_HOUR", DEFAULT_MAX_IMPORTS_PER_HOUR
            ),
            database_url=(os.getenv("DATABASE_URL") or None),
        )


__all__ = [
    "DEFAULT_MAX_BYTES",
    "DEFAULT_MAX_LINES",
    "DEFAULT_MAX_IMPORTS_PER_HOUR",
    "DEFAULT_WINDOW_SECONDS",
    "ImportSettings",
    "get_data_dir",
]
