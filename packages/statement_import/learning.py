"""Per-user memory of category corrections with fuzzy recall.

A correction maps a normalized description (lowercased, trimmed) to the
category the user chose. Lookups try an exact hit first and then fall back to
the most similar learned description, using normalized Levenshtein similarity
``(max_len - distance) / max_len``.

Durable stores
--------------
- :class:`InMemoryLearningStore`: process-local, for tests and dry runs.
- :class:`JsonFileLearningStore`: one JSON document per user under the data
  directory (see :func:`statement_import.config.get_data_dir`)::

      <data_dir>/learning/<sha256(user_id)>.json

  Files are validated with :class:`~statement_import.models.LearningFile`;
  unreadable or invalid files are logged and treated as empty. Writes target
  ``.tmp`` first and then ``os.replace`` into place.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import os
import threading
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol

from rapidfuzz.distance import Levenshtein

from .config import get_data_dir
from .logging_setup import get_logger
from .models import CorrectionEntry, LearnedItem, LearningFile

SCHEMA_VERSION: int = 1
DEFAULT_THRESHOLD: float = 0.85

_logger = get_logger("statement_import.learning")


def normalize_description(description: str) -> str:
    return description.strip().lower()


def similarity(a: str, b: str) -> float:
    """Return ``(max_len - levenshtein(a, b)) / max_len``; 0.0 when both are empty."""

    max_len = max(len(a), len(b))
    if max_len == 0:
        return 0.0
    return (max_len - Levenshtein.distance(a, b)) / max_len


# ----------------------------------------------------------------------------
# Durable stores
# ----------------------------------------------------------------------------


class LearningStore(Protocol):
    def put(self, user_key: str, entry: CorrectionEntry) -> None: ...

    def delete(self, user_key: str, keys: Iterable[str]) -> None: ...

    def entries(self, user_key: str) -> list[CorrectionEntry]: ...


class InMemoryLearningStore:
    def __init__(self) -> None:
        self._data: dict[str, dict[str, CorrectionEntry]] = {}
        self._lock = threading.Lock()

    def put(self, user_key: str, entry: CorrectionEntry) -> None:
        with self._lock:
            self._data.setdefault(user_key, {})[entry.normalized_description] = entry

    def delete(self, user_key: str, keys: Iterable[str]) -> None:
        with self._lock:
            bucket = self._data.get(user_key, {})
            for key in keys:
                bucket.pop(key, None)

    def entries(self, user_key: str) -> list[CorrectionEntry]:
        with self._lock:
            return list(self._data.get(user_key, {}).values())


class JsonFileLearningStore:
    """File-backed store, one JSON document per user."""

    def __init__(self, root: Path | str | None = None) -> None:
        self._root = Path(root) if root is not None else get_data_dir() / "learning"
        self._lock = threading.Lock()

    def path_for(self, user_key: str) -> Path:
        digest = hashlib.sha256(user_key.encode("utf-8")).hexdigest()
        return self._root / f"{digest}.json"

    def _read(self, user_key: str) -> dict[str, CorrectionEntry]:
        path = self.path_for(user_key)
        if not path.exists():
            return {}
        try:
            parsed = LearningFile.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError):
            # pydantic.ValidationError is a ValueError
            _logger.warning(
                "learning_store:read_failed; treating as empty path=%s",
                os.fspath(path),
                exc_info=True,
            )
            return {}
        if parsed.schema_version != SCHEMA_VERSION or parsed.user_key != user_key:
            _logger.warning(
                "learning_store:identity_mismatch; treating as empty path=%s", os.fspath(path)
            )
            return {}
        return {
            key: CorrectionEntry(
                normalized_description=key, category=item.category, learned_at=item.learned_at
            )
            for key, item in parsed.entries.items()
        }

    def _write(self, user_key: str, data: dict[str, CorrectionEntry]) -> None:
        path = self.path_for(user_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        doc = LearningFile(
            schema_version=SCHEMA_VERSION,
            user_key=user_key,
            entries={
                key: LearnedItem(category=e.category, learned_at=e.learned_at)
                for key, e in data.items()
            },
        )
        try:
            tmp.write_text(
                json.dumps(doc.model_dump(mode="json"), ensure_ascii=False, separators=(",", ":")),
                encoding="utf-8",
            )
            os.replace(tmp, path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise

    def put(self, user_key: str, entry: CorrectionEntry) -> None:
        with self._lock:
            data = self._read(user_key)
            data[entry.normalized_description] = entry
            self._write(user_key, data)

    def delete(self, user_key: str, keys: Iterable[str]) -> None:
        with self._lock:
            data = self._read(user_key)
            removed = [k for k in keys if data.pop(k, None) is not None]
            if removed:
                self._write(user_key, data)

    def entries(self, user_key: str) -> list[CorrectionEntry]:
        with self._lock:
            return list(self._read(user_key).values())


# ----------------------------------------------------------------------------
# Eviction
# ----------------------------------------------------------------------------


class EvictionPolicy(Protocol):
    def select_evictions(self, entries: Sequence[CorrectionEntry], now: datetime) -> list[str]: ...


class NoEviction:
    """Entries never expire."""

    def select_evictions(self, entries: Sequence[CorrectionEntry], now: datetime) -> list[str]:
        return []


class MaxEntriesEviction:
    """Keep at most ``max_entries``, dropping the oldest first."""

    def __init__(self, max_entries: int) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries

    def select_evictions(self, entries: Sequence[CorrectionEntry], now: datetime) -> list[str]:
        excess = len(entries) - self.max_entries
        if excess <= 0:
            return []
        oldest = sorted(entries, key=lambda e: e.learned_at)[:excess]
        return [e.normalized_description for e in oldest]


class MaxAgeEviction:
    """Drop entries learned more than ``max_age`` ago."""

    def __init__(self, max_age: timedelta) -> None:
        self.max_age = max_age

    def select_evictions(self, entries: Sequence[CorrectionEntry], now: datetime) -> list[str]:
        cutoff = now - self.max_age
        return [e.normalized_description for e in entries if e.learned_at < cutoff]


# ----------------------------------------------------------------------------
# Learner
# ----------------------------------------------------------------------------


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CorrectionLearner:
    """Remember user corrections and recall them for similar descriptions.

    Parameters
    ----------
    store:
        Durable mirror for learned entries; defaults to an in-memory store.
        Its entries for ``user_id`` are read once, on first use; after that
        lookups are served from memory.
    user_id:
        Owner of the corrections; each user's entries are isolated.
    threshold:
        Minimum similarity (exclusive) for a fuzzy hit.
    eviction:
        Policy applied after every ``learn``; defaults to :class:`NoEviction`.
    """

    def __init__(
        self,
        store: LearningStore | None = None,
        *,
        user_id: str,
        threshold: float = DEFAULT_THRESHOLD,
        eviction: EvictionPolicy | None = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        self.user_id = user_id
        self.threshold = threshold
        self._store: LearningStore = store if store is not None else InMemoryLearningStore()
        self._eviction: EvictionPolicy = eviction or NoEviction()
        self._now = now
        self._memory: dict[str, CorrectionEntry] = {}
        self._loaded = False
        self._lock = threading.Lock()

    def learn(self, description: str, category: str) -> None:
        key = normalize_description(description)
        category = category.strip()
        if not key:
            raise ValueError("description must be non-empty")
        if not category:
            raise ValueError("category must be non-empty")

        entry = CorrectionEntry(
            normalized_description=key, category=category, learned_at=self._now()
        )
        with self._lock:
            self._load()
            self._memory[key] = entry
            self._store.put(self.user_id, entry)
            self._apply_eviction()
        _logger.info("learned correction user=%s category=%s", self.user_id, category)

    def lookup(self, description: str) -> str | None:
        key = normalize_description(description)
        if not key:
            return None

        with self._lock:
            self._load()
            hit = self._memory.get(key)
            if hit is not None:
                return hit.category

            best: CorrectionEntry | None = None
            best_score = self.threshold
            for entry in self._known_entries():
                score = similarity(key, entry.normalized_description)
                # Strictly greater keeps the earliest learned entry on ties.
                if score > best_score:
                    best, best_score = entry, score
        if best is None:
            return None
        _logger.debug("fuzzy correction hit score=%.3f category=%s", best_score, best.category)
        return best.category

    def entries(self) -> list[CorrectionEntry]:
        with self._lock:
            self._load()
            return self._known_entries()

    def _load(self) -> None:
        if self._loaded:
            return
        stored = {e.normalized_description: e for e in self._store.entries(self.user_id)}
        self._memory = {**stored, **self._memory}
        self._loaded = True

    def _known_entries(self) -> list[CorrectionEntry]:
        return sorted(self._memory.values(), key=lambda e: e.learned_at)

    def _apply_eviction(self) -> None:
        evict = self._eviction.select_evictions(self._known_entries(), self._now())
        if not evict:
            return
        self._store.delete(self.user_id, evict)
        for key in evict:
            self._memory.pop(key, None)
        _logger.debug("evicted %d learned entries user=%s", len(evict), self.user_id)


__all__ = [
    "DEFAULT_THRESHOLD",
    "CorrectionLearner",
    "EvictionPolicy",
    "InMemoryLearningStore",
    "JsonFileLearningStore",
    "LearningStore",
    "MaxAgeEviction",
    "MaxEntriesEviction",
    "NoEviction",
    "normalize_description",
    "similarity",
]
