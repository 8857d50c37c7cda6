from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from statement_import.learning import (
    CorrectionLearner,
    InMemoryLearningStore,
    JsonFileLearningStore,
    MaxAgeEviction,
    MaxEntriesEviction,
    similarity,
)


class FakeNow:
    def __init__(self) -> None:
        self.t = datetime(2025, 7, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.t

    def advance(self, **kwargs: float) -> None:
        self.t += timedelta(**kwargs)


def test_similarity():
    assert similarity("abc", "abc") == 1.0
    assert similarity("", "") == 0.0
    assert similarity("abc", "") == 0.0
    assert similarity("kitten", "sitting") == pytest.approx(4 / 7)


def test_exact_lookup_is_normalized():
    learner = CorrectionLearner(user_id="u1")
    learner.learn("  Wolt DOO ", "travel-client-meetings")

    assert learner.lookup("wolt doo") == "travel-client-meetings"
    assert learner.lookup("WOLT DOO") == "travel-client-meetings"
    assert learner.lookup("") is None


def test_fuzzy_lookup_above_threshold():
    learner = CorrectionLearner(user_id="u1")
    learner.learn("maxi market 123", "groceries")

    # One edit in fifteen characters: similarity 14/15.
    assert learner.lookup("maxi market 124") == "groceries"
    assert learner.lookup("lidl") is None


def test_threshold_is_exclusive():
    learner = CorrectionLearner(user_id="u1", threshold=0.8)
    learner.learn("abcde", "cat-a")

    assert similarity("abcde", "abcdx") == pytest.approx(0.8)
    assert learner.lookup("abcdx") is None


def test_best_fuzzy_match_wins_and_ties_go_to_earliest():
    now = FakeNow()
    learner = CorrectionLearner(user_id="u1", threshold=0.5, now=now)
    learner.learn("abcdef", "first")
    now.advance(seconds=1)
    learner.learn("abcdeg", "second")

    assert learner.lookup("abcdeh") == "first"

    learner.learn("abcdefghij", "near")
    now.advance(seconds=1)
    learner.learn("abcdefxxxx", "far")
    assert learner.lookup("abcdefghiz") == "near"


def test_learn_rejects_empty_values():
    learner = CorrectionLearner(user_id="u1")
    with pytest.raises(ValueError):
        learner.learn("   ", "groceries")
    with pytest.raises(ValueError):
        learner.learn("Maxi", " ")
    with pytest.raises(ValueError):
        CorrectionLearner(user_id="u1", threshold=1.5)


def test_users_are_isolated():
    store = InMemoryLearningStore()
    CorrectionLearner(store, user_id="alice").learn("Maxi", "equipment")

    assert CorrectionLearner(store, user_id="bob").lookup("Maxi") is None
    assert CorrectionLearner(store, user_id="alice").lookup("Maxi") == "equipment"


def test_json_store_persists_across_instances(tmp_path: Path):
    root = tmp_path / "learning"
    CorrectionLearner(JsonFileLearningStore(root), user_id="u1").learn("Amazon", "equipment")

    fresh = CorrectionLearner(JsonFileLearningStore(root), user_id="u1")
    assert fresh.lookup("amazon") == "equipment"
    assert fresh.lookup("amazon prime") is None

    store = JsonFileLearningStore(root)
    doc = json.loads(store.path_for("u1").read_text(encoding="utf-8"))
    assert doc["schema_version"] == 1
    assert doc["user_key"] == "u1"
    assert doc["entries"]["amazon"]["category"] == "equipment"
    # The user id never appears in the file name.
    assert "u1" not in store.path_for("u1").name


class CountingJsonStore(JsonFileLearningStore):
    def __init__(self, root: Path) -> None:
        super().__init__(root)
        self.entry_reads = 0

    def entries(self, user_key: str):
        self.entry_reads += 1
        return super().entries(user_key)


def test_store_is_read_once_per_learner(tmp_path: Path):
    root = tmp_path / "learning"
    seed = CorrectionLearner(JsonFileLearningStore(root), user_id="u1")
    seed.learn("Maxi market 123", "groceries")
    seed.learn("Amazon", "equipment")

    store = CountingJsonStore(root)
    learner = CorrectionLearner(store, user_id="u1")
    descriptions = [f"Kupovina {i}" for i in range(20)] + ["maxi market 124", "AMAZON"]
    found = [learner.lookup(d) for d in descriptions]
    learner.learn("Wolt", "food-delivery")

    assert found[-2:] == ["groceries", "equipment"]
    assert found[:20] == [None] * 20
    assert learner.lookup("wolt") == "food-delivery"
    assert store.entry_reads == 1


def test_json_store_defaults_to_data_dir(_isolate_data_dir: Path):
    store = JsonFileLearningStore()
    assert store.path_for("u1").parent == _isolate_data_dir.resolve() / "learning"


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        '{"schema_version": 2, "user_key": "u1", "entries": {}}',
        '{"schema_version": 1, "user_key": "someone-else", "entries": {}}',
        '{"schema_version": 1, "user_key": "u1", "entries": {"x": {"category": ""}}}',
    ],
)
def test_json_store_treats_bad_files_as_empty(tmp_path: Path, content: str):
    store = JsonFileLearningStore(tmp_path)
    path = store.path_for("u1")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")

    assert store.entries("u1") == []
    # A new correction replaces the bad file.
    CorrectionLearner(store, user_id="u1").learn("Maxi", "groceries")
    assert [e.category for e in store.entries("u1")] == ["groceries"]


def test_max_entries_eviction_drops_oldest():
    now = FakeNow()
    store = InMemoryLearningStore()
    learner = CorrectionLearner(store, user_id="u1", eviction=MaxEntriesEviction(2), now=now)
    for desc in ("alpha vendor", "bravo vendor", "charlie vendor"):
        learner.learn(desc, "groceries")
        now.advance(minutes=1)

    keys = {e.normalized_description for e in learner.entries()}
    assert keys == {"bravo vendor", "charlie vendor"}
    assert {e.normalized_description for e in store.entries("u1")} == keys

    with pytest.raises(ValueError):
        MaxEntriesEviction(0)


def test_max_age_eviction():
    now = FakeNow()
    learner = CorrectionLearner(
        user_id="u1", eviction=MaxAgeEviction(timedelta(days=30)), now=now
    )
    learner.learn("old vendor", "groceries")
    now.advance(days=31)
    learner.learn("new vendor", "equipment")

    assert [e.normalized_description for e in learner.entries()] == ["new vendor"]
