"""
Tests for fractal_discovery/ml/lifecycle.py.

Tests use InMemoryKeyValueStore, the FakeClock and the ConstantScorer stub
from conftest; no LightGBM needed.  One test runs on a SQLite file.

What we test
------------
save_model() / load_model():
  - Writes the model blob and metadata under their two keys.
  - Metadata carries schemaVersion, trainedAt (clock, epoch ms), favorite count.
  - Round trip revives an equivalent scorer.
  - Unfitted model or failing store → False, nothing written.
  - Schema mismatch, missing, corrupt or unknown-backend blob → None.

read_metadata():
  - Orphaned metadata (no matching blob) → None.

should_retrain_model():
  - No metadata → True; fresh model → False.
  - Growth: trained on 5 → 6 favorites is fine, 7 triggers.
  - Age: exactly max_age_days is fine, one second more triggers.

initialize_model():
  - No favorites → None.
  - Enough favorites → trains, saves, returns the model.
  - Fresh persisted model → reused without training.
  - Stale model + failed retrain → the stale model is kept.

model_status():
  - Reports metadata, favorite count, retrain flag and backend availability.

Storage failures:
  - A store whose reads raise (e.g. "database is locked") reads as no model,
    no favorites and retrain needed; nothing raises.
  - SQLite rejecting the metadata row leaves neither key written.
"""

from __future__ import annotations

import json
import random
import sqlite3

import pytest

from fractal_discovery.config import AppConfig, TrainingConfig
from fractal_discovery.ml.lifecycle import ModelLifecycleManager
from fractal_discovery.storage.connection import get_connection
from fractal_discovery.storage.favorites import FavoritesRepository
from fractal_discovery.storage.kv_store import InMemoryKeyValueStore, SqliteKeyValueStore
from fractal_discovery.utils.time_utils import to_epoch_ms


MODEL_KEY = "fractalai_ml_model"
METADATA_KEY = "fractalai_ml_model_metadata"


class _FailingStore(InMemoryKeyValueStore):
    def set_many(self, items):
        raise OSError("disk full")


class _LockedStore(InMemoryKeyValueStore):
    """Reads fail once ``locked`` is set; writes still land."""

    locked = False

    def get(self, key):
        if self.locked:
            raise sqlite3.OperationalError("database is locked")
        return super().get(key)


# ── save_model / load_model ───────────────────────────────────────────────────

def test_save_writes_both_keys(lifecycle, store, make_scorer):
    assert lifecycle.save_model(make_scorer(0.8), favorite_count=5)
    assert set(store.keys()) == {MODEL_KEY, METADATA_KEY}


def test_saved_metadata_content(lifecycle, store, make_scorer, clock):
    lifecycle.save_model(make_scorer(0.8), favorite_count=5)
    meta = json.loads(store.get(METADATA_KEY))
    assert meta == {
        "schemaVersion": 1,
        "trainedAt": to_epoch_ms(clock.now),
        "favoriteCountAtTraining": 5,
    }
    blob = json.loads(store.get(MODEL_KEY))
    assert blob["backend"] == "constant"
    assert blob["schemaVersion"] == 1
    assert blob["trainedAt"] == meta["trainedAt"]
    assert blob["favoriteCount"] == 5


def test_save_reads_count_from_favorites(lifecycle, add_favorites, make_scorer):
    add_favorites(3)
    lifecycle.save_model(make_scorer())
    assert lifecycle.read_metadata().favorite_count_at_training == 3


def test_round_trip(lifecycle, make_scorer):
    lifecycle.save_model(make_scorer(0.42), favorite_count=5)
    loaded = lifecycle.load_model()
    assert loaded.backend_name == "constant"
    assert loaded.activate([0.0]) == [0.42]


def test_save_unfitted_model_returns_false(lifecycle, store, factory_spy):
    assert lifecycle.save_model(factory_spy(None), favorite_count=5) is False
    assert store.keys() == []


def test_save_store_failure_returns_false(favorites_repo, app_config, clock, make_scorer):
    failing = _FailingStore()
    manager = ModelLifecycleManager(failing, favorites_repo, app_config, clock=clock)
    assert manager.save_model(make_scorer(), favorite_count=5) is False
    assert failing.keys() == []


def test_load_nothing_persisted(lifecycle):
    assert lifecycle.load_model() is None


def test_load_schema_mismatch(lifecycle, store, make_scorer):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    blob = json.loads(store.get(MODEL_KEY))
    blob["schemaVersion"] = 99
    store.set(MODEL_KEY, json.dumps(blob))
    assert lifecycle.load_model() is None


def test_load_after_schema_bump(store, favorites_repo, clock, make_scorer):
    old = ModelLifecycleManager(store, favorites_repo, AppConfig(), clock=clock)
    old.save_model(make_scorer(), favorite_count=5)

    bumped = AppConfig(training=TrainingConfig(schema_version=2))
    new = ModelLifecycleManager(store, favorites_repo, bumped, clock=clock)
    assert new.load_model() is None
    assert new.read_metadata() is None
    assert new.should_retrain_model(5)


@pytest.mark.parametrize("raw", [
    "{not json",
    "[1, 2, 3]",
    json.dumps({"schemaVersion": 1, "backend": "no-such-backend"}),
    json.dumps({"schemaVersion": 1}),
])
def test_load_unusable_blob(lifecycle, store, raw):
    store.set(MODEL_KEY, raw)
    assert lifecycle.load_model() is None


# ── read_metadata ─────────────────────────────────────────────────────────────

def test_orphaned_metadata_is_ignored(lifecycle, store, make_scorer):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    store.delete(MODEL_KEY)
    assert lifecycle.read_metadata() is None


def test_metadata_with_mismatched_blob_is_ignored(lifecycle, store, make_scorer):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    meta = json.loads(store.get(METADATA_KEY))
    meta["trainedAt"] += 1
    store.set(METADATA_KEY, json.dumps(meta))
    assert lifecycle.read_metadata() is None


def test_corrupt_metadata_is_ignored(lifecycle, store, make_scorer):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    store.set(METADATA_KEY, "garbage")
    assert lifecycle.read_metadata() is None


# ── should_retrain_model ──────────────────────────────────────────────────────

def test_retrain_when_never_trained(lifecycle):
    assert lifecycle.should_retrain_model(10)


def test_fresh_model_needs_no_retrain(lifecycle, make_scorer):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    assert not lifecycle.should_retrain_model(5)


@pytest.mark.parametrize("count,expected", [(5, False), (6, False), (7, True)])
def test_retrain_on_growth(lifecycle, make_scorer, count, expected):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    assert lifecycle.should_retrain_model(count) is expected


def test_no_retrain_at_exactly_max_age(lifecycle, make_scorer, clock):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    clock.advance(days=7)
    assert not lifecycle.should_retrain_model(5)


def test_retrain_past_max_age(lifecycle, make_scorer, clock):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    clock.advance(days=7, seconds=1)
    assert lifecycle.should_retrain_model(5)


def test_retrain_reads_count_from_favorites(lifecycle, make_scorer, add_favorites):
    lifecycle.save_model(make_scorer(), favorite_count=5)
    add_favorites(7)
    assert lifecycle.should_retrain_model()


# ── initialize_model ──────────────────────────────────────────────────────────

def test_initialize_without_favorites(lifecycle, factory_spy):
    assert lifecycle.initialize_model() is None
    assert factory_spy.built == []


def test_initialize_trains_and_saves(lifecycle, add_favorites, factory_spy):
    add_favorites(5)
    model = lifecycle.initialize_model()
    assert model is factory_spy.built[0]
    assert model.train_calls == [(5, 10)]
    meta = lifecycle.read_metadata()
    assert meta is not None
    assert meta.favorite_count_at_training == 5


def test_initialize_reuses_fresh_model(lifecycle, add_favorites, factory_spy):
    add_favorites(5)
    lifecycle.initialize_model()
    built = len(factory_spy.built)

    again = lifecycle.initialize_model()
    assert again.backend_name == "constant"
    assert len(factory_spy.built) == built


def test_initialize_retrains_when_stale(lifecycle, add_favorites, factory_spy, clock):
    add_favorites(5)
    lifecycle.initialize_model()
    clock.advance(days=8)

    lifecycle.initialize_model()
    assert len(factory_spy.built) == 2
    assert lifecycle.read_metadata().trained_at == clock.now


def test_initialize_keeps_stale_model_when_retrain_fails(
    store, favorites_repo, app_config, clock, add_favorites, make_scorer, make_factory
):
    add_favorites(5)
    manager = ModelLifecycleManager(
        store, favorites_repo, app_config,
        scorer_factory=make_factory("failing-train"),
        clock=clock,
        rng=random.Random(0),
    )
    manager.save_model(make_scorer(0.33), favorite_count=5)
    clock.advance(days=30)

    model = manager.initialize_model()
    assert model.backend_name == "constant"
    assert model.activate([0.0]) == [0.33]


# ── model_status ──────────────────────────────────────────────────────────────

def test_model_status_without_model(lifecycle, add_favorites):
    add_favorites(2)
    status = lifecycle.model_status()
    assert status.metadata is None
    assert status.favorite_count == 2
    assert status.should_retrain
    assert status.backend_available


def test_model_status_with_fresh_model(lifecycle, add_favorites, make_scorer):
    add_favorites(5)
    lifecycle.save_model(make_scorer())
    status = lifecycle.model_status()
    assert status.metadata.favorite_count_at_training == 5
    assert not status.should_retrain


def test_model_status_reports_missing_backend(
    store, favorites_repo, app_config, clock, make_factory
):
    manager = ModelLifecycleManager(
        store, favorites_repo, app_config,
        scorer_factory=make_factory("unavailable"), clock=clock,
    )
    assert not manager.model_status().backend_available


# ── Storage failures ──────────────────────────────────────────────────────────

@pytest.fixture
def locked_lifecycle(app_config, clock, factory_spy, make_scorer) -> ModelLifecycleManager:
    """A saved model whose store then refuses every read."""
    locked = _LockedStore()
    favorites = FavoritesRepository(locked, clock=clock, rng=random.Random(7))
    manager = ModelLifecycleManager(
        locked, favorites, app_config,
        scorer_factory=factory_spy, clock=clock, rng=random.Random(1),
    )
    assert manager.save_model(make_scorer(0.4), favorite_count=5)
    locked.locked = True
    return manager


def test_locked_store_reads_as_no_model(locked_lifecycle):
    assert locked_lifecycle.load_model() is None
    assert locked_lifecycle.read_metadata() is None
    assert locked_lifecycle.should_retrain_model() is True


def test_initialize_on_locked_store_returns_none(locked_lifecycle, factory_spy):
    assert locked_lifecycle.initialize_model() is None
    assert factory_spy.built == []


def test_model_status_on_locked_store(locked_lifecycle):
    status = locked_lifecycle.model_status()
    assert status.metadata is None
    assert status.favorite_count == 0
    assert status.should_retrain


def test_sqlite_rejecting_metadata_writes_neither_key(tmp_path, app_config, clock, make_scorer):
    """A failure on the second row of the batch rolls back the first."""
    path = str(tmp_path / "kv.db")
    sqlite_store = SqliteKeyValueStore(path)
    with get_connection(path) as conn:
        conn.execute(
            "CREATE TRIGGER reject_metadata BEFORE INSERT ON kv_store "
            f"WHEN NEW.key = '{METADATA_KEY}' "
            "BEGIN SELECT RAISE(ABORT, 'metadata rejected'); END;"
        )
    favorites = FavoritesRepository(sqlite_store, clock=clock)
    manager = ModelLifecycleManager(sqlite_store, favorites, app_config, clock=clock)

    assert manager.save_model(make_scorer(), favorite_count=5) is False
    assert sqlite_store.get(MODEL_KEY) is None
    assert sqlite_store.get(METADATA_KEY) is None
    assert manager.load_model() is None
    assert manager.read_metadata() is None
