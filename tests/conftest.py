"""
Shared pytest fixtures for the Fractal Discovery Engine test suite.

Provides:
  - ``store``: A fresh ``InMemoryKeyValueStore`` per test.
  - ``clock``: A controllable UTC clock (``FakeClock``) for retrain-age tests.
  - ``favorites_repo`` / ``lifecycle``: Engine objects wired to the above.
  - ``mandelbrot_favorites``: Five near-identical Mandelbrot views.
  - Stub scorers (``ConstantScorer``, ``RaisingScorer``) registered as
    backends so persistence tests run without LightGBM.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

import pytest

from fractal_discovery.config import AppConfig
from fractal_discovery.ml.lifecycle import ModelLifecycleManager
from fractal_discovery.ml.scorer import ModelNotFittedError, Scorer, register_backend
from fractal_discovery.models.fractal import FractalConfig
from fractal_discovery.models.meta import TrainingHistory
from fractal_discovery.storage.favorites import FavoritesRepository
from fractal_discovery.storage.kv_store import InMemoryKeyValueStore

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# ── Clock ─────────────────────────────────────────────────────────────────────

class FakeClock:
    """Callable returning a settable "now"."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


# ── Stub scorers ──────────────────────────────────────────────────────────────

@register_backend
class ConstantScorer(Scorer):
    """Scorer whose activation is a fixed value once trained."""

    backend_name = "constant"

    def __init__(self, value: float = 0.9) -> None:
        self.value = value
        self.fitted = False
        self.train_calls: list[tuple[int, int]] = []

    @classmethod
    def is_available(cls) -> bool:
        return True

    @property
    def is_fitted(self) -> bool:
        return self.fitted

    def train(self, features: Sequence[Sequence[float]], labels: Sequence[float]) -> TrainingHistory:
        n_pos = sum(1 for v in labels if v >= 0.5)
        self.train_calls.append((n_pos, len(labels) - n_pos))
        self.fitted = True
        return TrainingHistory(
            iterations=1, error=0.0, n_positive=n_pos, n_negative=len(labels) - n_pos
        )

    def activate(self, vector: Sequence[float]) -> list[float]:
        if not self.fitted:
            raise ModelNotFittedError("ConstantScorer is not trained.")
        return [self.value]

    def serialize(self) -> dict[str, Any]:
        if not self.fitted:
            raise ModelNotFittedError("ConstantScorer is not trained.")
        return {"backend": self.backend_name, "value": self.value}

    @classmethod
    def deserialize(cls, blob: dict[str, Any]) -> "ConstantScorer":
        inst = cls(value=blob["value"])
        inst.fitted = True
        return inst


@register_backend
class UnavailableScorer(ConstantScorer):
    backend_name = "unavailable"

    @classmethod
    def is_available(cls) -> bool:
        return False


@register_backend
class RaisingScorer(ConstantScorer):
    """Trains fine; every activation raises."""

    backend_name = "raising"

    def activate(self, vector: Sequence[float]) -> list[float]:
        raise RuntimeError("activation exploded")


@register_backend
class FailingTrainScorer(ConstantScorer):
    backend_name = "failing-train"

    def train(self, features, labels) -> TrainingHistory:
        raise ValueError("fit diverged")


class ScorerFactorySpy:
    """Scorer factory that records every scorer it builds."""

    def __init__(self, scorer_cls: type[ConstantScorer] = ConstantScorer, value: float = 0.9) -> None:
        self.scorer_cls = scorer_cls
        self.value = value
        self.built: list[ConstantScorer] = []

    def __call__(self, training_config) -> ConstantScorer:
        scorer = self.scorer_cls(value=self.value)
        self.built.append(scorer)
        return scorer


_SCORER_KINDS: dict[str, type[ConstantScorer]] = {
    "constant": ConstantScorer,
    "raising": RaisingScorer,
    "unavailable": UnavailableScorer,
    "failing-train": FailingTrainScorer,
}


# ── Scorer fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def make_scorer():
    """Return a helper building a fitted stub scorer: ``make_scorer(0.8, "raising")``."""

    def _make(value: float = 0.9, kind: str = "constant") -> ConstantScorer:
        scorer = _SCORER_KINDS[kind](value=value)
        scorer.fitted = True
        return scorer

    return _make


@pytest.fixture
def make_factory():
    """Return a helper building a ``ScorerFactorySpy`` for a stub kind."""

    def _make(kind: str = "constant", value: float = 0.9) -> ScorerFactorySpy:
        return ScorerFactorySpy(_SCORER_KINDS[kind], value)

    return _make


# ── Engine fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def favorites_repo(store, clock) -> FavoritesRepository:
    return FavoritesRepository(store, clock=clock, rng=random.Random(7))


@pytest.fixture
def factory_spy() -> ScorerFactorySpy:
    return ScorerFactorySpy()


@pytest.fixture
def lifecycle(store, favorites_repo, app_config, clock, factory_spy) -> ModelLifecycleManager:
    return ModelLifecycleManager(
        store,
        favorites_repo,
        app_config,
        scorer_factory=factory_spy,
        clock=clock,
        rng=random.Random(123),
    )


# ── Sample views ──────────────────────────────────────────────────────────────

@pytest.fixture
def mandelbrot_favorites() -> list[FractalConfig]:
    """Five Mandelbrot views in one neighborhood (zoom 2.0–2.4)."""
    return [
        FractalConfig(
            fractal_type="mandelbrot",
            zoom=2.0 + i * 0.1,
            offset_x=-0.5,
            offset_y=0.3,
            iterations=150,
            color_scheme="classic",
        )
        for i in range(5)
    ]


@pytest.fixture
def add_favorites(favorites_repo):
    """Return a helper that stores ``n`` distinct Mandelbrot favorites."""

    def _add(n: int) -> list[str]:
        return [
            favorites_repo.add_favorite(
                FractalConfig(zoom=2.0 + i * 0.1, offset_x=-0.5, offset_y=0.3, iterations=150)
            )
            for i in range(n)
        ]

    return _add
