"""
Tests for fractal_discovery/ml/lgbm_scorer.py.

Skipped entirely when LightGBM is not installed.

What we test
------------
LightGBMScorer.is_fitted:
  - False before train(), True after.

LightGBMScorer.train():
  - Returns TrainingHistory with rounds in [1, n_estimators] and a finite error.
  - Counts positives and negatives.
  - Raises ValueError on mismatched lengths, empty input, or a single class.
  - Is deterministic for identical data and seed.

LightGBMScorer.activate():
  - Returns [p] with p in [0, 1].
  - Raises ModelNotFittedError before training; ValueError on wrong width.

serialize() / deserialize():
  - serialize() raises ModelNotFittedError when unfitted.
  - Blob is JSON-safe and names the "lightgbm" backend.
  - A revived scorer activates identically to the trained one.

Scenario:
  - Trained on five Mandelbrot favorites, a near-identical view scores
    higher than a Julia view at zoom 100 far from the trained neighborhood.
"""

from __future__ import annotations

import json
import math
import random

import pytest

pytest.importorskip("lightgbm")

from fractal_discovery.config import TrainingConfig
from fractal_discovery.discovery.scoring import ml_score
from fractal_discovery.features.extractor import FEATURE_COUNT, extract_features
from fractal_discovery.ml.lgbm_scorer import LightGBMScorer
from fractal_discovery.ml.scorer import ModelNotFittedError, deserialize_scorer
from fractal_discovery.ml.trainer import build_training_set, train_model
from fractal_discovery.models.fractal import FractalConfig


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def training_set(mandelbrot_favorites):
    return build_training_set(mandelbrot_favorites, negative_ratio=2, rng=random.Random(11))


@pytest.fixture
def trained(training_set) -> LightGBMScorer:
    features, labels = training_set
    scorer = LightGBMScorer(n_estimators=20)
    scorer.train(features, labels)
    return scorer


# ── is_fitted ─────────────────────────────────────────────────────────────────

def test_not_fitted_before_train():
    assert not LightGBMScorer().is_fitted


def test_fitted_after_train(trained):
    assert trained.is_fitted


def test_is_available():
    assert LightGBMScorer.is_available()


# ── train ─────────────────────────────────────────────────────────────────────

def test_train_history(training_set):
    features, labels = training_set
    scorer = LightGBMScorer(n_estimators=20)
    history = scorer.train(features, labels)
    assert 1 <= history.iterations <= 20
    assert math.isfinite(history.error)
    assert history.n_positive == 5
    assert history.n_negative == 10
    assert scorer.history == history


def test_train_rejects_mismatched_lengths(training_set):
    features, labels = training_set
    with pytest.raises(ValueError):
        LightGBMScorer().train(features, labels[:-1])


def test_train_rejects_empty():
    with pytest.raises(ValueError):
        LightGBMScorer().train([], [])


def test_train_rejects_single_class(training_set):
    features, _ = training_set
    with pytest.raises(ValueError):
        LightGBMScorer().train(features, [1.0] * len(features))


def test_training_is_deterministic(training_set):
    features, labels = training_set
    a = LightGBMScorer(n_estimators=15)
    b = LightGBMScorer(n_estimators=15)
    a.train(features, labels)
    b.train(features, labels)
    view = extract_features(FractalConfig(zoom=2.2, offset_x=-0.5, offset_y=0.3))
    assert a.activate(view) == b.activate(view)


def test_from_config_uses_training_section():
    scorer = LightGBMScorer.from_config(TrainingConfig(n_estimators=7, seed=3))
    assert scorer._hyperparams["n_estimators"] == 7
    assert scorer._hyperparams["seed"] == 3


# ── activate ──────────────────────────────────────────────────────────────────

def test_activate_unfitted_raises():
    with pytest.raises(ModelNotFittedError):
        LightGBMScorer().activate([0.0] * FEATURE_COUNT)


def test_activate_returns_probability(trained):
    out = trained.activate(extract_features(FractalConfig()))
    assert len(out) == 1
    assert 0.0 <= out[0] <= 1.0


def test_activate_wrong_width_raises(trained):
    with pytest.raises(ValueError):
        trained.activate([0.0] * (FEATURE_COUNT - 1))


# ── serialize / deserialize ───────────────────────────────────────────────────

def test_serialize_unfitted_raises():
    with pytest.raises(ModelNotFittedError):
        LightGBMScorer().serialize()


def test_blob_is_json_safe(trained):
    blob = json.loads(json.dumps(trained.serialize()))
    assert blob["backend"] == "lightgbm"
    assert blob["n_features"] == FEATURE_COUNT
    assert isinstance(blob["booster"], str)


def test_round_trip_activates_identically(trained):
    blob = json.loads(json.dumps(trained.serialize()))
    revived = deserialize_scorer(blob)
    assert isinstance(revived, LightGBMScorer)
    assert revived.is_fitted

    for config in (
        FractalConfig(zoom=2.1, offset_x=-0.5, offset_y=0.3, iterations=150),
        FractalConfig(fractal_type="julia", zoom=100.0, offset_x=3.0, offset_y=-3.0),
        FractalConfig(),
    ):
        vec = extract_features(config)
        assert revived.activate(vec) == pytest.approx(trained.activate(vec), abs=1e-9)


# ── Scenario ──────────────────────────────────────────────────────────────────

def test_near_favorite_scores_higher_than_distant_view(mandelbrot_favorites):
    result = train_model(
        mandelbrot_favorites,
        TrainingConfig(),
        rng=random.Random(2024),
    )
    assert result is not None

    near = FractalConfig(zoom=2.1, offset_x=-0.5, offset_y=0.3, iterations=150)
    far = FractalConfig(
        fractal_type="julia",
        zoom=100.0,
        offset_x=3.0,
        offset_y=-3.0,
        iterations=50,
        x_scale=2.5,
        y_scale=0.3,
        julia_cx=1.5,
        julia_cy=-1.5,
    )
    assert ml_score(near, result.model) > ml_score(far, result.model)
