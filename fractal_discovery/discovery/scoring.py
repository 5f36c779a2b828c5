"""
Hybrid relevance scoring: cheap heuristic first, learned scorer second.

Heuristic (range 0–1)
---------------------
    invalid view (predicate fails)  → invalid_score (flat, 0.1)

    otherwise:
    total = base_score                                  # 0.50
          + valid_bonus           (predicate passed)    # 0.20
          + 0.15 × zoom_pref                            # moderate zoom
          + 0.10                  (|offset| < 2.5)      # near the origin
          + 0.05 × iteration_pref                       # around 125 iterations

    zoom_pref      = 1 − |log10(zoom + 1) − 1| / 2      (peaks at zoom ≈ 9)
    iteration_pref = 1 − |iterations − 125| / 125       (peaks at 125)

    Both preferences go negative far from their peak; the total is clamped.
    Without a predicate (``None``) there is no validity check and no bonus.

Hybrid
------
    h = heuristic(config, predicate)
    h < short_circuit_threshold       → h   (the model is never consulted)
    model present                     → (1 − ml_weight) × h + ml_weight × ml
    no model                          → h

ML score
--------
    features → scorer.activate → first output, clamped to [0, 1].
    No model, an activation error, or a non-finite output all fall back to
    the predicate-less heuristic (logged).  Nothing here raises.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from fractal_discovery.config import ScoringConfig
from fractal_discovery.features.extractor import extract_features
from fractal_discovery.ml.scorer import Scorer
from fractal_discovery.models.fractal import FractalConfig

logger = logging.getLogger(__name__)

ViewPredicate = Callable[[FractalConfig], bool]

ZOOM_WEIGHT = 0.15
ORIGIN_BONUS = 0.10
ORIGIN_RADIUS = 2.5
ITERATION_WEIGHT = 0.05
PREFERRED_ITERATIONS = 125.0

_DEFAULT_SCORING = ScoringConfig()


@dataclass
class HeuristicComponents:
    """Breakdown of a heuristic score for a view that passed the predicate.

    Attributes:
        base:           Starting score.
        validity_bonus: Bonus for passing the predicate (0 without one).
        zoom_pref:      Moderate-zoom preference, peaks at 1.0.
        near_origin:    True when the view centre is within ``ORIGIN_RADIUS``.
        iteration_pref: Iteration-count preference, peaks at 1.0.
    """

    base:           float
    validity_bonus: float
    zoom_pref:      float
    near_origin:    bool
    iteration_pref: float

    @property
    def total(self) -> float:
        """Weighted total, clamped to [0, 1]."""
        raw = (
            self.base
            + self.validity_bonus
            + self.zoom_pref      * ZOOM_WEIGHT
            + (ORIGIN_BONUS if self.near_origin else 0.0)
            + self.iteration_pref * ITERATION_WEIGHT
        )
        return _clamp_unit(raw)


def heuristic_components(
    config: FractalConfig,
    passed_predicate: bool,
    scoring: ScoringConfig = _DEFAULT_SCORING,
) -> HeuristicComponents:
    """Compute the heuristic breakdown (predicate already evaluated)."""
    return HeuristicComponents(
        base=scoring.base_score,
        validity_bonus=scoring.valid_bonus if passed_predicate else 0.0,
        zoom_pref=1.0 - abs(math.log10(config.zoom + 1.0) - 1.0) / 2.0,
        near_origin=math.hypot(config.offset_x, config.offset_y) < ORIGIN_RADIUS,
        iteration_pref=1.0 - abs(config.iterations - PREFERRED_ITERATIONS) / PREFERRED_ITERATIONS,
    )


def heuristic_score(
    config: FractalConfig,
    predicate: Optional[ViewPredicate],
    scoring: ScoringConfig = _DEFAULT_SCORING,
) -> float:
    """Return the heuristic relevance of ``config`` in [0, 1]."""
    if predicate is not None:
        try:
            valid = predicate(config)
        except Exception as exc:
            logger.error("View predicate failed for %r, scoring as invalid: %s", config, exc)
            return scoring.invalid_score
        if not valid:
            return scoring.invalid_score
        return heuristic_components(config, True, scoring).total
    return heuristic_components(config, False, scoring).total


def ml_score(
    config: FractalConfig,
    model: Optional[Scorer],
    scoring: ScoringConfig = _DEFAULT_SCORING,
) -> float:
    """Return the learned relevance of ``config`` in [0, 1].

    Falls back to the predicate-less heuristic when ``model`` is ``None`` or
    activation fails.
    """
    if model is None:
        return heuristic_score(config, None, scoring)

    try:
        output = model.activate(extract_features(config))
        value = float(output[0])
    except Exception as exc:
        logger.error("ML scoring error, using heuristic: %s", exc)
        return heuristic_score(config, None, scoring)

    if not math.isfinite(value):
        logger.error("ML scorer returned non-finite output %r, using heuristic.", value)
        return heuristic_score(config, None, scoring)

    return _clamp_unit(value)


def hybrid_score(
    config: FractalConfig,
    predicate: Optional[ViewPredicate],
    model: Optional[Scorer],
    scoring: ScoringConfig = _DEFAULT_SCORING,
) -> float:
    """Blend heuristic and learned relevance into one score in [0, 1]."""
    heuristic = heuristic_score(config, predicate, scoring)
    if heuristic < scoring.short_circuit_threshold:
        return heuristic

    if model is None:
        return heuristic

    ml = ml_score(config, model, scoring)
    weight = scoring.ml_weight
    return _clamp_unit((1.0 - weight) * heuristic + weight * ml)


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))
