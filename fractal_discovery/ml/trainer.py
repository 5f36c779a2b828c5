"""
Training-set construction and scorer fitting.

train_model() turns the favorites list into a labelled dataset and fits one
scorer on it.  It does not touch storage; persistence is the lifecycle
manager's job.

Design decisions
----------------
- Positives are the favorites themselves (label 1.0).  There is no
  "disliked" signal, so negatives (label 0.0) are synthesized: broad random
  views of the same fractal types, ``negative_ratio`` per favorite.
- Negatives use the fractal type of a randomly chosen favorite so the model
  learns *where* in a type's space the user lingers, not which types they
  like.
- The random source is injected (``random.Random``) so a seeded caller gets
  a reproducible dataset and therefore a reproducible model.
- Fewer than ``min_favorites`` favorites, or a missing learning backend,
  yields ``None`` rather than an exception: discovery still works on the
  heuristic alone.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Optional, Sequence, Union

from fractal_discovery.config import TrainingConfig
from fractal_discovery.features.extractor import build_feature_matrix
from fractal_discovery.ml.lgbm_scorer import LightGBMScorer
from fractal_discovery.ml.scorer import BackendUnavailableError, Scorer
from fractal_discovery.models.fractal import FavoriteRecord, FractalConfig
from fractal_discovery.models.meta import TrainingResult

logger = logging.getLogger(__name__)

ScorerFactory = Callable[[TrainingConfig], Scorer]

# ── Negative sampling ranges ──────────────────────────────────────────────────

NEGATIVE_ZOOM_MIN = 0.1
NEGATIVE_ZOOM_SPAN = 100.0
NEGATIVE_OFFSET_MIN = -2.0
NEGATIVE_OFFSET_SPAN = 4.0
NEGATIVE_ITER_MIN = 10
NEGATIVE_ITER_MAX = 399
NEGATIVE_SCALE_MIN = 0.1
NEGATIVE_SCALE_SPAN = 2.9
NEGATIVE_JULIA_MIN = -2.0
NEGATIVE_JULIA_SPAN = 4.0
NEGATIVE_COLOR_SCHEME = "classic"


def _as_config(item: Union[FavoriteRecord, FractalConfig]) -> FractalConfig:
    return item.config if isinstance(item, FavoriteRecord) else item


def random_negative_config(fractal_type: str, rng: random.Random) -> FractalConfig:
    """Sample one broad, uninformed view of ``fractal_type``."""
    return FractalConfig(
        fractal_type=fractal_type,
        zoom=NEGATIVE_ZOOM_MIN + rng.random() * NEGATIVE_ZOOM_SPAN,
        offset_x=NEGATIVE_OFFSET_MIN + rng.random() * NEGATIVE_OFFSET_SPAN,
        offset_y=NEGATIVE_OFFSET_MIN + rng.random() * NEGATIVE_OFFSET_SPAN,
        iterations=rng.randint(NEGATIVE_ITER_MIN, NEGATIVE_ITER_MAX),
        color_scheme=NEGATIVE_COLOR_SCHEME,
        x_scale=NEGATIVE_SCALE_MIN + rng.random() * NEGATIVE_SCALE_SPAN,
        y_scale=NEGATIVE_SCALE_MIN + rng.random() * NEGATIVE_SCALE_SPAN,
        julia_cx=NEGATIVE_JULIA_MIN + rng.random() * NEGATIVE_JULIA_SPAN,
        julia_cy=NEGATIVE_JULIA_MIN + rng.random() * NEGATIVE_JULIA_SPAN,
    )


def generate_negative_configs(
    favorites: Sequence[Union[FavoriteRecord, FractalConfig]],
    count: int,
    rng: random.Random,
) -> list[FractalConfig]:
    """Return ``count`` synthetic negatives typed after random favorites."""
    if not favorites:
        return []
    configs = [_as_config(f) for f in favorites]
    return [
        random_negative_config(rng.choice(configs).fractal_type, rng)
        for _ in range(count)
    ]


def build_training_set(
    favorites: Sequence[Union[FavoriteRecord, FractalConfig]],
    negative_ratio: int,
    rng: random.Random,
) -> tuple[list[list[float]], list[float]]:
    """Build ``(features, labels)``: positives first, then negatives.

    Returns:
        ``len(favorites) * (1 + negative_ratio)`` rows.
    """
    positives = [_as_config(f) for f in favorites]
    negatives = generate_negative_configs(
        positives, len(positives) * negative_ratio, rng
    )

    features = build_feature_matrix(positives + negatives)
    labels = [1.0] * len(positives) + [0.0] * len(negatives)
    return features, labels


def train_model(
    favorites: Sequence[Union[FavoriteRecord, FractalConfig]],
    config: TrainingConfig,
    scorer_factory: ScorerFactory = LightGBMScorer.from_config,
    rng: Optional[random.Random] = None,
) -> Optional[TrainingResult]:
    """Fit a fresh scorer on the favorites.

    Args:
        favorites:      Favorite records (or bare configs); each is a positive.
        config:         ``[training]`` section (minimum, ratio, hyperparameters).
        scorer_factory: Builds an untrained scorer from ``config``.
        rng:            Random source for negatives; seeded from
                        ``config.seed`` when omitted.

    Returns:
        TrainingResult, or ``None`` when there are too few favorites, the
        backend is unavailable, or fitting failed.
    """
    if len(favorites) < config.min_favorites:
        logger.info(
            "Not enough favorites to train (%d < %d); using heuristics only.",
            len(favorites), config.min_favorites,
        )
        return None

    scorer = scorer_factory(config)
    if not scorer.is_available():
        logger.warning(
            "Scorer backend '%s' is unavailable; using heuristics only.",
            scorer.backend_name,
        )
        return None

    rng = rng if rng is not None else random.Random(config.seed)
    features, labels = build_training_set(favorites, config.negative_ratio, rng)

    logger.info(
        "Training %s scorer: %d positives, %d negatives",
        scorer.backend_name, len(favorites), len(labels) - len(favorites),
    )

    try:
        history = scorer.train(features, labels)
    except BackendUnavailableError as exc:
        logger.warning("Scorer backend unavailable: %s", exc)
        return None
    except Exception as exc:
        logger.error("Scorer training failed: %s", exc, exc_info=True)
        return None

    logger.info(
        "Scorer trained: %d iterations, final error %.5f",
        history.iterations, history.error,
    )
    return TrainingResult(model=scorer, history=history)
