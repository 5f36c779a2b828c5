"""
LightGBM-backed relevance scorer.

Model choice rationale
----------------------
A favorites list is tiny (5 to a few hundred views) and its features are a
handful of bounded floats.  A small gradient-boosted classifier:

  - trains in milliseconds on tens of rows;
  - needs no feature scaling beyond what the extractor already does;
  - serializes to LightGBM's plain-text model format, which round-trips
    exactly and is JSON-safe (no pickle in the key-value store).

Tiny-data settings
------------------
LightGBM's defaults assume thousands of rows (``min_data_in_leaf=20``,
``min_data_in_bin=3``); with 15 rows no split would ever qualify.  Leaves and
bins are allowed down to a single row, feature pre-filtering is disabled, and
bagging/feature sub-sampling are off so training is fully deterministic for a
given seed.

Early stop
----------
Boosting stops once training log-loss falls below ``error_threshold`` — the
favorites are already separated and further rounds only sharpen noise.
"""

from __future__ import annotations

import importlib.util
import logging
from typing import Any, Sequence

from fractal_discovery.config import TrainingConfig
from fractal_discovery.ml.scorer import (
    BackendUnavailableError,
    ModelNotFittedError,
    Scorer,
    register_backend,
)
from fractal_discovery.models.meta import TrainingHistory

logger = logging.getLogger(__name__)


@register_backend
class LightGBMScorer(Scorer):
    """Binary LightGBM classifier over feature vectors.

    Attributes:
        MODEL_VERSION: Package-level version string embedded in serialized blobs.
    """

    backend_name = "lightgbm"
    MODEL_VERSION = "v0.3.0"

    def __init__(
        self,
        n_estimators: int = 50,
        learning_rate: float = 0.1,
        num_leaves: int = 7,
        min_child_samples: int = 1,
        error_threshold: float = 0.005,
        seed: int = 42,
    ) -> None:
        self._hyperparams: dict[str, Any] = {
            "n_estimators":      n_estimators,
            "learning_rate":     learning_rate,
            "num_leaves":        num_leaves,
            "min_child_samples": min_child_samples,
            "error_threshold":   error_threshold,
            "seed":              seed,
        }
        self._booster = None       # lgb.Booster; None until train() / deserialize()
        self._n_features: int = 0
        self._history: TrainingHistory | None = None

    @classmethod
    def from_config(cls, config: TrainingConfig) -> "LightGBMScorer":
        """Build an untrained scorer from the ``[training]`` config section."""
        return cls(
            n_estimators=config.n_estimators,
            learning_rate=config.learning_rate,
            num_leaves=config.num_leaves,
            min_child_samples=config.min_child_samples,
            error_threshold=config.error_threshold,
            seed=config.seed,
        )

    # ── Properties ────────────────────────────────────────────────────────────

    @classmethod
    def is_available(cls) -> bool:
        return importlib.util.find_spec("lightgbm") is not None

    @property
    def is_fitted(self) -> bool:
        return self._booster is not None

    @property
    def history(self) -> TrainingHistory | None:
        """History of the most recent ``train()`` call (``None`` if revived)."""
        return self._history

    # ── Training ──────────────────────────────────────────────────────────────

    def train(
        self,
        features: Sequence[Sequence[float]],
        labels: Sequence[float],
    ) -> TrainingHistory:
        """Fit the booster on a labelled dataset.

        Args:
            features: One feature vector per row.
            labels:   1.0 for interesting views, 0.0 otherwise.

        Returns:
            TrainingHistory with boosting rounds kept and final train log-loss.

        Raises:
            BackendUnavailableError: LightGBM cannot be imported.
            ValueError: Empty or mismatched inputs, or only one class present.
        """
        if not self.is_available():
            raise BackendUnavailableError("lightgbm is not installed.")

        import lightgbm as lgb
        import numpy as np

        if not features or len(features) != len(labels):
            raise ValueError(
                f"LightGBMScorer.train() needs one label per row; "
                f"got {len(features)} rows and {len(labels)} labels."
            )
        if len({float(v) for v in labels}) < 2:
            raise ValueError(
                "LightGBMScorer.train() needs both positive and negative examples."
            )

        X = np.asarray(features, dtype=np.float64)
        y = np.asarray(labels, dtype=np.float64)

        params = {
            "objective":               "binary",
            "metric":                  "binary_logloss",
            "num_leaves":              self._hyperparams["num_leaves"],
            "learning_rate":           self._hyperparams["learning_rate"],
            "min_data_in_leaf":        self._hyperparams["min_child_samples"],
            "min_sum_hessian_in_leaf": 1e-3,
            "feature_fraction":        1.0,
            "bagging_fraction":        1.0,
            "bagging_freq":            0,
            "deterministic":           True,
            "force_row_wise":          True,
            "seed":                    self._hyperparams["seed"],
            "num_threads":             1,
            "verbose":                 -1,
        }

        dtrain = lgb.Dataset(
            X,
            label=y,
            params={"min_data_in_bin": 1, "feature_pre_filter": False, "verbose": -1},
            free_raw_data=False,
        )

        evals: dict[str, dict[str, list[float]]] = {}
        callbacks = [
            lgb.log_evaluation(period=0),
            lgb.record_evaluation(evals),
            _stop_below_error(self._hyperparams["error_threshold"]),
        ]

        booster = lgb.train(
            params,
            dtrain,
            num_boost_round=self._hyperparams["n_estimators"],
            valid_sets=[dtrain],
            valid_names=["train"],
            callbacks=callbacks,
        )

        self._booster = booster
        self._n_features = int(X.shape[1])

        losses = evals.get("train", {}).get("binary_logloss", [])
        iterations = booster.best_iteration or booster.current_iteration()
        self._history = TrainingHistory(
            iterations=int(iterations),
            error=float(losses[-1]) if losses else float("nan"),
            n_positive=int((y >= 0.5).sum()),
            n_negative=int((y < 0.5).sum()),
        )
        logger.debug(
            "LightGBM scorer trained: %d rounds, logloss=%.5f",
            self._history.iterations, self._history.error,
        )
        return self._history

    # ── Inference ─────────────────────────────────────────────────────────────

    def activate(self, vector: Sequence[float]) -> list[float]:
        """Return ``[p]`` where ``p`` is the predicted probability of interest.

        Raises:
            ModelNotFittedError: The scorer was never trained or revived.
            ValueError: The vector length differs from the training width.
        """
        if not self.is_fitted:
            raise ModelNotFittedError("Cannot activate an unfitted LightGBMScorer.")

        import numpy as np

        X = np.asarray([list(vector)], dtype=np.float64)
        if X.shape[1] != self._n_features:
            raise ValueError(
                f"Expected a vector of length {self._n_features}, got {X.shape[1]}."
            )
        return [float(p) for p in self._booster.predict(X)]

    # ── Persistence ───────────────────────────────────────────────────────────

    def serialize(self) -> dict[str, Any]:
        """Return the JSON-safe blob (LightGBM text model + hyperparameters).

        Raises:
            ModelNotFittedError: If the scorer has not been trained.
        """
        if not self.is_fitted:
            raise ModelNotFittedError("Cannot serialize an unfitted LightGBMScorer.")

        return {
            "backend":       self.backend_name,
            "model_version": self.MODEL_VERSION,
            "n_features":    self._n_features,
            "hyperparams":   dict(self._hyperparams),
            "booster":       self._booster.model_to_string(),
        }

    @classmethod
    def deserialize(cls, blob: dict[str, Any]) -> "LightGBMScorer":
        """Revive a scorer from ``serialize()`` output.

        Raises:
            BackendUnavailableError: LightGBM cannot be imported.
            KeyError: The blob has no ``booster`` text.
        """
        if not cls.is_available():
            raise BackendUnavailableError("lightgbm is not installed.")

        import lightgbm as lgb

        inst = cls(**blob.get("hyperparams", {}))
        inst._booster = lgb.Booster(model_str=blob["booster"])
        inst._n_features = int(blob.get("n_features") or inst._booster.num_feature())
        logger.debug(
            "LightGBM scorer revived (model_version=%s, features=%d)",
            blob.get("model_version"), inst._n_features,
        )
        return inst


def _stop_below_error(threshold: float):
    """LightGBM callback: stop once every training metric is below ``threshold``."""
    import lightgbm as lgb

    def _callback(env) -> None:
        results = env.evaluation_result_list or []
        if results and all(item[2] < threshold for item in results):
            raise lgb.callback.EarlyStopException(env.iteration, results)

    _callback.order = 30  # after record_evaluation (order 20)
    return _callback
