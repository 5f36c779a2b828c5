"""
Model lifecycle: train, persist, load, and decide when to retrain.

The persisted scorer lives under two keys of a ``KeyValueStore``:

  ``<model_key>``           — ``{schemaVersion, trainedAt, favoriteCount,
                               backend, ...backend blob}``
  ``<model_key>_metadata``  — ``{schemaVersion, trainedAt,
                               favoriteCountAtTraining}``

Both are written in one ``set_many`` call.  A reader trusts the metadata
only when a model blob with the same ``schemaVersion`` and ``trainedAt``
sits beside it, so a half-written or orphaned record reads as "no model".

Retrain policy
--------------
A model is stale when any of these hold:
  - no valid metadata (never trained, schema bump, orphaned record);
  - favorites grew past ``favorite_count_at_training × growth_factor``;
  - it is older than ``max_age_days``.

Failure policy
--------------
Nothing here raises to the caller.  Missing backend, schema mismatch,
unparseable blobs and storage errors all become ``None`` / ``False`` with
the cause logged; discovery then runs on the heuristic alone.
"""

from __future__ import annotations

import json
import logging
import random
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from fractal_discovery.config import AppConfig
from fractal_discovery.ml.lgbm_scorer import LightGBMScorer
from fractal_discovery.ml.scorer import BackendUnavailableError, Scorer, deserialize_scorer
from fractal_discovery.ml.trainer import ScorerFactory, train_model
from fractal_discovery.models.fractal import FavoriteRecord
from fractal_discovery.models.meta import ModelMetadata, ModelStatus, TrainingResult
from fractal_discovery.storage.favorites import FavoritesRepository
from fractal_discovery.storage.kv_store import KeyValueStore
from fractal_discovery.utils.time_utils import age_days, utcnow

logger = logging.getLogger(__name__)


class ModelLifecycleManager:
    """Owns the persisted scorer and its retrain policy.

    Args:
        store:          Key-value store holding the model and metadata.
        favorites:      Favorites repository (training positives, growth trigger).
        config:         Application config (storage keys, training, retrain).
        scorer_factory: Builds an untrained scorer from ``config.training``.
        clock:          Returns "now" as a UTC datetime.
        rng:            Random source for synthetic negatives.
    """

    def __init__(
        self,
        store: KeyValueStore,
        favorites: FavoritesRepository,
        config: AppConfig,
        scorer_factory: ScorerFactory = LightGBMScorer.from_config,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.favorites = favorites
        self.config = config
        self._scorer_factory = scorer_factory
        self._clock = clock
        self._rng = rng if rng is not None else random.Random(config.training.seed)

    @property
    def schema_version(self) -> int:
        return self.config.training.schema_version

    # ── Training ──────────────────────────────────────────────────────────────

    def train_model(
        self,
        favorites: Optional[Sequence[FavoriteRecord]] = None,
    ) -> Optional[TrainingResult]:
        """Train a fresh scorer on ``favorites`` (default: the stored list)."""
        if favorites is None:
            favorites = self._load_favorites()
        return train_model(
            favorites,
            self.config.training,
            scorer_factory=self._scorer_factory,
            rng=self._rng,
        )

    # ── Persistence ───────────────────────────────────────────────────────────

    def save_model(self, model: Scorer, favorite_count: Optional[int] = None) -> bool:
        """Persist ``model`` and its metadata atomically.

        Args:
            model:          A fitted scorer.
            favorite_count: Favorites the model was trained on; read from the
                            favorites store when omitted.

        Returns:
            ``True`` on success; ``False`` (logged) on any failure.
        """
        try:
            if favorite_count is None:
                favorite_count = self.favorites.count()
            metadata = ModelMetadata.create(
                schema_version=self.schema_version,
                trained_at=self._clock(),
                favorite_count=favorite_count,
            )
            blob: dict[str, Any] = {
                **model.serialize(),
                "schemaVersion": metadata.schema_version,
                "trainedAt":     metadata.trained_at_ms,
                "favoriteCount": metadata.favorite_count_at_training,
            }
            self.store.set_many({
                self.config.storage.model_key:    json.dumps(blob),
                self.config.storage.metadata_key: json.dumps(metadata.to_storage_dict()),
            })
        except Exception as exc:
            logger.error("Failed to save model: %s", exc, exc_info=True)
            return False

        logger.info(
            "Model saved under '%s' (schema v%d, %d favorites)",
            self.config.storage.model_key, metadata.schema_version, favorite_count,
        )
        return True

    def load_model(self) -> Optional[Scorer]:
        """Revive the persisted scorer, or ``None`` if absent or unusable."""
        blob = self._read_model_blob()
        if blob is None:
            return None

        version = blob.get("schemaVersion")
        if version != self.schema_version:
            logger.info(
                "Persisted model schema v%s does not match v%d; discarding.",
                version, self.schema_version,
            )
            return None

        try:
            return deserialize_scorer(blob)
        except BackendUnavailableError as exc:
            logger.warning("Cannot load persisted model: %s", exc)
        except Exception as exc:
            logger.error("Failed to deserialize persisted model: %s", exc, exc_info=True)
        return None

    def read_metadata(self) -> Optional[ModelMetadata]:
        """Return metadata only when it matches a persisted, compatible model."""
        raw = self._read_raw(self.config.storage.metadata_key)
        if not raw:
            return None

        try:
            metadata = ModelMetadata.model_validate(json.loads(raw))
        except (TypeError, ValueError) as exc:
            logger.warning("Unreadable model metadata: %s", exc)
            return None

        if metadata.schema_version != self.schema_version:
            return None

        blob = self._read_model_blob()
        if (
            blob is None
            or blob.get("schemaVersion") != metadata.schema_version
            or blob.get("trainedAt") != metadata.trained_at_ms
        ):
            logger.info("Model metadata has no matching model blob; ignoring.")
            return None

        return metadata

    def _read_raw(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except Exception as exc:
            logger.error("Failed to read '%s' from storage: %s", key, exc)
            return None

    def _read_model_blob(self) -> Optional[dict[str, Any]]:
        raw = self._read_raw(self.config.storage.model_key)
        if not raw:
            return None
        try:
            blob = json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Unreadable model blob: %s", exc)
            return None
        return blob if isinstance(blob, dict) else None

    def _load_favorites(self) -> list[FavoriteRecord]:
        try:
            return self.favorites.get_favorites()
        except Exception as exc:
            logger.error("Failed to read favorites from storage: %s", exc)
            return []

    # ── Retrain policy ────────────────────────────────────────────────────────

    def should_retrain_model(self, favorite_count: Optional[int] = None) -> bool:
        """True when the persisted model is missing, outgrown, or too old."""
        metadata = self.read_metadata()
        if metadata is None:
            return True

        if favorite_count is None:
            favorite_count = len(self._load_favorites())

        retrain = self.config.retrain
        grew = favorite_count > metadata.favorite_count_at_training * retrain.growth_factor
        too_old = age_days(metadata.trained_at, self._clock()) > retrain.max_age_days

        if grew or too_old:
            logger.debug(
                "Retrain needed: grew=%s (%d vs %d at training), too_old=%s",
                grew, favorite_count, metadata.favorite_count_at_training, too_old,
            )
        return grew or too_old

    def initialize_model(self) -> Optional[Scorer]:
        """Return a ready scorer: the persisted one if fresh, else a new one.

        When retraining is needed but yields nothing (too few favorites,
        backend missing, fitting failed), the persisted model is kept even if
        stale; with no persisted model the result is ``None``.
        """
        favorites = self._load_favorites()
        needs_retrain = self.should_retrain_model(len(favorites))
        loaded = self.load_model()

        if loaded is not None and not needs_retrain:
            logger.debug("Using persisted model.")
            return loaded

        logger.info("Training new scorer from %d favorites...", len(favorites))
        result = self.train_model(favorites)
        if result is not None:
            self.save_model(result.model, favorite_count=len(favorites))
            return result.model

        if loaded is not None:
            logger.info("Retraining produced no model; keeping the persisted one.")
        return loaded

    # ── Status ────────────────────────────────────────────────────────────────

    def model_status(self) -> ModelStatus:
        """Operator summary of the persisted model and retrain policy."""
        count = len(self._load_favorites())
        return ModelStatus(
            metadata=self.read_metadata(),
            favorite_count=count,
            should_retrain=self.should_retrain_model(count),
            backend_available=self._scorer_factory(self.config.training).is_available(),
        )
