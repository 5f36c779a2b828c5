"""
DiscoveryManager — the facade the gallery (and the CLI) talks to.

Holds the current scorer between calls so a discovery request never waits
on storage or training:

  initialize()           load or train once, at startup
  discover(type)         top-10 views (100 candidates, score >= 0.5)
  surprise_me(type)      best single view (200 candidates, score >= 0.4)
  add_favorite(config)   store it; retrain when the policy says the model
                         is stale
  trigger_retraining()   retrain now (no-op below the favorite minimum)

Defaults come from ``[discovery]`` in the app config.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from fractal_discovery.config import AppConfig
from fractal_discovery.discovery.bounds import BoundsProvider, default_bounds_provider
from fractal_discovery.discovery.orchestrator import discover_interesting_fractals
from fractal_discovery.discovery.scoring import ViewPredicate
from fractal_discovery.ml.lifecycle import ModelLifecycleManager
from fractal_discovery.ml.scorer import Scorer
from fractal_discovery.models.fractal import Candidate, FractalConfig
from fractal_discovery.storage.favorites import FavoritesRepository

logger = logging.getLogger(__name__)


class DiscoveryManager:
    """Stateful front end over the lifecycle manager and the orchestrator.

    Args:
        lifecycle:       Owns the persisted scorer.
        favorites:       Favorites repository.
        config:          Application config.
        predicate:       View validity check passed to every search.
        bounds_provider: Sampling ranges per fractal type.
        rng:             Random source for candidate sampling.
    """

    def __init__(
        self,
        lifecycle: ModelLifecycleManager,
        favorites: FavoritesRepository,
        config: AppConfig,
        predicate: Optional[ViewPredicate] = None,
        bounds_provider: BoundsProvider = default_bounds_provider,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.favorites = favorites
        self.config = config
        self.predicate = predicate
        self.bounds_provider = bounds_provider
        self._rng = rng or random.Random()
        self._model: Optional[Scorer] = None

    @property
    def model(self) -> Optional[Scorer]:
        """The scorer used by searches; ``None`` means heuristic-only."""
        return self._model

    def initialize(self) -> Optional[Scorer]:
        """Load the persisted scorer or train one; failures leave ``model=None``."""
        try:
            self._model = self.lifecycle.initialize_model()
        except Exception as exc:
            logger.error("Failed to initialize discovery: %s", exc, exc_info=True)
            self._model = None
        return self._model

    # ── Searches ──────────────────────────────────────────────────────────────

    def discover(
        self,
        fractal_type: str,
        candidate_count: Optional[int] = None,
        top_k: Optional[int] = None,
        min_score: Optional[float] = None,
        color_scheme: Optional[str] = None,
    ) -> list[Candidate]:
        """Return up to ``top_k`` interesting views of ``fractal_type``."""
        cfg = self.config.discovery
        return discover_interesting_fractals(
            fractal_type,
            self.predicate,
            self._model,
            candidate_count=cfg.candidate_count if candidate_count is None else candidate_count,
            top_k=cfg.top_k if top_k is None else top_k,
            min_score=cfg.min_score if min_score is None else min_score,
            bounds_provider=self.bounds_provider,
            rng=self._rng,
            color_scheme=color_scheme,
            scoring=self.config.scoring,
        )

    def surprise_me(
        self,
        fractal_type: str,
        candidate_count: Optional[int] = None,
        min_score: Optional[float] = None,
        color_scheme: Optional[str] = None,
    ) -> Optional[Candidate]:
        """Return the single best view from a wider search, or ``None``."""
        cfg = self.config.discovery
        results = discover_interesting_fractals(
            fractal_type,
            self.predicate,
            self._model,
            candidate_count=(
                cfg.surprise_candidate_count if candidate_count is None else candidate_count
            ),
            top_k=1,
            min_score=cfg.surprise_min_score if min_score is None else min_score,
            bounds_provider=self.bounds_provider,
            rng=self._rng,
            color_scheme=color_scheme,
            scoring=self.config.scoring,
        )
        return results[0] if results else None

    # ── Favorites & retraining ────────────────────────────────────────────────

    def add_favorite(self, config: FractalConfig, name: Optional[str] = None) -> str:
        """Store a favorite; retrain when the model is missing or stale."""
        favorite_id = self.favorites.add_favorite(config, name)
        if self.lifecycle.should_retrain_model():
            self.trigger_retraining()
        return favorite_id

    def trigger_retraining(self) -> bool:
        """Retrain and persist now.

        Returns:
            ``True`` when a new scorer replaced the current one.
        """
        favorites = self.favorites.get_favorites()
        if len(favorites) < self.config.training.min_favorites:
            logger.debug(
                "Skipping retraining: %d favorites (< %d).",
                len(favorites), self.config.training.min_favorites,
            )
            return False

        logger.info("Retraining scorer...")
        result = self.lifecycle.train_model(favorites)
        if result is None:
            return False

        self._model = result.model
        self.lifecycle.save_model(result.model, favorite_count=len(favorites))
        return True
