"""
Discovery orchestrator: generate → score → filter → rank.

discover_interesting_fractals() is the engine's one search entry point:

1. Sample ``candidate_count`` views of ``fractal_type`` within the bounds
   returned by ``bounds_provider``.
2. Score each with ``hybrid_score`` (heuristic short-circuit, then model).
3. Drop candidates scoring below ``min_score``.
4. Sort by score descending (ties keep sampling order) and keep ``top_k``.

With ``model=None`` the search runs on the heuristic alone; a predicate that
accepts a reasonable share of views still yields results.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from fractal_discovery.config import ScoringConfig
from fractal_discovery.discovery.bounds import BoundsProvider, default_bounds_provider
from fractal_discovery.discovery.candidates import generate_candidates
from fractal_discovery.discovery.scoring import ViewPredicate, hybrid_score
from fractal_discovery.ml.scorer import Scorer
from fractal_discovery.models.fractal import Candidate

logger = logging.getLogger(__name__)


def rank_candidates(
    scored: list[Candidate],
    top_k: int,
    min_score: float,
) -> list[Candidate]:
    """Filter by ``min_score``, sort descending, keep at most ``top_k``."""
    kept = [c for c in scored if c.score >= min_score]
    kept.sort(key=lambda c: c.score, reverse=True)
    return kept[:max(top_k, 0)]


def discover_interesting_fractals(
    fractal_type: str,
    predicate: Optional[ViewPredicate],
    model: Optional[Scorer],
    *,
    candidate_count: int = 100,
    top_k: int = 10,
    min_score: float = 0.5,
    bounds_provider: BoundsProvider = default_bounds_provider,
    rng: Optional[random.Random] = None,
    color_scheme: Optional[str] = None,
    iterations: Optional[int] = None,
    scoring: Optional[ScoringConfig] = None,
) -> list[Candidate]:
    """Search ``fractal_type``'s parameter space for interesting views.

    Args:
        fractal_type:    Type to explore.
        predicate:       Validity check for a view; ``None`` skips it.
        model:           Learned scorer, or ``None`` for heuristic-only search.
        candidate_count: Views to sample.
        top_k:           Maximum results.
        min_score:       Minimum hybrid score to keep.
        bounds_provider: Sampling ranges per type.
        rng:             Random source (unseeded when omitted).
        color_scheme:    Fixed palette; ``None`` varies it per candidate.
        iterations:      Fixed iteration count; ``None`` uses the bounds default.
        scoring:         Heuristic constants and blend weight.

    Returns:
        Up to ``top_k`` candidates, best first, each scoring ``>= min_score``.
    """
    rng = rng or random.Random()
    scoring = scoring or ScoringConfig()

    configs = generate_candidates(
        fractal_type,
        candidate_count,
        bounds_provider(fractal_type),
        rng,
        color_scheme=color_scheme,
        iterations=iterations,
    )

    scored = [
        Candidate(config=c, score=hybrid_score(c, predicate, model, scoring))
        for c in configs
    ]
    results = rank_candidates(scored, top_k, min_score)

    logger.debug(
        "Discovery '%s': %d candidates, %d >= %.2f, returning %d (model=%s)",
        fractal_type, len(scored),
        sum(1 for c in scored if c.score >= min_score),
        min_score, len(results), "yes" if model is not None else "no",
    )
    return results
