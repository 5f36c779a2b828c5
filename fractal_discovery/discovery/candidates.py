"""Uniform candidate sampling within a type's ``ParameterBounds``."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from fractal_discovery.discovery.bounds import ParameterBounds, Range
from fractal_discovery.models.fractal import FractalConfig
from fractal_discovery.taxonomy.fractal_taxonomy import COLOR_SCHEMES, is_julia_type


def generate_candidates(
    fractal_type: str,
    count: int,
    bounds: ParameterBounds,
    rng: random.Random,
    color_scheme: Optional[str] = None,
    iterations: Optional[int] = None,
    color_schemes: Sequence[str] = COLOR_SCHEMES,
) -> list[FractalConfig]:
    """Sample ``count`` views of ``fractal_type``.

    Args:
        fractal_type:  Type every candidate shares.
        count:         Number of candidates (>= 0).
        bounds:        Sampling ranges.
        rng:           Random source.
        color_scheme:  Fixed palette; ``None`` picks one per candidate.
        iterations:    Fixed iteration count; ``None`` uses ``bounds.iterations``.
        color_schemes: Palettes to pick from when ``color_scheme`` is ``None``.

    Returns:
        ``count`` configs.  Julia constants stay ``0`` for non-Julia types.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}.")

    julia = is_julia_type(fractal_type)
    iters = iterations if iterations is not None else bounds.iterations

    candidates: list[FractalConfig] = []
    for _ in range(count):
        candidates.append(
            FractalConfig(
                fractal_type=fractal_type,
                zoom=_uniform(rng, bounds.zoom),
                offset_x=_uniform(rng, bounds.offset_x),
                offset_y=_uniform(rng, bounds.offset_y),
                iterations=iters,
                color_scheme=color_scheme or rng.choice(list(color_schemes)),
                x_scale=_uniform(rng, bounds.x_scale),
                y_scale=_uniform(rng, bounds.y_scale),
                julia_cx=_uniform(rng, bounds.julia_cx) if julia else 0.0,
                julia_cy=_uniform(rng, bounds.julia_cy) if julia else 0.0,
            )
        )
    return candidates


def _uniform(rng: random.Random, bounds: Range) -> float:
    lo, hi = bounds
    return lo if lo == hi else rng.uniform(lo, hi)
