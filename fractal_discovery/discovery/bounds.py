"""
Per-family sampling ranges for candidate generation.

The gallery's rendering layer knows each type's natural viewport; the engine
only needs ranges to sample from.  ``default_bounds_provider`` covers every
type by family:

  family        zoom         offsets   x/y scale   julia c
  escape-time   0.5 – 100    ±2        1.0         0
  julia         0.5 – 50     ±1.5      1.0         ±2
  geometric     0.5 – 10     ±1        0.8 – 1.25  0
  other         0.5 – 100    ±2        1.0         0

Callers with finer knowledge pass their own ``BoundsProvider``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fractal_discovery.taxonomy.fractal_taxonomy import FractalFamily, family_of

Range = tuple[float, float]


@dataclass(frozen=True)
class ParameterBounds:
    """Closed sampling ranges ``(lo, hi)`` for one fractal type.

    A range with ``lo == hi`` pins the parameter.
    """

    zoom:       Range = (0.5, 100.0)
    offset_x:   Range = (-2.0, 2.0)
    offset_y:   Range = (-2.0, 2.0)
    x_scale:    Range = (1.0, 1.0)
    y_scale:    Range = (1.0, 1.0)
    julia_cx:   Range = (0.0, 0.0)
    julia_cy:   Range = (0.0, 0.0)
    iterations: int = 125

    def __post_init__(self) -> None:
        for name in ("zoom", "offset_x", "offset_y", "x_scale", "y_scale", "julia_cx", "julia_cy"):
            lo, hi = getattr(self, name)
            if lo > hi:
                raise ValueError(f"{name} range is inverted: ({lo}, {hi}).")
        for name in ("zoom", "x_scale", "y_scale"):
            if getattr(self, name)[0] <= 0:
                raise ValueError(f"{name} range must be strictly positive.")
        if self.iterations < 1:
            raise ValueError(f"iterations must be >= 1, got {self.iterations}.")


BoundsProvider = Callable[[str], ParameterBounds]

_FAMILY_BOUNDS: dict[FractalFamily, ParameterBounds] = {
    FractalFamily.ESCAPE_TIME: ParameterBounds(),
    FractalFamily.JULIA: ParameterBounds(
        zoom=(0.5, 50.0),
        offset_x=(-1.5, 1.5),
        offset_y=(-1.5, 1.5),
        julia_cx=(-2.0, 2.0),
        julia_cy=(-2.0, 2.0),
    ),
    FractalFamily.GEOMETRIC: ParameterBounds(
        zoom=(0.5, 10.0),
        offset_x=(-1.0, 1.0),
        offset_y=(-1.0, 1.0),
        x_scale=(0.8, 1.25),
        y_scale=(0.8, 1.25),
    ),
    FractalFamily.OTHER: ParameterBounds(),
}


def default_bounds_provider(fractal_type: str) -> ParameterBounds:
    """Return the family-level sampling ranges for ``fractal_type``."""
    return _FAMILY_BOUNDS[family_of(fractal_type)]
