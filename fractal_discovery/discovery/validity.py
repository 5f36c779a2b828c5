"""
Reference validity predicate: is a view worth rendering at all?

The rendering layer normally supplies its own predicate.  This one is used
by the CLI and the test-suite; it samples the view the same cheap way the
gallery does:

  - Geometric / IFS types draw something at any view; always valid.
  - Escape-time types sample a 3×3 grid across the view and run at most
    50 iterations per point.  Mandelbrot-like types iterate ``z² + c`` with
    ``c`` = the sample point; everything else iterates from the sample point
    with the view's Julia constant.
  - A view is interesting when it is neither all blank (every point escapes
    within 5 iterations) nor all black (no point escapes), and it shows some
    structure (a mix of blank and black, or a point escaping mid-range).
  - Mandelbrot-like views farther than 2.5 from the origin below zoom 10
    are rejected outright.
"""

from __future__ import annotations

from dataclasses import dataclass

from fractal_discovery.models.fractal import FractalConfig
from fractal_discovery.taxonomy.fractal_taxonomy import GEOMETRIC_TYPES, MANDELBROT_LIKE_TYPES

GRID_SIZE = 3
MAX_CHECK_ITERATIONS = 50
QUICK_ESCAPE_ITERATIONS = 5
ESCAPE_RADIUS_SQ = 4.0
VIEW_SPAN = 4.0
FAR_FROM_ORIGIN_SQ = 2.5 ** 2
FAR_CHECK_MAX_ZOOM = 10.0


@dataclass(frozen=True)
class GridSample:
    """Per-view sample counts (3×3 grid)."""

    escaped_fast: int
    escaped_mid: int
    stayed: int

    @property
    def total(self) -> int:
        return self.escaped_fast + self.escaped_mid + self.stayed


class EscapeTimeViewValidator:
    """Callable ``(FractalConfig) -> bool`` implementing the grid check.

    Args:
        aspect_ratio: Canvas width / height the view will be rendered at.
    """

    def __init__(self, aspect_ratio: float = 1.0) -> None:
        if aspect_ratio <= 0:
            raise ValueError(f"aspect_ratio must be > 0, got {aspect_ratio}.")
        self.aspect_ratio = aspect_ratio

    def __call__(self, config: FractalConfig) -> bool:
        if config.fractal_type in GEOMETRIC_TYPES:
            return True

        mandelbrot_like = config.fractal_type in MANDELBROT_LIKE_TYPES
        if mandelbrot_like and config.zoom < FAR_CHECK_MAX_ZOOM:
            dist_sq = config.offset_x ** 2 + config.offset_y ** 2
            if dist_sq > FAR_FROM_ORIGIN_SQ:
                return False

        grid = self.sample_grid(config)
        has_variation = grid.escaped_fast > 0 and grid.stayed > 0
        has_mid_range = grid.escaped_mid > 0
        not_all_blank = grid.escaped_fast < grid.total
        not_all_black = grid.stayed < grid.total
        return (has_variation or has_mid_range) and not_all_blank and not_all_black

    def sample_grid(self, config: FractalConfig) -> GridSample:
        """Run escape-time iteration on a 3×3 grid over the view."""
        mandelbrot_like = config.fractal_type in MANDELBROT_LIKE_TYPES
        scale = VIEW_SPAN / config.zoom
        span_x = scale * self.aspect_ratio * config.x_scale
        span_y = scale * config.y_scale
        max_iter = min(MAX_CHECK_ITERATIONS, config.iterations)

        fast = mid = stayed = 0
        for i in range(GRID_SIZE):
            for j in range(GRID_SIZE):
                px = ((i + 0.5) / GRID_SIZE - 0.5) * span_x + config.offset_x
                py = ((j + 0.5) / GRID_SIZE - 0.5) * span_y + config.offset_y

                if mandelbrot_like:
                    escape = _escape_iteration(0.0, 0.0, px, py, max_iter)
                else:
                    escape = _escape_iteration(
                        px, py, config.julia_cx, config.julia_cy, max_iter
                    )

                if escape is None:
                    stayed += 1
                elif escape < QUICK_ESCAPE_ITERATIONS:
                    fast += 1
                else:
                    mid += 1

        return GridSample(escaped_fast=fast, escaped_mid=mid, stayed=stayed)


def _escape_iteration(
    zx: float, zy: float, cx: float, cy: float, max_iter: int
) -> int | None:
    """Iterate ``z ← z² + c``; return the escape step or ``None`` if bounded."""
    for k in range(max_iter):
        zx2 = zx * zx
        zy2 = zy * zy
        if zx2 + zy2 > ESCAPE_RADIUS_SQ:
            return k
        zx, zy = zx2 - zy2 + cx, 2.0 * zx * zy + cy
    return None
