"""
ASCII terminal formatters for CLI commands.

All formatters accept engine objects and return plain multi-line strings
suitable for ``typer.echo()``.  No third-party dependencies.

Model banner
------------
``format_model_status()`` leads with a one-line state tag::

  [FRESH]     trained 1.2d ago on 12 favorites
  [STALE]     trained 9.0d ago on 12 favorites -- retrain recommended
  [NO MODEL]  heuristic-only discovery
"""

from __future__ import annotations

from datetime import datetime

from fractal_discovery.models.fractal import Candidate, FavoriteRecord
from fractal_discovery.models.meta import ModelStatus
from fractal_discovery.utils.time_utils import age_days


def format_candidates_table(
    candidates: list[Candidate],
    fractal_type: str,
    model_used: bool,
) -> str:
    """Format ranked discovery results::

        Rank   Score       Zoom   Offset X   Offset Y  Iter  Scheme
        ------------------------------------------------------------
           1  0.8123     12.410    -0.7431     0.1102   125  ocean
    """
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Discoveries: {fractal_type} ===")
    lines.append(f"  Scoring: {'hybrid (heuristic + model)' if model_used else 'heuristic only'}")

    if not candidates:
        lines.append("")
        lines.append("  (no candidates passed the minimum score)")
        return "\n".join(lines)

    header = (
        f"  {'Rank':>4}  {'Score':>6}  {'Zoom':>9}  {'Offset X':>9}  "
        f"{'Offset Y':>9}  {'Iter':>4}  {'Scheme':<12}"
    )
    lines.append("")
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))

    for rank, cand in enumerate(candidates, start=1):
        c = cand.config
        row = (
            f"  {rank:>4}  {cand.score:>6.4f}  {c.zoom:>9.3f}  {c.offset_x:>9.4f}  "
            f"{c.offset_y:>9.4f}  {c.iterations:>4}  {c.color_scheme:<12}"
        )
        if c.julia_cx or c.julia_cy:
            row += f"  c=({c.julia_cx:+.3f}, {c.julia_cy:+.3f})"
        lines.append(row)

    return "\n".join(lines)


def format_favorites_table(favorites: list[FavoriteRecord]) -> str:
    """Format the stored favorites list."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Favorites ({len(favorites)}) ===")

    if not favorites:
        lines.append("")
        lines.append("  (no favorites yet -- add one with 'add-favorite')")
        return "\n".join(lines)

    header = (
        f"  {'ID':<28}  {'Name':<20}  {'Type':<20}  {'Zoom':>9}  "
        f"{'Offset X':>9}  {'Offset Y':>9}"
    )
    lines.append("")
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))

    for fav in favorites:
        c = fav.config
        lines.append(
            f"  {fav.id:<28}  {fav.name[:20]:<20}  {c.fractal_type[:20]:<20}  "
            f"{c.zoom:>9.3f}  {c.offset_x:>9.4f}  {c.offset_y:>9.4f}"
        )
    return "\n".join(lines)


def format_model_status(status: ModelStatus, now: datetime) -> str:
    """Format the persisted-model summary for ``model-status``."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Model Status ===")

    meta = status.metadata
    if meta is None:
        lines.append("  [NO MODEL]  heuristic-only discovery")
    else:
        age = age_days(meta.trained_at, now)
        summary = f"trained {age:.1f}d ago on {meta.favorite_count_at_training} favorites"
        if status.should_retrain:
            lines.append(f"  [STALE]     {summary} -- retrain recommended")
        else:
            lines.append(f"  [FRESH]     {summary}")
        lines.append(f"  Trained at:        {meta.trained_at.isoformat()}")
        lines.append(f"  Schema version:    {meta.schema_version}")

    lines.append(f"  Favorites now:     {status.favorite_count}")
    lines.append(f"  Retrain needed:    {'yes' if status.should_retrain else 'no'}")
    lines.append(f"  Backend available: {'yes' if status.backend_available else 'no'}")
    return "\n".join(lines)
