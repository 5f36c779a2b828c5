"""
Fractal Discovery Engine — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Open the SQLite key-value store and build the engine.
  4. Execute the action.
  5. Report result to stdout.

Install and run::

    pip install -e .
    fractal-discovery --help
    fractal-discovery validate-config
    fractal-discovery add-favorite --type mandelbrot --zoom 2.2 --offset-x -0.5 --offset-y 0.3
    fractal-discovery list-favorites
    fractal-discovery train
    fractal-discovery model-status
    fractal-discovery discover --type mandelbrot --top-k 5
    fractal-discovery surprise --type julia
"""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="fractal-discovery",
    help="Fractal Discovery Engine — find interesting fractal views from your favorites.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from fractal_discovery.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from fractal_discovery.utils.logging import configure_logging
    configure_logging(config.logging)


def _build_engine(config, db_path: Optional[str] = None, seed: Optional[int] = None):
    """Wire store → favorites → lifecycle → discovery manager."""
    from fractal_discovery.discovery.manager import DiscoveryManager
    from fractal_discovery.discovery.validity import EscapeTimeViewValidator
    from fractal_discovery.ml.lifecycle import ModelLifecycleManager
    from fractal_discovery.storage.favorites import FavoritesRepository
    from fractal_discovery.storage.kv_store import SqliteKeyValueStore

    store = SqliteKeyValueStore(
        db_path or config.storage.db_path,
        wal_mode=config.storage.wal_mode,
        busy_timeout_ms=config.storage.busy_timeout_ms,
    )
    favorites = FavoritesRepository(store, key=config.storage.favorites_key)
    lifecycle = ModelLifecycleManager(store, favorites, config)
    manager = DiscoveryManager(
        lifecycle,
        favorites,
        config,
        predicate=EscapeTimeViewValidator(),
        rng=random.Random(seed) if seed is not None else None,
    )
    return favorites, lifecycle, manager


_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")
_DB_OPTION = typer.Option(None, "--db-path", help="Override DB path from config.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.storage.db_path}")
    typer.echo(f"  Model key:         {config.storage.model_key}")
    typer.echo(f"  Schema version:    {config.training.schema_version}")
    typer.echo(f"  Min favorites:     {config.training.min_favorites}")
    typer.echo(f"  Retrain triggers:  x{config.retrain.growth_factor} growth, "
               f"{config.retrain.max_age_days}d age")
    typer.echo(f"  ML weight:         {config.scoring.ml_weight}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config is valid.")


@app.command("add-favorite")
def add_favorite(
    fractal_type: str = typer.Option("mandelbrot", "--type", help="Fractal type identifier."),
    zoom: float = typer.Option(1.0, "--zoom"),
    offset_x: float = typer.Option(0.0, "--offset-x"),
    offset_y: float = typer.Option(0.0, "--offset-y"),
    iterations: int = typer.Option(125, "--iterations"),
    color_scheme: str = typer.Option("classic", "--color-scheme"),
    x_scale: float = typer.Option(1.0, "--x-scale"),
    y_scale: float = typer.Option(1.0, "--y-scale"),
    julia_cx: float = typer.Option(0.0, "--julia-cx"),
    julia_cy: float = typer.Option(0.0, "--julia-cy"),
    name: Optional[str] = typer.Option(None, "--name", help="Display name."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Save a view as a favorite (retrains the scorer when it is stale)."""
    from pydantic import ValidationError

    from fractal_discovery.models.fractal import FractalConfig

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        view = FractalConfig(
            fractal_type=fractal_type,
            zoom=zoom,
            offset_x=offset_x,
            offset_y=offset_y,
            iterations=iterations,
            color_scheme=color_scheme,
            x_scale=x_scale,
            y_scale=y_scale,
            julia_cx=julia_cx,
            julia_cy=julia_cy,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid view: {exc}", err=True)
        raise typer.Exit(code=1)

    favorites, _, manager = _build_engine(config, db_path)

    existing = favorites.find_matching_favorite(view)
    if existing is not None:
        typer.echo(f"[SKIP] Already a favorite: {existing.id} ({existing.name})")
        return

    favorite_id = manager.add_favorite(view, name)
    typer.echo(f"[OK] Added favorite {favorite_id}")


@app.command("list-favorites")
def list_favorites(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """List stored favorites."""
    from fractal_discovery.reporting.formatters import format_favorites_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    favorites, _, _ = _build_engine(config, db_path)
    typer.echo(format_favorites_table(favorites.get_favorites()))


@app.command("remove-favorite")
def remove_favorite(
    favorite_id: str = typer.Argument(..., help="Favorite id (fav_...)."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Remove a favorite by id."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    favorites, _, _ = _build_engine(config, db_path)
    if not favorites.remove_favorite(favorite_id):
        typer.echo(f"[ERROR] No favorite with id '{favorite_id}'.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"[OK] Removed {favorite_id}")


@app.command("train")
def train(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Train the scorer on current favorites and persist it."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    favorites, lifecycle, _ = _build_engine(config, db_path)
    favs = favorites.get_favorites()
    typer.echo(f"Training on {len(favs)} favorites...")

    result = lifecycle.train_model(favs)
    if result is None:
        typer.echo(
            f"[SKIP] No model trained (need >= {config.training.min_favorites} favorites "
            "and an available backend). Discovery stays heuristic-only."
        )
        return

    typer.echo(f"  Iterations: {result.history.iterations}")
    typer.echo(f"  Final error: {result.history.error:.5f}")
    typer.echo(f"  Examples:   {result.history.n_positive} positive / "
               f"{result.history.n_negative} negative")

    if not lifecycle.save_model(result.model, favorite_count=len(favs)):
        typer.echo("[ERROR] Model trained but could not be saved.", err=True)
        raise typer.Exit(code=1)
    typer.echo("[OK] Model saved.")


@app.command("model-status")
def model_status(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show the persisted model's age, size and retrain state."""
    from fractal_discovery.reporting.formatters import format_model_status
    from fractal_discovery.utils.time_utils import utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    _, lifecycle, _ = _build_engine(config, db_path)
    typer.echo(format_model_status(lifecycle.model_status(), utcnow()))


@app.command("discover")
def discover(
    fractal_type: str = typer.Option("mandelbrot", "--type", help="Fractal type to explore."),
    candidate_count: Optional[int] = typer.Option(None, "--count", help="Candidates to sample."),
    top_k: Optional[int] = typer.Option(None, "--top-k", help="Maximum results."),
    min_score: Optional[float] = typer.Option(None, "--min-score", help="Minimum score kept."),
    color_scheme: Optional[str] = typer.Option(None, "--color-scheme", help="Fix the palette."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible sampling."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write results as JSON."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Search a fractal type for interesting views."""
    from fractal_discovery.reporting.export import write_discoveries_json
    from fractal_discovery.reporting.formatters import format_candidates_table
    from fractal_discovery.utils.time_utils import utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    _, _, manager = _build_engine(config, db_path, seed)
    manager.initialize()

    results = manager.discover(
        fractal_type,
        candidate_count=candidate_count,
        top_k=top_k,
        min_score=min_score,
        color_scheme=color_scheme,
    )
    model_used = manager.model is not None
    typer.echo(format_candidates_table(results, fractal_type, model_used))

    if export_path:
        path = write_discoveries_json(
            results, fractal_type, utcnow(), model_used, Path(export_path)
        )
        typer.echo(f"\n[OK] Exported {len(results)} candidates to {path}")


@app.command("surprise")
def surprise(
    fractal_type: str = typer.Option("mandelbrot", "--type", help="Fractal type to explore."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible sampling."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print the single best view from a wide search, as JSON."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    _, _, manager = _build_engine(config, db_path, seed)
    manager.initialize()

    best = manager.surprise_me(fractal_type)
    if best is None:
        typer.echo(f"[SKIP] No view of '{fractal_type}' passed the minimum score.")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(best.to_dict(), indent=2))


if __name__ == "__main__":
    app()
