"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local env overrides (gitignored)
  4. Environment variables        — ``FRACTAL_DISCOVERY_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The lifecycle manager, the discovery manager and every CLI command receive an
``AppConfig`` instance — never raw dicts or env var lookups scattered
through the codebase.  Every threshold of the retrain policy and the hybrid
blend lives here rather than as a literal in the scoring code.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class StorageConfig(BaseModel):
    """Key-value persistence settings (SQLite file + storage keys)."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/fractal_discovery.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000
    model_key: str = "fractalai_ml_model"
    favorites_key: str = "fractalai_favorites"

    @property
    def metadata_key(self) -> str:
        """Metadata record lives beside the model blob under ``<model_key>_metadata``."""
        return f"{self.model_key}_metadata"


class TrainingConfig(BaseModel):
    """Scorer training parameters.

    ``min_favorites`` and ``negative_ratio`` shape the labelled dataset;
    the remaining fields are LightGBM hyperparameters sized for the tiny
    datasets a favorites list produces (tens of rows, not thousands).
    """

    model_config = ConfigDict(frozen=True)

    schema_version: int = 1
    min_favorites: int = 5
    negative_ratio: int = 2
    n_estimators: int = 50
    learning_rate: float = 0.1
    num_leaves: int = 7
    min_child_samples: int = 1
    error_threshold: float = 0.005
    seed: int = 42

    @field_validator("min_favorites", "negative_ratio", "n_estimators", "min_child_samples")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be >= 1, got {v}.")
        return v

    @field_validator("num_leaves")
    @classmethod
    def validate_num_leaves(cls, v: int) -> int:
        if v < 2:
            raise ValueError(f"num_leaves must be >= 2, got {v}.")
        return v


class RetrainConfig(BaseModel):
    """Retrain drift thresholds (favorite growth and model age)."""

    model_config = ConfigDict(frozen=True)

    growth_factor: float = 1.2
    max_age_days: float = 7.0

    @field_validator("growth_factor")
    @classmethod
    def validate_growth(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError(f"growth_factor must be >= 1.0, got {v}.")
        return v


class ScoringConfig(BaseModel):
    """Heuristic constants and the heuristic/ML blend."""

    model_config = ConfigDict(frozen=True)

    base_score: float = 0.5
    invalid_score: float = 0.1
    valid_bonus: float = 0.2
    short_circuit_threshold: float = 0.3
    ml_weight: float = 0.7

    @field_validator(
        "base_score", "invalid_score", "valid_bonus", "short_circuit_threshold", "ml_weight"
    )
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Scoring constants must be in [0.0, 1.0], got {v}.")
        return v


class DiscoveryConfig(BaseModel):
    """Default search sizes for discovery and "surprise me"."""

    model_config = ConfigDict(frozen=True)

    candidate_count: int = 100
    top_k: int = 10
    min_score: float = 0.5
    surprise_candidate_count: int = 200
    surprise_min_score: float = 0.4

    @field_validator("candidate_count", "top_k", "surprise_candidate_count")
    @classmethod
    def validate_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Counts must be >= 1, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/fractal_discovery.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env.  Tests build
    it directly (``AppConfig()``) to get the committed defaults without
    touching the filesystem.
    """

    model_config = ConfigDict(frozen=True)

    storage: StorageConfig = StorageConfig()
    training: TrainingConfig = TrainingConfig()
    retrain: RetrainConfig = RetrainConfig()
    scoring: ScoringConfig = ScoringConfig()
    discovery: DiscoveryConfig = DiscoveryConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply FRACTAL_DISCOVERY_* env vars to the raw config dict.

    Supported overrides:
      FRACTAL_DISCOVERY_DB_PATH    → raw["storage"]["db_path"]
      FRACTAL_DISCOVERY_LOG_LEVEL  → raw["logging"]["level"]
      FRACTAL_DISCOVERY_DEBUG      → raw["debug"]
    """
    if db_path := os.environ.get("FRACTAL_DISCOVERY_DB_PATH"):
        raw.setdefault("storage", {})["db_path"] = db_path

    if log_level := os.environ.get("FRACTAL_DISCOVERY_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("FRACTAL_DISCOVERY_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        storage=StorageConfig(**raw.get("storage", {})),
        training=TrainingConfig(**raw.get("training", {})),
        retrain=RetrainConfig(**raw.get("retrain", {})),
        scoring=ScoringConfig(**raw.get("scoring", {})),
        discovery=DiscoveryConfig(**raw.get("discovery", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
