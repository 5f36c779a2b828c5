"""
Feature extraction: ``FractalConfig`` → fixed-length normalized vector.

The vector is the only thing a scorer ever sees, so its length and order are
a contract between this module and every persisted model.  Changing either
requires a ``training.schema_version`` bump (old models are then discarded
on load rather than fed misaligned inputs).

Feature order (``FEATURE_NAMES``)
---------------------------------
  0  fractal_type_enc   ordinal of FRACTAL_TYPES / len, 0.0 = unknown    [0, 1]
  1  zoom_log           log10(zoom + 1) / 10                            [0, 1]
  2  offset_x           offset_x / 4                                    [-1, 1]
  3  offset_y           offset_y / 4                                    [-1, 1]
  4  iterations_scaled  iterations / 400                                [0, 1]
  5  color_scheme_enc   ordinal of COLOR_SCHEMES / len, 0.0 = unknown   [0, 1]
  6  x_scale            x_scale / 3                                     [0, 1]
  7  y_scale            y_scale / 3                                     [0, 1]
  8  julia_cx           julia_cx / 2                                    [-1, 1]
  9  julia_cy           julia_cy / 2                                    [-1, 1]
  10 offset_distance    hypot(offset_x, offset_y) / 4                   [0, 1]

Zoom varies over orders of magnitude, hence the log transform.  Every value
is clamped to its range so extreme views saturate instead of dominating.

This module is pure: no I/O, no randomness, no module state beyond the
constant lookup tables.
"""

from __future__ import annotations

import math
from typing import Any, Mapping

from fractal_discovery.models.fractal import FractalConfig
from fractal_discovery.taxonomy.fractal_taxonomy import COLOR_SCHEMES, FRACTAL_TYPES

FEATURE_NAMES: tuple[str, ...] = (
    "fractal_type_enc",
    "zoom_log",
    "offset_x",
    "offset_y",
    "iterations_scaled",
    "color_scheme_enc",
    "x_scale",
    "y_scale",
    "julia_cx",
    "julia_cy",
    "offset_distance",
)
FEATURE_COUNT = len(FEATURE_NAMES)

# ── Normalization constants ───────────────────────────────────────────────────

ZOOM_LOG_DIVISOR = 10.0
OFFSET_RANGE = 4.0
EXPECTED_MAX_ITERATIONS = 400.0
SCALE_RANGE = 3.0
JULIA_C_RANGE = 2.0

# ── Identifier encodings ──────────────────────────────────────────────────────
# 1-based ordinals; 0 is the reserved "unknown" bucket.

FRACTAL_TYPE_ENCODING: dict[str, int] = {
    name: i for i, name in enumerate(FRACTAL_TYPES, start=1)
}
COLOR_SCHEME_ENCODING: dict[str, int] = {
    name: i for i, name in enumerate(COLOR_SCHEMES, start=1)
}


def encode_identifier(value: str, encoding: Mapping[str, int]) -> float:
    """Map an identifier to ``ordinal / len(encoding)``; unknown → 0.0."""
    ordinal = encoding.get(value, 0)
    return ordinal / len(encoding) if encoding else 0.0


def extract_features(config: FractalConfig | Mapping[str, Any]) -> list[float]:
    """Return the 11-element normalized feature vector for a view.

    Args:
        config: A ``FractalConfig``, or a mapping in the stored favorite
            layout (converted via ``FractalConfig.from_mapping``).

    Returns:
        List of ``FEATURE_COUNT`` finite floats in ``FEATURE_NAMES`` order.
    """
    if not isinstance(config, FractalConfig):
        config = FractalConfig.from_mapping(config)

    ox, oy = config.offset_x, config.offset_y

    features = [
        encode_identifier(config.fractal_type, FRACTAL_TYPE_ENCODING),
        _clamp(math.log10(config.zoom + 1.0) / ZOOM_LOG_DIVISOR, 0.0, 1.0),
        _clamp(ox / OFFSET_RANGE, -1.0, 1.0),
        _clamp(oy / OFFSET_RANGE, -1.0, 1.0),
        _clamp(config.iterations / EXPECTED_MAX_ITERATIONS, 0.0, 1.0),
        encode_identifier(config.color_scheme, COLOR_SCHEME_ENCODING),
        _clamp(config.x_scale / SCALE_RANGE, 0.0, 1.0),
        _clamp(config.y_scale / SCALE_RANGE, 0.0, 1.0),
        _clamp(config.julia_cx / JULIA_C_RANGE, -1.0, 1.0),
        _clamp(config.julia_cy / JULIA_C_RANGE, -1.0, 1.0),
        _clamp(math.hypot(ox, oy) / OFFSET_RANGE, 0.0, 1.0),
    ]
    return features


def build_feature_matrix(configs: list[FractalConfig]) -> list[list[float]]:
    """Extract features for many configs (outer = rows, inner = features)."""
    return [extract_features(c) for c in configs]


# ── Helper ────────────────────────────────────────────────────────────────────

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
