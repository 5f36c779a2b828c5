"""
JSON export of discovery results.

The file carries the same flat camelCase layout as stored favorites plus a
``score``, so an exported view can be pasted straight back into the gallery.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from fractal_discovery.models.fractal import Candidate


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file (parent dirs created)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def build_discoveries_report(
    candidates: list[Candidate],
    fractal_type: str,
    generated_at: datetime,
    model_used: bool,
) -> dict:
    """Assemble the export document for one discovery run."""
    return {
        "fractal_type": fractal_type,
        "generated_at": generated_at.isoformat(),
        "model_used": model_used,
        "candidates": [
            {"rank": rank, **cand.to_dict()}
            for rank, cand in enumerate(candidates, start=1)
        ],
    }


def write_discoveries_json(
    candidates: list[Candidate],
    fractal_type: str,
    generated_at: datetime,
    model_used: bool,
    path: Path,
) -> Path:
    """Build the discovery report and write it to ``path``."""
    report = build_discoveries_report(candidates, fractal_type, generated_at, model_used)
    return export_to_json(report, path)
