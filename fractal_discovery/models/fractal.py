"""
Fractal view models: ``FractalConfig``, ``FavoriteRecord`` and ``Candidate``.

``FractalConfig`` is the one place defaults are applied.  Every field is
optional at the call boundary (``FractalConfig()`` is the default Mandelbrot
view) and every field has a concrete value inside the engine — downstream
code never checks for a missing offset or Julia constant.

Persisted favorites use the camelCase layout of the gallery's storage
(``fractalType``, ``offsetX``, ``juliaCX`` ...).  Field aliases map that
layout onto snake_case attributes; ``populate_by_name`` lets Python callers
use either spelling.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fractal_discovery.utils.time_utils import from_epoch_ms, to_epoch_ms


class FractalConfig(BaseModel):
    """One renderable fractal view.

    Attributes:
        fractal_type: Fractal identifier, e.g. ``"mandelbrot"``.
        zoom: Magnification (> 0); 1.0 shows the canonical full view.
        offset_x: View centre, real axis.
        offset_y: View centre, imaginary axis.
        iterations: Maximum iteration count (> 0).
        color_scheme: Palette identifier, e.g. ``"classic"``.
        x_scale: Horizontal stretch (> 0).
        y_scale: Vertical stretch (> 0).
        julia_cx: Julia constant, real part (Julia-family types only).
        julia_cy: Julia constant, imaginary part (Julia-family types only).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        allow_inf_nan=False,
        extra="ignore",
    )

    fractal_type: str = Field(default="mandelbrot", alias="fractalType")
    zoom: float = Field(default=1.0, gt=0.0)
    offset_x: float = Field(default=0.0, alias="offsetX")
    offset_y: float = Field(default=0.0, alias="offsetY")
    iterations: int = Field(default=125, gt=0)
    color_scheme: str = Field(default="classic", alias="colorScheme")
    x_scale: float = Field(default=1.0, gt=0.0, alias="xScale")
    y_scale: float = Field(default=1.0, gt=0.0, alias="yScale")
    julia_cx: float = Field(default=0.0, alias="juliaCX")
    julia_cy: float = Field(default=0.0, alias="juliaCY")

    @field_validator("fractal_type")
    @classmethod
    def validate_fractal_type(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("fractal_type must be a non-empty identifier.")
        return v

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FractalConfig":
        """Build a config from a loosely-typed mapping (stored favorite, JSON).

        ``None`` values are dropped so the documented defaults apply, and
        unknown keys (``id``, ``name``, ``timestamp`` ...) are ignored.

        Raises:
            pydantic.ValidationError: If a present value is out of range.
        """
        cleaned = {k: v for k, v in data.items() if v is not None}
        return cls.model_validate(cleaned)

    def to_storage_dict(self) -> dict[str, Any]:
        """Return the camelCase dict used in persisted records."""
        return self.model_dump(by_alias=True)


class FavoriteRecord(BaseModel):
    """A user-favorited view plus its creation metadata.

    Read-only input to the trainer (each favorite is one positive example).

    Attributes:
        id: Unique identifier, ``fav_<epoch ms>_<9 chars>``.
        name: Display name.
        created_at: UTC creation time (stored as epoch ms ``timestamp``).
        config: The favorited view.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    created_at: datetime
    config: FractalConfig

    @classmethod
    def from_storage_dict(cls, data: Mapping[str, Any]) -> "FavoriteRecord":
        """Parse the flat stored layout ``{id, name, timestamp, ...config}``."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            created_at=from_epoch_ms(data.get("timestamp") or 0),
            config=FractalConfig.from_mapping(data),
        )

    def to_storage_dict(self) -> dict[str, Any]:
        """Return the flat stored layout."""
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": to_epoch_ms(self.created_at),
            **self.config.to_storage_dict(),
        }


@dataclass(frozen=True)
class Candidate:
    """A sampled, scored view considered during one discovery call.

    Never persisted.

    Attributes:
        config: The sampled view.
        score:  Hybrid relevance score in [0, 1].
    """

    config: FractalConfig
    score: float

    def to_dict(self) -> dict[str, Any]:
        """Flat JSON-safe form: the config fields plus ``score``."""
        return {**self.config.to_storage_dict(), "score": self.score}
