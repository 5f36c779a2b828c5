"""
Model metadata and training history — the retrain policy's inputs.

``ModelMetadata`` is the record written beside every persisted scorer.  The
retrain policy reads nothing else: when the model was trained, how many
favorites existed at the time, and which storage schema wrote it.

Wire format (JSON under ``<model_key>_metadata``)::

    {"schemaVersion": 1, "trainedAt": 1760745600000, "favoriteCountAtTraining": 12}

``TrainingHistory`` and ``TrainingResult`` are in-process only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from fractal_discovery.utils.time_utils import from_epoch_ms, to_epoch_ms

if TYPE_CHECKING:
    from fractal_discovery.ml.scorer import Scorer


class ModelMetadata(BaseModel):
    """Describes the persisted scorer.

    Attributes:
        schema_version: Storage schema that wrote the model.
        trained_at_ms: Training time, epoch milliseconds (UTC).
        favorite_count_at_training: Favorites available when trained.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: int = Field(alias="schemaVersion")
    trained_at_ms: int = Field(alias="trainedAt")
    favorite_count_at_training: int = Field(ge=0, alias="favoriteCountAtTraining")

    @property
    def trained_at(self) -> datetime:
        """Training time as a timezone-aware UTC datetime."""
        return from_epoch_ms(self.trained_at_ms)

    @classmethod
    def create(
        cls,
        schema_version: int,
        trained_at: datetime,
        favorite_count: int,
    ) -> "ModelMetadata":
        return cls(
            schema_version=schema_version,
            trained_at_ms=to_epoch_ms(trained_at),
            favorite_count_at_training=favorite_count,
        )

    def to_storage_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class TrainingHistory:
    """Observability record for one training run.

    Attributes:
        iterations: Boosting rounds actually kept.
        error:      Final training log-loss.
        n_positive: Positive (favorite) examples.
        n_negative: Synthetic negative examples.
    """

    iterations: int
    error: float
    n_positive: int = 0
    n_negative: int = 0


@dataclass
class TrainingResult:
    """A freshly trained scorer and how its training went."""

    model: "Scorer"
    history: TrainingHistory


@dataclass(frozen=True)
class ModelStatus:
    """Operator view of the persisted model (``model-status`` command)."""

    metadata: ModelMetadata | None
    favorite_count: int
    should_retrain: bool
    backend_available: bool
