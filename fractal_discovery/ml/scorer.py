"""
The trainable scorer contract.

The lifecycle manager and the hybrid scorer never touch a learning library
directly; they speak to a ``Scorer``:

  train(features, labels) -> TrainingHistory
  activate(vector)        -> list[float]   (length >= 1, first value = relevance)
  serialize()             -> dict          (JSON-safe, carries "backend")
  deserialize(blob)       -> Scorer        (classmethod)

Backends register themselves in ``SCORER_BACKENDS`` so a persisted blob can
be revived by name without the caller knowing which library wrote it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Sequence

from fractal_discovery.models.meta import TrainingHistory


class ModelNotFittedError(RuntimeError):
    """Raised when an untrained scorer is activated or serialized."""


class BackendUnavailableError(RuntimeError):
    """Raised when a scorer's learning library cannot be imported."""


class Scorer(ABC):
    """Abstract base for trainable relevance scorers.

    Subclasses must:
      1. Set ``backend_name``.
      2. Implement ``is_available``, ``train``, ``activate``, ``serialize``
         and ``deserialize``.
    """

    backend_name: ClassVar[str]

    @classmethod
    @abstractmethod
    def is_available(cls) -> bool:
        """True when the backend's library can be imported in this runtime."""

    @property
    @abstractmethod
    def is_fitted(self) -> bool:
        """True once ``train()`` succeeded or the scorer was deserialized."""

    @abstractmethod
    def train(
        self,
        features: Sequence[Sequence[float]],
        labels: Sequence[float],
    ) -> TrainingHistory:
        """Fit on a labelled dataset (1.0 = interesting, 0.0 = not)."""

    @abstractmethod
    def activate(self, vector: Sequence[float]) -> list[float]:
        """Score one feature vector; the first element is the relevance."""

    @abstractmethod
    def serialize(self) -> dict[str, Any]:
        """Return a JSON-safe dict that ``deserialize`` can revive."""

    @classmethod
    @abstractmethod
    def deserialize(cls, blob: dict[str, Any]) -> "Scorer":
        """Revive a scorer from ``serialize()`` output."""


SCORER_BACKENDS: dict[str, type[Scorer]] = {}


def register_backend(cls: type[Scorer]) -> type[Scorer]:
    """Class decorator adding a backend to ``SCORER_BACKENDS``."""
    SCORER_BACKENDS[cls.backend_name] = cls
    return cls


def deserialize_scorer(blob: dict[str, Any]) -> Scorer:
    """Revive a persisted scorer by its ``backend`` field.

    Raises:
        KeyError: If the blob names no registered backend.
        BackendUnavailableError: If the backend's library is missing.
    """
    backend = blob.get("backend")
    if backend not in SCORER_BACKENDS:
        raise KeyError(
            f"Unknown scorer backend '{backend}'. "
            f"Registered backends: {sorted(SCORER_BACKENDS)}"
        )
    return SCORER_BACKENDS[backend].deserialize(blob)
