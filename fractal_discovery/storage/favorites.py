"""
Favorites repository — the user's saved views, the scorer's only positives.

Stored as one JSON list under ``storage.favorites_key``; each element is the
flat layout ``{id, name, timestamp, fractalType, zoom, offsetX, ...}`` so a
list written by the browser gallery is read unchanged.

Design:
  - Every mutating call is read-modify-write of the whole list.  Lists are
    small (tens to hundreds of entries) and a single key keeps them atomic.
  - Corrupt stored JSON is logged and read as an empty list; a single
    malformed entry is skipped with a warning instead of hiding the rest.
"""

from __future__ import annotations

import json
import logging
import random
import string
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from fractal_discovery.models.fractal import FavoriteRecord, FractalConfig
from fractal_discovery.storage.kv_store import KeyValueStore
from fractal_discovery.utils.time_utils import to_epoch_ms, utcnow

logger = logging.getLogger(__name__)

DEFAULT_FAVORITES_KEY = "fractalai_favorites"
MATCH_TOLERANCE = 0.001

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN = 9


class FavoritesRepository:
    """CRUD over the favorites list in a ``KeyValueStore``.

    Attributes:
        store: Backing key-value store.
        key:   Storage key holding the JSON list.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_FAVORITES_KEY,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.key = key
        self._clock = clock
        self._rng = rng or random.Random()

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_favorites(self) -> list[FavoriteRecord]:
        """Return every parseable favorite in stored order."""
        raw = self.store.get(self.key)
        if not raw:
            return []

        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Failed to load favorites from '%s': %s", self.key, exc)
            return []

        if not isinstance(entries, list):
            logger.error(
                "Favorites under '%s' are not a list (got %s); ignoring.",
                self.key, type(entries).__name__,
            )
            return []

        favorites: list[FavoriteRecord] = []
        for entry in entries:
            try:
                favorites.append(FavoriteRecord.from_storage_dict(entry))
            except (KeyError, TypeError, ValueError, ValidationError) as exc:
                logger.warning("Skipping malformed favorite %r: %s", entry, exc)
        return favorites

    def get_favorite(self, favorite_id: str) -> Optional[FavoriteRecord]:
        return next((f for f in self.get_favorites() if f.id == favorite_id), None)

    def count(self) -> int:
        return len(self.get_favorites())

    def find_matching_favorite(self, config: FractalConfig) -> Optional[FavoriteRecord]:
        """Return the first favorite showing (nearly) the same view.

        Type, color scheme and iterations must be equal; zoom and offsets
        must agree within ``MATCH_TOLERANCE``.
        """
        for fav in self.get_favorites():
            c = fav.config
            if (
                c.fractal_type == config.fractal_type
                and abs(c.zoom - config.zoom) < MATCH_TOLERANCE
                and abs(c.offset_x - config.offset_x) < MATCH_TOLERANCE
                and abs(c.offset_y - config.offset_y) < MATCH_TOLERANCE
                and c.color_scheme == config.color_scheme
                and c.iterations == config.iterations
            ):
                return fav
        return None

    # ── Writes ────────────────────────────────────────────────────────────────

    def save_favorites(self, favorites: list[FavoriteRecord]) -> None:
        """Replace the stored list."""
        payload = json.dumps([f.to_storage_dict() for f in favorites])
        self.store.set(self.key, payload)

    def add_favorite(self, config: FractalConfig, name: Optional[str] = None) -> str:
        """Append a favorite and return its new id.

        The default name is ``"Favorite N"`` where N is the new list length.
        """
        favorites = self.get_favorites()
        now = self._clock()
        favorite = FavoriteRecord(
            id=self._new_id(now),
            name=name or f"Favorite {len(favorites) + 1}",
            created_at=now,
            config=config,
        )
        favorites.append(favorite)
        self.save_favorites(favorites)
        logger.info("Added favorite %s (%s)", favorite.id, favorite.name)
        return favorite.id

    def remove_favorite(self, favorite_id: str) -> bool:
        favorites = self.get_favorites()
        remaining = [f for f in favorites if f.id != favorite_id]
        if len(remaining) == len(favorites):
            return False
        self.save_favorites(remaining)
        logger.info("Removed favorite %s", favorite_id)
        return True

    def update_favorite_name(self, favorite_id: str, name: str) -> bool:
        favorites = self.get_favorites()
        for i, fav in enumerate(favorites):
            if fav.id == favorite_id:
                favorites[i] = fav.model_copy(update={"name": name})
                self.save_favorites(favorites)
                return True
        return False

    def _new_id(self, now: datetime) -> str:
        suffix = "".join(self._rng.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LEN))
        return f"fav_{to_epoch_ms(now)}_{suffix}"
