"""Loads and saves the tracker's state as a single JSON blob."""

from __future__ import annotations

import json
import logging

from src.db.migrations import migrate
from src.db.repository import BlobStore
from src.lobby.models import LobbyState
from src.utils.constants import SCHEMA_VERSION, STORAGE_KEY

logger = logging.getLogger("lobbytracker.persistence")


def dumps(state: LobbyState) -> str:
    """Serialize state to the persisted JSON document."""
    doc = {"schemaVersion": SCHEMA_VERSION, **state.to_dict()}
    return json.dumps(doc, ensure_ascii=False)


def loads(blob: str) -> LobbyState:
    """Parse, migrate and build state from a persisted JSON document.

    Raises on malformed input; see LobbyStatePersistence.load for the
    forgiving variant.
    """
    doc = json.loads(blob)
    return LobbyState.from_dict(migrate(doc))


class LobbyStatePersistence:
    """Adapter between the lobby store and a blob store.

    Neither ``load`` nor ``save`` raises: storage and parse failures are
    logged and the caller keeps working with in-memory state.
    """

    def __init__(self, blob_store: BlobStore, key: str = STORAGE_KEY) -> None:
        self._blob_store = blob_store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> LobbyState:
        try:
            blob = self._blob_store.get(self._key)
        except Exception:
            logger.exception("Failed to read state for key %s", self._key)
            return LobbyState()

        if blob is None:
            return LobbyState()

        try:
            state = loads(blob)
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.exception("Failed to load state for key %s", self._key)
            return LobbyState()

        logger.info(
            json.dumps({
                "event": "state_loaded",
                "key": self._key,
                "has_lobby": state.current_lobby is not None,
            })
        )
        return state

    def save(self, state: LobbyState) -> bool:
        """Write state under the key. Returns False if the write failed."""
        try:
            self._blob_store.put(self._key, dumps(state))
        except Exception:
            logger.exception("Failed to save state for key %s", self._key)
            return False
        return True
