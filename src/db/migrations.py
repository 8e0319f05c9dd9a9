"""Schema migrations for persisted lobby state documents.

Each step upgrades a raw document by exactly one version. Documents written
before versioning existed carry no ``schemaVersion`` and are treated as
version 1.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Callable

from src.utils.constants import (
    DEFAULT_PLAYER_NAME,
    FIRST_MATCH,
    MAX_OPPONENTS,
    SCHEMA_VERSION,
)

logger = logging.getLogger("lobbytracker.migrations")


def _v1_to_v2(doc: dict) -> dict:
    """Backfill fields that older writers left out."""
    doc.setdefault("currentLobby", None)
    if doc.get("opponentNameHistory") is None:
        doc["opponentNameHistory"] = []

    lobby = doc["currentLobby"]
    if lobby is None:
        return doc
    if not isinstance(lobby, dict):
        raise ValueError("currentLobby must be an object or null")

    if not lobby.get("playerName"):
        lobby["playerName"] = DEFAULT_PLAYER_NAME
    if lobby.get("currentMatch") is None:
        lobby["currentMatch"] = FIRST_MATCH
    if lobby.get("matchHistory") is None:
        lobby["matchHistory"] = []

    opponents = lobby.get("opponents") or []
    for opp in opponents:
        if opp.get("matchResults") is None:
            opp["matchResults"] = []
        if opp.get("killCount") is None:
            opp["killCount"] = 0
        opp.setdefault("killedBy", None)
        opp.setdefault("eliminatedAtMatch", None)
        opp.setdefault("isDead", False)
        # Cosmetic fields from old frontends are not part of the model
        opp.pop("icon", None)
        opp.pop("color", None)
    lobby["opponents"] = opponents
    lobby["isComplete"] = len(opponents) == MAX_OPPONENTS
    return doc


MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    1: _v1_to_v2,
}


def get_schema_version(doc: dict) -> int:
    version = doc.get("schemaVersion", 1)
    if not isinstance(version, int) or isinstance(version, bool) or version < 1:
        raise ValueError(f"Invalid schemaVersion: {version!r}")
    return version


def migrate(doc: dict) -> dict:
    """Upgrade a raw state document to the current schema version.

    Returns a new document; the input is left untouched.
    Raises ValueError for malformed documents or versions newer than ours.
    """
    if not isinstance(doc, dict):
        raise ValueError(f"State document must be an object, got {type(doc).__name__}")

    version = get_schema_version(doc)
    if version > SCHEMA_VERSION:
        raise ValueError(
            f"State schema v{version} is newer than supported v{SCHEMA_VERSION}"
        )

    migrated = copy.deepcopy(doc)
    while version < SCHEMA_VERSION:
        step = MIGRATIONS[version]
        migrated = step(migrated)
        version += 1
        migrated["schemaVersion"] = version
        logger.info(json.dumps({"event": "schema_migrated", "to_version": version}))
    return migrated
