"""Constants for the lobby tracker."""

import os

# Roster
MAX_OPPONENTS = 7
DEFAULT_PLAYER_NAME = "Player"
FIRST_MATCH = 1

# Match outcomes (player's perspective)
OUTCOME_WIN = "win"
OUTCOME_LOSS = "loss"
OUTCOMES = (OUTCOME_WIN, OUTCOME_LOSS)

# Persistence
SCHEMA_VERSION = 2
STORAGE_KEY = os.environ.get("LOBBY_TRACKER_STORAGE_KEY", "lobby-state")
DEFAULT_DATA_DIR = os.path.join(os.path.expanduser("~"), ".lobby-tracker")
