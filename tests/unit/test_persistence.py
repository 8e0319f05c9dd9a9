"""Tests for state persistence and schema migration."""

import json
import logging

import pytest

from src.db.memory import InMemoryBlobStore
from src.db.migrations import migrate
from src.db.persistence import LobbyStatePersistence, dumps, loads
from src.lobby.models import LobbyState
from src.lobby.store import LobbyStore
from src.utils.constants import SCHEMA_VERSION
from tests.conftest import FailingBlobStore

LEGACY_DOC = {
    "currentLobby": {
        "id": "lobby-1",
        "createdAt": "2025-03-01T18:30:00.000Z",
        "opponents": [
            {"id": "a", "name": "Alice", "isDead": False, "icon": "pets", "color": "#2196f3"},
            {"id": "b", "name": "Bob", "isDead": True},
        ],
        "currentMatch": 2,
        "isComplete": False,
    },
    "opponentNameHistory": ["Alice", "Bob"],
}


def populated_store(blob_store):
    store = LobbyStore(LobbyStatePersistence(blob_store, key="k"))
    store.create_lobby("Sam")
    for name in ["Alice", "Bob", "Carol", "Dave", "Eve", "Frank", "Grace"]:
        store.add_opponent(name)
    lobby = store.current_lobby
    alice, bob = lobby.opponents[0].id, lobby.opponents[1].id
    store.record_match_outcome(alice, "win", 1)
    store.record_match_outcome(bob, "loss", 2)
    store.record_elimination(alice, bob, 3)
    store.advance_match()
    return store


class TestRoundTrip:
    def test_load_of_save_equals_state(self):
        blobs = InMemoryBlobStore()
        store = populated_store(blobs)
        assert LobbyStatePersistence(blobs, key="k").load() == store.state

    def test_empty_state(self, persistence):
        assert persistence.save(LobbyState())
        assert persistence.load() == LobbyState()

    def test_dumps_has_schema_version(self):
        doc = json.loads(dumps(LobbyState()))
        assert doc == {
            "schemaVersion": SCHEMA_VERSION,
            "currentLobby": None,
            "opponentNameHistory": [],
        }

    def test_document_shape(self):
        blobs = InMemoryBlobStore()
        populated_store(blobs)
        doc = json.loads(blobs.get("k"))
        lobby = doc["currentLobby"]
        assert set(lobby) == {
            "id", "createdAt", "playerName", "opponents",
            "currentMatch", "isComplete", "matchHistory",
        }
        alice = lobby["opponents"][0]
        assert alice["isDead"] is True
        assert alice["killedBy"] == lobby["opponents"][1]["id"]
        assert alice["eliminatedAtMatch"] == 3
        assert alice["matchResults"][0]["outcome"] == "win"
        assert lobby["opponents"][1]["killCount"] == 1

    def test_unicode_names(self):
        blobs = InMemoryBlobStore()
        store = LobbyStore(LobbyStatePersistence(blobs, key="k"))
        store.create_lobby("Zoë")
        store.add_opponent("Łukasz")
        reloaded = LobbyStatePersistence(blobs, key="k").load()
        assert reloaded.current_lobby.opponents[0].name == "Łukasz"
        assert reloaded.current_lobby.player_name == "Zoë"


class TestLoadFallback:
    def test_missing_blob(self, persistence):
        assert persistence.load() == LobbyState()

    @pytest.mark.parametrize("blob", [
        "",
        "not json",
        "[]",
        "42",
        '{"currentLobby": {"id": "x"}}',
        '{"schemaVersion": 2, "currentLobby": {"id": "x"}}',
        '{"schemaVersion": "two"}',
        '{"currentLobby": {"id": "x", "createdAt": "yesterday", "opponents": []}}',
        '{"currentLobby": {"id": "x", "createdAt": "2025-01-01T00:00:00Z",'
        ' "opponents": [{"id": "a", "name": "A", "matchResults":'
        ' [{"matchNumber": 1, "outcome": "draw", "timestamp": "2025-01-01T00:00:00Z"}]}]}}',
    ])
    def test_corrupt_blob_returns_empty(self, blob, caplog):
        persistence = LobbyStatePersistence(InMemoryBlobStore({"k": blob}), key="k")
        with caplog.at_level(logging.ERROR, logger="lobbytracker.persistence"):
            assert persistence.load() == LobbyState()
        assert "Failed to load state" in caplog.text

    def test_newer_schema_returns_empty(self):
        blob = json.dumps({"schemaVersion": SCHEMA_VERSION + 1, "currentLobby": None})
        persistence = LobbyStatePersistence(InMemoryBlobStore({"k": blob}), key="k")
        assert persistence.load() == LobbyState()

    def test_read_error_returns_empty(self, caplog):
        persistence = LobbyStatePersistence(FailingBlobStore(fail_get=True))
        with caplog.at_level(logging.ERROR, logger="lobbytracker.persistence"):
            assert persistence.load() == LobbyState()
        assert "Failed to read state" in caplog.text

    def test_loads_raises_for_tooling(self):
        with pytest.raises(ValueError):
            loads("not json")


class TestSaveFailure:
    def test_returns_false_and_logs(self, caplog):
        persistence = LobbyStatePersistence(FailingBlobStore(fail_put=True))
        with caplog.at_level(logging.ERROR, logger="lobbytracker.persistence"):
            assert persistence.save(LobbyState()) is False
        assert "Failed to save state" in caplog.text


class TestMigration:
    def test_legacy_document_backfilled(self):
        state = loads(json.dumps(LEGACY_DOC))
        lobby = state.current_lobby
        assert lobby.id == "lobby-1"
        assert lobby.player_name == "Player"
        assert lobby.match_history == ()
        assert lobby.current_match == 2
        for opp in lobby.opponents:
            assert opp.match_results == ()
            assert opp.kill_count == 0
            assert opp.killed_by is None
            assert opp.eliminated_at_match is None
        assert lobby.opponents[1].is_dead
        assert state.opponent_name_history == ("Alice", "Bob")

    def test_legacy_timestamps_parsed(self):
        lobby = loads(json.dumps(LEGACY_DOC)).current_lobby
        assert lobby.created_at.year == 2025
        assert lobby.created_at.utcoffset().total_seconds() == 0

    def test_keeps_existing_values(self):
        doc = json.loads(json.dumps(LEGACY_DOC))
        doc["currentLobby"]["playerName"] = "Sam"
        doc["currentLobby"]["opponents"][0].update({
            "killCount": 2,
            "matchResults": [
                {"matchNumber": 1, "outcome": "win", "timestamp": "2025-03-01T18:31:00Z"}
            ],
        })
        lobby = loads(json.dumps(doc)).current_lobby
        assert lobby.player_name == "Sam"
        assert lobby.opponents[0].kill_count == 2
        assert lobby.opponents[0].match_results[0].outcome == "win"

    def test_recomputes_is_complete(self):
        doc = json.loads(json.dumps(LEGACY_DOC))
        doc["currentLobby"]["isComplete"] = True
        assert loads(json.dumps(doc)).current_lobby.is_complete is False

    def test_missing_history_and_lobby(self):
        state = loads("{}")
        assert state == LobbyState()

    def test_migrate_does_not_mutate_input(self):
        doc = json.loads(json.dumps(LEGACY_DOC))
        migrate(doc)
        assert doc == LEGACY_DOC

    def test_current_version_untouched(self):
        doc = json.loads(dumps(LobbyState()))
        assert migrate(doc) == doc

    def test_migrated_version_tag(self):
        assert migrate({"currentLobby": None})["schemaVersion"] == SCHEMA_VERSION

    def test_store_loads_legacy_blob(self):
        blobs = InMemoryBlobStore({"k": json.dumps(LEGACY_DOC)})
        store = LobbyStore(LobbyStatePersistence(blobs, key="k"))
        assert store.add_opponent("Carol").success
        assert store.current_lobby.opponents[2].name == "Carol"
        saved = json.loads(blobs.get("k"))
        assert saved["schemaVersion"] == SCHEMA_VERSION
        assert "icon" not in saved["currentLobby"]["opponents"][0]
