"""Shared test fixtures for the lobby tracker."""

from __future__ import annotations

import pytest

from src.db.memory import InMemoryBlobStore
from src.db.persistence import LobbyStatePersistence
from src.lobby.models import Opponent
from src.lobby.store import LobbyStore

NAMES = ["Alice", "Bob", "Carol", "Dave", "Eve", "Frank", "Grace"]


class FailingBlobStore:
    """Blob store whose reads and/or writes always fail."""

    def __init__(self, fail_get: bool = False, fail_put: bool = True) -> None:
        self.fail_get = fail_get
        self.fail_put = fail_put
        self.put_attempts = 0

    def get(self, key: str) -> str | None:
        if self.fail_get:
            raise OSError("disk unavailable")
        return None

    def put(self, key: str, blob: str) -> None:
        self.put_attempts += 1
        if self.fail_put:
            raise OSError("disk full")

    def delete(self, key: str) -> None:
        pass


def make_roster(dead: set[int] | None = None) -> list[Opponent]:
    """Seven opponents named after NAMES; slots in ``dead`` are eliminated."""
    dead = dead or set()
    return [
        Opponent(id=f"opp-{i}", name=name, is_dead=i in dead)
        for i, name in enumerate(NAMES)
    ]


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def persistence(blob_store):
    return LobbyStatePersistence(blob_store, key="test-state")


@pytest.fixture
def store(persistence):
    s = LobbyStore(persistence)
    s.create_lobby("Sam")
    return s


@pytest.fixture
def full_store(store):
    for name in NAMES:
        store.add_opponent(name)
    return store
