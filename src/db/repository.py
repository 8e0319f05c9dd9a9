"""Storage protocol for the lobby tracker's persisted state."""

from __future__ import annotations

from typing import Protocol


class BlobStore(Protocol):
    """A key-value store holding serialized state as text."""

    def get(self, key: str) -> str | None:
        ...

    def put(self, key: str, blob: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...
