"""In-memory blob store for testing and throwaway CLI sessions."""

from __future__ import annotations


class InMemoryBlobStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._blobs: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._blobs.get(key)

    def put(self, key: str, blob: str) -> None:
        if not isinstance(blob, str):
            raise TypeError(f"Blob must be str, got {type(blob).__name__}")
        self._blobs[key] = blob

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._blobs)
