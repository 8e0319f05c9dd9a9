"""Local file blob store: one JSON file per key in a data directory."""

from __future__ import annotations

import logging
import os
import re
import tempfile

from src.utils.constants import DEFAULT_DATA_DIR

logger = logging.getLogger("lobbytracker.file_store")

_data_dir = os.environ.get("LOBBY_TRACKER_DATA_DIR", DEFAULT_DATA_DIR)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class FileBlobStore:
    def __init__(self, directory: str | None = None) -> None:
        self._directory = directory or _data_dir

    @property
    def directory(self) -> str:
        return self._directory

    def path_for(self, key: str) -> str:
        if not _SAFE_KEY.match(key) or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self._directory, f"{key}.json")

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def put(self, key: str, blob: str) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        path = self.path_for(key)
        os.makedirs(self._directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{key}.", suffix=".tmp", dir=self._directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.warning("Could not remove temp file %s", tmp_path)
            raise

    def delete(self, key: str) -> None:
        try:
            os.remove(self.path_for(key))
        except FileNotFoundError:
            pass
