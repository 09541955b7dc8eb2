"""
Durable key → JSON blob storage for the metadata cache.
Absent or unreadable blobs read back as None; they are cache misses, not errors.
"""
import json
import logging
import os
import re
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def get(self, key: str) -> Optional[dict[str, Any]]: ...
    def put(self, key: str, value: dict[str, Any]) -> None: ...
    def remove(self, key: str) -> None: ...


class MemoryBlobStore:
    """Process-local blob store; values are kept as JSON text like the file store."""

    def __init__(self):
        self._blobs: dict[str, str] = {}

    def get(self, key: str) -> Optional[dict[str, Any]]:
        raw = self._blobs.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def put(self, key: str, value: dict[str, Any]) -> None:
        self._blobs[key] = json.dumps(value)

    def put_raw(self, key: str, raw: str) -> None:
        self._blobs[key] = raw

    def remove(self, key: str) -> None:
        self._blobs.pop(key, None)


class JsonFileBlobStore:
    """One JSON file per key inside `directory`."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.directory, f"{safe}.json")

    def get(self, key: str) -> Optional[dict[str, Any]]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable blob %s: %s", key, e)
            return None
        return data if isinstance(data, dict) else None

    def put(self, key: str, value: dict[str, Any]) -> None:
        path = self._path(key)
        tmp = path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(value, f, indent=2)
        os.replace(tmp, path)

    def remove(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
