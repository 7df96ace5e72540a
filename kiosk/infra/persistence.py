"""Storage backends holding the serialized order list."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Protocol


class StorageBackend(Protocol):
    """Protocol for storage implementations.

    A backend stores exactly one payload: the full serialized order list. Each
    ``write`` replaces whatever was stored before.
    """

    def read(self) -> Optional[bytes]:
        """Return the stored payload, or ``None`` if nothing has been stored."""

    def write(self, payload: bytes) -> None:
        """Replace the stored payload."""


class MemoryBackend:
    """Keep the payload in process memory; nothing survives a restart."""

    def __init__(self, initial: Optional[bytes] = None) -> None:
        self.payload = initial

    def read(self) -> Optional[bytes]:
        return self.payload

    def write(self, payload: bytes) -> None:
        self.payload = payload


class JsonFileBackend:
    """Store the payload in a single file on the local filesystem."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        return self.path.read_bytes()

    def write(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        temp_path.write_bytes(payload)
        os.replace(temp_path, self.path)

    def __repr__(self) -> str:
        return f"JsonFileBackend({str(self.path)!r})"


__all__ = ["StorageBackend", "MemoryBackend", "JsonFileBackend"]
