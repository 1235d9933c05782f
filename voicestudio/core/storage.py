from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterable
from urllib.parse import quote

log = logging.getLogger("voicestudio.storage")


class StorageError(RuntimeError):
    pass


class LocalStorage:
    """Bucket-style object storage on the local filesystem.

    Keys are relative POSIX paths (``<user_id>/<file>.mp3``). Objects are
    write-once: uploading to an existing key fails instead of replacing it.
    """

    def __init__(self, root: Path, public_url: str = "/files") -> None:
        self.root = Path(root).resolve()
        self.public_base = public_url.rstrip("/")

    def _path(self, key: str) -> Path:
        rel = PurePosixPath(key)
        if rel.is_absolute() or ".." in rel.parts or not rel.parts:
            raise StorageError(f"Invalid storage key: {key!r}")
        path = (self.root / Path(*rel.parts)).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Invalid storage key: {key!r}")
        return path

    def upload(self, key: str, data: bytes) -> int:
        path = self._path(key)
        if path.exists():
            raise StorageError(f"The resource already exists: {key}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        log.info(f"[storage] stored {key} ({len(data)} bytes)")
        return len(data)

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def public_url(self, key: str) -> str:
        return f"{self.public_base}/{quote(key)}"

    def remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._path(key).unlink(missing_ok=True)
