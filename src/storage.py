"""Local stand-in for the object store that holds uploaded server logs."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

_S3_PATH = re.compile(r"^s3://(?P<bucket>[a-z0-9][a-z0-9.\-]{1,61}[a-z0-9])/(?P<key>.+)$")


class StorageError(Exception):
    """Base class for object storage failures."""


class InvalidStoragePathError(StorageError):
    pass


class StorageObjectNotFoundError(StorageError):
    pass


class LocalLogStorage:
    """Reads log objects from a directory tree.

    ``s3://bucket/key`` maps to ``<root>/bucket/key``; other paths are taken
    relative to ``root``. Paths may never escape the root.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def resolve_path(self, path: str) -> Path:
        if not path or not path.strip():
            raise InvalidStoragePathError("Storage path must not be empty")

        value = path.strip()
        if value.startswith("s3://"):
            match = _S3_PATH.match(value)
            if match is None:
                raise InvalidStoragePathError(f"Malformed s3 path: {path!r}")
            relative = PurePosixPath(match.group("bucket")) / match.group("key")
        elif "://" in value:
            raise InvalidStoragePathError(f"Unsupported storage scheme: {path!r}")
        else:
            relative = PurePosixPath(value.lstrip("/"))

        if any(part == ".." for part in relative.parts):
            raise InvalidStoragePathError(f"Path traversal is not allowed: {path!r}")

        resolved = (self.root / relative).resolve()
        if not resolved.is_relative_to(self.root):
            raise InvalidStoragePathError(f"Path escapes the storage root: {path!r}")
        return resolved

    def download_as_lines(self, path: str) -> list[str]:
        """Return the object's lines without trailing newlines."""
        target = self.resolve_path(path)
        if not target.is_file():
            raise StorageObjectNotFoundError(f"Log object not found: {path}")

        with target.open("r", encoding="utf-8", errors="replace") as file:
            lines = file.read().splitlines()
        logger.debug("Downloaded %s lines from %s", len(lines), target)
        return lines


__all__ = [
    "InvalidStoragePathError",
    "LocalLogStorage",
    "StorageError",
    "StorageObjectNotFoundError",
]
