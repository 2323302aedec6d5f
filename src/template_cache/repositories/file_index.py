"""Filesystem implementation of MetadataIndex.

Each entry is one JSON document named after its identifier. Documents are
written to a temporary file and renamed into place, so a concurrent reader
sees either the old document or the new one, never a partial write.
"""

import contextlib
import json
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

from template_cache.entities import CacheEntryEntity
from template_cache.errors import MetadataIndexError
from template_cache.hashing import is_identifier


class FileMetadataIndex:
    """JSON-document index stored beside the cached content.

    This class satisfies the MetadataIndex protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, index_dir: str | os.PathLike) -> None:
        """Initialize the index.

        Args:
            index_dir: Directory holding the JSON documents. Created if missing.
        """
        self._dir = Path(index_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, identifier: str) -> Path:
        return self._dir / f"{identifier}.json"

    def get(self, identifier: str) -> CacheEntryEntity | None:
        try:
            raw = self._path(identifier).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise MetadataIndexError(f"Could not read metadata for {identifier}: {e}") from e

        try:
            return CacheEntryEntity.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            raise MetadataIndexError(f"Corrupt metadata for {identifier}: {e}") from e

    def put(self, entry: CacheEntryEntity) -> None:
        payload = json.dumps(entry.to_dict(), indent=2)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=".", suffix=".tmp")
        except OSError as e:
            raise MetadataIndexError(f"Could not write metadata for {entry.identifier}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self._path(entry.identifier))
        except OSError as e:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise MetadataIndexError(f"Could not write metadata for {entry.identifier}: {e}") from e

    def delete(self, identifier: str) -> bool:
        try:
            self._path(identifier).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise MetadataIndexError(f"Could not delete metadata for {identifier}: {e}") from e
        return True

    def identifiers(self) -> Iterator[str]:
        for path in self._dir.glob("*.json"):
            if is_identifier(path.stem):
                yield path.stem

    def count(self) -> int:
        return sum(1 for _ in self.identifiers())

    def health_check(self) -> bool:
        return self._dir.is_dir() and os.access(self._dir, os.W_OK)
