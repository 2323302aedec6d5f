"""Cache entry domain entity."""

import os
from dataclasses import dataclass


def extension_of(display_name: str) -> str:
    """Return the lower-cased extension of a filename, without the dot."""
    return os.path.splitext(display_name)[1].lstrip(".").lower()


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a file held in the content-addressed cache.

    Attributes:
        identifier: SHA-256 hex digest of the content
        display_name: Original filename (not part of the identity)
        extension: Extension derived from display_name, without the dot
        storage_path: Location of the content file on disk
        size: Content size in bytes
        created_at: When the entry was persisted (Unix timestamp)
    """

    identifier: str
    display_name: str
    extension: str
    storage_path: str
    size: int
    created_at: float

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntryEntity":
        return cls(
            identifier=str(data["identifier"]),
            display_name=str(data["display_name"]),
            extension=str(data.get("extension") or extension_of(str(data["display_name"]))),
            storage_path=str(data["storage_path"]),
            size=int(data["size"]),
            created_at=float(data["created_at"]),
        )

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "display_name": self.display_name,
            "extension": self.extension,
            "storage_path": self.storage_path,
            "size": self.size,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class StoredEntry:
    """Outcome of a write or move.

    ``created`` is False when the content was already cached and the call
    was de-duplicated onto the existing entry.
    """

    entry: CacheEntryEntity
    created: bool

    @property
    def identifier(self) -> str:
        return self.entry.identifier


@dataclass(frozen=True)
class RemovedEntry:
    """Outcome of a remove.

    ``warning`` is set when the metadata was purged but the content file
    could not be deleted, leaving orphaned storage behind.
    """

    identifier: str
    warning: str | None = None
