"""Metadata index protocol.

Defines the interface for any backend that maps content identifiers to
entry metadata (display name, extension, size, creation time).

Implementations:
- JSON documents on the local filesystem (default)
- Redis hashes
"""

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from template_cache.entities import CacheEntryEntity


@runtime_checkable
class MetadataIndex(Protocol):
    """Protocol for metadata index backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed. Implementations must make ``put`` appear
    atomic to concurrent ``get`` calls.

    Example:
        ```python
        index: MetadataIndex = FileMetadataIndex(root / "index")
        index: MetadataIndex = RedisMetadataIndex.create()
        ```
    """

    def get(self, identifier: str) -> CacheEntryEntity | None:
        """Look up the metadata for an identifier.

        Args:
            identifier: The content identifier

        Returns:
            The entry, or None if the identifier is not registered
        """
        ...

    def put(self, entry: CacheEntryEntity) -> None:
        """Register or replace the metadata for ``entry.identifier``.

        Args:
            entry: The entry to record
        """
        ...

    def delete(self, identifier: str) -> bool:
        """Remove the metadata for an identifier.

        Args:
            identifier: The content identifier

        Returns:
            True if an entry was removed, False if none was registered
        """
        ...

    def identifiers(self) -> Iterator[str]:
        """Iterate over all registered identifiers."""
        ...

    def count(self) -> int:
        """Count registered entries."""
        ...

    def health_check(self) -> bool:
        """Check if the backend is accessible."""
        ...
