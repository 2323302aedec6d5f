"""Content-addressed file store.

Every distinct byte sequence is kept exactly once, in a file named after its
SHA-256 identifier:

    <root>/objects/<id[:2]>/<id>     content
    <root>/tmp/                      in-flight writes (same filesystem)
    <root>/index/                    metadata (default FileMetadataIndex)

Content only becomes visible under its final name through ``os.replace``,
so readers never observe a partially written file and an abandoned write
leaves at worst an orphaned file in ``tmp/`` (see ``sweep_temp_files``).

Mutations (write, move, remove) hold a lock for the identifier they touch.
Operations on different identifiers never wait on each other.
"""

import contextlib
import errno
import logging
import os
import shutil
import tempfile
import threading
import time
from collections.abc import Iterator
from pathlib import Path

from template_cache.config import Settings, settings
from template_cache.entities import (
    CacheEntryEntity,
    Err,
    ErrorKind,
    Ok,
    RemovedEntry,
    Result,
    StoredEntry,
)
from template_cache.entities.cache_entry import extension_of
from template_cache.errors import InvalidEncodingError, MetadataIndexError
from template_cache.hashing import ContentHasher, decode_content, is_identifier
from template_cache.protocols import MetadataIndex

from .file_index import FileMetadataIndex
from .redis_index import RedisMetadataIndex

logger = logging.getLogger(__name__)


class _IdentifierLocks:
    """Registry of per-identifier locks.

    A lock exists only while some thread holds or waits for it, so the
    registry does not grow with the number of identifiers ever seen.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, list[int]]] = {}

    @contextlib.contextmanager
    def hold(self, identifier: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.setdefault(identifier, (threading.Lock(), [0]))
            users[0] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                users[0] -= 1
                if users[0] == 0:
                    del self._locks[identifier]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class FileCacheStore:
    """Content-addressed cache of templates and rendered reports.

    All public operations return a ``Result``: ``Ok`` with a payload, or
    ``Err`` with an ``ErrorKind`` and a detail message. Expected failures
    never raise.

    Example:
        ```python
        store = FileCacheStore("/var/cache/templates")

        result = store.write("aGVsbG8=", "a.txt", "base64")
        if result.success:
            identifier = result.value.identifier
            store.read(identifier)  # Ok(value=b"hello")
        ```
    """

    def __init__(
        self,
        root_dir: str | os.PathLike,
        index: MetadataIndex | None = None,
        hasher: ContentHasher | None = None,
    ) -> None:
        """Initialize the store, creating its directories if needed.

        Args:
            root_dir: Root directory of the cache.
            index: Metadata index. Defaults to a FileMetadataIndex under ``root_dir/index``.
            hasher: Content hasher. Defaults to ContentHasher().
        """
        self._root = Path(root_dir).resolve()
        self._objects_dir = self._root / "objects"
        self._tmp_dir = self._root / "tmp"
        self._objects_dir.mkdir(parents=True, exist_ok=True)
        self._tmp_dir.mkdir(parents=True, exist_ok=True)

        self._index = index if index is not None else FileMetadataIndex(self._root / "index")
        self._hasher = hasher or ContentHasher()
        self._locks = _IdentifierLocks()

    @classmethod
    def create(cls, config: Settings | None = None) -> "FileCacheStore":
        """Factory method to create a store from settings.

        Uses ``cache_dir`` as the root and picks the metadata index from
        ``index_backend``.

        Args:
            config: Settings to use. If None, uses the global settings.

        Returns:
            Configured FileCacheStore
        """
        config = config or settings
        index: MetadataIndex
        if config.index_backend == "redis":
            index = RedisMetadataIndex.create(config)
        else:
            index = FileMetadataIndex(Path(config.cache_dir) / "index")
        return cls(config.cache_dir, index=index)

    def object_path(self, identifier: str) -> Path:
        """Location of the content file for an identifier."""
        return self._objects_dir / identifier[:2] / identifier

    def write(
        self,
        content: bytes | str,
        display_name: str,
        encoding: str | None = "binary",
        overwrite: bool = False,
    ) -> Result[StoredEntry]:
        """Store content under its identifier.

        If the identifier is already registered and ``overwrite`` is False,
        nothing is written and the existing entry is returned. With
        ``overwrite`` the content file and metadata are replaced.

        Args:
            content: Raw bytes, or text in ``encoding``
            display_name: Original filename of the content
            encoding: Encoding of text content (base64, hex, utf8, ascii, latin1, binary)
            overwrite: Replace an existing entry instead of reusing it

        Returns:
            Ok(StoredEntry), or Err with INVALID_INPUT, INVALID_ENCODING or STORAGE_FAILURE
        """
        if not display_name or not display_name.strip():
            return Err(ErrorKind.INVALID_INPUT, "Display name not provided.")

        try:
            data = decode_content(content, encoding)
        except InvalidEncodingError as e:
            return Err(ErrorKind.INVALID_ENCODING, e.message)

        if not data:
            return Err(ErrorKind.INVALID_INPUT, "Content is empty.")

        identifier = self._hasher.hash_bytes(data)
        target = self.object_path(identifier)

        with self._locks.hold(identifier):
            try:
                existing = self._index.get(identifier)
            except MetadataIndexError as e:
                return self._storage_failure(identifier, e)

            if existing is not None and not overwrite:
                if target.exists():
                    logger.debug("Content %s already cached as %s", identifier, existing.display_name)
                    return Ok(StoredEntry(existing, created=False))
                logger.warning("Entry %s is registered but its content is missing, re-persisting", identifier)

            try:
                self._persist(data, target)
                entry = self._new_entry(identifier, display_name, target, len(data))
                self._index.put(entry)
            except (OSError, MetadataIndexError) as e:
                return self._storage_failure(identifier, e)

        logger.info("Stored %s (%d bytes) as %s", display_name, entry.size, identifier)
        return Ok(StoredEntry(entry, created=True))

    def move(self, source_path: str | os.PathLike, display_name: str) -> Result[StoredEntry]:
        """Adopt a file that is already on disk into the cache.

        The source is hashed in chunks and then renamed into place; it is
        never read into memory whole. If the content is already cached the
        source is deleted and the existing entry is returned. An empty source
        is deleted and rejected, as ``write`` rejects empty content.

        Args:
            source_path: Path of the file to adopt (e.g. a finished upload)
            display_name: Original filename of the content

        Returns:
            Ok(StoredEntry), or Err with INVALID_INPUT, SOURCE_NOT_FOUND or STORAGE_FAILURE
        """
        if not display_name or not display_name.strip():
            return Err(ErrorKind.INVALID_INPUT, "Display name not provided.")

        source = Path(source_path)
        try:
            if source.stat().st_size == 0:
                self._discard(source)
                return Err(ErrorKind.INVALID_INPUT, "Content is empty.")
            identifier = self._hasher.hash_file(source)
        except FileNotFoundError:
            return Err(ErrorKind.SOURCE_NOT_FOUND, f"Source file {source} not found.")
        except OSError as e:
            return Err(ErrorKind.STORAGE_FAILURE, f"Could not read source file {source}: {e}")

        target = self.object_path(identifier)

        with self._locks.hold(identifier):
            try:
                existing = self._index.get(identifier)
            except MetadataIndexError as e:
                return self._storage_failure(identifier, e)

            if existing is not None and target.exists():
                self._discard(source)
                logger.debug("Content %s already cached as %s", identifier, existing.display_name)
                return Ok(StoredEntry(existing, created=False))

            try:
                size = self._relocate(source, target)
                entry = self._new_entry(identifier, display_name, target, size)
                self._index.put(entry)
            except FileNotFoundError:
                return Err(ErrorKind.SOURCE_NOT_FOUND, f"Source file {source} disappeared before it was stored.")
            except (OSError, MetadataIndexError) as e:
                return self._storage_failure(identifier, e)

        logger.info("Moved %s (%d bytes) into cache as %s", display_name, entry.size, identifier)
        return Ok(StoredEntry(entry, created=True))

    def find(self, identifier: str) -> Result[CacheEntryEntity]:
        """Look up entry metadata without touching the content.

        Returns:
            Ok(CacheEntryEntity), or Err with NOT_FOUND or STORAGE_FAILURE
        """
        if not is_identifier(identifier):
            return Err(ErrorKind.NOT_FOUND, f"Entry {identifier} not found.")

        try:
            entry = self._index.get(identifier)
        except MetadataIndexError as e:
            return self._storage_failure(identifier, e)

        if entry is None:
            return Err(ErrorKind.NOT_FOUND, f"Entry {identifier} not found.")
        return Ok(entry)

    def read(self, identifier: str) -> Result[bytes]:
        """Load the full content of an entry.

        A registered entry whose content file is missing is reported as
        STORAGE_FAILURE; it is never recreated here. An entry removed
        between the lookup and the read is NOT_FOUND.

        Returns:
            Ok(bytes), or Err with NOT_FOUND or STORAGE_FAILURE
        """
        found = self.find(identifier)
        if not isinstance(found, Ok):
            return found

        try:
            return Ok(Path(found.value.storage_path).read_bytes())
        except FileNotFoundError as e:
            try:
                still_registered = self._index.get(identifier) is not None
            except MetadataIndexError as index_error:
                return self._storage_failure(identifier, index_error)
            if not still_registered:
                return Err(ErrorKind.NOT_FOUND, f"Entry {identifier} not found.")
            logger.error("Entry %s is registered but its content is missing: %s", identifier, e)
            return Err(ErrorKind.STORAGE_FAILURE, f"Content for {identifier} is missing or unreadable.")
        except OSError as e:
            logger.error("Entry %s is registered but its content is unreadable: %s", identifier, e)
            return Err(ErrorKind.STORAGE_FAILURE, f"Content for {identifier} is missing or unreadable.")

    def remove(self, identifier: str) -> Result[RemovedEntry]:
        """Delete an entry's metadata and its content file.

        The metadata is purged first. If the content file then cannot be
        deleted the call still succeeds, with ``warning`` set on the result.

        Returns:
            Ok(RemovedEntry), or Err with NOT_FOUND or STORAGE_FAILURE
        """
        if not is_identifier(identifier):
            return Err(ErrorKind.NOT_FOUND, f"Entry {identifier} not found.")

        with self._locks.hold(identifier):
            try:
                entry = self._index.get(identifier)
                if entry is None:
                    return Err(ErrorKind.NOT_FOUND, f"Entry {identifier} not found.")
                self._index.delete(identifier)
            except MetadataIndexError as e:
                return self._storage_failure(identifier, e)

            warning = None
            try:
                Path(entry.storage_path).unlink()
            except FileNotFoundError:
                warning = f"Content file for {identifier} was already missing."
                logger.warning("Removed entry %s had no content file on disk", identifier)
            except OSError as e:
                warning = f"Content file for {identifier} could not be deleted: {e}"
                logger.warning("Orphaned storage: removed entry %s but kept %s: %s", identifier, entry.storage_path, e)

        logger.info("Removed %s (%s)", identifier, entry.display_name)
        return Ok(RemovedEntry(identifier=identifier, warning=warning))

    def sweep_temp_files(self, max_age: float = 3600) -> int:
        """Delete temporary files older than ``max_age`` seconds.

        These are left behind by writes that were abandoned mid-way.

        Returns:
            Number of files deleted
        """
        cutoff = time.time() - max_age
        removed = 0
        for path in self._tmp_dir.iterdir():
            try:
                if path.is_file() and path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Could not sweep temporary file %s: %s", path, e)

        if removed:
            logger.info("Swept %d orphaned temporary files", removed)
        return removed

    def temp_path(self, prefix: str = "upload-") -> Path:
        """Reserve a new, empty temporary file on the cache filesystem.

        Files created here can later be adopted with ``move`` by rename.
        """
        fd, name = tempfile.mkstemp(dir=self._tmp_dir, prefix=prefix, suffix=".tmp")
        os.close(fd)
        return Path(name)

    def get_stats(self) -> dict:
        """Get store statistics.

        Returns:
            Dictionary with entry count, bytes on disk and root directory
        """
        total_bytes = 0
        object_files = 0
        for shard in self._objects_dir.iterdir():
            if not shard.is_dir():
                continue
            for path in shard.iterdir():
                with contextlib.suppress(FileNotFoundError):
                    total_bytes += path.stat().st_size
                    object_files += 1

        return {
            "root_dir": str(self._root),
            "total_entries": self._index.count(),
            "object_files": object_files,
            "total_bytes": total_bytes,
        }

    def health_check(self) -> bool:
        """Check that the cache root is writable and the index reachable."""
        return os.access(self._objects_dir, os.W_OK) and os.access(self._tmp_dir, os.W_OK) and self._index.health_check()

    @property
    def root_dir(self) -> Path:
        """Get the cache root directory."""
        return self._root

    @property
    def index(self) -> MetadataIndex:
        """Get the metadata index (for testing)."""
        return self._index

    def _new_entry(self, identifier: str, display_name: str, target: Path, size: int) -> CacheEntryEntity:
        return CacheEntryEntity(
            identifier=identifier,
            display_name=display_name,
            extension=extension_of(display_name),
            storage_path=str(target),
            size=size,
            created_at=time.time(),
        )

    def _persist(self, data: bytes, target: Path) -> None:
        """Write data to a temp file and rename it onto ``target``."""
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._tmp_dir, prefix=f"{target.name[:12]}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    def _relocate(self, source: Path, target: Path) -> int:
        """Rename ``source`` onto ``target``, copying first across filesystems.

        Returns:
            Size of the stored file in bytes
        """
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            fd, tmp_name = tempfile.mkstemp(dir=self._tmp_dir, prefix=f"{target.name[:12]}-", suffix=".tmp")
            os.close(fd)
            try:
                shutil.copyfile(source, tmp_name)
                os.replace(tmp_name, target)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise
            source.unlink()
        return target.stat().st_size

    def _discard(self, source: Path) -> None:
        try:
            source.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not discard duplicate upload %s: %s", source, e)

    def _storage_failure(self, identifier: str, error: Exception) -> Err:
        logger.error("Storage failure for %s: %s", identifier, error)
        return Err(ErrorKind.STORAGE_FAILURE, f"Storage failure for {identifier}: {error}")
