"""
Tests for the content-addressed file store.
"""

import errno
import hashlib
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from conftest import object_files, temp_files

from template_cache.entities import ErrorKind, Ok
from template_cache.hashing import ContentHasher
from template_cache.repositories import FileCacheStore

HELLO_ID = hashlib.sha256(b"hello").hexdigest()


class ConstantHasher(ContentHasher):
    """Hasher that maps every byte sequence to one identifier."""

    IDENTIFIER = "ab" * 32

    def hash_bytes(self, data: bytes) -> str:
        return self.IDENTIFIER

    def hash_file(self, path) -> str:
        Path(path).stat()
        return self.IDENTIFIER


def test_write_find_read_remove_scenario(store):
    """Write hello as a.txt, look it up, read it, remove it."""
    written = store.write("hello", "a.txt", "utf8")
    assert isinstance(written, Ok)
    assert written.value.identifier == HELLO_ID
    assert written.value.created is True

    found = store.find(HELLO_ID)
    assert found.success
    assert found.value.identifier == HELLO_ID
    assert found.value.display_name == "a.txt"
    assert found.value.extension == "txt"
    assert found.value.size == 5

    read = store.read(HELLO_ID)
    assert read.success
    assert read.value == b"hello"

    removed = store.remove(HELLO_ID)
    assert removed.success
    assert removed.value.warning is None

    missing = store.find(HELLO_ID)
    assert not missing.success
    assert missing.kind == ErrorKind.NOT_FOUND
    assert object_files(store) == []


def test_round_trip_binary_content(store):
    data = bytes(range(256)) * 3
    written = store.write(data, "blob.bin")
    assert store.read(written.value.identifier).value == data


def test_write_twice_is_deduplicated(store):
    first = store.write(b"same", "one.docx")
    second = store.write(b"same", "two.docx")

    assert first.value.identifier == second.value.identifier
    assert first.value.created is True
    assert second.value.created is False
    assert second.value.entry.display_name == "one.docx"
    assert len(object_files(store)) == 1


def test_write_base64(store):
    written = store.write("aGVsbG8=", "a.txt", "base64")
    assert written.value.identifier == HELLO_ID
    assert store.read(HELLO_ID).value == b"hello"


def test_overwrite_replaces_existing_slot(tmp_path):
    """Two contents forced onto one identifier: overwrite decides which is kept."""
    store = FileCacheStore(tmp_path / "cache", hasher=ConstantHasher())

    first = store.write(b"first", "first.txt")
    kept = store.write(b"second", "second.txt")
    assert kept.value.identifier == first.value.identifier
    assert kept.value.created is False
    assert store.read(first.value.identifier).value == b"first"

    replaced = store.write(b"second", "second.txt", overwrite=True)
    assert replaced.success
    assert replaced.value.created is True
    assert store.read(first.value.identifier).value == b"second"
    assert store.find(first.value.identifier).value.display_name == "second.txt"
    assert len(object_files(store)) == 1


def test_overwrite_same_content_updates_name(store):
    store.write(b"content", "old.docx")
    result = store.write(b"content", "new.docx", overwrite=True)
    assert store.find(result.value.identifier).value.display_name == "new.docx"


@pytest.mark.parametrize(
    "content,encoding,kind",
    [
        (b"", "binary", ErrorKind.INVALID_INPUT),
        ("", "base64", ErrorKind.INVALID_INPUT),
        ("not base64!", "base64", ErrorKind.INVALID_ENCODING),
        ("hello", "rot13", ErrorKind.INVALID_ENCODING),
    ],
)
def test_write_rejects_bad_content(store, content, encoding, kind):
    result = store.write(content, "a.txt", encoding)
    assert not result.success
    assert result.kind == kind
    assert object_files(store) == []


def test_write_requires_display_name(store):
    result = store.write(b"x", "  ")
    assert result.kind == ErrorKind.INVALID_INPUT


def test_write_storage_failure_cleans_temp_file(store, monkeypatch):
    def disk_full(fd):
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(os, "fsync", disk_full)
    result = store.write(b"hello", "a.txt")

    assert result.kind == ErrorKind.STORAGE_FAILURE
    assert temp_files(store) == []
    assert store.find(HELLO_ID).kind == ErrorKind.NOT_FOUND


def test_write_repersists_missing_content(store):
    written = store.write(b"hello", "a.txt")
    Path(written.value.entry.storage_path).unlink()

    again = store.write(b"hello", "a.txt")
    assert again.value.created is True
    assert store.read(HELLO_ID).value == b"hello"


@pytest.mark.parametrize("identifier", ["nonexistent-id", "0" * 64, "../../etc/passwd"])
def test_missing_identifiers_are_not_found(store, identifier):
    assert store.find(identifier).kind == ErrorKind.NOT_FOUND
    assert store.read(identifier).kind == ErrorKind.NOT_FOUND
    assert store.remove(identifier).kind == ErrorKind.NOT_FOUND


def test_read_with_missing_content_is_storage_failure(store):
    written = store.write(b"hello", "a.txt")
    path = Path(written.value.entry.storage_path)
    path.unlink()

    result = store.read(HELLO_ID)
    assert result.kind == ErrorKind.STORAGE_FAILURE
    assert not path.exists()
    assert store.find(HELLO_ID).success


def test_read_after_concurrent_remove_is_not_found(store, monkeypatch):
    store.write(b"hello", "a.txt")
    real_find = store.find

    def find_then_remove(identifier):
        found = real_find(identifier)
        assert store.remove(identifier).success
        return found

    monkeypatch.setattr(store, "find", find_then_remove)

    assert store.read(HELLO_ID).kind == ErrorKind.NOT_FOUND


def test_remove_twice_fails_second_time(store):
    store.write(b"hello", "a.txt")
    assert store.remove(HELLO_ID).success
    assert store.remove(HELLO_ID).kind == ErrorKind.NOT_FOUND


def test_remove_reports_orphaned_storage(store, monkeypatch):
    written = store.write(b"hello", "a.txt")
    storage_path = Path(written.value.entry.storage_path)
    original_unlink = Path.unlink

    def stubborn_unlink(self, *args, **kwargs):
        if self == storage_path:
            raise PermissionError(errno.EACCES, "Permission denied")
        return original_unlink(self, *args, **kwargs)

    monkeypatch.setattr(Path, "unlink", stubborn_unlink)
    result = store.remove(HELLO_ID)

    assert result.success
    assert result.value.warning is not None
    assert store.find(HELLO_ID).kind == ErrorKind.NOT_FOUND
    assert storage_path.exists()


def test_move_adopts_source_file(store, tmp_path):
    source = tmp_path / "upload123"
    source.write_bytes(b"X" * 1000)

    result = store.move(source, "report.docx")

    assert result.success
    assert result.value.identifier == hashlib.sha256(b"X" * 1000).hexdigest()
    assert result.value.entry.extension == "docx"
    assert result.value.entry.size == 1000
    assert not source.exists()
    assert store.read(result.value.identifier).value == b"X" * 1000


def test_move_duplicate_discards_source(store, tmp_path):
    store.write(b"dup", "first.docx")
    source = tmp_path / "upload456"
    source.write_bytes(b"dup")

    result = store.move(source, "second.docx")

    assert result.value.created is False
    assert result.value.entry.display_name == "first.docx"
    assert not source.exists()
    assert len(object_files(store)) == 1


def test_move_rejects_empty_source(store, tmp_path):
    source = tmp_path / "empty-upload"
    source.write_bytes(b"")

    result = store.move(source, "empty.docx")

    assert result.kind == ErrorKind.INVALID_INPUT
    assert not source.exists()
    assert object_files(store) == []


def test_move_missing_source(store, tmp_path):
    result = store.move(tmp_path / "vanished", "a.docx")
    assert result.kind == ErrorKind.SOURCE_NOT_FOUND


def test_move_across_filesystems_copies(store, tmp_path, monkeypatch):
    source = tmp_path / "elsewhere"
    source.write_bytes(b"remote bytes")
    real_replace = os.replace

    def cross_device(src, dst):
        if Path(src) == source:
            raise OSError(errno.EXDEV, "Invalid cross-device link")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", cross_device)
    result = store.move(source, "a.bin")

    assert result.success
    assert not source.exists()
    assert store.read(result.value.identifier).value == b"remote bytes"
    assert temp_files(store) == []


def test_concurrent_identical_writes_single_winner(store):
    content = os.urandom(256 * 1024)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda i: store.write(content, f"copy{i}.bin"), range(32)))

    assert all(r.success for r in results)
    assert len({r.value.identifier for r in results}) == 1
    assert sum(r.value.created for r in results) == 1
    assert len(object_files(store)) == 1
    assert temp_files(store) == []
    assert store.read(results[0].value.identifier).value == content


def test_concurrent_identical_moves_single_winner(store, tmp_path):
    sources = []
    for i in range(12):
        path = tmp_path / f"upload-{i}"
        path.write_bytes(b"same upload")
        sources.append(path)

    with ThreadPoolExecutor(max_workers=12) as pool:
        results = list(pool.map(lambda p: store.move(p, "t.docx"), sources))

    assert all(r.success for r in results)
    assert len({r.value.identifier for r in results}) == 1
    assert len(object_files(store)) == 1
    assert not any(p.exists() for p in sources)


def test_concurrent_reads_never_see_partial_content(store):
    content = b"z" * (512 * 1024)
    identifier = hashlib.sha256(content).hexdigest()
    store.write(content, "z.bin")

    def write_then_read(i):
        store.write(content, "z.bin", overwrite=True)
        return store.read(identifier)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(write_then_read, range(16)))

    assert all(r.success and r.value == content for r in results)


def test_locks_are_released(store):
    store.write(b"a", "a.txt")
    store.write(b"a", "a.txt")
    store.remove(hashlib.sha256(b"a").hexdigest())
    assert len(store._locks) == 0


def test_entries_survive_restart(tmp_path):
    first = FileCacheStore(tmp_path / "cache")
    written = first.write(b"persist me", "p.odt")

    second = FileCacheStore(tmp_path / "cache")
    found = second.find(written.value.identifier)
    assert found.value.display_name == "p.odt"
    assert second.read(written.value.identifier).value == b"persist me"


def test_independent_stores_do_not_interfere(tmp_path):
    one = FileCacheStore(tmp_path / "one")
    two = FileCacheStore(tmp_path / "two")

    written = one.write(b"only in one", "a.txt")
    assert two.find(written.value.identifier).kind == ErrorKind.NOT_FOUND


def test_sweep_temp_files_removes_only_old_files(store):
    old = store.temp_path()
    fresh = store.temp_path()
    past = time.time() - 7200
    os.utime(old, (past, past))

    assert store.sweep_temp_files(max_age=3600) == 1
    assert not old.exists()
    assert fresh.exists()


def test_get_stats(store):
    store.write(b"12345", "a.txt")
    store.write(b"123", "b.txt")

    stats = store.get_stats()
    assert stats["total_entries"] == 2
    assert stats["object_files"] == 2
    assert stats["total_bytes"] == 8


def test_health_check(store):
    assert store.health_check() is True
