"""
Tests for the metadata index backends.
"""

import fnmatch
import hashlib

import pytest
import redis

from template_cache.entities import CacheEntryEntity, ErrorKind
from template_cache.errors import MetadataIndexError
from template_cache.protocols import MetadataIndex
from template_cache.repositories import FileCacheStore, FileMetadataIndex, RedisMetadataIndex

IDENTIFIER = hashlib.sha256(b"entry").hexdigest()


class FakeRedis:
    """Minimal in-memory stand-in for a decode_responses=True Redis client."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def hset(self, key, mapping):
        self.hashes.setdefault(key, {}).update(mapping)
        return len(mapping)

    def delete(self, key):
        return 1 if self.hashes.pop(key, None) is not None else 0

    def scan_iter(self, match):
        return iter([key for key in self.hashes if fnmatch.fnmatch(key, match)])

    def ping(self):
        return True


class BrokenRedis(FakeRedis):
    def hgetall(self, key):
        raise redis.ConnectionError("connection refused")

    def ping(self):
        raise redis.ConnectionError("connection refused")


def make_entry(identifier: str = IDENTIFIER, name: str = "letter.docx") -> CacheEntryEntity:
    return CacheEntryEntity(
        identifier=identifier,
        display_name=name,
        extension="docx",
        storage_path=f"/cache/objects/{identifier[:2]}/{identifier}",
        size=42,
        created_at=1700000000.5,
    )


@pytest.fixture(params=["file", "redis"])
def index(request, tmp_path):
    if request.param == "file":
        return FileMetadataIndex(tmp_path / "index")
    return RedisMetadataIndex(FakeRedis(), prefix="test_cache")


def test_backends_satisfy_protocol(index):
    assert isinstance(index, MetadataIndex)


def test_put_get_round_trip(index):
    entry = make_entry()
    index.put(entry)
    assert index.get(IDENTIFIER) == entry


def test_get_unknown_returns_none(index):
    assert index.get(IDENTIFIER) is None


def test_put_replaces(index):
    index.put(make_entry(name="old.docx"))
    index.put(make_entry(name="new.docx"))
    assert index.get(IDENTIFIER).display_name == "new.docx"
    assert index.count() == 1


def test_delete(index):
    index.put(make_entry())
    assert index.delete(IDENTIFIER) is True
    assert index.delete(IDENTIFIER) is False
    assert index.get(IDENTIFIER) is None


def test_identifiers_and_count(index):
    other = hashlib.sha256(b"other").hexdigest()
    index.put(make_entry())
    index.put(make_entry(identifier=other))
    assert sorted(index.identifiers()) == sorted([IDENTIFIER, other])
    assert index.count() == 2


def test_health_check(index):
    assert index.health_check() is True


def test_redis_keys_use_prefix():
    client = FakeRedis()
    RedisMetadataIndex(client, prefix="tc").put(make_entry())
    assert list(client.hashes) == [f"tc:{IDENTIFIER}"]
    assert client.hashes[f"tc:{IDENTIFIER}"]["size"] == "42"


def test_redis_errors_become_index_errors():
    index = RedisMetadataIndex(BrokenRedis(), prefix="tc")
    with pytest.raises(MetadataIndexError):
        index.get(IDENTIFIER)
    assert index.health_check() is False


def test_corrupt_file_metadata_raises(tmp_path):
    index = FileMetadataIndex(tmp_path / "index")
    (tmp_path / "index" / f"{IDENTIFIER}.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(MetadataIndexError):
        index.get(IDENTIFIER)


def test_store_reports_index_failure_as_storage_failure(tmp_path):
    store = FileCacheStore(tmp_path / "cache", index=RedisMetadataIndex(BrokenRedis(), prefix="tc"))

    assert store.find(IDENTIFIER).kind == ErrorKind.STORAGE_FAILURE
    assert store.write(b"entry", "a.txt").kind == ErrorKind.STORAGE_FAILURE


def test_store_works_over_redis_index(tmp_path):
    client = FakeRedis()
    store = FileCacheStore(tmp_path / "cache", index=RedisMetadataIndex(client, prefix="tc"))

    written = store.write(b"entry", "a.txt")
    assert written.value.identifier == IDENTIFIER
    assert store.find(IDENTIFIER).value.display_name == "a.txt"
    assert store.read(IDENTIFIER).value == b"entry"
    assert store.remove(IDENTIFIER).success
    assert client.hashes == {}
