"""Redis implementation of MetadataIndex.

Stores each entry as a Redis hash under ``<prefix>:<identifier>``. Lets
several service replicas that share one cache volume also share one index.
"""

from collections.abc import Iterator

import redis

from template_cache.config import Settings, get_redis_client, settings
from template_cache.entities import CacheEntryEntity
from template_cache.errors import MetadataIndexError


class RedisMetadataIndex:
    """Redis hash index.

    This class satisfies the MetadataIndex protocol through structural
    typing - no explicit inheritance needed. The client must be created
    with ``decode_responses=True``.
    """

    def __init__(self, redis_client: redis.Redis, prefix: str | None = None) -> None:
        """Initialize the Redis index.

        Args:
            redis_client: Redis client instance.
            prefix: Key prefix. Defaults to settings.cache_index_prefix.
        """
        self._client = redis_client
        self._prefix = prefix or settings.cache_index_prefix

    @classmethod
    def create(cls, config: Settings | None = None) -> "RedisMetadataIndex":
        """Factory method to create RedisMetadataIndex from settings.

        Args:
            config: Settings to use. If None, uses the global settings.

        Returns:
            Configured RedisMetadataIndex
        """
        config = config or settings
        return cls(redis_client=get_redis_client(config), prefix=config.cache_index_prefix)

    def _key(self, identifier: str) -> str:
        return f"{self._prefix}:{identifier}"

    def get(self, identifier: str) -> CacheEntryEntity | None:
        try:
            data = self._client.hgetall(self._key(identifier))
        except redis.RedisError as e:
            raise MetadataIndexError(f"Redis lookup failed for {identifier}: {e}") from e

        if not data:
            return None

        try:
            return CacheEntryEntity.from_dict(data)  # type: ignore[arg-type]
        except (ValueError, KeyError, TypeError) as e:
            raise MetadataIndexError(f"Corrupt metadata for {identifier}: {e}") from e

    def put(self, entry: CacheEntryEntity) -> None:
        mapping = {key: str(value) for key, value in entry.to_dict().items()}
        try:
            self._client.hset(self._key(entry.identifier), mapping=mapping)
        except redis.RedisError as e:
            raise MetadataIndexError(f"Redis write failed for {entry.identifier}: {e}") from e

    def delete(self, identifier: str) -> bool:
        try:
            result: int = self._client.delete(self._key(identifier))  # type: ignore[assignment]
        except redis.RedisError as e:
            raise MetadataIndexError(f"Redis delete failed for {identifier}: {e}") from e
        return result > 0

    def identifiers(self) -> Iterator[str]:
        start = len(self._prefix) + 1
        try:
            for key in self._client.scan_iter(match=f"{self._prefix}:*"):
                yield key[start:]
        except redis.RedisError as e:
            raise MetadataIndexError(f"Redis scan failed: {e}") from e

    def count(self) -> int:
        return sum(1 for _ in self.identifiers())

    def health_check(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
