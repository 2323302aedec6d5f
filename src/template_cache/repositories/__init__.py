"""Repository layer for data access.

This layer abstracts external dependencies (the filesystem, Redis, the
rendering engine) behind protocol-based interfaces. This enables:
- Easy swapping of implementations (file index -> Redis index, etc.)
- Unit testing with fake implementations
- Clear separation of concerns
"""

from template_cache.protocols import MetadataIndex, TemplateRenderer

from .file_index import FileMetadataIndex
from .file_store import FileCacheStore
from .http_renderer import HttpTemplateRenderer
from .redis_index import RedisMetadataIndex

__all__ = [
    "MetadataIndex",
    "TemplateRenderer",
    "FileCacheStore",
    "FileMetadataIndex",
    "RedisMetadataIndex",
    "HttpTemplateRenderer",
]
