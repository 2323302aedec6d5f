"""Template Cache - content-addressed caching of document templates and reports.

This package provides a layered architecture for a template rendering
service whose core is a content-addressed file cache:

Layers:
    - protocols: Interface contracts (MetadataIndex, TemplateRenderer)
    - repositories: Data access implementations (file store, indexes, engine client)
    - services: Business logic
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from template_cache.repositories import FileCacheStore

    store = FileCacheStore("/var/cache/templates")
    result = store.write(b"hello", "a.txt")
    store.read(result.value.identifier)
    ```

For HTTP API:
    ```python
    from template_cache.api.app import app
    ```
"""

from template_cache.config import Settings, get_settings, settings
from template_cache.dto import InlineRenderRequest, RenderOptions, RenderRequest
from template_cache.entities import CacheEntryEntity, Err, ErrorKind, Ok, RenderedReport, Result
from template_cache.handlers import TemplateHandler
from template_cache.hashing import ContentHasher
from template_cache.protocols import MetadataIndex, TemplateRenderer
from template_cache.repositories import (
    FileCacheStore,
    FileMetadataIndex,
    HttpTemplateRenderer,
    RedisMetadataIndex,
)
from template_cache.services import CacheService

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    "Settings",
    # Protocols (interfaces)
    "MetadataIndex",
    "TemplateRenderer",
    # Services (business logic)
    "CacheService",
    # Handlers (HTTP)
    "TemplateHandler",
    # Repositories (data access)
    "ContentHasher",
    "FileCacheStore",
    "FileMetadataIndex",
    "RedisMetadataIndex",
    "HttpTemplateRenderer",
    # Entities (domain models)
    "CacheEntryEntity",
    "RenderedReport",
    "ErrorKind",
    "Ok",
    "Err",
    "Result",
    # DTOs (API contracts)
    "RenderOptions",
    "RenderRequest",
    "InlineRenderRequest",
]
