"""Service layer for business logic.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from template_cache.services import CacheService

    # Using factory method (recommended)
    service = CacheService.create()

    # Or manual creation
    service = CacheService(store=FileCacheStore(root), renderer=renderer)
    ```
"""

from .cache_service import CacheService, default_template_name, resolve_render_options

__all__ = [
    "CacheService",
    "default_template_name",
    "resolve_render_options",
]
