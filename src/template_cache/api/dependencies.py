"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from template_cache.config import Settings
from template_cache.handlers import TemplateHandler
from template_cache.repositories import FileCacheStore, HttpTemplateRenderer
from template_cache.services import CacheService

logger = logging.getLogger(__name__)


def get_cache_service(request: Request) -> CacheService:
    """Dependency injection for CacheService from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The CacheService instance from app.state

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "cache_service", None)
    if service is None:
        raise RuntimeError("CacheService not initialized. Check lifespan setup.")
    return service


def get_handler(request: Request) -> TemplateHandler:
    """Dependency injection for TemplateHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The TemplateHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "template_handler", None)
    if handler is None:
        raise RuntimeError("TemplateHandler not initialized. Check lifespan setup.")
    return handler


def build_cache_service(config: Settings) -> CacheService:
    """Create the default CacheService for a configuration."""
    return CacheService.create(
        store=FileCacheStore.create(config),
        renderer=HttpTemplateRenderer.create(
            base_url=config.renderer_url,
            timeout=config.renderer_timeout,
        ),
    )


def create_lifespan(config: Settings, cache_service: CacheService | None = None):
    """Build the lifespan context manager for the FastAPI app.

    Initializes all layers and stores them in app.state:
    1. Service (store + renderer) - app.state.cache_service
    2. Handler (HTTP endpoints) - app.state.template_handler

    Temporary files orphaned by interrupted uploads are swept on startup.

    Args:
        config: Application settings
        cache_service: Pre-built service to use instead of the default (tests)

    Returns:
        An async context manager factory accepted by ``FastAPI(lifespan=...)``
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = cache_service or build_cache_service(config)
        handler = TemplateHandler(cache_service=service, max_upload_bytes=config.max_upload_bytes)

        swept = service.sweep_temp_files(config.temp_file_max_age)

        app.state.cache_service = service
        app.state.template_handler = handler

        logger.info("Cache service initialized at %s (index: %s)", service.store.root_dir, config.index_backend)
        if swept:
            logger.info("Removed %d orphaned temporary files", swept)

        yield

        await service.close()
        del app.state.template_handler
        del app.state.cache_service
        logger.info("Cache service shut down")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[TemplateHandler, Depends(get_handler)]
ServiceDep = Annotated[CacheService, Depends(get_cache_service)]
