"""Cache service for template upload, lookup and rendering.

This service translates requests from the HTTP layer into store calls and
applies the naming policy for rendered reports. It adds no persistence of
its own. Store calls block on disk I/O and hashing, so they are run in the
threadpool to keep the event loop free.
"""

import logging
from pathlib import Path
from typing import Any

from fastapi.concurrency import run_in_threadpool

from template_cache.entities import (
    CacheEntryEntity,
    Err,
    ErrorKind,
    Ok,
    RemovedEntry,
    RenderedReport,
    Result,
    StoredEntry,
)
from template_cache.errors import RenderError
from template_cache.protocols import TemplateRenderer
from template_cache.repositories import FileCacheStore, HttpTemplateRenderer
from template_cache.utils import truthy

logger = logging.getLogger(__name__)

# Flags consumed here and never forwarded to the rendering engine
_SERVICE_OPTIONS = ("overwrite", "cacheReport")


def default_template_name(file_type: str) -> str:
    """Name given to inline templates that arrive without a filename."""
    return f"template.{file_type.strip().lstrip('.')}"


def resolve_render_options(template: CacheEntryEntity, options: dict[str, Any] | None) -> dict[str, Any]:
    """Fill in ``convertTo`` and ``reportName`` for a render.

    - ``convertTo`` defaults to the template's extension; a leading dot is dropped.
    - ``reportName`` defaults to ``<template stem>.<convertTo>``, or the bare
      stem when neither the options nor the template name give a format.
    - A ``reportName`` whose extension differs from ``convertTo`` gets its
      extension replaced.

    Args:
        template: The cached template entry
        options: Caller-supplied engine options

    Returns:
        A new options dict with both keys set
    """
    resolved = {k: v for k, v in (options or {}).items() if k not in _SERVICE_OPTIONS}

    convert_to = str(resolved.get("convertTo") or "").strip().lstrip(".") or template.extension
    report_name = str(resolved.get("reportName") or "").strip()
    if not report_name:
        stem = Path(template.display_name).stem
        report_name = f"{stem}.{convert_to}" if convert_to else stem

    if convert_to and Path(report_name).suffix.lstrip(".") != convert_to:
        report_name = f"{Path(report_name).stem}.{convert_to}"

    resolved["convertTo"] = convert_to
    resolved["reportName"] = report_name
    return resolved


class CacheService:
    """Facade over the file store and the rendering engine.

    Example:
        ```python
        service = CacheService.create()

        stored = await service.store_template("aGVsbG8=", "txt", "base64")
        report = await service.render(stored.value.identifier, {"name": "Jane"}, {"convertTo": "pdf"})
        ```
    """

    def __init__(self, store: FileCacheStore, renderer: TemplateRenderer) -> None:
        """Initialize the cache service.

        Args:
            store: Content-addressed file store (required).
            renderer: Rendering engine client (required).
        """
        self._store = store
        self._renderer = renderer

    @classmethod
    def create(
        cls,
        store: FileCacheStore | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> "CacheService":
        """Factory method to create CacheService with default collaborators.

        Args:
            store: File store. If None, built from settings.
            renderer: Renderer. If None, an HttpTemplateRenderer built from settings.

        Returns:
            Configured CacheService instance
        """
        return cls(
            store=store or FileCacheStore.create(),
            renderer=renderer or HttpTemplateRenderer.create(),
        )

    def reserve_upload_path(self) -> Path:
        """Create an empty temp file on the cache filesystem for an upload."""
        return self._store.temp_path()

    async def upload(self, path: Path, filename: str) -> Result[StoredEntry]:
        """Adopt a completed upload into the cache.

        Args:
            path: Temporary file holding the uploaded content
            filename: Original filename supplied by the client

        Returns:
            Result of the store move
        """
        return await run_in_threadpool(self._store.move, path, filename)

    async def store_template(
        self,
        content: bytes | str,
        file_type: str,
        encoding: str,
        overwrite: bool = False,
        file_name: str | None = None,
    ) -> Result[StoredEntry]:
        """Store an inline template payload.

        Args:
            content: Template content in ``encoding``
            file_type: Template file type (extension), e.g. ``docx``
            encoding: Content encoding, e.g. ``base64``
            overwrite: Replace an existing entry for the same content
            file_name: Optional original filename

        Returns:
            Result of the store write
        """
        if not file_type or not file_type.strip().lstrip("."):
            return Err(ErrorKind.INVALID_INPUT, "Template file type not provided.")
        if not encoding or not encoding.strip():
            return Err(ErrorKind.INVALID_INPUT, "Template encoding type not provided.")

        name = file_name or default_template_name(file_type)
        return await run_in_threadpool(self._store.write, content, name, encoding, overwrite)

    async def store_report(self, content: bytes, report_name: str) -> Result[StoredEntry]:
        """Cache a rendered report under its own identifier."""
        return await run_in_threadpool(self._store.write, content, report_name, "binary", False)

    async def get_entry(self, identifier: str) -> Result[CacheEntryEntity]:
        """Look up entry metadata."""
        return await run_in_threadpool(self._store.find, identifier)

    async def read_content(self, identifier: str) -> Result[bytes]:
        """Load entry content."""
        return await run_in_threadpool(self._store.read, identifier)

    async def delete(self, identifier: str) -> Result[RemovedEntry]:
        """Remove an entry and its content."""
        return await run_in_threadpool(self._store.remove, identifier)

    async def render(
        self,
        identifier: str,
        data: Any = None,
        options: dict[str, Any] | None = None,
        formatters: dict[str, Any] | None = None,
    ) -> Result[RenderedReport]:
        """Render a cached template.

        Business logic:
        1. Find the template entry
        2. Resolve report naming (convertTo / reportName)
        3. Hand the template file to the rendering engine
        4. Cache the report if ``cacheReport`` is truthy

        Failing to cache the report does not fail the render.

        Args:
            identifier: Template identifier
            data: Data merged into the template
            options: Engine options plus the ``cacheReport`` flag
            formatters: Optional custom formatters for the engine

        Returns:
            Ok(RenderedReport), or Err with NOT_FOUND, STORAGE_FAILURE or RENDER_FAILURE
        """
        found = await self.get_entry(identifier)
        if not isinstance(found, Ok):
            return found
        template = found.value

        cache_report = truthy((options or {}).get("cacheReport"))
        engine_options = resolve_render_options(template, options)

        try:
            content, report_name = await self._renderer.render(
                Path(template.storage_path),
                data if data is not None else {},
                engine_options,
                formatters,
            )
        except RenderError as e:
            logger.error("Rendering %s failed: %s", identifier, e.message)
            return Err(ErrorKind.RENDER_FAILURE, e.message)

        report_identifier = None
        if cache_report:
            stored = await self.store_report(content, report_name)
            if isinstance(stored, Ok):
                report_identifier = stored.value.identifier
            else:
                logger.warning("Rendered report %s was not cached: %s", report_name, stored.detail)

        logger.info("Rendered %s from template %s", report_name, identifier)
        return Ok(
            RenderedReport(
                content=content,
                report_name=report_name,
                template_identifier=identifier,
                report_identifier=report_identifier,
            )
        )

    async def file_types(self) -> dict[str, Any]:
        """Get the engine's supported conversions.

        Raises:
            RenderError: If the engine cannot provide them
        """
        return await self._renderer.file_types()

    def get_stats(self) -> dict:
        """Get cache statistics."""
        return self._store.get_stats()

    async def health(self) -> dict[str, bool]:
        """Check store and renderer health.

        Returns:
            Dict with ``store`` and ``renderer`` booleans
        """
        store_healthy = await run_in_threadpool(self._store.health_check)
        renderer_healthy = await self._renderer.is_available()
        return {"store": store_healthy, "renderer": renderer_healthy}

    def sweep_temp_files(self, max_age: float) -> int:
        """Delete orphaned temp files older than ``max_age`` seconds."""
        return self._store.sweep_temp_files(max_age)

    async def close(self) -> None:
        """Release renderer resources, if it holds any."""
        close = getattr(self._renderer, "close", None)
        if close is not None:
            await close()

    @property
    def store(self) -> FileCacheStore:
        """Get the underlying store (for testing)."""
        return self._store

    @property
    def renderer(self) -> TemplateRenderer:
        """Get the underlying renderer (for testing)."""
        return self._renderer
