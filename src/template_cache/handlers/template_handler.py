"""HTTP handlers for template and report operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, headers, and error mapping.
"""

import logging
import mimetypes
from pathlib import PurePath
from urllib.parse import quote

from fastapi import Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from template_cache.dto import (
    CacheStatsResponse,
    EntryResponse,
    FileTypesResponse,
    HealthCheckResponse,
    InlineRenderRequest,
    RemoveResponse,
    RenderRequest,
)
from template_cache.entities import CacheEntryEntity, Err, ErrorKind, Ok, RenderedReport, Result
from template_cache.errors import ProblemError, RenderError
from template_cache.services import CacheService

from .uploads import discard, spool_upload

logger = logging.getLogger(__name__)

TEMPLATE_HASH_HEADER = "X-Template-Hash"
REPORT_HASH_HEADER = "X-Report-Hash"
REPORT_NAME_HEADER = "X-Report-Name"
WARNING_HEADER = "X-Cache-Warning"

HTTP_STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_ENCODING: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.SOURCE_NOT_FOUND: status.HTTP_409_CONFLICT,
    ErrorKind.STORAGE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.RENDER_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Characters left as-is when a filename is placed in a header value
_HEADER_SAFE = " !#$&'()*+,-.:;=?@[]^_`{|}~"


def unwrap(result: Result):
    """Return the payload of an Ok result or raise the matching ProblemError."""
    if isinstance(result, Ok):
        return result.value
    raise problem_for(result)


def problem_for(error: Err) -> ProblemError:
    """Map a failed result to a problem with the right HTTP status."""
    return ProblemError(HTTP_STATUS_BY_KIND[error.kind], error.detail, title=error.kind.value)


def header_value(value: str) -> str:
    """Percent-encode text (e.g. a filename) so it is a valid header value."""
    return quote(value, safe=_HEADER_SAFE)


def attachment_headers(filename: str) -> dict[str, str]:
    """Headers for returning a file as a download."""
    encoded = quote(filename, safe="")
    return {
        "Content-Disposition": f"attachment; filename=\"{header_value(filename)}\"; filename*=UTF-8''{encoded}",
        "Content-Transfer-Encoding": "binary",
    }


def file_response(content: bytes, filename: str, headers: dict[str, str]) -> Response:
    """Build a download response; Content-Type is guessed from the filename."""
    media_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return Response(
        content=content,
        media_type=media_type,
        headers={**attachment_headers(filename), **headers},
    )


class TemplateHandler:
    """HTTP handlers for template and report operations.

    This handler delegates business logic to CacheService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs and responses
    - Setting headers (identifiers, disposition, report name)
    - Mapping error kinds to status codes

    Example:
        ```python
        handler = TemplateHandler(cache_service=CacheService.create(), max_upload_bytes=25 * 1024**2)

        @app.post("/template/{uid}/render")
        async def render(uid: str, request: RenderRequest):
            return await handler.render_cached(uid, request)
        ```
    """

    def __init__(self, cache_service: CacheService, max_upload_bytes: int) -> None:
        """Initialize the template handler.

        Args:
            cache_service: The cache service for business logic (required).
            max_upload_bytes: Upload size limit in bytes.
        """
        self._cache = cache_service
        self._max_upload_bytes = max_upload_bytes

    async def upload_template(self, upload: UploadFile) -> Response:
        """Handle POST /template requests.

        Returns:
            The template identifier as plain text, also in X-Template-Hash
        """
        filename = PurePath(upload.filename or "").name
        if not filename.strip():
            raise ProblemError(status.HTTP_400_BAD_REQUEST, "Uploaded file has no filename.")

        path = await run_in_threadpool(self._cache.reserve_upload_path)
        await spool_upload(upload, path, self._max_upload_bytes)
        try:
            stored = unwrap(await self._cache.upload(path, filename))
        finally:
            discard(path)

        logger.info("Template upload %s -> %s", filename, stored.identifier)
        return PlainTextResponse(stored.identifier, headers={TEMPLATE_HASH_HEADER: stored.identifier})

    async def render_inline(self, request: InlineRenderRequest) -> Response:
        """Handle POST /template/render requests.

        Stores the inline template (honoring ``options.overwrite``) and renders it.
        """
        template = request.template
        stored = unwrap(
            await self._cache.store_template(
                content=template.content,
                file_type=template.file_type,
                encoding=template.encoding_type,
                overwrite=request.options.overwrite,
                file_name=template.file_name,
            )
        )
        return await self.render_cached(stored.identifier, request)

    async def render_cached(self, identifier: str, request: RenderRequest) -> Response:
        """Handle POST /template/{uid}/render requests."""
        report: RenderedReport = unwrap(
            await self._cache.render(
                identifier,
                data=request.data,
                options=request.options.to_options(),
                formatters=request.formatters,
            )
        )

        headers = {
            REPORT_NAME_HEADER: header_value(report.report_name),
            TEMPLATE_HASH_HEADER: report.template_identifier,
        }
        if report.report_identifier:
            headers[REPORT_HASH_HEADER] = report.report_identifier
        return file_response(report.content, report.report_name, headers)

    async def get_cached(self, identifier: str, hash_header: str, download: bool) -> Response:
        """Handle GET /template/{uid} and GET /render/{uid} requests.

        Returns:
            The content as a download, or the entry metadata as JSON
        """
        entry: CacheEntryEntity = unwrap(await self._cache.get_entry(identifier))
        headers = {hash_header: entry.identifier}

        if download:
            content: bytes = unwrap(await self._cache.read_content(identifier))
            return file_response(content, entry.display_name, headers)

        body = EntryResponse(
            identifier=entry.identifier,
            display_name=entry.display_name,
            extension=entry.extension,
            size=entry.size,
            created_at=entry.created_at,
        )
        return Response(
            content=body.model_dump_json(by_alias=True),
            media_type="application/json",
            headers=headers,
        )

    async def delete_cached(self, identifier: str) -> Response:
        """Handle DELETE /template/{uid} and DELETE /render/{uid} requests."""
        removed = unwrap(await self._cache.delete(identifier))
        headers = {}
        if removed.warning:
            headers[WARNING_HEADER] = header_value(removed.warning)
        body = RemoveResponse(identifier=removed.identifier, warning=removed.warning)
        return Response(content=body.model_dump_json(), media_type="application/json", headers=headers)

    async def file_types(self) -> FileTypesResponse:
        """Handle GET /fileTypes requests."""
        try:
            dictionary = await self._cache.file_types()
        except RenderError as e:
            raise ProblemError(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message) from e
        return FileTypesResponse(dictionary=dictionary)

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /stats requests."""
        stats = await run_in_threadpool(self._cache.get_stats)
        return CacheStatsResponse(**stats)

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        health = await self._cache.health()
        return HealthCheckResponse(
            status="healthy" if all(health.values()) else "unhealthy",
            store_healthy=health["store"],
            renderer_healthy=health["renderer"],
        )
