import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from template_cache.api.dependencies import HandlerDep, create_lifespan
from template_cache.config import Settings, configure_logging, settings
from template_cache.dto import (
    CacheStatsResponse,
    FileTypesResponse,
    HealthCheckResponse,
    InlineRenderRequest,
    RenderRequest,
)
from template_cache.errors import ProblemError
from template_cache.handlers.template_handler import (
    REPORT_HASH_HEADER,
    REPORT_NAME_HEADER,
    TEMPLATE_HASH_HEADER,
    WARNING_HEADER,
)
from template_cache.services import CacheService

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def problem_response(status_code: int, detail: str | None = None, title: str | None = None) -> JSONResponse:
    """Build an RFC 7807 problem response."""
    body: dict[str, Any] = {"type": "about:blank", "title": title or HTTPStatus(status_code).phrase, "status": status_code}
    if detail:
        body["detail"] = detail
    return JSONResponse(body, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE)


def register_error_handlers(app: FastAPI) -> None:
    """Convert every error into a problem document."""

    @app.exception_handler(ProblemError)
    async def handle_problem(_request: Request, exc: ProblemError) -> JSONResponse:
        return problem_response(exc.status, exc.detail, exc.title)

    @app.exception_handler(RequestValidationError)
    async def handle_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        return problem_response(status.HTTP_400_BAD_REQUEST, "; ".join(messages))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return problem_response(exc.status_code, str(exc.detail) if exc.detail else None)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return problem_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred.")


def create_app(config: Settings | None = None, cache_service: CacheService | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Settings to use. If None, uses the global settings.
        cache_service: Pre-built service (tests). If None, built from settings on startup.

    Returns:
        The configured FastAPI app
    """
    config = config or settings

    app = FastAPI(
        title="Template Cache API",
        description="Caches document templates and rendered reports by content hash",
        version="0.1.0",
        lifespan=create_lifespan(config, cache_service),
    )
    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[TEMPLATE_HASH_HEADER, REPORT_HASH_HEADER, REPORT_NAME_HEADER, WARNING_HEADER],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Template Cache API",
            "version": "0.1.0",
            "endpoints": {
                "template": "/template",
                "render": "/render",
                "fileTypes": "/fileTypes",
                "stats": "/stats",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep):
        """Health check endpoint."""
        result = await handler.health_check()
        if result.status != "healthy":
            return JSONResponse(result.model_dump(), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        return result

    @app.post("/template")
    async def upload_template(request: Request, handler: HandlerDep):
        """Upload a template file (multipart) into the cache."""
        async with request.form() as form:
            uploads = [item for item in form.getlist(config.upload_field_name) if isinstance(item, UploadFile)]
            if not uploads:
                raise ProblemError(
                    status.HTTP_400_BAD_REQUEST,
                    f"Expected a file in form field '{config.upload_field_name}'.",
                )
            if len(uploads) > 1:
                raise ProblemError(status.HTTP_400_BAD_REQUEST, "Only one template may be uploaded at a time.")
            logger.info("Template upload %s", uploads[0].filename)
            return await handler.upload_template(uploads[0])

    @app.post("/template/render")
    async def upload_and_render(request: InlineRenderRequest, handler: HandlerDep):
        """Cache an inline template and render it."""
        logger.info("Template upload and render")
        return await handler.render_inline(request)

    @app.post("/template/{uid}/render")
    async def render_template(uid: str, request: RenderRequest, handler: HandlerDep):
        """Render a cached template."""
        logger.info("Template render %s", uid)
        return await handler.render_cached(uid, request)

    @app.get("/template/{uid}")
    async def get_template(uid: str, handler: HandlerDep, download: str | None = None):
        """Get a cached template; add ?download to receive the file."""
        logger.info("Get template %s. Download = %s", uid, download is not None)
        return await handler.get_cached(uid, TEMPLATE_HASH_HEADER, download is not None)

    @app.delete("/template/{uid}")
    async def delete_template(uid: str, handler: HandlerDep):
        """Delete a cached template."""
        logger.info("Delete template %s", uid)
        return await handler.delete_cached(uid)

    @app.get("/render/{uid}")
    async def get_report(uid: str, handler: HandlerDep, download: str | None = None):
        """Get a cached rendered report; add ?download to receive the file."""
        logger.info("Get rendered report %s. Download = %s", uid, download is not None)
        return await handler.get_cached(uid, REPORT_HASH_HEADER, download is not None)

    @app.delete("/render/{uid}")
    async def delete_report(uid: str, handler: HandlerDep):
        """Delete a cached rendered report."""
        logger.info("Delete rendered report %s", uid)
        return await handler.delete_cached(uid)

    @app.get("/fileTypes", response_model=FileTypesResponse)
    async def file_types(handler: HandlerDep) -> FileTypesResponse:
        """Get the output formats supported by the rendering engine."""
        return await handler.file_types()

    @app.get("/stats", response_model=CacheStatsResponse)
    async def get_stats(handler: HandlerDep) -> CacheStatsResponse:
        """Get cache statistics."""
        return await handler.get_stats()

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    configure_logging()
    uvicorn.run(
        "template_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
