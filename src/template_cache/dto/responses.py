"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """RFC 7807 problem document returned for every error."""

    type: str = Field("about:blank", description="Problem type URI")
    title: str = Field(..., description="Short summary of the problem")
    status: int = Field(..., description="HTTP status code")
    detail: str | None = Field(None, description="Explanation specific to this occurrence")


class EntryResponse(BaseModel):
    """Metadata of a cached template or report."""

    model_config = ConfigDict(populate_by_name=True)

    identifier: str = Field(..., description="Content identifier (SHA-256)")
    display_name: str = Field(..., alias="displayName", description="Original filename")
    extension: str = Field(..., description="Extension derived from the filename")
    size: int = Field(..., description="Size in bytes", ge=0)
    created_at: float = Field(..., alias="createdAt", description="When the entry was cached (Unix timestamp)")


class RemoveResponse(BaseModel):
    """Response DTO for removing a cached entry."""

    identifier: str = Field(..., description="The removed identifier")
    removed: bool = Field(True, description="Whether the entry was removed")
    warning: str | None = Field(None, description="Set when the content file could not be deleted")


class FileTypesResponse(BaseModel):
    """Response DTO for the engine's supported conversions."""

    dictionary: dict[str, Any] = Field(..., description="Supported output formats per input format")


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    root_dir: str = Field(..., description="Cache root directory")
    total_entries: int = Field(..., description="Number of registered entries", ge=0)
    object_files: int = Field(..., description="Number of content files on disk", ge=0)
    total_bytes: int = Field(..., description="Bytes used by content files", ge=0)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    store_healthy: bool = Field(..., description="Whether the cache directory and index are usable")
    renderer_healthy: bool = Field(..., description="Whether the rendering engine is reachable")
