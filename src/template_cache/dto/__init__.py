"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import InlineRenderRequest, InlineTemplate, RenderOptions, RenderRequest
from .responses import (
    CacheStatsResponse,
    EntryResponse,
    FileTypesResponse,
    HealthCheckResponse,
    ProblemDetail,
    RemoveResponse,
)

__all__ = [
    "RenderOptions",
    "RenderRequest",
    "InlineTemplate",
    "InlineRenderRequest",
    "ProblemDetail",
    "EntryResponse",
    "RemoveResponse",
    "FileTypesResponse",
    "CacheStatsResponse",
    "HealthCheckResponse",
]
