"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from template_cache.utils import truthy


class RenderOptions(BaseModel):
    """Render options.

    Unknown keys are kept and forwarded to the rendering engine untouched
    (e.g. ``lang``, ``timezone``). ``overwrite`` and ``cacheReport`` are
    consumed by the service and accept any literal understood by ``truthy``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    convert_to: str | None = Field(None, alias="convertTo", description="Output format, e.g. pdf")
    report_name: str | None = Field(None, alias="reportName", description="Filename of the rendered report")
    overwrite: bool = Field(False, description="Replace an already cached inline template")
    cache_report: bool = Field(False, alias="cacheReport", description="Cache the rendered report")

    @field_validator("overwrite", "cache_report", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return truthy(value)

    def to_options(self) -> dict[str, Any]:
        """Options dict in the engine's camelCase form."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RenderRequest(BaseModel):
    """Request DTO for rendering a cached template."""

    data: Any = Field(default_factory=dict, description="Data merged into the template")
    options: RenderOptions = Field(default_factory=RenderOptions)
    formatters: dict[str, Any] | None = Field(None, description="Custom formatters passed to the engine")


class InlineTemplate(BaseModel):
    """Template supplied inline in a render request."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., description="Template content in encodingType", min_length=1)
    file_type: str = Field(..., alias="fileType", description="Template file type, e.g. docx", min_length=1)
    encoding_type: str = Field(..., alias="encodingType", description="Content encoding, e.g. base64", min_length=1)
    file_name: str | None = Field(None, alias="fileName", description="Optional original filename")


class InlineRenderRequest(RenderRequest):
    """Request DTO for uploading a template and rendering it in one call."""

    template: InlineTemplate
