"""HTTP client for the external rendering engine.

The engine is a separate service that merges a template with JSON data and
converts the result to the requested format (docx, pdf, odt, ...). This
client only moves bytes to and from it.

Engine API:
    POST {base_url}/render     multipart: ``template`` (file), ``payload``
                               (JSON with data, options, formatters);
                               responds with the report bytes and an
                               optional ``X-Report-Name`` header
    GET  {base_url}/fileTypes  JSON dictionary of supported conversions
"""

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from template_cache.config import settings
from template_cache.errors import RenderError

logger = logging.getLogger(__name__)


class HttpTemplateRenderer:
    """httpx-based implementation of the TemplateRenderer protocol.

    This class satisfies the TemplateRenderer protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        renderer = HttpTemplateRenderer.create(base_url="http://localhost:3000")
        report, name = await renderer.render(path, {"name": "Jane"}, {"convertTo": "pdf", "reportName": "a.pdf"})
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the renderer client.

        Args:
            base_url: Engine base URL. Defaults to settings.renderer_url.
            timeout: Request timeout in seconds. Defaults to settings.renderer_timeout.
            transport: Optional httpx transport (used by tests).
        """
        self._base_url = (base_url or settings.renderer_url).rstrip("/")
        self._timeout = timeout or settings.renderer_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
            )
        return self._client

    @classmethod
    def create(
        cls,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> "HttpTemplateRenderer":
        """Factory method to create HttpTemplateRenderer with defaults.

        Args:
            base_url: Engine URL. If None, uses settings.
            timeout: Request timeout. If None, uses settings.

        Returns:
            Configured HttpTemplateRenderer
        """
        return cls(base_url=base_url, timeout=timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def render(
        self,
        template_path: Path,
        data: Any,
        options: dict[str, Any],
        formatters: dict[str, Any] | None = None,
    ) -> tuple[bytes, str]:
        """Send a template to the engine and return the rendered report.

        Args:
            template_path: Path of the cached template file
            data: JSON-compatible data merged into the template
            options: Engine options, including ``convertTo`` and ``reportName``
            formatters: Optional custom formatters

        Returns:
            Tuple of (report bytes, report name)

        Raises:
            RenderError: If the engine rejects the request or cannot be reached
        """
        payload = json.dumps({"data": data, "options": options, "formatters": formatters or {}})
        requested_name = options.get("reportName") or template_path.name

        try:
            with open(template_path, "rb") as f:
                response = await self.client.post(
                    "/render",
                    data={"payload": payload},
                    files={"template": (template_path.name, f, "application/octet-stream")},
                )
            response.raise_for_status()
        except OSError as e:
            raise RenderError(f"Could not open template {template_path}: {e}") from e
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:500]
            raise RenderError(
                f"Could not render template. Engine returned {e.response.status_code}: {detail}",
                http_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RenderError(f"Could not render template. Engine unreachable at {self._base_url}: {e}") from e

        report_name = response.headers.get("X-Report-Name") or requested_name
        logger.debug("Engine rendered %s (%d bytes)", report_name, len(response.content))
        return response.content, report_name

    async def file_types(self) -> dict[str, Any]:
        """Fetch the engine's dictionary of supported conversions.

        Raises:
            RenderError: If the dictionary cannot be fetched or is not an object
        """
        try:
            response = await self.client.get("/fileTypes")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RenderError(f"Unable to get file types dictionary: {e}") from e

        if isinstance(data, dict) and isinstance(data.get("dictionary"), dict):
            return data["dictionary"]
        if not isinstance(data, dict):
            raise RenderError("Unable to get file types dictionary")
        return data

    async def is_available(self) -> bool:
        """Check if the engine answers on its file types endpoint."""
        try:
            await self.file_types()
            return True
        except RenderError:
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
