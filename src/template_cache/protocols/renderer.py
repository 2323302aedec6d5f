"""Template renderer protocol.

Defines the interface for the external engine that merges a template with
JSON data and converts the result into the requested output format.
"""

from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TemplateRenderer(Protocol):
    """Protocol for rendering engines.

    Example:
        ```python
        renderer: TemplateRenderer = HttpTemplateRenderer.create()
        content, report_name = await renderer.render(
            template_path, {"name": "Jane"}, {"convertTo": "pdf", "reportName": "letter.pdf"}
        )
        ```
    """

    async def render(
        self,
        template_path: Path,
        data: Any,
        options: dict[str, Any],
        formatters: dict[str, Any] | None = None,
    ) -> tuple[bytes, str]:
        """Render a template.

        Args:
            template_path: Path of the template file on disk
            data: JSON-compatible data merged into the template
            options: Engine options; includes at least ``convertTo`` and ``reportName``
            formatters: Optional custom formatters passed through to the engine

        Returns:
            Tuple of (report bytes, report name)

        Raises:
            RenderError: If rendering fails
        """
        ...

    async def file_types(self) -> dict[str, Any]:
        """Return the engine's dictionary of supported conversions.

        Raises:
            RenderError: If the dictionary cannot be fetched
        """
        ...

    async def is_available(self) -> bool:
        """Check if the engine is reachable."""
        ...
