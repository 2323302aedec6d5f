"""Rendered report domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RenderedReport:
    """A report produced by the rendering engine from a cached template.

    Attributes:
        content: The rendered document bytes
        report_name: Filename for the rendered document
        template_identifier: Identifier of the template it was rendered from
        report_identifier: Identifier of the cached report, if it was cached
    """

    content: bytes
    report_name: str
    template_identifier: str
    report_identifier: str | None = None
