"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (files -> Redis for metadata, any HTTP engine for rendering)
- Unit testing with fake implementations
- Clear separation of concerns
"""

from .metadata_index import MetadataIndex
from .renderer import TemplateRenderer

__all__ = [
    "MetadataIndex",
    "TemplateRenderer",
]
