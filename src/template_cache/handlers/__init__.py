"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .template_handler import TemplateHandler
from .uploads import spool_upload

__all__ = [
    "TemplateHandler",
    "spool_upload",
]
