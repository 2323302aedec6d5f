"""Exception hierarchy for template-cache.

Expected store conditions are reported through ``Result`` values (see
``template_cache.entities.result``). These exceptions cover the places where
raising is the natural seam: content decoding inside the hasher, calls to
the external rendering engine, and the HTTP boundary.
"""

from __future__ import annotations


class TemplateCacheError(Exception):
    """Base exception for all template-cache errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class InvalidEncodingError(TemplateCacheError):
    """Content could not be decoded with the requested encoding."""

    def __init__(self, message: str = "", encoding: str | None = None) -> None:
        super().__init__(message)
        self.encoding = encoding


class RenderError(TemplateCacheError):
    """The external rendering engine failed or could not be reached."""

    def __init__(self, message: str = "", http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class ProblemError(TemplateCacheError):
    """An error that should be returned to the client as a problem document."""

    def __init__(self, status: int, detail: str = "", title: str | None = None) -> None:
        super().__init__(detail)
        self.status = status
        self.detail = detail
        self.title = title


class MetadataIndexError(TemplateCacheError):
    """The metadata index backend failed to read or write an entry."""
