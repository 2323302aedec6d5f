"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CacheEntryEntity, RemovedEntry, StoredEntry
from .rendered_report import RenderedReport
from .result import Err, ErrorKind, Ok, Result

__all__ = [
    "CacheEntryEntity",
    "StoredEntry",
    "RemovedEntry",
    "RenderedReport",
    "ErrorKind",
    "Ok",
    "Err",
    "Result",
]
