"""Tagged result type returned by store and service operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Kinds of expected failure."""

    INVALID_INPUT = "InvalidInput"
    INVALID_ENCODING = "InvalidEncoding"
    NOT_FOUND = "NotFound"
    SOURCE_NOT_FOUND = "SourceNotFound"
    STORAGE_FAILURE = "StorageFailure"
    RENDER_FAILURE = "RenderFailure"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result carrying a payload."""

    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed result carrying the error kind and a human readable detail."""

    kind: ErrorKind
    detail: str

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Err]
