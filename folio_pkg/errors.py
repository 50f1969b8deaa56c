"""
Error values for Folio.

Public operations return a ``(success, value_or_error)`` tuple instead of
raising. On failure the second element is a :class:`FolioError`.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple, Union


class ErrorKind(str, Enum):
    NOT_FOUND = 'NotFound'
    PARSE = 'ParseError'
    IO = 'IOError'
    VALIDATION = 'ValidationError'
    NETWORK = 'NetworkError'
    AUTH = 'AuthError'
    RENDER = 'RenderError'


@dataclass(frozen=True)
class FolioError:
    kind: ErrorKind
    message: str
    path: Optional[str] = None
    cause: Optional[Any] = None
    retryable: bool = False
    timestamp: float = field(default_factory=time.time)

    def __str__(self):
        return self.message


Result = Tuple[bool, Union[Any, FolioError]]


def create_error(kind: ErrorKind, message: str, cause: Any = None,
                 path: Optional[str] = None, retryable: bool = False) -> FolioError:
    return FolioError(kind=kind, message=message, path=path, cause=cause, retryable=retryable)


def format_error(error: FolioError) -> str:
    """Render an error for logs and terminal output."""
    stamp = datetime.fromtimestamp(error.timestamp, tz=timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
    message = f"[{stamp}] {error.kind.value}: {error.message}"
    if error.path:
        message += f" (path: {error.path})"
    if error.cause is not None:
        if isinstance(error.cause, BaseException):
            message += f"\nCause: {type(error.cause).__name__}: {error.cause}"
        else:
            message += f"\nCause: {error.cause}"
    return message


def combine(results: Iterable[Result]) -> Result:
    """
    Collapse a sequence of results into one.

    The first failure wins; otherwise the values are returned in order.
    """
    values: List[Any] = []
    for success, value in results:
        if not success:
            return False, value
        values.append(value)
    return True, values
