"""Normalized execution results."""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .errors import (
    HTTPStatusError,
    NetworkError,
    ParseError,
    RequestError,
    TLSError,
    UnknownError,
)


class ErrorKind(str, Enum):
    NONE = "none"
    UNKNOWN = "unknown"
    NETWORK = "network"
    TLS = "tls"
    HTTP = "http"
    PARSE = "parse"


_ERROR_TYPES: dict[ErrorKind, type[RequestError]] = {
    ErrorKind.UNKNOWN: UnknownError,
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.TLS: TLSError,
    ErrorKind.HTTP: HTTPStatusError,
    ErrorKind.PARSE: ParseError,
}


def is_success_status(status: int) -> bool:
    return 200 <= status < 300


@dataclass(frozen=True)
class Result:
    """Outcome of one execution.

    ``http_code`` is 0 when no response was ever obtained. ``data`` depends on
    the response mode: ``str`` for strings, the decoded value for JSON, and
    ``None`` when the body was written to a file or stream.

    ``error_kind`` is only ever passed for transport, parse and fault
    failures. The HTTP kind is derived here from ``http_code`` and is never
    set by callers.
    """

    http_code: int = 0
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Any = None
    error_kind: ErrorKind = ErrorKind.NONE
    diagnostic: str | None = None

    def __post_init__(self) -> None:
        if self.error_kind is ErrorKind.HTTP:
            raise ValueError("ErrorKind.HTTP is derived from http_code and cannot be passed")
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        if self.error_kind is ErrorKind.NONE and not is_success_status(self.http_code):
            object.__setattr__(self, "error_kind", ErrorKind.HTTP)

    @property
    def ok(self) -> bool:
        return self.error_kind is ErrorKind.NONE

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Result":
        description = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(error_kind=ErrorKind.UNKNOWN, diagnostic=description.strip())

    def raise_for_error(self) -> "Result":
        """Raise the typed error matching ``error_kind``; return self on success."""
        if self.ok:
            return self
        error_type = _ERROR_TYPES[self.error_kind]
        if self.error_kind is ErrorKind.HTTP:
            message = f"HTTP status {self.http_code}"
        else:
            message = self.diagnostic or f"{self.error_kind.value} error"
        raise error_type(message, context=self)


__all__ = ["ErrorKind", "Result", "is_success_status"]
