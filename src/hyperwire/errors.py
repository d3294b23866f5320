"""Custom exceptions raised by the hyperwire client."""

from __future__ import annotations

from typing import Any


class HyperwireError(Exception):
    """Base error for all client failures."""

    def __init__(self, message: str, *, context: Any | None = None) -> None:
        super().__init__(message)
        self.context = context


class ConfigurationError(HyperwireError, ValueError):
    """Raised when a request or batch is configured with invalid arguments."""


class RequestError(HyperwireError):
    """Raised by ``Result.raise_for_error`` for a failed execution."""


class NetworkError(RequestError):
    """Raised when the server could not be reached or the exchange broke off."""


class TLSError(NetworkError):
    """Raised when certificate validation or the TLS handshake failed."""


class HTTPStatusError(RequestError):
    """Raised for responses whose status code is outside 2xx."""


class ParseError(RequestError):
    """Raised when a response body cannot be decoded."""


class UnknownError(RequestError):
    """Raised for unclassified transport failures and captured faults."""


__all__ = [
    "ConfigurationError",
    "HTTPStatusError",
    "HyperwireError",
    "NetworkError",
    "ParseError",
    "RequestError",
    "TLSError",
    "UnknownError",
]
