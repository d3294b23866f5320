"""Transport implementations exposed to users."""

from .base import (
    MultiplexTransport,
    PreparedRequest,
    RawOutcome,
    Transport,
    TransportErrorCode,
    TransportFailure,
    TransportResponse,
)
from .cache import SharedCache
from .http import HttpTransport
from .multiplex import HandleSet, MultiplexHttpTransport

__all__ = [
    "HandleSet",
    "HttpTransport",
    "MultiplexHttpTransport",
    "MultiplexTransport",
    "PreparedRequest",
    "RawOutcome",
    "SharedCache",
    "Transport",
    "TransportErrorCode",
    "TransportFailure",
    "TransportResponse",
]
