"""Common transport abstractions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Mapping, Protocol, Sequence, Union, runtime_checkable

from ..body import EncodedBody
from ..headers import HeaderSink


class TransportErrorCode(str, Enum):
    # network
    COULDNT_RESOLVE_HOST = "couldnt_resolve_host"
    COULDNT_CONNECT = "couldnt_connect"
    TIMED_OUT = "timed_out"
    SEND_ERROR = "send_error"
    RECV_ERROR = "recv_error"
    # tls
    TLS_CERTIFICATE = "tls_certificate"
    TLS_HANDSHAKE = "tls_handshake"
    TLS_CIPHER = "tls_cipher"
    TLS_CA_BUNDLE = "tls_ca_bundle"
    # everything else
    UNSUPPORTED_PROTOCOL = "unsupported_protocol"
    MALFORMED_URL = "malformed_url"
    PROTOCOL_ERROR = "protocol_error"
    PROXY_ERROR = "proxy_error"
    READ_ERROR = "read_error"
    WRITE_ERROR = "write_error"
    CONTENT_DECODING = "content_decoding"
    OTHER = "other"


@dataclass(frozen=True)
class TransportResponse:
    status: int
    headers: Mapping[str, str]
    body: bytes | None

    @property
    def streamed(self) -> bool:
        """True when the body went straight to a file or sink."""
        return self.body is None


@dataclass(frozen=True)
class TransportFailure:
    code: TransportErrorCode
    message: str


RawOutcome = Union[TransportResponse, TransportFailure]


@dataclass
class PreparedRequest:
    """A request compiled for the wire.

    ``destination`` receives the response body when set; otherwise the body
    is buffered. ``header_sink`` is private to this request.
    """

    method: str
    url: str
    headers: dict[str, str]
    body: EncodedBody = field(default_factory=EncodedBody)
    connect_timeout: float = 15.0
    timeout: float = 270.0
    verify_tls: bool = True
    transport_options: Mapping[str, Any] = field(default_factory=dict)
    destination: IO[bytes] | None = None
    header_sink: HeaderSink = field(default_factory=HeaderSink)


@runtime_checkable
class Transport(Protocol):
    def execute_one(self, prepared: PreparedRequest) -> RawOutcome: ...

    def close(self) -> None: ...


@runtime_checkable
class MultiplexTransport(Protocol):
    """Non-blocking multiplexing contract driven by the batch engine.

    ``begin_many`` registers every request at once; throttling to
    ``max_connections`` and ``max_host_connections`` happens inside the
    transport. ``wait`` returns False when the backend cannot report I/O
    readiness, in which case the caller backs off on its own.
    """

    def begin_many(
        self,
        prepared: Sequence[PreparedRequest],
        *,
        max_connections: int,
        max_host_connections: int,
    ) -> Any: ...

    def pump(self, handles: Any) -> int: ...

    def wait(self, handles: Any, max_duration: float) -> bool: ...

    def collect(self, handles: Any) -> list[tuple[int, RawOutcome]]: ...

    def close(self, handles: Any) -> None: ...


__all__ = [
    "MultiplexTransport",
    "PreparedRequest",
    "RawOutcome",
    "Transport",
    "TransportErrorCode",
    "TransportFailure",
    "TransportResponse",
]
