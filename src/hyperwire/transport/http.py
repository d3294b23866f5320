"""Blocking HTTP transport built on top of httpx."""

from __future__ import annotations

import socket
import ssl
import time
from typing import IO, Any, Iterator

import httpx

from ..logger import BoundLogger, create_logger
from .base import (
    PreparedRequest,
    RawOutcome,
    TransportErrorCode,
    TransportFailure,
    TransportResponse,
)
from .cache import SharedCache

CHUNK_SIZE = 64 * 1024

_RESOLVE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated",
)


class DeadlineExceeded(TimeoutError):
    """The total request timeout elapsed while the body was still streaming."""


class LocalIOError(Exception):
    """Reading the upload or writing the download destination failed."""

    def __init__(self, code: TransportErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code


class HttpTransport:
    """Executes one prepared request at a time on pooled ``httpx.Client``s.

    ``backend`` replaces the network layer of every client, e.g. with an
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        backend: httpx.BaseTransport | None = None,
        chunk_size: int = CHUNK_SIZE,
        logger: BoundLogger | None = None,
    ) -> None:
        self._cache = SharedCache(httpx.Client, backend=backend)
        self._chunk_size = chunk_size
        self._logger = (logger or create_logger()).child("http")

    def execute_one(self, prepared: PreparedRequest) -> RawOutcome:
        self._logger.debug("HTTP %s %s", prepared.method, prepared.url)
        deadline = time.monotonic() + prepared.timeout
        try:
            client = self._cache.client_for(prepared)
            request = client.build_request(
                **request_arguments(prepared, _iter_upload(prepared.body.upload, self._chunk_size))
            )
            response = client.send(request, stream=True)
            try:
                feed_headers(prepared, response)
                body = _receive(prepared, response.iter_bytes(self._chunk_size), deadline)
            finally:
                response.close()
        except (httpx.HTTPError, httpx.InvalidURL, LocalIOError, ssl.SSLError, TimeoutError) as exc:
            failure = map_transport_error(exc)
            self._logger.warn(
                "HTTP %s %s failed code=%s: %s",
                prepared.method,
                prepared.url,
                failure.code.value,
                failure.message,
            )
            return failure

        self._logger.debug(
            "HTTP <- %s status=%s bytes=%s",
            prepared.url,
            response.status_code,
            "streamed" if body is None else len(body),
        )
        return TransportResponse(
            status=response.status_code,
            headers=prepared.header_sink.headers,
            body=body,
        )

    def close(self) -> None:
        self._cache.close()


def request_arguments(prepared: PreparedRequest, upload: Any) -> dict[str, Any]:
    """Keyword arguments for ``client.build_request``; request settings always win."""
    body = prepared.body
    headers = dict(prepared.headers)
    arguments: dict[str, Any] = {
        "method": prepared.method,
        "url": prepared.url,
        "timeout": httpx.Timeout(prepared.timeout, connect=prepared.connect_timeout),
    }
    if body.content is not None:
        arguments["content"] = body.content
    elif body.upload is not None:
        arguments["content"] = upload
        if body.length is not None:
            headers.setdefault("Content-Length", str(body.length))
    elif body.files is not None:
        arguments["data"] = dict(body.data or {})
        arguments["files"] = body.files
    arguments["headers"] = headers
    return arguments


def feed_headers(prepared: PreparedRequest, response: httpx.Response) -> None:
    for name, value in response.headers.raw:
        prepared.header_sink.feed(name + b": " + value)


def write_chunk(destination: IO[bytes], chunk: bytes) -> None:
    try:
        destination.write(chunk)
    except OSError as exc:
        raise LocalIOError(
            TransportErrorCode.WRITE_ERROR, f"Failed writing response body: {exc}"
        ) from exc


def read_chunk(handle: IO[bytes], size: int) -> bytes:
    try:
        return handle.read(size)
    except OSError as exc:
        raise LocalIOError(
            TransportErrorCode.READ_ERROR, f"Failed reading request body: {exc}"
        ) from exc


def _iter_upload(handle: IO[bytes] | None, chunk_size: int) -> Iterator[bytes]:
    if handle is None:
        return
    while True:
        chunk = read_chunk(handle, chunk_size)
        if not chunk:
            return
        yield chunk


def _receive(prepared: PreparedRequest, chunks: Iterator[bytes], deadline: float) -> bytes | None:
    destination = prepared.destination
    buffer = bytearray()
    for chunk in chunks:
        if time.monotonic() > deadline:
            raise DeadlineExceeded(
                f"Operation timed out after {prepared.timeout:g} seconds"
            )
        if destination is None:
            buffer.extend(chunk)
        else:
            write_chunk(destination, chunk)
    if destination is not None:
        return None
    return bytes(buffer)


def map_transport_error(exc: BaseException) -> TransportFailure:
    """Translate an httpx (or local I/O) exception into a TransportFailure."""
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, LocalIOError):
        return TransportFailure(exc.code, message)
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return TransportFailure(TransportErrorCode.TIMED_OUT, message)
    if isinstance(exc, httpx.ProxyError):
        return TransportFailure(TransportErrorCode.PROXY_ERROR, message)
    if isinstance(exc, httpx.ConnectError):
        return TransportFailure(_connect_error_code(exc), message)
    if isinstance(exc, httpx.WriteError):
        return TransportFailure(TransportErrorCode.SEND_ERROR, message)
    if isinstance(exc, httpx.ReadError):
        return TransportFailure(_tls_code(exc) or TransportErrorCode.RECV_ERROR, message)
    if isinstance(exc, httpx.UnsupportedProtocol):
        return TransportFailure(TransportErrorCode.UNSUPPORTED_PROTOCOL, message)
    if isinstance(exc, httpx.ProtocolError):
        return TransportFailure(TransportErrorCode.PROTOCOL_ERROR, message)
    if isinstance(exc, httpx.InvalidURL):
        return TransportFailure(TransportErrorCode.MALFORMED_URL, message)
    if isinstance(exc, httpx.DecodingError):
        return TransportFailure(TransportErrorCode.CONTENT_DECODING, message)
    if isinstance(exc, ssl.SSLError):
        return TransportFailure(_ssl_error_code(exc), message)
    return TransportFailure(TransportErrorCode.OTHER, message)


def _connect_error_code(exc: BaseException) -> TransportErrorCode:
    code = _tls_code(exc)
    if code is not None:
        return code
    for cause in _exception_chain(exc):
        if isinstance(cause, socket.gaierror):
            return TransportErrorCode.COULDNT_RESOLVE_HOST

    message = str(exc).lower()
    if "certificate" in message:
        return TransportErrorCode.TLS_CERTIFICATE
    if "ssl" in message or "tls" in message:
        return TransportErrorCode.TLS_HANDSHAKE
    if any(marker in message for marker in _RESOLVE_MARKERS):
        return TransportErrorCode.COULDNT_RESOLVE_HOST
    return TransportErrorCode.COULDNT_CONNECT


def _tls_code(exc: BaseException) -> TransportErrorCode | None:
    for cause in _exception_chain(exc):
        if isinstance(cause, ssl.SSLError):
            return _ssl_error_code(cause)
    return None


def _ssl_error_code(exc: ssl.SSLError) -> TransportErrorCode:
    if isinstance(exc, ssl.SSLCertVerificationError):
        return TransportErrorCode.TLS_CERTIFICATE
    reason = (getattr(exc, "reason", None) or str(exc)).upper()
    if "CIPHER" in reason:
        return TransportErrorCode.TLS_CIPHER
    if "CERTIFICATE" in reason:
        return TransportErrorCode.TLS_CERTIFICATE
    return TransportErrorCode.TLS_HANDSHAKE


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


__all__ = [
    "CHUNK_SIZE",
    "DeadlineExceeded",
    "HttpTransport",
    "LocalIOError",
    "feed_headers",
    "map_transport_error",
    "read_chunk",
    "request_arguments",
    "write_chunk",
]
