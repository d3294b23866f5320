"""Multiplexed HTTP transport: many requests in flight on one thread.

Each batch gets a private asyncio event loop and a ``SharedCache`` of
``httpx.AsyncClient``s. The loop never runs on its own; the batch engine
advances it through ``pump`` and ``wait`` and picks up finished requests
with ``collect``.
"""

from __future__ import annotations

import asyncio
import ssl
import traceback
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import IO, AsyncIterator, Sequence

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
from .http import (
    CHUNK_SIZE,
    LocalIOError,
    feed_headers,
    map_transport_error,
    read_chunk,
    request_arguments,
    write_chunk,
)

_TRANSPORT_ERRORS = (
    httpx.HTTPError,
    httpx.InvalidURL,
    LocalIOError,
    ssl.SSLError,
    TimeoutError,
    asyncio.TimeoutError,
)


class ConnectionThrottle:
    """Caps concurrent exchanges in total and per origin."""

    def __init__(self, max_connections: int, max_host_connections: int) -> None:
        self._total = asyncio.Semaphore(max_connections)
        self._max_host_connections = max_host_connections
        self._hosts: dict[tuple[str, str, int | None], asyncio.Semaphore] = {}

    @asynccontextmanager
    async def slot(self, url: str) -> AsyncIterator[None]:
        origin = _origin(url)
        host = self._hosts.get(origin)
        if host is None:
            host = self._hosts[origin] = asyncio.Semaphore(self._max_host_connections)
        async with host:
            async with self._total:
                yield


@dataclass
class HandleSet:
    loop: asyncio.AbstractEventLoop
    cache: SharedCache
    tasks: list[asyncio.Task] = field(default_factory=list)
    collected: set[int] = field(default_factory=set)

    def pending(self) -> set[asyncio.Task]:
        return {task for task in self.tasks if not task.done()}

    @property
    def running(self) -> int:
        return sum(1 for task in self.tasks if not task.done())


class MultiplexHttpTransport:
    def __init__(
        self,
        *,
        backend: httpx.AsyncBaseTransport | None = None,
        chunk_size: int = CHUNK_SIZE,
        logger: BoundLogger | None = None,
    ) -> None:
        self._backend = backend
        self._chunk_size = chunk_size
        self._logger = (logger or create_logger()).child("multiplex")

    def begin_many(
        self,
        prepared: Sequence[PreparedRequest],
        *,
        max_connections: int,
        max_host_connections: int,
    ) -> HandleSet:
        loop = asyncio.new_event_loop()
        limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_connections,
        )
        handles = HandleSet(
            loop=loop,
            cache=SharedCache(httpx.AsyncClient, backend=self._backend, limits=limits),
        )
        throttle = ConnectionThrottle(max_connections, max_host_connections)
        for item in prepared:
            handles.tasks.append(loop.create_task(self._run(item, handles.cache, throttle)))
        self._logger.debug(
            "Registered %d requests max_connections=%d max_host_connections=%d",
            len(handles.tasks),
            max_connections,
            max_host_connections,
        )
        return handles

    def pump(self, handles: HandleSet) -> int:
        handles.loop.run_until_complete(asyncio.sleep(0))
        return handles.running

    def wait(self, handles: HandleSet, max_duration: float) -> bool:
        pending = handles.pending()
        if pending:
            handles.loop.run_until_complete(
                asyncio.wait(pending, timeout=max_duration, return_when=asyncio.FIRST_COMPLETED)
            )
        return True

    def collect(self, handles: HandleSet) -> list[tuple[int, RawOutcome]]:
        completed: list[tuple[int, RawOutcome]] = []
        for index, task in enumerate(handles.tasks):
            if index in handles.collected or not task.done():
                continue
            handles.collected.add(index)
            completed.append((index, _task_outcome(task)))
        return completed

    def close(self, handles: HandleSet) -> None:
        loop = handles.loop
        try:
            pending = handles.pending()
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(handles.cache.aclose())
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()
        self._logger.trace("Closed handle set with %d requests", len(handles.tasks))

    async def _run(
        self,
        prepared: PreparedRequest,
        cache: SharedCache,
        throttle: ConnectionThrottle,
    ) -> RawOutcome:
        try:
            async with throttle.slot(prepared.url):
                self._logger.debug("HTTP %s %s", prepared.method, prepared.url)
                return await asyncio.wait_for(
                    self._exchange(prepared, cache),
                    timeout=prepared.timeout,
                )
        except _TRANSPORT_ERRORS as exc:
            if isinstance(exc, (TimeoutError, asyncio.TimeoutError)) and not str(exc):
                exc = TimeoutError(f"Operation timed out after {prepared.timeout:g} seconds")
            failure = map_transport_error(exc)
            self._logger.warn(
                "HTTP %s %s failed code=%s: %s",
                prepared.method,
                prepared.url,
                failure.code.value,
                failure.message,
            )
            return failure

    async def _exchange(self, prepared: PreparedRequest, cache: SharedCache) -> TransportResponse:
        client = cache.client_for(prepared)
        request = client.build_request(
            **request_arguments(prepared, _aiter_upload(prepared.body.upload, self._chunk_size))
        )
        response = await client.send(request, stream=True)
        try:
            feed_headers(prepared, response)
            body = await _receive(prepared.destination, response.aiter_bytes(self._chunk_size))
        finally:
            await response.aclose()
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


async def _aiter_upload(handle: IO[bytes] | None, chunk_size: int) -> AsyncIterator[bytes]:
    if handle is None:
        return
    while True:
        # blocking file reads run off the loop so other exchanges keep moving
        chunk = await asyncio.to_thread(read_chunk, handle, chunk_size)
        if not chunk:
            return
        yield chunk


async def _receive(destination: IO[bytes] | None, chunks: AsyncIterator[bytes]) -> bytes | None:
    buffer = bytearray()
    async for chunk in chunks:
        if destination is None:
            buffer.extend(chunk)
        else:
            write_chunk(destination, chunk)
    if destination is not None:
        return None
    return bytes(buffer)


def _task_outcome(task: asyncio.Task) -> RawOutcome:
    if task.cancelled():
        return TransportFailure(TransportErrorCode.OTHER, "Request was cancelled")
    exc = task.exception()
    if exc is not None:
        description = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return TransportFailure(TransportErrorCode.OTHER, description.strip())
    return task.result()


def _origin(url: str) -> tuple[str, str, int | None]:
    parsed = httpx.URL(url)
    return parsed.scheme, parsed.host, parsed.port


__all__ = ["ConnectionThrottle", "HandleSet", "MultiplexHttpTransport"]
