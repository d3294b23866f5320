"""High-level client tying builders, the executor and the batch engine together."""

from __future__ import annotations

import threading
from typing import Any, Hashable

from .batch import BatchExecutor, JobsArgument
from .config import ClientOptions
from .executor import Executor
from .logger import BoundLogger, create_logger
from .request import Method, RequestBuilder, RequestSpec
from .transport.base import MultiplexTransport, Transport
from .types import Result


class HttpClient:
    """Primary entry point for building and executing requests."""

    def __init__(
        self,
        options: ClientOptions | None = None,
        *,
        transport: Transport | None = None,
        multiplex_transport: MultiplexTransport | None = None,
        logger: Any | None = None,
        **overrides: Any,
    ) -> None:
        if options is None:
            options = ClientOptions(**overrides)
        elif overrides:
            raise TypeError("Pass either options or keyword overrides, not both")
        self.options = options
        self._logger: BoundLogger = create_logger(logger=logger, level=options.log_level)
        self._executor = Executor(transport, logger=self._logger)
        self._batch = BatchExecutor(
            multiplex_transport,
            poll_interval=options.poll_interval,
            fallback_sleep=options.fallback_sleep,
            logger=self._logger,
        )
        self._defaults = options.request_defaults()
        self._logger.child("client").debug(
            "Initialized HttpClient connect_timeout=%s timeout=%s verify_tls=%s",
            options.connect_timeout,
            options.timeout,
            options.verify_tls,
        )

    def request(self, method: str | Method, url: str) -> RequestBuilder:
        return RequestBuilder(method, url, executor=self, defaults=self._defaults)

    def get(self, url: str) -> RequestBuilder:
        return self.request(Method.GET, url)

    def post(self, url: str) -> RequestBuilder:
        return self.request(Method.POST, url)

    def put(self, url: str) -> RequestBuilder:
        return self.request(Method.PUT, url)

    def delete(self, url: str) -> RequestBuilder:
        return self.request(Method.DELETE, url)

    def patch(self, url: str) -> RequestBuilder:
        return self.request(Method.PATCH, url)

    def execute(self, spec: RequestSpec | RequestBuilder) -> Result:
        if isinstance(spec, RequestBuilder):
            spec = spec.build()
        return self._executor.execute(spec)

    def execute_many(
        self,
        jobs: JobsArgument,
        concurrency: int | None = None,
        per_host: int | None = None,
    ) -> dict[Hashable, Result]:
        return self._batch.execute_many(
            jobs,
            concurrency=self.options.concurrency if concurrency is None else concurrency,
            per_host=self.options.per_host if per_host is None else per_host,
        )

    def close(self) -> None:
        self._executor.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


_default_client: HttpClient | None = None
_default_lock = threading.Lock()


def default_client() -> HttpClient:
    """Lazily created client behind the module-level shortcuts."""
    global _default_client
    with _default_lock:
        if _default_client is None:
            _default_client = HttpClient(ClientOptions.from_env())
        return _default_client


def request(method: str | Method, url: str) -> RequestBuilder:
    return default_client().request(method, url)


def get(url: str) -> RequestBuilder:
    return default_client().get(url)


def post(url: str) -> RequestBuilder:
    return default_client().post(url)


def put(url: str) -> RequestBuilder:
    return default_client().put(url)


def delete(url: str) -> RequestBuilder:
    return default_client().delete(url)


def patch(url: str) -> RequestBuilder:
    return default_client().patch(url)


def execute_many(
    jobs: JobsArgument,
    concurrency: int | None = None,
    per_host: int | None = None,
) -> dict[Hashable, Result]:
    return default_client().execute_many(jobs, concurrency, per_host)


__all__ = [
    "HttpClient",
    "default_client",
    "delete",
    "execute_many",
    "get",
    "patch",
    "post",
    "put",
    "request",
]
