"""Single-request execution boundary."""

from __future__ import annotations

from contextlib import ExitStack

from .headers import mask_headers
from .logger import BoundLogger, create_logger
from .parser import parse_response
from .prepare import prepare_request
from .request import RequestSpec
from .transport.base import Transport
from .transport.http import HttpTransport
from .types import Result


class Executor:
    """Runs one RequestSpec to completion and always returns a Result.

    Every handle opened while preparing the request lives on one ExitStack
    that is closed before the outcome is parsed, whichever way the transport
    call ends. Faults anywhere on the path become ``ErrorKind.UNKNOWN``.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        base_logger = create_logger(logger=logger)
        self._transport = transport or HttpTransport(logger=base_logger)
        self._owns_transport = transport is None
        self._logger = base_logger.child("executor")

    @property
    def transport(self) -> Transport:
        return self._transport

    def execute(self, spec: RequestSpec) -> Result:
        try:
            with ExitStack() as resources:
                prepared = prepare_request(spec, resources)
                self._logger.trace(
                    "Prepared %s %s headers=%s",
                    prepared.method,
                    prepared.url,
                    mask_headers(prepared.headers),
                )
                outcome = self._transport.execute_one(prepared)
            return parse_response(spec.response_mode, outcome)
        except Exception as exc:
            self._logger.error("Request %s %s raised %r", spec.method, spec.url, exc)
            return Result.from_exception(exc)

    def close(self) -> None:
        if self._owns_transport:
            self._transport.close()


__all__ = ["Executor"]
