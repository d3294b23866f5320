"""Concurrent batch execution over a multiplexing transport.

A batch moves through ``IDLE -> PREPARED -> RUNNING -> DRAINING -> DONE``.
All jobs are compiled and registered up front; the transport throttles the
actual connections. One thread then pumps the transport, waits for I/O
readiness between pumps and drains finished requests as they complete.
Results are keyed by the caller's job keys and returned in submission order.
"""

from __future__ import annotations

import time
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Mapping, Union

from .config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_FALLBACK_SLEEP,
    DEFAULT_PER_HOST,
    DEFAULT_POLL_INTERVAL,
)
from .errors import ConfigurationError
from .logger import BoundLogger, create_logger
from .parser import parse_response
from .prepare import prepare_request
from .request import RequestBuilder, RequestSpec
from .transport.base import MultiplexTransport, PreparedRequest, RawOutcome
from .transport.multiplex import MultiplexHttpTransport
from .types import ErrorKind, Result


class BatchState(str, Enum):
    IDLE = "idle"
    PREPARED = "prepared"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


@dataclass(frozen=True)
class BatchJob:
    key: Hashable
    spec: RequestSpec


@dataclass
class _PendingJob:
    key: Hashable
    spec: RequestSpec
    prepared: PreparedRequest
    resources: ExitStack


JobsArgument = Union[
    Mapping[Hashable, Union[RequestSpec, RequestBuilder]],
    Iterable[Union[BatchJob, tuple[Hashable, Union[RequestSpec, RequestBuilder]]]],
]


class BatchExecutor:
    def __init__(
        self,
        transport: MultiplexTransport | None = None,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        fallback_sleep: float = DEFAULT_FALLBACK_SLEEP,
        logger: BoundLogger | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        base_logger = create_logger(logger=logger)
        self._transport = transport or MultiplexHttpTransport(logger=base_logger)
        self._poll_interval = poll_interval
        self._fallback_sleep = fallback_sleep
        self._sleep = sleep
        self._logger = base_logger.child("batch")
        self.state = BatchState.IDLE

    def execute_many(
        self,
        jobs: JobsArgument,
        concurrency: int = DEFAULT_CONCURRENCY,
        per_host: int = DEFAULT_PER_HOST,
    ) -> dict[Hashable, Result]:
        """Run every job once and return exactly one Result per job key."""
        if concurrency < 1 or per_host < 1:
            raise ConfigurationError("concurrency and per_host must be at least 1")
        submitted = normalize_jobs(jobs)

        self.state = BatchState.IDLE
        results: dict[Hashable, Result] = {}
        pending: list[_PendingJob] = []
        try:
            self._prepare(submitted, pending, results)
            if pending:
                self._run(pending, results, concurrency, per_host)
        except Exception as exc:
            self._logger.error("Batch aborted after %d of %d jobs: %r", len(results), len(submitted), exc)
            fault = Result.from_exception(exc)
            for job in pending:
                results.setdefault(job.key, fault)
        finally:
            for job in pending:
                self._release(job)
            self._transition(BatchState.DONE)

        return {
            job.key: results.get(job.key)
            or Result(error_kind=ErrorKind.UNKNOWN, diagnostic="Request did not complete")
            for job in submitted
        }

    def _prepare(
        self,
        submitted: list[BatchJob],
        pending: list[_PendingJob],
        results: dict[Hashable, Result],
    ) -> None:
        for job in submitted:
            resources = ExitStack()
            try:
                prepared = prepare_request(job.spec, resources)
            except Exception as exc:
                resources.close()
                self._logger.warn("Job %r could not be prepared: %r", job.key, exc)
                results[job.key] = Result.from_exception(exc)
                continue
            pending.append(_PendingJob(job.key, job.spec, prepared, resources))
        self._transition(BatchState.PREPARED)
        self._logger.debug(
            "Prepared %d of %d jobs", len(pending), len(submitted)
        )

    def _run(
        self,
        pending: list[_PendingJob],
        results: dict[Hashable, Result],
        concurrency: int,
        per_host: int,
    ) -> None:
        handles = self._transport.begin_many(
            [job.prepared for job in pending],
            max_connections=concurrency,
            max_host_connections=per_host,
        )
        try:
            self._transition(BatchState.RUNNING)
            while True:
                running = self._pump(handles)
                self._drain(handles, pending, results)
                if running == 0:
                    break
                if not self._transport.wait(handles, self._poll_interval):
                    self._sleep(self._fallback_sleep)
        finally:
            self._transport.close(handles)

    def _pump(self, handles: Any) -> int:
        # Keep pumping while requests keep finishing; stop once a pump makes
        # no further progress.
        previous = None
        running = self._transport.pump(handles)
        while running and running != previous:
            previous = running
            running = self._transport.pump(handles)
        return running

    def _drain(
        self,
        handles: Any,
        pending: list[_PendingJob],
        results: dict[Hashable, Result],
    ) -> None:
        completed = self._transport.collect(handles)
        if not completed:
            return
        self._transition(BatchState.DRAINING)
        for index, outcome in completed:
            job = pending[index]
            results[job.key] = self._finish(job, outcome)
        self._transition(BatchState.RUNNING)

    def _finish(self, job: _PendingJob, outcome: RawOutcome) -> Result:
        try:
            job.resources.close()
            return parse_response(job.spec.response_mode, outcome)
        except Exception as exc:
            self._logger.error("Job %r raised while finishing: %r", job.key, exc)
            return Result.from_exception(exc)

    def _release(self, job: _PendingJob) -> None:
        try:
            job.resources.close()
        except Exception as exc:
            self._logger.error("Failed to release resources of job %r: %r", job.key, exc)

    def _transition(self, state: BatchState) -> None:
        if state is not self.state:
            self._logger.trace("Batch %s -> %s", self.state.value, state.value)
            self.state = state


def normalize_jobs(jobs: JobsArgument) -> list[BatchJob]:
    if isinstance(jobs, Mapping):
        items: Iterable[Any] = (BatchJob(key, spec) for key, spec in jobs.items())
    else:
        items = jobs

    normalized: list[BatchJob] = []
    seen: set[Hashable] = set()
    for item in items:
        if not isinstance(item, BatchJob):
            try:
                key, spec = item
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid batch job: {item!r}") from exc
            item = BatchJob(key, spec)
        spec = item.spec.build() if isinstance(item.spec, RequestBuilder) else item.spec
        if not isinstance(spec, RequestSpec):
            raise ConfigurationError(f"Job {item.key!r} is not a RequestSpec")
        try:
            duplicate = item.key in seen
        except TypeError as exc:
            raise ConfigurationError(f"Job key {item.key!r} is not hashable") from exc
        if duplicate:
            raise ConfigurationError(f"Duplicate job key: {item.key!r}")
        seen.add(item.key)
        normalized.append(BatchJob(item.key, spec))
    return normalized


__all__ = ["BatchExecutor", "BatchJob", "BatchState", "normalize_jobs"]
