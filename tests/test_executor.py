import io
from dataclasses import replace

import httpx
import pytest

from hyperwire import ErrorKind, Executor, RequestBuilder
from hyperwire.logger import create_logger
from hyperwire.transport import HttpTransport, TransportFailure, TransportResponse
from hyperwire.transport.base import PreparedRequest, TransportErrorCode

QUIET = create_logger(level="error")


class DummyTransport:
    def __init__(self, outcome=None, *, error: Exception | None = None, header_lines=()) -> None:
        self.outcome = outcome or TransportResponse(status=200, headers={}, body=b"OK")
        self.error = error
        self.header_lines = list(header_lines)
        self.prepared: list[PreparedRequest] = []

    def execute_one(self, prepared: PreparedRequest):
        self.prepared.append(prepared)
        if self.error is not None:
            raise self.error
        if not self.header_lines:
            return self.outcome
        for line in self.header_lines:
            prepared.header_sink.feed(line)
        return replace(self.outcome, headers=prepared.header_sink.headers)

    def close(self) -> None:  # pragma: no cover - not needed
        pass


class CapturingTransport:
    """Records what the engine handed to the wire before delegating."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.uploads: list = []
        self.destinations: list = []

    def execute_one(self, prepared: PreparedRequest):
        self.uploads.append(prepared.body.upload)
        self.destinations.append(prepared.destination)
        return self.inner.execute_one(prepared)

    def close(self) -> None:
        self.inner.close()


def mock_executor(handler) -> Executor:
    return Executor(HttpTransport(backend=httpx.MockTransport(handler), logger=QUIET), logger=QUIET)


def test_execute_for_json_round_trip() -> None:
    executor = mock_executor(lambda request: httpx.Response(200, json={"a": 1}))
    result = RequestBuilder("GET", "http://api.test/items", executor=executor).execute_for_json()
    assert result.ok
    assert result.http_code == 200
    assert result.data == {"a": 1}
    assert result.headers["Content-Type"] == "application/json"


def test_invalid_json_keeps_status_and_headers() -> None:
    executor = mock_executor(
        lambda request: httpx.Response(200, headers={"content-type": "text/plain"}, content=b"not json")
    )
    result = RequestBuilder("GET", "http://api.test/", executor=executor).execute_for_json()
    assert result.error_kind is ErrorKind.PARSE
    assert result.http_code == 200
    assert result.headers["Content-Type"] == "text/plain"


def test_http_error_status_is_reported_with_body() -> None:
    executor = mock_executor(lambda request: httpx.Response(503, text="maintenance"))
    result = RequestBuilder("GET", "http://api.test/", executor=executor).execute_for_string()
    assert result.error_kind is ErrorKind.HTTP
    assert result.http_code == 503
    assert result.data == "maintenance"


def test_prepared_request_carries_url_headers_and_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    executor = mock_executor(handler)
    result = (
        RequestBuilder("POST", "http://api.test/users/{id}#ignored", executor=executor)
        .path_param("id", "7")
        .query_param("verbose", "1")
        .header("x-trace", "t-1")
        .basic_auth("user", "pass")
        .json_body({"name": "Ada"})
        .execute()
    )

    assert result.ok
    request = seen[0]
    assert str(request.url) == "http://api.test/users/7?verbose=1"
    assert request.headers["Authorization"] == "Basic dXNlcjpwYXNz"
    assert request.headers["X-Trace"] == "t-1"
    assert request.headers["Content-Type"] == "application/json; charset=utf-8"
    assert request.headers["User-Agent"].startswith("hyperwire/")
    assert request.content == b'{"name":"Ada"}'


def test_explicit_headers_win_over_derived_ones() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    executor = mock_executor(handler)
    (
        RequestBuilder("POST", "http://api.test/", executor=executor)
        .header("user-agent", "custom/1.0")
        .header("content-type", "application/vnd.api+json")
        .json_body([1])
        .execute()
    )
    assert seen[0].headers["User-Agent"] == "custom/1.0"
    assert seen[0].headers["Content-Type"] == "application/vnd.api+json"


def test_response_headers_come_from_the_sink() -> None:
    transport = DummyTransport(header_lines=["HTTP/1.1 200 OK", "content-type: text/plain", "x-id:  9 "])
    executor = Executor(transport, logger=QUIET)
    result = RequestBuilder("GET", "http://api.test/", executor=executor).execute()
    assert dict(result.headers) == {"Content-Type": "text/plain", "X-Id": "9"}


def test_transport_failure_becomes_network_result() -> None:
    failure = TransportFailure(TransportErrorCode.COULDNT_RESOLVE_HOST, "Could not resolve host")
    executor = Executor(DummyTransport(failure), logger=QUIET)
    result = RequestBuilder("GET", "http://nowhere.test/", executor=executor).execute()
    assert result.error_kind is ErrorKind.NETWORK
    assert result.http_code == 0
    assert result.diagnostic == "Could not resolve host"


def test_faults_are_captured_as_unknown() -> None:
    executor = Executor(DummyTransport(error=RuntimeError("boom")), logger=QUIET)
    result = RequestBuilder("GET", "http://api.test/", executor=executor).execute()
    assert result.error_kind is ErrorKind.UNKNOWN
    assert "RuntimeError: boom" in result.diagnostic


@pytest.mark.parametrize("url", ["", "   "])
def test_empty_url_is_unknown_failure(url: str) -> None:
    transport = DummyTransport()
    result = RequestBuilder("GET", url, executor=Executor(transport, logger=QUIET)).execute()
    assert result.error_kind is ErrorKind.UNKNOWN
    assert transport.prepared == []


def test_missing_upload_file_is_unknown_failure(tmp_path) -> None:
    transport = DummyTransport()
    executor = Executor(transport, logger=QUIET)
    result = RequestBuilder("PUT", "http://api.test/", executor=executor).file_body(tmp_path / "missing").execute()
    assert result.error_kind is ErrorKind.UNKNOWN
    assert transport.prepared == []


def test_execute_for_file_writes_body_and_closes_handle(tmp_path) -> None:
    transport = CapturingTransport(
        HttpTransport(backend=httpx.MockTransport(lambda request: httpx.Response(200, content=b"file-data")), logger=QUIET)
    )
    executor = Executor(transport, logger=QUIET)
    target = tmp_path / "download.bin"

    result = RequestBuilder("GET", "http://api.test/f", executor=executor).execute_for_file(target)

    assert result.ok
    assert result.data is None
    assert target.read_bytes() == b"file-data"
    assert transport.destinations[0].closed


def test_execute_for_stream_leaves_sink_open() -> None:
    executor = mock_executor(lambda request: httpx.Response(200, content=b"streamed"))
    sink = io.BytesIO()
    result = RequestBuilder("GET", "http://api.test/s", executor=executor).execute_for_stream(sink)
    assert result.ok
    assert result.data is None
    assert not sink.closed
    assert sink.getvalue() == b"streamed"


def test_caller_upload_stream_is_not_closed() -> None:
    seen: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.content)
        return httpx.Response(200)

    handle = io.BytesIO(b"payload")
    executor = mock_executor(handler)
    RequestBuilder("POST", "http://api.test/", executor=executor).stream_body(handle).execute()
    assert seen == [b"payload"]
    assert not handle.closed


def test_upload_file_is_closed_on_every_path(tmp_path) -> None:
    path = tmp_path / "upload.bin"
    path.write_bytes(b"x" * 1024)

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    transports = {
        ErrorKind.NONE: CapturingTransport(
            HttpTransport(backend=httpx.MockTransport(lambda request: httpx.Response(200)), logger=QUIET)
        ),
        ErrorKind.NETWORK: CapturingTransport(HttpTransport(backend=httpx.MockTransport(refuse), logger=QUIET)),
        ErrorKind.UNKNOWN: CapturingTransport(DummyTransport(error=RuntimeError("fault"))),
    }
    for _ in range(50):
        for kind, transport in transports.items():
            executor = Executor(transport, logger=QUIET)
            result = RequestBuilder("PUT", "http://api.test/", executor=executor).file_body(path).execute()
            assert result.error_kind is kind

    for transport in transports.values():
        assert len(transport.uploads) == 50
        assert all(handle.closed for handle in transport.uploads)


def test_multipart_upload_through_httpx(tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"remember")
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    executor = mock_executor(handler)
    result = (
        RequestBuilder("POST", "http://api.test/upload", executor=executor)
        .multipart_body({"kind": "note"}, {"file": path})
        .execute()
    )
    assert result.ok
    body = seen[0].content
    assert seen[0].headers["Content-Type"].startswith("multipart/form-data; boundary=")
    assert b'name="kind"' in body
    assert b'filename="notes.txt"' in body
    assert b"remember" in body


def test_executor_only_closes_owned_transport() -> None:
    class ClosingTransport(DummyTransport):
        closed = False

        def close(self) -> None:
            self.closed = True

    transport = ClosingTransport()
    Executor(transport, logger=QUIET).close()
    assert transport.closed is False


def test_fields_only_multipart_is_encoded_by_httpx() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    executor = mock_executor(handler)
    result = (
        RequestBuilder("POST", "http://api.test/form", executor=executor)
        .multipart_body({"a": "1", "b": "two"})
        .execute()
    )
    assert result.ok
    content_type = seen[0].headers["Content-Type"]
    boundary = content_type.split("boundary=", 1)[1]
    assert content_type.startswith("multipart/form-data; boundary=")
    assert b'name="b"\r\n\r\ntwo\r\n' in seen[0].content
    assert seen[0].content.endswith(f"--{boundary}--\r\n".encode())
    assert b"filename" not in seen[0].content


def test_non_finite_json_body_fails_before_sending() -> None:
    transport = DummyTransport()
    executor = Executor(transport, logger=QUIET)
    result = RequestBuilder("POST", "http://api.test/", executor=executor).json_body({"x": float("nan")}).execute()
    assert result.error_kind is ErrorKind.UNKNOWN
    assert "ValueError" in result.diagnostic
    assert transport.prepared == []
