"""Request description and the fluent builder that produces it."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import IO, TYPE_CHECKING, Any, Callable, Mapping, Protocol, Union

from .auth import BasicAuth
from .body import (
    Body,
    FileBody,
    FormBody,
    JsonBody,
    MultipartBody,
    MultipartFile,
    NoBody,
    StreamBody,
    TextBody,
)
from .errors import ConfigurationError
from .headers import validate_header_key
from .url import strip_fragment
from .version import __version__

if TYPE_CHECKING:
    from .types import Result

DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_TIMEOUT = 270.0
DEFAULT_USER_AGENT = f"hyperwire/{__version__}"


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


@dataclass(frozen=True)
class JsonDecodeOptions:
    """How JSON response bodies are decoded.

    ``require_structured`` rejects bodies that decode to a bare scalar.
    Nesting deeper than ``max_depth`` is a parse failure.
    """

    require_structured: bool = False
    max_depth: int = 512
    object_pairs_hook: Callable[[list[tuple[str, Any]]], Any] | None = None
    parse_float: Callable[[str], Any] | None = None
    parse_int: Callable[[str], Any] | None = None


@dataclass(frozen=True)
class AsString:
    pass


@dataclass(frozen=True)
class AsJson:
    options: JsonDecodeOptions = field(default_factory=JsonDecodeOptions)


@dataclass(frozen=True)
class AsFile:
    path: Union[str, os.PathLike]


@dataclass(frozen=True)
class AsStream:
    sink: IO[bytes]


ResponseMode = Union[AsString, AsJson, AsFile, AsStream]


@dataclass(frozen=True)
class RequestSpec:
    method: str = Method.GET.value
    url: str = ""
    path_params: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    basic_auth: BasicAuth | None = None
    body: Body = field(default_factory=NoBody)
    transport_options: Mapping[str, Any] = field(default_factory=dict)
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = True
    user_agent: str | None = DEFAULT_USER_AGENT
    response_mode: ResponseMode = field(default_factory=AsString)

    def __post_init__(self) -> None:
        for name in ("path_params", "query_params", "headers", "transport_options"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))
        object.__setattr__(self, "url", strip_fragment(self.url))


class Executes(Protocol):
    """Anything that can turn a RequestSpec into a Result."""

    def execute(self, spec: RequestSpec) -> "Result": ...


class RequestBuilder:
    """Fluent, side-effect-free configuration of one request.

    Every setter returns the builder. ``build()`` snapshots the current
    configuration into an immutable RequestSpec, so a builder can be reused
    and further modified without affecting specs built earlier.
    """

    def __init__(
        self,
        method: str | Method = Method.GET,
        url: str = "",
        *,
        executor: Executes | None = None,
        defaults: RequestSpec | None = None,
    ) -> None:
        base = defaults or RequestSpec()
        self._executor = executor
        self._method = base.method
        self._url = base.url
        self._path_params: dict[str, str] = dict(base.path_params)
        self._query_params: dict[str, str] = dict(base.query_params)
        self._headers: dict[str, str] = dict(base.headers)
        self._basic_auth = base.basic_auth
        self._body: Body = base.body
        self._transport_options: dict[str, Any] = dict(base.transport_options)
        self._connect_timeout = base.connect_timeout
        self._timeout = base.timeout
        self._verify_tls = base.verify_tls
        self._user_agent = base.user_agent
        self._response_mode: ResponseMode = base.response_mode
        self.method(method)
        if url:
            self.url(url)

    # target

    def method(self, method: str | Method) -> "RequestBuilder":
        value = method.value if isinstance(method, Method) else str(method).strip().upper()
        if not value:
            raise ConfigurationError("HTTP method must not be empty")
        self._method = value
        return self

    def url(self, url: str) -> "RequestBuilder":
        self._url = strip_fragment(url)
        return self

    def request(self, method: str | Method, url: str) -> "RequestBuilder":
        return self.method(method).url(url)

    # headers

    def header(self, key: str, value: str | None) -> "RequestBuilder":
        validate_header_key(key)
        if value is None:
            self._headers.pop(key, None)
        else:
            self._headers[key] = value
        return self

    def headers(self, headers: Mapping[str, str]) -> "RequestBuilder":
        for key in headers:
            validate_header_key(key)
        self._headers = dict(headers)
        return self

    def clear_headers(self) -> "RequestBuilder":
        self._headers = {}
        return self

    # path parameters

    def path_param(self, key: str, value: str | None) -> "RequestBuilder":
        _set_or_delete(self._path_params, key, value)
        return self

    def path_params(self, params: Mapping[str, str]) -> "RequestBuilder":
        self._path_params = {key: str(value) for key, value in params.items()}
        return self

    def clear_path_params(self) -> "RequestBuilder":
        self._path_params = {}
        return self

    # query parameters

    def query_param(self, key: str, value: str | None) -> "RequestBuilder":
        _set_or_delete(self._query_params, key, value)
        return self

    def query_params(self, params: Mapping[str, str]) -> "RequestBuilder":
        self._query_params = {key: str(value) for key, value in params.items()}
        return self

    def clear_query_params(self) -> "RequestBuilder":
        self._query_params = {}
        return self

    # authentication

    def basic_auth(self, username: str, password: str) -> "RequestBuilder":
        self._basic_auth = BasicAuth(username, password)
        return self

    def clear_basic_auth(self) -> "RequestBuilder":
        self._basic_auth = None
        return self

    # bodies; each one replaces whatever body was set before

    def form_body(self, fields: Mapping[str, Any] | None) -> "RequestBuilder":
        return self._set_body(None if fields is None else FormBody(dict(fields)))

    def multipart_body(
        self,
        fields: Mapping[str, Any] | None = None,
        files: Mapping[str, MultipartFile | str | os.PathLike | IO[bytes]] | None = None,
    ) -> "RequestBuilder":
        if fields is None and files is None:
            return self._set_body(None)
        parts = {
            name: part if isinstance(part, MultipartFile) else MultipartFile(part)
            for name, part in (files or {}).items()
        }
        return self._set_body(MultipartBody(dict(fields or {}), parts))

    def text_body(self, text: str | None) -> "RequestBuilder":
        return self._set_body(None if text is None else TextBody(text))

    def json_body(self, value: Any) -> "RequestBuilder":
        return self._set_body(JsonBody(value))

    def file_body(self, path: str | os.PathLike | None) -> "RequestBuilder":
        return self._set_body(None if path is None else FileBody(path))

    def stream_body(self, handle: IO[bytes] | None) -> "RequestBuilder":
        return self._set_body(None if handle is None else StreamBody(handle))

    def clear_body(self) -> "RequestBuilder":
        return self._set_body(None)

    # transport tuning

    def transport_option(self, key: str, value: Any) -> "RequestBuilder":
        self._transport_options[key] = value
        return self

    def transport_options(self, options: Mapping[str, Any]) -> "RequestBuilder":
        self._transport_options = dict(options)
        return self

    def clear_transport_options(self) -> "RequestBuilder":
        self._transport_options = {}
        return self

    def connect_timeout(self, seconds: float) -> "RequestBuilder":
        self._connect_timeout = _positive("connect_timeout", seconds)
        return self

    def timeout(self, seconds: float) -> "RequestBuilder":
        self._timeout = _positive("timeout", seconds)
        return self

    def verify_tls(self, verify: bool) -> "RequestBuilder":
        self._verify_tls = bool(verify)
        return self

    def user_agent(self, user_agent: str | None) -> "RequestBuilder":
        self._user_agent = user_agent
        return self

    # response modes, without executing

    def for_string(self) -> "RequestBuilder":
        self._response_mode = AsString()
        return self

    def for_json(
        self,
        options: JsonDecodeOptions | None = None,
        **kwargs: Any,
    ) -> "RequestBuilder":
        if options is None:
            options = JsonDecodeOptions(**kwargs)
        elif kwargs:
            options = replace(options, **kwargs)
        self._response_mode = AsJson(options)
        return self

    def for_file(self, path: str | os.PathLike) -> "RequestBuilder":
        self._response_mode = AsFile(path)
        return self

    def for_stream(self, sink: IO[bytes]) -> "RequestBuilder":
        self._response_mode = AsStream(sink)
        return self

    # finalization and execution

    def build(self) -> RequestSpec:
        return RequestSpec(
            method=self._method,
            url=self._url,
            path_params=self._path_params,
            query_params=self._query_params,
            headers=self._headers,
            basic_auth=self._basic_auth,
            body=self._body,
            transport_options=self._transport_options,
            connect_timeout=self._connect_timeout,
            timeout=self._timeout,
            verify_tls=self._verify_tls,
            user_agent=self._user_agent,
            response_mode=self._response_mode,
        )

    def execute(self) -> "Result":
        return self._require_executor().execute(self.build())

    def execute_for_string(self) -> "Result":
        return self.for_string().execute()

    def execute_for_json(self, options: JsonDecodeOptions | None = None, **kwargs: Any) -> "Result":
        return self.for_json(options, **kwargs).execute()

    def execute_for_file(self, path: str | os.PathLike) -> "Result":
        return self.for_file(path).execute()

    def execute_for_stream(self, sink: IO[bytes]) -> "Result":
        return self.for_stream(sink).execute()

    @property
    def body(self) -> Body:
        return self._body

    def _set_body(self, body: Body | None) -> "RequestBuilder":
        self._body = body if body is not None else NoBody()
        return self

    def _require_executor(self) -> Executes:
        if self._executor is None:
            from .client import default_client

            self._executor = default_client()
        return self._executor


def _set_or_delete(target: dict[str, str], key: str, value: str | None) -> None:
    if value is None:
        target.pop(key, None)
    else:
        target[key] = str(value)


def _positive(name: str, seconds: float) -> float:
    value = float(seconds)
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {seconds!r}")
    return value


__all__ = [
    "AsFile",
    "AsJson",
    "AsStream",
    "AsString",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_AGENT",
    "JsonDecodeOptions",
    "Method",
    "RequestBuilder",
    "RequestSpec",
    "ResponseMode",
]
