"""Public surface for the hyperwire HTTP client."""

from .auth import BasicAuth
from .batch import BatchExecutor, BatchJob, BatchState
from .body import MultipartFile
from .client import HttpClient, default_client, delete, execute_many, get, patch, post, put, request
from .config import ClientOptions
from .errors import (
    ConfigurationError,
    HTTPStatusError,
    HyperwireError,
    NetworkError,
    ParseError,
    RequestError,
    TLSError,
    UnknownError,
)
from .executor import Executor
from .headers import HeaderSink, normalize_header_key
from .request import (
    AsFile,
    AsJson,
    AsStream,
    AsString,
    JsonDecodeOptions,
    Method,
    RequestBuilder,
    RequestSpec,
)
from .transport import HttpTransport, MultiplexHttpTransport
from .types import ErrorKind, Result
from .url import build_url
from .version import __version__

__all__ = [
    "__version__",
    "AsFile",
    "AsJson",
    "AsStream",
    "AsString",
    "BasicAuth",
    "BatchExecutor",
    "BatchJob",
    "BatchState",
    "ClientOptions",
    "ConfigurationError",
    "ErrorKind",
    "Executor",
    "HTTPStatusError",
    "HeaderSink",
    "HttpClient",
    "HttpTransport",
    "HyperwireError",
    "JsonDecodeOptions",
    "Method",
    "MultipartFile",
    "MultiplexHttpTransport",
    "NetworkError",
    "ParseError",
    "RequestBuilder",
    "RequestError",
    "RequestSpec",
    "Result",
    "TLSError",
    "UnknownError",
    "build_url",
    "default_client",
    "delete",
    "execute_many",
    "get",
    "normalize_header_key",
    "patch",
    "post",
    "put",
    "request",
]
