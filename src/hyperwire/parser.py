"""Response parsing helpers shared by single and batch execution."""

from __future__ import annotations

import codecs
import json
from typing import Any, Mapping

from .request import AsJson, JsonDecodeOptions, ResponseMode
from .transport.base import (
    RawOutcome,
    TransportErrorCode,
    TransportFailure,
    TransportResponse,
)
from .types import ErrorKind, Result

NETWORK_ERROR_CODES = frozenset(
    {
        TransportErrorCode.COULDNT_RESOLVE_HOST,
        TransportErrorCode.COULDNT_CONNECT,
        TransportErrorCode.TIMED_OUT,
        TransportErrorCode.SEND_ERROR,
        TransportErrorCode.RECV_ERROR,
    }
)

TLS_ERROR_CODES = frozenset(
    {
        TransportErrorCode.TLS_CERTIFICATE,
        TransportErrorCode.TLS_HANDSHAKE,
        TransportErrorCode.TLS_CIPHER,
        TransportErrorCode.TLS_CA_BUNDLE,
    }
)


class BodyDecodeError(ValueError):
    pass


def classify_transport_error(code: TransportErrorCode) -> ErrorKind:
    if code in NETWORK_ERROR_CODES:
        return ErrorKind.NETWORK
    if code in TLS_ERROR_CODES:
        return ErrorKind.TLS
    return ErrorKind.UNKNOWN


def parse_response(mode: ResponseMode, outcome: RawOutcome) -> Result:
    if isinstance(outcome, TransportFailure):
        return Result(
            error_kind=classify_transport_error(outcome.code),
            diagnostic=outcome.message,
        )
    return _parse_ok_response(mode, outcome)


def _parse_ok_response(mode: ResponseMode, response: TransportResponse) -> Result:
    if response.streamed:
        return Result(http_code=response.status, headers=response.headers)

    if isinstance(mode, AsJson):
        try:
            data = decode_json(response.body or b"", response.headers, mode.options)
        except BodyDecodeError as exc:
            return Result(
                http_code=response.status,
                headers=response.headers,
                error_kind=ErrorKind.PARSE,
                diagnostic=str(exc),
            )
        return Result(http_code=response.status, headers=response.headers, data=data)

    # AsString, and file/stream modes whose transport still buffered the body
    data = decode_text(response.body or b"", response.headers)
    return Result(http_code=response.status, headers=response.headers, data=data)


def decode_text(body: bytes, headers: Mapping[str, str]) -> str:
    return body.decode(response_charset(headers) or "utf-8", errors="replace")


def decode_json(body: bytes, headers: Mapping[str, str], options: JsonDecodeOptions) -> Any:
    charset = response_charset(headers)
    try:
        text = body.decode(charset) if charset else body.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise BodyDecodeError(f"Malformed UTF-8 characters, possibly incorrectly encoded: {exc}") from exc
    if not text.strip():
        raise BodyDecodeError("Syntax error: empty body")

    try:
        value = json.loads(
            text,
            object_pairs_hook=options.object_pairs_hook,
            parse_float=options.parse_float,
            parse_int=options.parse_int,
        )
    except json.JSONDecodeError as exc:
        raise BodyDecodeError(f"Syntax error: {exc}") from exc
    except RecursionError as exc:
        raise BodyDecodeError("Maximum stack depth exceeded") from exc

    if nesting_depth(value) > options.max_depth:
        raise BodyDecodeError("Maximum stack depth exceeded")
    if options.require_structured and not isinstance(value, (dict, list)):
        raise BodyDecodeError(
            f"Expected a JSON object or array, got {type(value).__name__}"
        )
    return value


def nesting_depth(value: Any) -> int:
    """Depth of nested arrays/objects; scalars count as depth 1."""
    deepest = 0
    stack: list[tuple[Any, int]] = [(value, 1)]
    while stack:
        current, depth = stack.pop()
        deepest = max(deepest, depth)
        if isinstance(current, dict):
            stack.extend((item, depth + 1) for item in current.values())
        elif isinstance(current, (list, tuple)):
            stack.extend((item, depth + 1) for item in current)
    return deepest


def response_charset(headers: Mapping[str, str]) -> str | None:
    content_type = headers.get("Content-Type", "") or ""
    for parameter in content_type.split(";")[1:]:
        name, _, value = parameter.partition("=")
        if name.strip().lower() == "charset":
            charset = value.strip().strip('"').strip("'")
            try:
                return codecs.lookup(charset).name
            except LookupError:
                return None
    return None


__all__ = [
    "BodyDecodeError",
    "NETWORK_ERROR_CODES",
    "TLS_ERROR_CODES",
    "classify_transport_error",
    "decode_json",
    "decode_text",
    "nesting_depth",
    "parse_response",
    "response_charset",
]
