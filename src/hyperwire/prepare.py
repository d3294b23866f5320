"""Compile a RequestSpec into a transport-ready PreparedRequest."""

from __future__ import annotations

from contextlib import ExitStack
from typing import IO

from .body import encode_body
from .errors import ConfigurationError
from .headers import HeaderSink, merge_headers
from .request import AsFile, AsStream, RequestSpec, ResponseMode
from .transport.base import PreparedRequest
from .url import build_url


def prepare_request(spec: RequestSpec, resources: ExitStack) -> PreparedRequest:
    """Derive the final URL, headers, body and destination for ``spec``.

    Handles opened here (upload file, multipart file parts, download file)
    are registered on ``resources`` and closed when the caller closes it.
    Nothing is written back into ``spec``.
    """
    if not spec.url.strip():
        raise ConfigurationError("Request URL is empty")

    url = build_url(spec.url, spec.path_params, spec.query_params)

    headers = merge_headers(spec.headers)
    if spec.user_agent is not None:
        headers.setdefault("User-Agent", spec.user_agent)
    if spec.basic_auth is not None:
        headers = spec.basic_auth.add_http_headers(headers)

    body = encode_body(spec.body, resources)
    if body.content_type is not None:
        headers.setdefault("Content-Type", body.content_type)

    return PreparedRequest(
        method=spec.method,
        url=url,
        headers=headers,
        body=body,
        connect_timeout=spec.connect_timeout,
        timeout=spec.timeout,
        verify_tls=spec.verify_tls,
        transport_options=dict(spec.transport_options),
        destination=open_destination(spec.response_mode, resources),
        header_sink=HeaderSink(),
    )


def open_destination(mode: ResponseMode, resources: ExitStack) -> IO[bytes] | None:
    if isinstance(mode, AsFile):
        return resources.enter_context(open(mode.path, "wb"))
    if isinstance(mode, AsStream):
        return mode.sink
    return None


__all__ = ["open_destination", "prepare_request"]
