"""Request body variants and their wire encoding."""

from __future__ import annotations

import io
import json
import os
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import IO, Any, Mapping, Union
from urllib.parse import urlencode

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True)
class NoBody:
    pass


@dataclass(frozen=True)
class FormBody:
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class MultipartFile:
    """One file part of a multipart body.

    ``source`` is either a path (opened and closed by the engine) or an open
    binary handle owned by the caller.
    """

    source: Union[str, os.PathLike, IO[bytes]]
    filename: str | None = None
    content_type: str | None = None


@dataclass(frozen=True)
class MultipartBody:
    fields: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, MultipartFile] = field(default_factory=dict)


@dataclass(frozen=True)
class TextBody:
    text: str


@dataclass(frozen=True)
class JsonBody:
    value: Any


@dataclass(frozen=True)
class FileBody:
    path: Union[str, os.PathLike]


@dataclass(frozen=True)
class StreamBody:
    handle: IO[bytes]


Body = Union[NoBody, FormBody, MultipartBody, TextBody, JsonBody, FileBody, StreamBody]


@dataclass
class EncodedBody:
    """Backend-neutral wire form of a request body.

    Exactly one of ``content``, ``upload`` or the ``data``/``files`` pair is
    used. ``streamed`` marks uploads read from a handle while sending.
    """

    content: bytes | None = None
    data: Mapping[str, Any] | None = None
    files: list[tuple[str, tuple[Any, ...]]] | None = None
    upload: IO[bytes] | None = None
    length: int | None = None
    content_type: str | None = None
    streamed: bool = False

    @property
    def empty(self) -> bool:
        return (
            self.content is None
            and self.upload is None
            and self.data is None
            and self.files is None
        )


def encode_body(body: Body, resources: ExitStack) -> EncodedBody:
    """Encode ``body``; handles the engine opens are registered on ``resources``."""
    if isinstance(body, NoBody):
        return EncodedBody()

    if isinstance(body, FormBody):
        encoded = urlencode(list(body.fields.items()), doseq=True).encode("ascii")
        return EncodedBody(content=encoded, length=len(encoded), content_type=FORM_CONTENT_TYPE)

    if isinstance(body, MultipartBody):
        if not body.fields and not body.files:
            return EncodedBody()
        if not body.files:
            # httpx only switches to multipart when files are given; a part
            # without a filename is rendered as a plain form field
            return EncodedBody(files=_field_parts(body.fields))
        files = [
            (name, _open_multipart_file(part, resources))
            for name, part in body.files.items()
        ]
        return EncodedBody(
            data={key: _form_value(value) for key, value in body.fields.items()},
            files=files,
        )

    if isinstance(body, TextBody):
        encoded = body.text.encode("utf-8")
        return EncodedBody(content=encoded, length=len(encoded), content_type=TEXT_CONTENT_TYPE)

    if isinstance(body, JsonBody):
        encoded = json.dumps(
            body.value, ensure_ascii=False, allow_nan=False, separators=(",", ":")
        ).encode("utf-8")
        return EncodedBody(content=encoded, length=len(encoded), content_type=JSON_CONTENT_TYPE)

    if isinstance(body, FileBody):
        handle = resources.enter_context(open(body.path, "rb"))
        return EncodedBody(upload=handle, length=os.fstat(handle.fileno()).st_size, streamed=True)

    if isinstance(body, StreamBody):
        return EncodedBody(upload=body.handle, length=stream_size(body.handle), streamed=True)

    raise TypeError(f"Unsupported body type: {type(body).__name__}")


def stream_size(handle: IO[bytes]) -> int | None:
    """Bytes left to read from ``handle``, or None when it cannot be known."""
    try:
        size = os.fstat(handle.fileno()).st_size
    except (AttributeError, OSError, io.UnsupportedOperation):
        size = None
    else:
        try:
            return max(size - handle.tell(), 0)
        except (OSError, io.UnsupportedOperation):
            return size

    try:
        if not handle.seekable():
            return None
        position = handle.tell()
        end = handle.seek(0, io.SEEK_END)
        handle.seek(position)
    except (AttributeError, OSError, io.UnsupportedOperation):
        return None
    return end - position


def _open_multipart_file(
    part: MultipartFile, resources: ExitStack
) -> tuple[str | None, IO[bytes], str | None]:
    if isinstance(part.source, (str, os.PathLike)):
        handle = resources.enter_context(open(part.source, "rb"))
        filename = part.filename or os.path.basename(os.fspath(part.source))
    else:
        handle = part.source
        filename = part.filename or os.path.basename(str(getattr(handle, "name", ""))) or None
    return filename, handle, part.content_type


def _field_parts(fields: Mapping[str, Any]) -> list[tuple[str, tuple[None, Any]]]:
    parts: list[tuple[str, tuple[None, Any]]] = []
    for name, value in fields.items():
        values = value if isinstance(value, (list, tuple)) else [value]
        parts.extend((name, (None, _form_value(item))) for item in values)
    return parts


def _form_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    if isinstance(value, bytes):
        return value
    return str(value)


__all__ = [
    "Body",
    "EncodedBody",
    "FileBody",
    "FormBody",
    "JsonBody",
    "MultipartBody",
    "MultipartFile",
    "NoBody",
    "StreamBody",
    "TextBody",
    "encode_body",
    "stream_size",
]
