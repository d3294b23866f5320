"""Header key normalization and per-request response header capture."""

from __future__ import annotations

import re
from typing import Mapping

from .errors import ConfigurationError

# RFC 7230 token characters
_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z ]+")

SENSITIVE_HEADERS = frozenset({"Authorization", "Proxy-Authorization", "Cookie"})


def normalize_header_key(key: str) -> str:
    """``content-type`` -> ``Content-Type``; idempotent."""
    segments = key.strip().replace(" ", "-").split("-")
    return "-".join(segment.capitalize() for segment in segments)


def validate_header_key(key: str) -> str:
    if not key or not _TOKEN.fullmatch(key):
        raise ConfigurationError(f"Invalid header name: {key!r}")
    return key


def merge_headers(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header maps left to right under normalized keys, last write wins."""
    merged: dict[str, str] = {}
    for layer in layers:
        for key, value in (layer or {}).items():
            merged[normalize_header_key(key)] = value
    return merged


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        key: ("***" if normalize_header_key(key) in SENSITIVE_HEADERS else value)
        for key, value in headers.items()
    }


class HeaderSink:
    """Accumulates response header lines as the transport delivers them.

    One sink belongs to exactly one prepared request. Lines without a colon
    (status lines, the blank terminator) are ignored; repeated keys keep the
    last value.
    """

    def __init__(self) -> None:
        self._headers: dict[str, str] = {}

    def feed(self, line: str | bytes) -> int:
        if isinstance(line, bytes):
            text = line.decode("latin-1")
        else:
            text = line
        name, sep, value = text.partition(":")
        if sep and name.strip():
            self._headers[normalize_header_key(name)] = value.strip()
        return len(line)

    def reset(self) -> None:
        self._headers = {}

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def __len__(self) -> int:
        return len(self._headers)


__all__ = [
    "HeaderSink",
    "SENSITIVE_HEADERS",
    "mask_headers",
    "merge_headers",
    "normalize_header_key",
    "validate_header_key",
]
