"""Credentials that are turned into headers only when a request is prepared."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Mapping

AUTHORIZATION_HEADER = "Authorization"


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str = field(repr=False)

    def header_value(self) -> str:
        token = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8"))
        return f"Basic {token.decode('ascii')}"

    def add_http_headers(self, headers: Mapping[str, str] | None = None) -> dict[str, str]:
        merged = dict(headers or {})
        merged[AUTHORIZATION_HEADER] = self.header_value()
        return merged


__all__ = ["AUTHORIZATION_HEADER", "BasicAuth"]
