"""Client-wide defaults and their environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Mapping

from .errors import ConfigurationError
from .logger import LogLevel, parse_log_level
from .request import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    RequestSpec,
)

ENV_PREFIX = "HYPERWIRE_"
DEFAULT_CONCURRENCY = 10
DEFAULT_PER_HOST = 1
DEFAULT_POLL_INTERVAL = 0.01
DEFAULT_FALLBACK_SLEEP = 0.002

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class ClientOptions:
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = True
    user_agent: str | None = DEFAULT_USER_AGENT
    default_headers: Mapping[str, str] = field(default_factory=dict)
    transport_options: Mapping[str, Any] = field(default_factory=dict)
    concurrency: int = DEFAULT_CONCURRENCY
    per_host: int = DEFAULT_PER_HOST
    poll_interval: float = DEFAULT_POLL_INTERVAL
    fallback_sleep: float = DEFAULT_FALLBACK_SLEEP
    log_level: LogLevel = "info"

    def __post_init__(self) -> None:
        for name in ("connect_timeout", "timeout", "poll_interval"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.fallback_sleep < 0:
            raise ConfigurationError("fallback_sleep must not be negative")
        if self.concurrency < 1 or self.per_host < 1:
            raise ConfigurationError("concurrency and per_host must be at least 1")

    def request_defaults(self) -> RequestSpec:
        """Seed for every builder created by a client using these options."""
        return RequestSpec(
            headers=self.default_headers,
            transport_options=self.transport_options,
            connect_timeout=self.connect_timeout,
            timeout=self.timeout,
            verify_tls=self.verify_tls,
            user_agent=self.user_agent,
        )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        prefix: str = ENV_PREFIX,
        **overrides: Any,
    ) -> "ClientOptions":
        """Build options from ``HYPERWIRE_*`` variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for option in fields(cls):
            parse = _ENV_PARSERS.get(option.name)
            raw = env.get(prefix + option.name.upper())
            if parse is None or raw is None or raw == "":
                continue
            try:
                values[option.name] = parse(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid value for {prefix}{option.name.upper()}: {raw!r}"
                ) from exc
        return replace(cls(**values), **overrides)


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(raw)


def _parse_user_agent(raw: str) -> str | None:
    return None if raw.strip().lower() == "none" else raw


_ENV_PARSERS: dict[str, Callable[[str], Any]] = {
    "connect_timeout": float,
    "timeout": float,
    "verify_tls": _parse_bool,
    "user_agent": _parse_user_agent,
    "concurrency": int,
    "per_host": int,
    "poll_interval": float,
    "fallback_sleep": float,
    "log_level": parse_log_level,
}


__all__ = ["ClientOptions", "ENV_PREFIX"]
