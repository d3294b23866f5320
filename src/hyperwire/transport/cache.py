"""Pooled httpx clients shared by the requests of one transport or batch."""

from __future__ import annotations

import os
import ssl
from typing import Any, Callable, Mapping

import httpx

from .base import PreparedRequest

# Library defaults; transport options are applied on top of these.
DEFAULT_CLIENT_SETTINGS: Mapping[str, Any] = {
    "follow_redirects": False,
    "http1": True,
    "http2": False,
    "trust_env": True,
}

# Owned by the prepared request or the cache, never passed through to httpx.
FIXED_CLIENT_SETTINGS = frozenset({"verify", "cert", "timeout", "limits", "transport", "base_url"})


def client_settings(prepared: PreparedRequest) -> dict[str, Any]:
    settings = dict(DEFAULT_CLIENT_SETTINGS)
    settings.update(
        (key, value)
        for key, value in prepared.transport_options.items()
        if key not in FIXED_CLIENT_SETTINGS
    )
    return settings


class SharedCache:
    """Reuses connections, DNS lookups and TLS sessions across requests.

    One httpx client is kept per distinct combination of TLS verification,
    client certificate and transport options. Requests that resolve to the
    same client share its keep-alive pool, so an origin is resolved and
    handshaked once and the connection is reused afterwards.

    SSL contexts are shared per (verification, client certificate) pair. A
    ``cert`` transport option always gets a context of its own, so the
    certificate is only ever presented by requests that asked for it.
    """

    def __init__(
        self,
        factory: Callable[..., Any] = httpx.Client,
        *,
        backend: Any | None = None,
        limits: httpx.Limits | None = None,
    ) -> None:
        self._factory = factory
        self._backend = backend
        self._limits = limits
        self._ssl_contexts: dict[tuple[bool, str], ssl.SSLContext] = {}
        self._clients: dict[tuple[Any, ...], Any] = {}

    def client_for(self, prepared: PreparedRequest) -> Any:
        settings = client_settings(prepared)
        key = (prepared.verify_tls, repr(prepared.transport_options.get("cert")), _freeze(settings))
        client = self._clients.get(key)
        if client is None:
            kwargs = dict(settings)
            kwargs["verify"] = self.context_for(prepared)
            if self._limits is not None:
                kwargs["limits"] = self._limits
            if self._backend is not None:
                kwargs["transport"] = self._backend
            client = self._factory(**kwargs)
            self._clients[key] = client
        return client

    def context_for(self, prepared: PreparedRequest) -> ssl.SSLContext:
        cert = prepared.transport_options.get("cert")
        key = (prepared.verify_tls, repr(cert))
        context = self._ssl_contexts.get(key)
        if context is None:
            context = httpx.create_ssl_context(verify=prepared.verify_tls)
            if cert is not None:
                load_client_cert(context, cert)
            self._ssl_contexts[key] = context
        return context

    def close(self) -> None:
        clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            client.close()

    async def aclose(self) -> None:
        clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            await client.aclose()

    def __len__(self) -> int:
        return len(self._clients)


def load_client_cert(context: ssl.SSLContext, cert: Any) -> None:
    """Accepts httpx's ``cert`` forms: a path, ``(certfile, keyfile)`` or
    ``(certfile, keyfile, password)``."""
    if isinstance(cert, (str, os.PathLike)):
        context.load_cert_chain(certfile=cert)
    elif isinstance(cert, tuple) and len(cert) == 2:
        context.load_cert_chain(certfile=cert[0], keyfile=cert[1])
    elif isinstance(cert, tuple) and len(cert) == 3:
        context.load_cert_chain(certfile=cert[0], keyfile=cert[1], password=cert[2])
    else:
        raise TypeError(f"Unsupported client certificate: {cert!r}")


def _freeze(settings: Mapping[str, Any]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted((key, repr(value)) for key, value in settings.items()))


__all__ = [
    "DEFAULT_CLIENT_SETTINGS",
    "FIXED_CLIENT_SETTINGS",
    "SharedCache",
    "client_settings",
    "load_client_cert",
]
