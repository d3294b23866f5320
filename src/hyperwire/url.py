"""URL materialization from a template plus path and query parameters."""

from __future__ import annotations

from typing import Mapping
from urllib.parse import urlencode, urlsplit


def strip_fragment(url: str) -> str:
    """Drop everything from the first ``#`` onward."""
    return url.split("#", 1)[0]


def build_url(
    template: str,
    path_params: Mapping[str, str] | None = None,
    query_params: Mapping[str, str] | None = None,
) -> str:
    """Substitute ``{name}`` placeholders and append query parameters.

    Path values are inserted verbatim. Query parameters are url-encoded and
    joined with ``&`` when the URL already carries a query, ``?`` otherwise.
    The result is not validated.
    """
    url = template
    for key, value in (path_params or {}).items():
        url = url.replace("{" + key + "}", value)

    if query_params:
        separator = "&" if _has_query(url) else "?"
        url = f"{url}{separator}{urlencode(list(query_params.items()))}"
    return url


def _has_query(url: str) -> bool:
    try:
        return bool(urlsplit(url).query)
    except ValueError:
        # urlsplit rejects some malformed netlocs; fall back to a plain scan
        _, _, query = url.partition("?")
        return bool(query)


__all__ = ["build_url", "strip_fragment"]
