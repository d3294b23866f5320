import asyncio

import httpx
import pytest

import hyperwire
from hyperwire import ClientOptions, ErrorKind, HttpClient, HTTPStatusError, Method
from hyperwire.logger import create_logger
from hyperwire.transport import HttpTransport, MultiplexHttpTransport

QUIET = create_logger(level="error")


def make_client(handler, async_handler=None, **overrides) -> HttpClient:
    async def default_async(request: httpx.Request) -> httpx.Response:
        return handler(request)

    return HttpClient(
        transport=HttpTransport(backend=httpx.MockTransport(handler), logger=QUIET),
        multiplex_transport=MultiplexHttpTransport(
            backend=httpx.MockTransport(async_handler or default_async), logger=QUIET
        ),
        logger=QUIET,
        **overrides,
    )


def echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "method": request.method,
            "path": request.url.path,
            "query": dict(request.url.params),
            "team": request.headers.get("x-team"),
            "agent": request.headers.get("user-agent"),
        },
    )


@pytest.mark.parametrize("verb", ["get", "post", "put", "delete", "patch"])
def test_verb_shortcuts(verb: str) -> None:
    client = make_client(echo)
    result = getattr(client, verb)("http://api.test/things").execute_for_json()
    assert result.data["method"] == verb.upper()


def test_request_with_custom_method() -> None:
    client = make_client(echo)
    assert client.request(Method.OPTIONS, "http://api.test/").execute_for_json().data["method"] == "OPTIONS"


def test_client_defaults_apply_to_every_request() -> None:
    client = make_client(echo, default_headers={"X-Team": "core"}, user_agent="checker/2")
    data = client.get("http://api.test/").execute_for_json().data
    assert data["team"] == "core"
    assert data["agent"] == "checker/2"


def test_user_agent_can_be_disabled() -> None:
    client = make_client(echo, user_agent=None)
    data = client.get("http://api.test/").execute_for_json().data
    assert not (data["agent"] or "").startswith("hyperwire/")


def test_execute_accepts_spec_or_builder() -> None:
    client = make_client(echo)
    builder = client.get("http://api.test/q").query_param("page", "2").for_json()
    assert client.execute(builder).data["query"] == {"page": "2"}
    assert client.execute(builder.build()).data["path"] == "/q"


def test_raise_for_error_from_client_result() -> None:
    client = make_client(lambda request: httpx.Response(500, text="down"))
    result = client.get("http://api.test/").execute()
    assert result.error_kind is ErrorKind.HTTP
    with pytest.raises(HTTPStatusError):
        result.raise_for_error()


def test_execute_many_uses_option_caps() -> None:
    in_flight = 0
    peak = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200, text=request.url.path)

    client = make_client(echo, handler, concurrency=2, per_host=5)
    results = client.execute_many({n: client.get(f"http://api.test/{n}") for n in range(6)})

    assert [result.data for result in results.values()] == [f"/{n}" for n in range(6)]
    assert peak <= 2


def test_options_and_overrides_are_exclusive() -> None:
    with pytest.raises(TypeError):
        HttpClient(ClientOptions(), timeout=5.0)


def test_client_is_a_context_manager() -> None:
    with make_client(echo) as client:
        assert client.get("http://api.test/").execute().ok


def test_module_shortcuts_use_default_client(monkeypatch) -> None:
    client = make_client(echo)
    monkeypatch.setattr(hyperwire.client, "_default_client", client)
    assert hyperwire.get("http://api.test/x").execute_for_json().data["path"] == "/x"
    assert hyperwire.default_client() is client
    assert hyperwire.RequestBuilder("GET", "http://api.test/y").execute_for_json().data["path"] == "/y"
