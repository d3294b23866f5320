import pytest

from hyperwire.errors import ConfigurationError
from hyperwire.headers import (
    HeaderSink,
    mask_headers,
    merge_headers,
    normalize_header_key,
    validate_header_key,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("content-type", "Content-Type"),
        ("Content-Type", "Content-Type"),
        ("CONTENT-TYPE", "Content-Type"),
        ("x-request-id", "X-Request-Id"),
        ("etag", "Etag"),
        (" accept ", "Accept"),
    ],
)
def test_normalize_header_key(raw: str, expected: str) -> None:
    assert normalize_header_key(raw) == expected


def test_normalize_header_key_is_idempotent() -> None:
    for key in ["content-type", "X-FORWARDED-FOR", "www-authenticate"]:
        once = normalize_header_key(key)
        assert normalize_header_key(once) == once


def test_merge_headers_last_write_wins_under_normalized_keys() -> None:
    merged = merge_headers({"content-type": "a"}, {"Content-Type": "b", "accept": "c"})
    assert merged == {"Content-Type": "b", "Accept": "c"}


def test_validate_header_key_rejects_invalid_names() -> None:
    assert validate_header_key("X-Ok") == "X-Ok"
    with pytest.raises(ConfigurationError):
        validate_header_key("")
    with pytest.raises(ConfigurationError):
        validate_header_key("bad:name")
    with pytest.raises(ConfigurationError):
        validate_header_key("bad\nname")


def test_mask_headers_hides_credentials() -> None:
    masked = mask_headers({"authorization": "Basic abc", "Accept": "*/*"})
    assert masked == {"authorization": "***", "Accept": "*/*"}


def test_header_sink_splits_at_first_colon_and_trims() -> None:
    sink = HeaderSink()
    sink.feed("HTTP/1.1 200 OK\r\n")
    sink.feed("content-type:  application/json \r\n")
    sink.feed(b"Location: http://h:8080/x\r\n")
    sink.feed("\r\n")
    assert sink.headers == {
        "Content-Type": "application/json",
        "Location": "http://h:8080/x",
    }


def test_header_sink_keeps_last_value_and_resets() -> None:
    sink = HeaderSink()
    sink.feed("set-cookie: a=1")
    sink.feed("Set-Cookie: b=2")
    assert sink.headers == {"Set-Cookie": "b=2"}
    sink.reset()
    assert sink.headers == {}
    assert len(sink) == 0


def test_header_sink_ignores_lines_starting_with_colon() -> None:
    sink = HeaderSink()
    sink.feed(":authority: example.com")
    assert sink.headers == {}


def test_header_sink_returns_line_length() -> None:
    sink = HeaderSink()
    assert sink.feed("a: b\r\n") == 6
