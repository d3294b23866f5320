from hyperwire.auth import AUTHORIZATION_HEADER, BasicAuth


def test_header_value_is_base64_of_credentials() -> None:
    assert BasicAuth("user", "pass").header_value() == "Basic dXNlcjpwYXNz"


def test_add_http_headers_overrides_existing_authorization() -> None:
    headers = BasicAuth("user", "pass").add_http_headers(
        {"Authorization": "Bearer token", "Accept": "*/*"}
    )
    assert headers[AUTHORIZATION_HEADER] == "Basic dXNlcjpwYXNz"
    assert headers["Accept"] == "*/*"


def test_add_http_headers_does_not_mutate_input() -> None:
    original = {"Accept": "*/*"}
    BasicAuth("user", "pass").add_http_headers(original)
    assert original == {"Accept": "*/*"}


def test_password_is_hidden_from_repr() -> None:
    assert "secret" not in repr(BasicAuth("user", "secret"))
