import pytest
from werkzeug.datastructures import Headers

from security.credentials import api_key_matches, get_api_key, get_bearer_token
from security.errors import MalformedInput, MissingCredential


def test_bearer_token_extracted():
    assert get_bearer_token({"Authorization": "Bearer abc.def.ghi"}) == "abc.def.ghi"


def test_bearer_token_from_werkzeug_headers_is_case_insensitive_on_name():
    headers = Headers([("authorization", "Bearer tok")])
    assert get_bearer_token(headers) == "tok"


@pytest.mark.parametrize("value", [
    None,
    "",
    "Bearer",
    "Bearer ",
    "bearer tok",
    "BEARER tok",
    "Token tok",
    "Bearer tok extra",
    "Bearer  tok",
    "Basic dXNlcjpwYXNz",
])
def test_bearer_token_rejects_anything_but_exact_form(value):
    headers = {} if value is None else {"Authorization": value}
    with pytest.raises(MissingCredential):
        get_bearer_token(headers)


def test_missing_credential_is_malformed_input():
    with pytest.raises(MalformedInput):
        get_bearer_token({})


def test_api_key_extracted_and_stripped():
    assert get_api_key({"X-Api-Key": "  f271c81ff7084ee5b99a5091b42d486e "}) == "f271c81ff7084ee5b99a5091b42d486e"


def test_api_key_custom_header():
    assert get_api_key({"X-Polka-Key": "k"}, header_name="X-Polka-Key") == "k"


@pytest.mark.parametrize("headers", [{}, {"X-Api-Key": ""}, {"X-Api-Key": "   "}, {"Authorization": "Bearer k"}])
def test_api_key_missing(headers):
    with pytest.raises(MissingCredential):
        get_api_key(headers)


def test_api_key_matches():
    assert api_key_matches("secret-key", "secret-key") is True
    assert api_key_matches("secret-key", "Secret-Key") is False
    assert api_key_matches("secret-key", "") is False
    assert api_key_matches("secret-key", None) is False
    assert api_key_matches("", "") is False
