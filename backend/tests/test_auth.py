import pytest

from epsilon.auth import extract_session_token


@pytest.mark.parametrize("cookies, authorization, expected", [
    ({}, "Bearer abc123", "abc123"),
    ({}, "bearer abc123", "abc123"),
    ({"better-auth.session_token": "abc123.c2lnbmF0dXJl"}, None, "abc123"),
    ({"better-auth.session_token": "abc123%2Ec2ln"}, None, "abc123"),
    ({"__Secure-better-auth.session_token": "abc123.sig"}, None, "abc123"),
    ({"better-auth.session_token": "cookie-token.sig"}, "Bearer header-token", "header-token"),
    ({}, None, None),
    ({}, "Basic dXNlcjpwYXNz", None),
])
def test_extract_session_token(cookies, authorization, expected):
    assert extract_session_token(cookies, authorization) == expected
