"""Tests for JWT utilities."""
from datetime import timedelta

import jwt
import pytest
from jwt.exceptions import ExpiredSignatureError, InvalidSignatureError, InvalidTokenError

from vendorhive.lib.jwt import create_access_token, get_user_from_token, verify_token


@pytest.mark.unit
def test_create_and_verify_token():
    """Test creating and verifying a valid token."""
    token = create_access_token(42, "vendor", secret="s3cret")

    assert isinstance(token, str)
    assert len(token) > 0

    payload = verify_token(token, secret="s3cret")
    assert payload["sub"] == "42"
    assert payload["role"] == "vendor"
    assert "iat" in payload
    assert "exp" in payload


@pytest.mark.unit
def test_get_user_from_token():
    """Test extracting user id and role from token."""
    token = create_access_token(7, "user", secret="s3cret")

    user_id, role = get_user_from_token(token, secret="s3cret")
    assert user_id == 7
    assert role == "user"


@pytest.mark.unit
def test_expired_token():
    """Test that expired tokens are rejected."""
    token = create_access_token(1, "user", expires_delta=timedelta(seconds=-1), secret="s3cret")

    with pytest.raises(ExpiredSignatureError):
        verify_token(token, secret="s3cret")


@pytest.mark.unit
def test_wrong_secret_rejected():
    """Test that a token signed with another key does not verify."""
    token = create_access_token(1, "user", secret="one-key")

    with pytest.raises(InvalidSignatureError):
        verify_token(token, secret="another-key")


@pytest.mark.unit
def test_invalid_token_string():
    """Test that garbage tokens raise InvalidTokenError."""
    with pytest.raises(InvalidTokenError):
        verify_token("not.a.token", secret="s3cret")


@pytest.mark.unit
def test_non_numeric_subject_rejected():
    """Test that a subject that is not a user id is treated as invalid."""
    import jwt as pyjwt

    token = pyjwt.encode({"sub": "abc", "role": "user"}, "s3cret", algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        get_user_from_token(token, secret="s3cret")


@pytest.mark.unit
def test_explicit_algorithm():
    """Test tokens are signed and checked with the algorithm passed in."""
    token = create_access_token(3, "user", secret="s3cret", algorithm="HS512")

    assert jwt.get_unverified_header(token)["alg"] == "HS512"
    assert get_user_from_token(token, secret="s3cret", algorithm="HS512") == (3, "user")
    with pytest.raises(InvalidTokenError):
        verify_token(token, secret="s3cret", algorithm="HS256")
