"""
Tests for bearer token handling.
"""

from datetime import timedelta

import pytest

from fastapi.security import HTTPAuthorizationCredentials
from jose import JWTError

from conftest import make_token

from vidvault.config import Settings
from vidvault.core.auth import resolve_user_id, validate_local_jwt
from vidvault.core.errors import Unauthenticated


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_valid_token(test_settings: Settings) -> None:
    assert resolve_user_id(bearer(make_token("user-1")), test_settings) == "user-1"


def test_missing_credentials(test_settings: Settings) -> None:
    with pytest.raises(Unauthenticated, match="Couldn't find JWT"):
        resolve_user_id(None, test_settings)


def test_empty_credentials(test_settings: Settings) -> None:
    with pytest.raises(Unauthenticated, match="Couldn't find JWT"):
        resolve_user_id(bearer(""), test_settings)


def test_wrong_secret(test_settings: Settings) -> None:
    token = make_token("user-1", secret="another-secret-key-that-is-long-enough-32")

    with pytest.raises(Unauthenticated, match="Couldn't validate JWT"):
        resolve_user_id(bearer(token), test_settings)


def test_expired_token(test_settings: Settings) -> None:
    token = make_token("user-1", expires_in=timedelta(minutes=-5))

    with pytest.raises(Unauthenticated) as exc_info:
        resolve_user_id(bearer(token), test_settings)

    assert exc_info.value.status_code == 401


def test_garbage_token(test_settings: Settings) -> None:
    with pytest.raises(Unauthenticated):
        resolve_user_id(bearer("not.a.jwt"), test_settings)


def test_token_without_subject(test_settings: Settings) -> None:
    with pytest.raises(Unauthenticated, match="no subject"):
        resolve_user_id(bearer(make_token(None)), test_settings)


def test_validate_local_jwt_reraises(test_settings: Settings) -> None:
    with pytest.raises(JWTError):
        validate_local_jwt("not.a.jwt", test_settings)
