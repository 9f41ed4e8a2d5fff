from __future__ import annotations

import pytest
from jose import JWTError, jwt

from jobly.core.config import Settings
from jobly.core.security import create_token, decode_token, hash_password, verify_password


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"secret_key": "unit-secret", "otel_enabled": False}
    values.update(overrides)
    return Settings(**values)


def test_token_carries_subject_and_admin_flag() -> None:
    settings = _settings()

    principal = decode_token(create_token(username="u1", is_admin=True, settings=settings), settings)

    assert principal.subject == "u1"
    assert principal.is_admin is True


def test_token_signed_with_other_key_is_rejected() -> None:
    token = create_token(username="u1", is_admin=False, settings=_settings(secret_key="other"))

    with pytest.raises(JWTError):
        decode_token(token, _settings())


def test_expired_token_is_rejected() -> None:
    settings = _settings()
    token = jwt.encode({"sub": "u1", "exp": 1}, settings.secret_key, algorithm=settings.token_algorithm)

    with pytest.raises(JWTError):
        decode_token(token, settings)


def test_token_without_subject_is_rejected() -> None:
    settings = _settings()
    token = jwt.encode({"is_admin": True}, settings.secret_key, algorithm=settings.token_algorithm)

    with pytest.raises(JWTError):
        decode_token(token, settings)


def test_string_admin_claim_does_not_grant_admin() -> None:
    settings = _settings()
    token = jwt.encode({"sub": "u1", "is_admin": "true"}, settings.secret_key, algorithm=settings.token_algorithm)

    assert decode_token(token, settings).is_admin is False


def test_password_hash_verifies_only_the_original_password() -> None:
    hashed = hash_password("password1", work_factor=4)

    assert hashed != "password1"
    assert verify_password("password1", hashed)
    assert not verify_password("password2", hashed)
    assert not verify_password("password1", "not-a-bcrypt-hash")
