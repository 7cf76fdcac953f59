"""
Tests for password hashing and JWT helpers.

Test Categories:
- Password Hashing (bcrypt)
- JWT Token Creation (access, refresh, pairs)
- JWT Token Validation (signature, expiration, type)
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from service_hub.core.config import get_settings
from service_hub.core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    PasswordError,
    TokenError,
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
    verify_token_type,
)

# ============================================================================
# Password Hashing
# ============================================================================


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("Secure123")

        assert hashed.startswith("$2b$")
        assert verify_password("Secure123", hashed)
        assert not verify_password("Secure124", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("Secure123") != hash_password("Secure123")

    def test_empty_password_cannot_be_hashed(self):
        with pytest.raises(PasswordError) as exc_info:
            hash_password("")
        assert exc_info.value.code == "EMPTY_PASSWORD"

    @pytest.mark.parametrize(
        "plain,hashed",
        [("", "$2b$12$abc"), ("Secure123", ""), ("Secure123", "not-a-bcrypt-hash")],
    )
    def test_invalid_inputs_never_verify(self, plain: str, hashed: str):
        assert verify_password(plain, hashed) is False


# ============================================================================
# JWT Tokens
# ============================================================================


class TestJWTTokens:
    def test_access_token_claims(self):
        token = create_access_token({"sub": "user-1", "email": "a@example.com"})

        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["email"] == "a@example.com"
        assert payload["type"] == ACCESS_TOKEN_TYPE
        lifetime = payload["exp"] - payload["iat"]
        assert lifetime == get_settings().jwt_access_token_expire_minutes * 60

    def test_refresh_token_lifetime(self):
        payload = decode_token(create_refresh_token({"sub": "user-1"}))

        assert payload["type"] == REFRESH_TOKEN_TYPE
        assert payload["exp"] - payload["iat"] == get_settings().jwt_refresh_token_expire_days * 86400

    def test_token_pair(self):
        tokens = create_token_pair("user-1", "a@example.com")

        assert verify_token_type(decode_token(tokens["access_token"]), ACCESS_TOKEN_TYPE)
        assert verify_token_type(decode_token(tokens["refresh_token"]), REFRESH_TOKEN_TYPE)

    def test_type_mismatch(self):
        payload = decode_token(create_refresh_token({"sub": "user-1"}))
        assert verify_token_type(payload, ACCESS_TOKEN_TYPE) is False

    def test_expired_token(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-5))

        with pytest.raises(TokenError) as exc_info:
            decode_token(token)
        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_signature(self):
        settings = get_settings()
        forged = jwt.encode(
            {
                "sub": "user-1",
                "type": ACCESS_TOKEN_TYPE,
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            "another-secret-key-that-is-long-enough",
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(TokenError) as exc_info:
            decode_token(forged)
        assert exc_info.value.code == "TOKEN_INVALID"

    @pytest.mark.parametrize("token,code", [("", "EMPTY_TOKEN"), ("abc.def", "TOKEN_INVALID")])
    def test_malformed_tokens(self, token: str, code: str):
        with pytest.raises(TokenError) as exc_info:
            decode_token(token)
        assert exc_info.value.code == code
