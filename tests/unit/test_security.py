"""
Unit tests for the security helpers.

Covers password hashing, access/refresh token separation, one-time codes
and the digests stored in place of raw secrets.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import JWTError

from utils.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    ensure_utc,
    generate_otp,
    generate_reset_token,
    generate_share_code,
    hash_password,
    hash_token,
    token_matches,
    verify_password,
)


class TestPasswordHashing:
    """Tests for argon2 password hashing."""

    def test_hash_differs_from_password(self):
        hashed = hash_password("Secret123!")

        assert hashed != "Secret123!"
        assert verify_password("Secret123!", hashed) is True

    def test_same_password_gives_different_hashes(self):
        assert hash_password("Secret123!") != hash_password("Secret123!")

    def test_wrong_password_rejected(self):
        hashed = hash_password("Secret123!")

        assert verify_password("secret123!", hashed) is False


class TestTokens:
    """Tests for JWT creation and type checks."""

    def test_access_token_round_trip(self):
        token = create_access_token({"sub": "abc", "role": "user"})
        payload = decode_access_token(token)

        assert payload["sub"] == "abc"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_refresh_token_is_not_an_access_token(self):
        """A refresh token is signed with its own key and type."""
        refresh = create_refresh_token({"sub": "abc"})

        with pytest.raises(JWTError):
            decode_access_token(refresh)
        assert decode_refresh_token(refresh)["type"] == "refresh"

    def test_access_token_is_not_a_refresh_token(self):
        access = create_access_token({"sub": "abc"})

        with pytest.raises(JWTError):
            decode_refresh_token(access)

    def test_tokens_issued_back_to_back_differ(self):
        first = create_refresh_token({"sub": "abc"})
        second = create_refresh_token({"sub": "abc"})

        assert first != second
        assert decode_refresh_token(first)["jti"] != decode_refresh_token(second)["jti"]
        assert "iat" in decode_refresh_token(first)

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-5))

        with pytest.raises(JWTError):
            decode_access_token(token)


class TestOneTimeSecrets:
    """Tests for OTPs, reset tokens, share codes and their digests."""

    def test_otp_is_six_digits_without_leading_zero(self):
        for _ in range(50):
            otp = generate_otp()
            assert len(otp) == 6
            assert otp.isdigit()
            assert otp[0] != "0"

    def test_share_code_is_32_hex_chars(self):
        codes = {generate_share_code() for _ in range(100)}

        assert len(codes) == 100
        for code in codes:
            assert len(code) == 32
            int(code, 16)

    def test_reset_token_is_40_hex_chars(self):
        assert len(generate_reset_token()) == 40

    def test_token_matches_against_digest(self):
        digest = hash_token("123456")

        assert digest != "123456"
        assert token_matches("123456", digest) is True
        assert token_matches("654321", digest) is False
        assert token_matches("123456", None) is False


class TestEnsureUtc:
    def test_naive_datetime_assumed_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)

        assert ensure_utc(naive).tzinfo == timezone.utc

    def test_none_passes_through(self):
        assert ensure_utc(None) is None
