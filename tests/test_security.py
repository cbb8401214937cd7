"""Unit tests for the hasher, token issuer and API key helpers."""

from datetime import timedelta
from types import SimpleNamespace

import jwt
import pytest

from models.base_model import utcnow
from utils.security import (
    API_KEY_PREFIX,
    TokenIssuer,
    api_key_prefix,
    generate_api_key,
)

TEST_SECRET = "Test-Secret-Key_for-Automation-Only-987654321!"


def _user(**overrides):
    fields = {
        "id": "2f1c7c1e-8a59-4b8e-9d0c-3f1d3c1e2a11",
        "username": "alice",
        "email": "alice@example.com",
        "full_name": "Alice Example",
        "email_verified": False,
        "is_active": True,
        "roles": ["User"],
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestCredentialHasher:
    def test_hash_is_not_plaintext_and_verifies(self, hasher):
        digest = hasher.hash("Secret#123")
        assert digest != "Secret#123"
        assert digest.startswith("$argon2id$")
        assert hasher.verify("Secret#123", digest)

    def test_same_secret_hashes_differently(self, hasher):
        assert hasher.hash("Secret#123") != hasher.hash("Secret#123")

    def test_wrong_secret_is_false(self, hasher):
        assert not hasher.verify("Wrong#123", hasher.hash("Secret#123"))

    def test_garbage_digest_is_false_not_error(self, hasher):
        assert not hasher.verify("Secret#123", "not-a-hash")
        assert not hasher.verify("Secret#123", "")
        assert not hasher.verify("", hasher.hash("Secret#123"))


class TestTokenIssuer:
    def test_short_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenIssuer("too-short")

    def test_non_positive_lifetime_rejected(self):
        with pytest.raises(ValueError):
            TokenIssuer(TEST_SECRET, expiration_minutes=0)

    def test_access_token_claims(self, issuer):
        token = issuer.issue_access_token(_user(roles=["User", "Admin"]))
        claims = issuer.verify_access_token(token)
        assert claims["sub"] == "2f1c7c1e-8a59-4b8e-9d0c-3f1d3c1e2a11"
        assert claims["unique_name"] == "alice"
        assert claims["email"] == "alice@example.com"
        assert claims["full_name"] == "Alice Example"
        assert claims["email_verified"] is False
        assert claims["user_active"] is True
        assert claims["roles"] == ["User", "Admin"]
        assert claims["iss"] == "AuthenticationService"
        assert claims["aud"] == "AuthenticationService"
        assert claims["exp"] - claims["iat"] == 60 * 60
        assert claims["jti"]

    def test_each_token_gets_its_own_jti(self, issuer):
        user = _user()
        first = issuer.verify_access_token(issuer.issue_access_token(user))
        second = issuer.verify_access_token(issuer.issue_access_token(user))
        assert first["jti"] != second["jti"]

    def test_expired_token_rejected(self):
        past = utcnow() - timedelta(hours=2)
        stale_issuer = TokenIssuer(TEST_SECRET, clock=lambda: past)
        token = stale_issuer.issue_access_token(_user())
        assert TokenIssuer(TEST_SECRET).verify_access_token(token) is None

    def test_wrong_secret_rejected(self, issuer):
        other = TokenIssuer("another-secret-that-is-also-long-enough!!")
        assert issuer.verify_access_token(other.issue_access_token(_user())) is None

    def test_wrong_audience_or_issuer_rejected(self, issuer):
        token = issuer.issue_access_token(_user())
        assert TokenIssuer(TEST_SECRET, audience="SomeoneElse").verify_access_token(token) is None
        assert TokenIssuer(TEST_SECRET, issuer="SomeoneElse").verify_access_token(token) is None

    def test_other_algorithm_rejected(self, issuer):
        now = utcnow()
        token = jwt.encode(
            {
                "sub": "x",
                "iss": "AuthenticationService",
                "aud": "AuthenticationService",
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            TEST_SECRET,
            algorithm="HS512",
        )
        assert issuer.verify_access_token(token) is None

    def test_garbage_token_rejected(self, issuer):
        assert issuer.verify_access_token("not.a.jwt") is None

    def test_refresh_token_shape(self, issuer):
        value = issuer.issue_refresh_token()
        assert issuer.is_well_formed_refresh_token(value)
        assert value != issuer.issue_refresh_token()

    @pytest.mark.parametrize("value", ["", "abc", "!!!not-base64!!!", "QUJD", None])
    def test_malformed_refresh_tokens(self, issuer, value):
        assert not issuer.is_well_formed_refresh_token(value)


class TestApiKeyHelpers:
    def test_generated_key_layout(self):
        prefix, key = generate_api_key()
        assert prefix.startswith(API_KEY_PREFIX)
        assert key.startswith(prefix + "_")
        assert api_key_prefix(key) == prefix

    def test_prefix_of_key_without_separator(self):
        assert api_key_prefix("noseparatorhere") is None
        assert api_key_prefix("") is None
        assert api_key_prefix("_leading") is None
