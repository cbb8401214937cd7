"""
security helpers:
- Argon2 hashing of passwords and API-key secrets via argon2-cffi
- JWT access tokens via PyJWT (HS256 only)
- Opaque refresh tokens and API keys from the secrets module
"""
from __future__ import annotations

import base64
import binascii
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from models.base_model import utcnow

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
REFRESH_TOKEN_BYTES = 64
API_KEY_PREFIX = "ak"
API_KEY_SEPARATOR = "_"


class CredentialHasher:
    """One-way, salted hashing for passwords and API-key secrets (argon2id)."""

    def __init__(self, password_hasher: Optional[PasswordHasher] = None):
        self._ph = password_hasher or PasswordHasher()

    def hash(self, secret: str) -> str:
        return self._ph.hash(secret)

    def verify(self, secret: str, digest: str) -> bool:
        """Never raises: a mismatch or an unparsable digest is just False."""
        if not secret or not digest:
            return False
        try:
            return self._ph.verify(digest, secret)
        except (VerificationError, InvalidHashError, TypeError):
            return False


class TokenIssuer:
    """
    Mints and checks credentials that are not stored in clear:
    signed access tokens (JWT) and high-entropy refresh tokens.
    """

    def __init__(
        self,
        secret: str,
        issuer: str = "AuthenticationService",
        audience: str = "AuthenticationService",
        expiration_minutes: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT secret must be at least {MIN_SECRET_LENGTH} characters")
        if expiration_minutes < 1:
            raise ValueError("Access token lifetime must be at least one minute")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.access_token_ttl = timedelta(minutes=expiration_minutes)
        self._clock = clock

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenIssuer":
        return cls(
            secret=config.get("JWT_SECRET"),
            issuer=config.get("JWT_ISSUER", "AuthenticationService"),
            audience=config.get("JWT_AUDIENCE", "AuthenticationService"),
            expiration_minutes=int(config.get("JWT_EXPIRATION_MINUTES", 60)),
        )

    def access_token_expiry(self, issued_at: Optional[datetime] = None) -> datetime:
        return (issued_at or self._clock()) + self.access_token_ttl

    def issue_access_token(self, user) -> str:
        now = self._clock()
        payload = {
            "sub": str(user.id),
            "unique_name": user.username,
            "email": user.email,
            "full_name": user.full_name or "",
            "email_verified": bool(user.email_verified),
            "user_active": bool(user.is_active),
            "roles": list(user.roles or []),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": self.access_token_expiry(now),
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def verify_access_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Return the claims of a valid access token, or None.
        Signature, issuer, audience and expiry are all enforced with no leeway,
        and the header must name HS256 exactly.
        """
        try:
            alg = jwt.get_unverified_header(token).get("alg")
            if alg != JWT_ALGORITHM:
                logger.warning("Rejected access token with unexpected algorithm %r", alg)
                return None
            return jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                leeway=0,
                options={"require": ["exp", "iat", "iss", "aud", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Rejected expired access token")
            return None
        except jwt.PyJWTError as exc:
            logger.warning("Access token validation failed: %s", exc)
            return None

    @staticmethod
    def issue_refresh_token() -> str:
        return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")

    @staticmethod
    def is_well_formed_refresh_token(value: str) -> bool:
        """Format check only; whether the token is live is up to the store."""
        if not isinstance(value, str) or not value:
            return False
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            return False
        return len(raw) == REFRESH_TOKEN_BYTES


def generate_api_key() -> Tuple[str, str]:
    """Return (prefix, full_key); the key is "<prefix>_<secret>"."""
    prefix = API_KEY_PREFIX + secrets.token_hex(4)
    return prefix, f"{prefix}{API_KEY_SEPARATOR}{secrets.token_urlsafe(32)}"


def api_key_prefix(api_key: str) -> Optional[str]:
    """Prefix of a presented key, or None when it has no separator."""
    if not api_key or API_KEY_SEPARATOR not in api_key:
        return None
    prefix = api_key.split(API_KEY_SEPARATOR, 1)[0]
    return prefix or None
