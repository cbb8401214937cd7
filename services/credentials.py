"""
Credential lifecycle orchestration.

CredentialCore composes the hasher, the token issuer, the lockout guard and
the session store into the operations the HTTP layer exposes: registration,
password login, refresh-token rotation, logout, password change, profile
read/update and the API-key lifecycle.

Every public operation returns a ServiceResult envelope. Expected failures
are CredentialError subclasses (or marshmallow ValidationErrors from request
loading); anything else is logged with its traceback and reported to the
caller as a generic Internal error.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from functools import wraps
from typing import Callable, Optional

from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError

from models.api_key import ApiKey
from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.schemas.api_key import ApiKeyCreateSchema, ApiKeyOutSchema
from models.schemas.common import flatten_errors
from models.schemas.user import (
    AuthResponseSchema,
    ChangePasswordSchema,
    ConfirmResetPasswordSchema,
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
    UpdateUserSchema,
    UserInfoSchema,
)
from models.user import DEFAULT_ROLE, User
from services.account_guard import AccountGuard
from services.errors import (
    AccountInactive,
    AccountLocked,
    Conflict,
    CredentialError,
    ErrorKind,
    InvalidApiKey,
    InvalidCredentials,
    InvalidToken,
    LimitExceeded,
    NotFound,
    ServiceResult,
    Unimplemented,
)
from utils.security import CredentialHasher, TokenIssuer, api_key_prefix, generate_api_key

logger = logging.getLogger(__name__)

REFRESH_TOKEN_LIFETIME = timedelta(days=7)
EXTENDED_REFRESH_TOKEN_LIFETIME = timedelta(days=30)
REGISTRATION_REFRESH_TOKEN_LIFETIME = timedelta(days=30)
MAX_ACTIVE_API_KEYS = 10
PREFIX_ATTEMPTS = 5
PROFILE_FIELDS = ("full_name", "avatar_url", "phone_number")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
change_password_schema = ChangePasswordSchema()
update_user_schema = UpdateUserSchema()
reset_password_schema = ResetPasswordSchema()
confirm_reset_password_schema = ConfirmResetPasswordSchema()
api_key_create_schema = ApiKeyCreateSchema()
user_info_schema = UserInfoSchema()
auth_response_schema = AuthResponseSchema()
api_key_out_schema = ApiKeyOutSchema()
api_key_list_schema = ApiKeyOutSchema(many=True)


def envelope(action: str):
    """Convert the outcome of a core operation into a ServiceResult."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except CredentialError as exc:
                self.storage.rollback()
                return ServiceResult.from_error(exc)
            except ValidationError as err:
                self.storage.rollback()
                return ServiceResult.fail(
                    ErrorKind.VALIDATION_FAILED, "Validation failed", flatten_errors(err.messages)
                )
            except Exception:
                logger.exception("Error during %s", action)
                self.storage.rollback()
                return ServiceResult.fail(ErrorKind.INTERNAL, f"An error occurred during {action}")

        return wrapper

    return decorator


class CredentialCore:
    def __init__(
        self,
        storage,
        issuer: TokenIssuer,
        hasher: Optional[CredentialHasher] = None,
        guard: Optional[AccountGuard] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.issuer = issuer
        self.hasher = hasher or CredentialHasher()
        self.guard = guard or AccountGuard(storage)
        self._clock = clock
        # verified against when the account or key does not exist, so the
        # miss costs as much as a real check
        self._decoy_hash = self.hasher.hash("decoy-password-for-timing")

    # ----- helpers -----

    def _now(self) -> datetime:
        return self._clock()

    def _require_user(self, user_id: str) -> User:
        user = self.storage.find_account_by_id(user_id) if user_id else None
        if user is None:
            raise NotFound("User not found")
        return user

    def _issue_tokens(self, user: User, lifetime: timedelta, now: datetime) -> dict:
        """Mint an access/refresh pair and stage the refresh record."""
        refresh_value = self.issuer.issue_refresh_token()
        self.storage.insert_refresh_token(
            RefreshToken(token=refresh_value, user_id=user.id, expires_at=now + lifetime, created_at=now)
        )
        return self._auth_response(user, refresh_value)

    def _auth_response(self, user: User, refresh_value: str) -> dict:
        return auth_response_schema.dump(
            {
                "access_token": self.issuer.issue_access_token(user),
                "refresh_token": refresh_value,
                "token_type": "bearer",
                "expires_at": self.issuer.access_token_expiry(),
                "user": user,
            }
        )

    def _new_api_key(self):
        for _ in range(PREFIX_ATTEMPTS):
            prefix, key = generate_api_key()
            if not self.storage.prefix_exists(prefix):
                return prefix, key
        raise RuntimeError("Could not allocate a unique API key prefix")

    def _log_replay(self, value: str):
        stale = self.storage.find_refresh_token(value)
        if stale is not None and stale.replaced_by_token:
            logger.warning("Superseded refresh token presented again for user %s", stale.user_id)

    # ----- registration & login -----

    @envelope("registration")
    def register(self, payload: dict) -> ServiceResult:
        data = register_schema.load(payload or {})
        if self.storage.account_exists(data["email"], data["username"]):
            raise Conflict()

        now = self._now()
        user = User(
            email=data["email"],
            username=data["username"],
            password_hash=self.hasher.hash(data["password"]),
            full_name=data.get("full_name"),
            phone_number=data.get("phone_number"),
            email_verified=False,
            is_active=True,
            failed_login_attempts=0,
            roles=[DEFAULT_ROLE],
            created_at=now,
            updated_at=now,
        )
        try:
            with self.storage.transaction():
                self.storage.add_account(user)
                tokens = self._issue_tokens(user, REGISTRATION_REFRESH_TOKEN_LIFETIME, now)
        except IntegrityError:
            # lost a race against a concurrent registration of the same identity
            raise Conflict()

        logger.info("User registered successfully: %s", user.id)
        return ServiceResult.ok(tokens, "User registered successfully")

    @envelope("login")
    def login(self, payload: dict) -> ServiceResult:
        data = login_schema.load(payload or {})
        now = self._now()

        user = self.storage.find_account_by_email_or_username(data["username_or_email"])
        if user is None:
            self.hasher.verify(data["password"], self._decoy_hash)
            raise InvalidCredentials()

        self.guard.gate(user, now)

        if not self.hasher.verify(data["password"], user.password_hash):
            with self.storage.transaction():
                locked = self.guard.record_failure(user, now)
            if locked:
                raise AccountLocked()
            raise InvalidCredentials()

        self.guard.ensure_active(user)

        lifetime = EXTENDED_REFRESH_TOKEN_LIFETIME if data["remember_me"] else REFRESH_TOKEN_LIFETIME
        with self.storage.transaction():
            self.guard.record_success(user)
            user.last_login_at = now
            self.storage.update_account(user, now)
            tokens = self._issue_tokens(user, lifetime, now)

        logger.info("User logged in successfully: %s", user.id)
        return ServiceResult.ok(tokens, "Login successful")

    # ----- refresh tokens -----

    @envelope("token refresh")
    def refresh_token(self, payload: dict) -> ServiceResult:
        data = refresh_token_schema.load(payload or {})
        value = data["refresh_token"]
        now = self._now()

        if not self.issuer.is_well_formed_refresh_token(value):
            raise InvalidToken()

        record = self.storage.find_active_refresh_token(value, now)
        if record is None:
            self._log_replay(value)
            raise InvalidToken()

        user = record.user
        if not user.is_active:
            raise AccountInactive("User account is deactivated")

        new_value = self.issuer.issue_refresh_token()
        with self.storage.transaction():
            # conditional revoke: a concurrent exchange of the same token leaves nothing to revoke
            if not self.storage.revoke_refresh_token(record.id, replaced_by=new_value, now=now):
                raise InvalidToken()
            self.storage.insert_refresh_token(
                RefreshToken(
                    token=new_value,
                    user_id=user.id,
                    expires_at=now + REFRESH_TOKEN_LIFETIME,
                    created_at=now,
                )
            )

        return ServiceResult.ok(self._auth_response(user, new_value), "Token refreshed successfully")

    @envelope("logout")
    def logout(self, refresh_token: Optional[str], user_id: Optional[str] = None) -> ServiceResult:
        """
        Idempotent: unknown or already revoked tokens still log out fine.
        With user_id only that account's tokens can be revoked; anyone
        else's token is treated as unknown.
        """
        if refresh_token:
            record = self.storage.find_refresh_token(refresh_token)
            if user_id is not None and record is not None and record.user_id != user_id:
                logger.warning("User %s tried to revoke a refresh token it does not own", user_id)
                record = None
            if record is not None and not record.is_revoked:
                with self.storage.transaction():
                    self.storage.revoke_refresh_token(record.id, now=self._now())
        return ServiceResult.ok(None, "Logout successful")

    # ----- account -----

    @envelope("password change")
    def change_password(self, user_id: str, payload: dict) -> ServiceResult:
        data = change_password_schema.load(payload or {})
        user = self._require_user(user_id)

        if not self.hasher.verify(data["current_password"], user.password_hash):
            raise InvalidCredentials("Current password is incorrect")

        now = self._now()
        with self.storage.transaction():
            user.password_hash = self.hasher.hash(data["new_password"])
            self.storage.update_account(user, now)
            # every other session has to sign in again with the new password
            revoked = self.storage.revoke_all_refresh_tokens(user.id, now)

        logger.info("Password changed for user %s, %d refresh tokens revoked", user.id, revoked)
        return ServiceResult.ok(None, "Password changed successfully")

    @envelope("getting user info")
    def get_account_info(self, user_id: str) -> ServiceResult:
        user = self._require_user(user_id)
        return ServiceResult.ok(user_info_schema.dump(user))

    @envelope("updating user information")
    def update_account_info(self, user_id: str, payload: dict) -> ServiceResult:
        data = update_user_schema.load(payload or {})
        user = self._require_user(user_id)

        with self.storage.transaction():
            for field in PROFILE_FIELDS:
                # only provided, non-empty values overwrite
                if data.get(field):
                    setattr(user, field, data[field])
            self.storage.update_account(user, self._now())

        logger.info("User info updated for user %s", user.id)
        return ServiceResult.ok(user_info_schema.dump(user), "User information updated successfully")

    @envelope("password reset")
    def reset_password(self, payload: dict) -> ServiceResult:
        reset_password_schema.load(payload or {})
        raise Unimplemented("Password reset not implemented yet")

    @envelope("password reset confirmation")
    def confirm_reset_password(self, payload: dict) -> ServiceResult:
        confirm_reset_password_schema.load(payload or {})
        raise Unimplemented("Password reset confirmation not implemented yet")

    # ----- api keys -----

    @envelope("creating API key")
    def create_api_key(self, user_id: str, payload: dict) -> ServiceResult:
        data = api_key_create_schema.load(payload or {})
        user = self._require_user(user_id)
        now = self._now()

        if self.storage.count_active_api_keys(user.id, now) >= MAX_ACTIVE_API_KEYS:
            raise LimitExceeded(f"Maximum number of API keys reached ({MAX_ACTIVE_API_KEYS})")

        prefix, key = self._new_api_key()
        record = ApiKey(
            user_id=user.id,
            name=data["name"],
            key_hash=self.hasher.hash(key),
            prefix=prefix,
            scopes=list(data["scopes"]),
            expires_at=data.get("expires_at"),
            created_at=now,
            updated_at=now,
        )
        with self.storage.transaction():
            self.storage.insert_api_key(record)

        logger.info("API key created for user %s: %s (%s)", user.id, record.name, prefix)
        created = api_key_out_schema.dump(record)
        # the only time the plaintext key is ever returned
        created["api_key"] = key
        return ServiceResult.ok(created, "API key created successfully")

    @envelope("getting API keys")
    def list_api_keys(self, user_id: str) -> ServiceResult:
        return ServiceResult.ok(api_key_list_schema.dump(self.storage.list_api_keys(user_id)))

    @envelope("revoking API key")
    def revoke_api_key(self, user_id: str, key_id: str) -> ServiceResult:
        record = self.storage.find_api_key(user_id, key_id)
        if record is None:
            raise NotFound("API key not found")
        with self.storage.transaction():
            self.storage.revoke_api_key(record.id, self._now())
        logger.info("API key revoked for user %s: %s", user_id, key_id)
        return ServiceResult.ok(None, "API key revoked successfully")

    @envelope("validating API key")
    def validate_api_key(self, api_key: Optional[str]) -> ServiceResult:
        """
        On success data is the owning User (roles included) for building
        request claims. Unknown prefix, hash mismatch, expired or revoked key
        and inactive owner all fail the same way.
        """
        prefix = api_key_prefix(api_key)
        if prefix is None:
            raise InvalidApiKey("Invalid API key format")

        now = self._now()
        record = self.storage.find_api_key_by_prefix(prefix, now)
        if record is None:
            self.hasher.verify(api_key, self._decoy_hash)
            raise InvalidApiKey()
        if not self.hasher.verify(api_key, record.key_hash) or not record.user.is_active:
            raise InvalidApiKey()

        with self.storage.transaction():
            self.storage.update_api_key_last_used(record.id, now)
        return ServiceResult.ok(record.user, "API key is valid")
