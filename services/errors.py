"""
Error kinds for the credential core and the result envelope every
operation returns.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    VALIDATION_FAILED = "ValidationFailed"
    CONFLICT = "Conflict"
    INVALID_CREDENTIALS = "InvalidCredentials"
    ACCOUNT_LOCKED = "AccountLocked"
    ACCOUNT_INACTIVE = "AccountInactive"
    INVALID_TOKEN = "InvalidToken"
    INVALID_API_KEY = "InvalidApiKey"
    NOT_FOUND = "NotFound"
    LIMIT_EXCEEDED = "LimitExceeded"
    UNIMPLEMENTED = "Unimplemented"
    INTERNAL = "Internal"


class CredentialError(Exception):
    """Expected failure raised inside the core and turned into an envelope."""

    kind = ErrorKind.INTERNAL
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.errors = list(errors or [])
        super().__init__(self.message)


class ValidationFailed(CredentialError):
    kind = ErrorKind.VALIDATION_FAILED
    default_message = "Validation failed"


class Conflict(CredentialError):
    kind = ErrorKind.CONFLICT
    default_message = "User with this email or username already exists"


class InvalidCredentials(CredentialError):
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid credentials"


class AccountLocked(CredentialError):
    kind = ErrorKind.ACCOUNT_LOCKED
    default_message = "Account is temporarily locked due to too many failed login attempts"


class AccountInactive(CredentialError):
    kind = ErrorKind.ACCOUNT_INACTIVE
    default_message = "Account is deactivated"


class InvalidToken(CredentialError):
    kind = ErrorKind.INVALID_TOKEN
    default_message = "Invalid refresh token"


class InvalidApiKey(CredentialError):
    kind = ErrorKind.INVALID_API_KEY
    default_message = "Invalid API key"


class NotFound(CredentialError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class LimitExceeded(CredentialError):
    kind = ErrorKind.LIMIT_EXCEEDED
    default_message = "Limit exceeded"


class Unimplemented(CredentialError):
    kind = ErrorKind.UNIMPLEMENTED
    default_message = "Not implemented yet"


@dataclass
class ServiceResult(Generic[T]):
    """
    Uniform envelope: success, message, data, errors.
    error_kind is for adapters (status mapping, tests) and is not serialized.
    """

    success: bool
    message: str = "Success"
    data: Optional[T] = None
    errors: List[str] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Any = None, message: str = "Success") -> "ServiceResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, errors: Optional[List[str]] = None) -> "ServiceResult":
        return cls(success=False, message=message, data=None, errors=list(errors or []), error_kind=kind)

    @classmethod
    def from_error(cls, exc: CredentialError) -> "ServiceResult":
        return cls.fail(exc.kind, exc.message, exc.errors)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "errors": list(self.errors),
        }
