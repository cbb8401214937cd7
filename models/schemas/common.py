import re
from datetime import datetime, timezone

from marshmallow import ValidationError

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
PHONE_RE = re.compile(r"^[0-9+\-\s()]+$")
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 100

# (pattern, message) pairs every new password must satisfy
PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "must contain at least one number"),
    (re.compile(r"[^a-zA-Z0-9]"), "must contain at least one special character"),
)


def normalize_identifier(value):
    """Emails and usernames are compared lower-cased and stripped."""
    return value.strip().lower() if isinstance(value, str) else value


def validate_password_strength(value: str, label: str = "Password") -> None:
    if value is None:
        raise ValidationError(f"{label} is required")
    problems = []
    if len(value) < PASSWORD_MIN_LEN:
        problems.append(f"{label} must be at least {PASSWORD_MIN_LEN} characters")
    if len(value) > PASSWORD_MAX_LEN:
        problems.append(f"{label} cannot exceed {PASSWORD_MAX_LEN} characters")
    for pattern, message in PASSWORD_RULES:
        if not pattern.search(value):
            problems.append(f"{label} {message}")
    if problems:
        raise ValidationError(problems)


def validate_username(value: str) -> None:
    if not USERNAME_RE.match(value or ""):
        raise ValidationError("Username can only contain letters, numbers, underscores, and hyphens")


def validate_phone(value: str) -> None:
    if value and not PHONE_RE.match(value):
        raise ValidationError("Phone number contains invalid characters")


def to_naive_utc(value: datetime) -> datetime:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def flatten_errors(messages, parent: str = "") -> list:
    """Turn marshmallow's nested {field: [msg]} into ["field: msg", ...]."""
    flat = []
    if isinstance(messages, dict):
        for key, value in messages.items():
            name = f"{parent}.{key}" if parent else str(key)
            flat.extend(flatten_errors(value, name))
    elif isinstance(messages, (list, tuple)):
        for item in messages:
            flat.extend(flatten_errors(item, parent))
    else:
        flat.append(f"{parent}: {messages}" if parent else str(messages))
    return flat
