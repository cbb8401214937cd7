#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the authentication service.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- RevocableMixin for credentials that are revoked instead of deleted

Notes:
- Timestamps are naive UTC everywhere. SQLite hands them back naive, so
  comparing against an aware "now" would raise.
- RevocableMixin: put the mixin FIRST in the inheritance list, same as any
  mixin that overrides BaseModel behaviour.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC now."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        Timestamps are filled on construction so they are readable before flush.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()
        now = utcnow()
        if getattr(self, "created_at", None) is None:
            self.created_at = now
        if getattr(self, "updated_at", None) is None:
            self.updated_at = now

    def touch(self, now: datetime | None = None):
        """Stamp updated_at; the storage layer decides when to commit."""
        self.updated_at = now or utcnow()


class RevocableMixin:
    """
    Adds a revoked_at timestamp for credentials that must stay on record
    after they stop being usable (refresh tokens, API keys).
    IMPORTANT: Place this mixin BEFORE BaseModel in the class base list.

    Example:
        class RefreshToken(RevocableMixin, BaseModel, Base):
            __tablename__ = "refresh_tokens"
            ...
    """

    revoked_at = Column(DateTime, nullable=True)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

