"""
ApiKey model: long-lived credential for programmatic callers.
The raw key is shown once at creation and never stored; key_hash holds its
argon2 digest and prefix (the part before the first "_") is kept in clear
for lookup and display.
"""
from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, RevocableMixin, utcnow


class ApiKey(RevocableMixin, BaseModel, Base):
    __tablename__ = "api_keys"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    key_hash = Column(String(500), nullable=False)
    prefix = Column(String(20), nullable=False, unique=True, index=True)
    scopes = Column(JSON, nullable=False, default=list)
    expires_at = Column(DateTime, nullable=True)
    last_used_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="api_keys")

    __table_args__ = (
        Index("ix_api_keys_created_at", "created_at"),
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and (now or utcnow()) >= self.expires_at

    def is_active(self, now: datetime | None = None) -> bool:
        return not self.is_revoked and not self.is_expired(now)

    def __repr__(self):
        return f"<ApiKey {self.prefix} user={self.user_id}>"
