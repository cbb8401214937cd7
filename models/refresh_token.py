"""
RefreshToken model: one row per issued refresh token so tokens can be rotated
and revoked.
Fields:
- token (opaque base64 value, unique)
- user_id (String(36)) - FK to users.id
- expires_at
- revoked_at (RevocableMixin)
- replaced_by_token: forward pointer to the token minted when this one was exchanged
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, RevocableMixin


class RefreshToken(RevocableMixin, BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(500), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    replaced_by_token = Column(String(500), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} expires_at={self.expires_at}>"
