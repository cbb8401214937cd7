from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Boolean, Integer, DateTime, JSON, Index
from sqlalchemy.orm import relationship

DEFAULT_ROLE = "User"


class User(BaseModel, Base):
    """Account aggregate: identity, password digest, lockout state and roles."""

    __tablename__ = "users"
    # email / username are stored lower-cased; uniqueness is therefore case-insensitive
    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(500), nullable=False)
    full_name = Column(String(200), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    phone_number = Column(String(20), nullable=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    roles = Column(JSON, nullable=False, default=lambda: [DEFAULT_ROLE])

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    api_keys = relationship(
        "ApiKey",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_users_is_active", "is_active"),
        Index("ix_users_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<User {self.username}>"
