"""User model."""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import relationship

from app.database import Base, utcnow


class UserRole(str, enum.Enum):
    """Roles a user can hold."""

    PROPERTY_MANAGER = "PROPERTY_MANAGER"
    ADMIN = "ADMIN"
    TENANT = "TENANT"


class User(Base):
    """Application user."""

    __tablename__ = "user"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.PROPERTY_MANAGER)
    company_id = Column(String(36), ForeignKey("company.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="users")
    refresh_tokens = relationship("RefreshToken", back_populates="user", passive_deletes=True)
    password_reset_tokens = relationship("PasswordResetToken", back_populates="user", passive_deletes=True)
