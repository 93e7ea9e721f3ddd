"""Company model."""

import uuid

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.orm import relationship

from app.database import Base, utcnow


class Company(Base):
    """Organization that owns properties and employs property managers."""

    __tablename__ = "company"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(256), nullable=False)
    address = Column(JSON, nullable=False)  # {street, city, state, zipCode, country}
    phone = Column(String(64), nullable=False, default="")
    email = Column(String(256), nullable=False)
    website = Column(String(512), nullable=True)
    logo = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    users = relationship("User", back_populates="company")
