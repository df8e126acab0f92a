"""Mail user SQLAlchemy model"""

import re

from sqlalchemy import Boolean, Column, DateTime, Integer, Text, func, true
from sqlalchemy.orm import validates

from .base import Base


class MailUser(Base):
    """Account allowed to submit mail over SMTP and use the HTTP API.

    The SMTP password and the API key are stored as Argon2id hashes.
    """
    __tablename__ = "mail_user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=True)
    api_key_hash = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[^\s@]+@[^\s@]+\.[^\s@]+$', value or ""):
            raise ValueError("Invalid email format")
        return value.lower()
