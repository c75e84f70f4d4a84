"""
DevDoc Backend — User SQLAlchemy Model
========================================

What:  ORM model representing the `users` table.
Who:   Used by the auth service (register/login) and the auth gate.

Invariants:
    - email is unique and stored lowercase
    - password_hash holds a salted bcrypt hash; plaintext is never stored
    - users are never updated or deleted by the application
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.project import UTCDateTime, utcnow


class User(Base):
    """An account that owns projects."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Lowercased login email",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the password",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
