"""
User Model

Represents a library user who can log in and add to the catalog.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from library_api.database import Base


class User(Base):
    """
    User model representing registered users in the system.

    Table: users

    Each user has their own bcrypt password hash; the plain password is
    never stored.

    Indexes:
    - username: Unique index for login lookups

    Example:
        user = User(
            username="alice",
            favorite_genre="fantasy",
            hashed_password=hash_password("secret"),
        )
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Identity Fields
    # -------------------------------------------------------------------------
    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
        comment="Unique login name"
    )

    favorite_genre: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Genre used for the user's recommendations"
    )

    # -------------------------------------------------------------------------
    # Authentication Fields
    # -------------------------------------------------------------------------
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hash of the user's password"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, username='{self.username}')"
