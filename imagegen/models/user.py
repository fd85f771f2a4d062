"""ORM models for accounts: regular users and admins live in separate tables."""

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from imagegen.models.base import Base

ACCOUNT_STATUSES = ("active", "inactive", "banned")
DEFAULT_AVATAR_URL = "/uploads/default-avatar.svg"


class User(Base):
    """
    Image generation user registered through the public API.

    role: legacy column, always 'user'. Token and API roles come from the table, see
          services.accounts.account_role; admin access needs a row in admins.
    status: 'active', 'inactive' or 'banned'
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="user", server_default="user")
    status = Column(String(16), nullable=False, default="active", server_default="active")
    avatar_url = Column(String(255), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    images = relationship(
        "Image",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Admin(Base):
    """
    Back-office administrator. Seeded at startup or via the create_account script.

    status: 'active', 'inactive' or 'banned'; checked on every admin request.
    """

    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    status = Column(String(16), nullable=False, default="active", server_default="active")
    avatar_url = Column(String(255), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    role = "admin"
