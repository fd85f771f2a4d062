"""Idempotent creation of the first admin account at startup."""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from imagegen.core.security import hash_password
from imagegen.models import Admin

logger = logging.getLogger(__name__)


def ensure_admin(db: Session, username: str, email: str, password: str) -> bool:
    """
    Insert an active admin unless one with this username or email already exists.

    Returns True when a row was created. An existing admin is never modified,
    so a password rotated in the database survives restarts.
    """
    username = username.strip()
    email = email.strip()
    existing = (
        db.query(Admin)
        .filter(or_(Admin.username == username, Admin.email == email))
        .first()
    )
    if existing is not None:
        logger.debug("Bootstrap admin already present", extra={"username": existing.username})
        return False
    db.add(
        Admin(
            username=username,
            email=email,
            password_hash=hash_password(password),
            status="active",
        )
    )
    db.commit()
    logger.info("Created bootstrap admin account", extra={"username": username})
    return True
