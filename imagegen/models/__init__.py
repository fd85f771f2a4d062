"""SQLAlchemy ORM models."""

from imagegen.models.base import Base
from imagegen.models.image import Image
from imagegen.models.user import Admin, User

__all__ = ["Admin", "Base", "Image", "User"]
