"""Core app configuration, database and security primitives."""

from imagegen.core.config import get_settings, settings
from imagegen.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
