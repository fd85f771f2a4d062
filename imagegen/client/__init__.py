"""Python session client for the ImageGen API."""

from imagegen.client.api import ApiClient, ApiError
from imagegen.client.session import SessionState, SessionStore
from imagegen.client.storage import FileStorage, MemoryStorage

__all__ = [
    "ApiClient",
    "ApiError",
    "FileStorage",
    "MemoryStorage",
    "SessionState",
    "SessionStore",
]
