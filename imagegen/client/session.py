"""Client-side login state: one store object with login/restore/logout as the only mutations."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from imagegen.client.api import ApiClient, ApiError
from imagegen.client.storage import TOKEN_KEY, USER_KEY

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
VALIDATE_PATH = "/api/auth/validate-token"


@dataclass(frozen=True)
class SessionState:
    logged_in: bool = False
    token: str | None = None
    user: dict[str, Any] | None = None


LOGGED_OUT = SessionState()


class SessionStore:
    """
    Holds the client's belief about who is logged in.

    The token and user live in the persistent storage when "remember me" was
    chosen at login, otherwise in the session storage. A 401 seen by the
    underlying ApiClient tears the session down as well.
    """

    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self._state = LOGGED_OUT
        api.on_unauthorized = self._drop_state

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_logged_in(self) -> bool:
        return self._state.logged_in

    def _drop_state(self) -> None:
        self._state = LOGGED_OUT

    def login(self, username: str, password: str, remember_me: bool = False) -> SessionState:
        """
        Authenticate and persist the token. Raises ApiError on failure.

        A 401 answer (wrong password) goes through the client's 401 handling
        like any other response, so a session that was already active is
        cleared as well. Other failures leave the current state as it was.
        """
        data = self.api.post(LOGIN_PATH, json={"username": username, "password": password})
        token = data["token"]
        user = data.get("user") or {}

        target = self.api.persistent if remember_me else self.api.session
        other = self.api.session if remember_me else self.api.persistent
        other.remove(TOKEN_KEY)
        other.remove(USER_KEY)
        target.set(TOKEN_KEY, token)
        target.set(USER_KEY, json.dumps(user))

        self.api.set_auth_token(token)
        self._state = SessionState(logged_in=True, token=token, user=user)
        logger.info("Logged in", extra={"username": username, "remember_me": remember_me})
        return self._state

    def _read_stored(self) -> tuple[str, dict[str, Any] | None] | None:
        for storage in (self.api.persistent, self.api.session):
            token = storage.get(TOKEN_KEY)
            if not token:
                continue
            raw_user = storage.get(USER_KEY)
            try:
                user = json.loads(raw_user) if raw_user else None
            except ValueError:
                user = None
            return token, user if isinstance(user, dict) else None
        return None

    def restore(self) -> SessionState:
        """
        Rebuild state from storage on start-up.

        The stored token is trusted optimistically, then checked against the
        server. Any failure to validate ends in a full logout.
        """
        stored = self._read_stored()
        if stored is None:
            return self._state
        token, user = stored
        self.api.set_auth_token(token)
        self._state = SessionState(logged_in=True, token=token, user=user)

        try:
            data = self.api.post(VALIDATE_PATH)
        except ApiError as e:
            logger.info("Stored session rejected", extra={"status": e.status, "reason": e.message})
            self.logout()
            return self._state
        if not isinstance(data, dict) or not data.get("valid"):
            self.logout()
            return self._state

        fresh_user = data.get("user") or user
        if fresh_user is not None:
            for storage in (self.api.persistent, self.api.session):
                if storage.get(TOKEN_KEY) == token:
                    storage.set(USER_KEY, json.dumps(fresh_user))
        self._state = SessionState(logged_in=True, token=token, user=fresh_user)
        return self._state

    def logout(self) -> SessionState:
        """Forget the session everywhere. Safe to call when already logged out."""
        for storage in (self.api.persistent, self.api.session):
            storage.remove(TOKEN_KEY)
            storage.remove(USER_KEY)
        self.api.clear_auth_token()
        self._state = LOGGED_OUT
        return self._state
