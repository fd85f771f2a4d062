"""HTTP client for the ImageGen API with bearer-token injection and 401 handling."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from imagegen.client.storage import TOKEN_KEY, USER_KEY, FileStorage, MemoryStorage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 15.0

SESSION_EXPIRED_MESSAGE = "Session expired, please log in again"
STATUS_MESSAGES = {
    401: SESSION_EXPIRED_MESSAGE,
    403: "You do not have permission to perform this action",
    404: "The requested resource does not exist",
    500: "Internal server error, please try again later",
}
NETWORK_ERROR_MESSAGE = "Cannot reach the server, check your network connection"

Notifier = Callable[[str], None]


class ApiError(Exception):
    """Non-2xx response or transport failure. status is None when the server was unreachable."""

    def __init__(self, message: str, status: int | None = None, code: str | None = None) -> None:
        self.message = message
        self.status = status
        self.code = code
        super().__init__(message)


def _log_notifier(message: str) -> None:
    logger.warning(message)


class ApiClient:
    """
    Thin wrapper over httpx.Client.

    Every request carries ``Authorization: Bearer <token>`` when a token is
    known: the default header set at login, otherwise the token found in
    persistent then session storage. Any 401 response clears the stored token
    and user from both storages, drops the default header and calls
    ``on_unauthorized``. Nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        *,
        persistent: FileStorage | MemoryStorage,
        session: MemoryStorage,
        notify: Notifier | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self.persistent = persistent
        self.session = session
        self.notify = notify or _log_notifier
        self.on_unauthorized: Callable[[], None] | None = None
        self._auth_token: str | None = None
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
            event_hooks={"request": [self._attach_token], "response": [self._on_response]},
        )

    def set_auth_token(self, token: str) -> None:
        self._auth_token = token

    def clear_auth_token(self) -> None:
        self._auth_token = None

    @property
    def auth_token(self) -> str | None:
        return self._auth_token

    def stored_token(self) -> str | None:
        return self.persistent.get(TOKEN_KEY) or self.session.get(TOKEN_KEY)

    def _attach_token(self, request: httpx.Request) -> None:
        token = self._auth_token or self.stored_token()
        if token and "Authorization" not in request.headers:
            request.headers["Authorization"] = f"Bearer {token}"

    def _on_response(self, response: httpx.Response) -> None:
        status = response.status_code
        if status == 401:
            for storage in (self.persistent, self.session):
                storage.remove(TOKEN_KEY)
                storage.remove(USER_KEY)
            self._auth_token = None
            if self.on_unauthorized is not None:
                self.on_unauthorized()
        message = STATUS_MESSAGES.get(status)
        if message is not None:
            self.notify(message)

    def request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and return the envelope's ``data``. Raises ApiError on failure."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            self.notify(NETWORK_ERROR_MESSAGE)
            raise ApiError(NETWORK_ERROR_MESSAGE) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = f"Request failed with status {response.status_code}"
            code = None
            if isinstance(payload, dict):
                message = payload.get("message") or message
                error = payload.get("error")
                if isinstance(error, dict):
                    code = error.get("code")
            raise ApiError(message, status=response.status_code, code=code)

        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    def get(self, url: str, **kwargs: Any) -> Any:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        return self.request("POST", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> Any:
        return self.request("DELETE", url, **kwargs)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
