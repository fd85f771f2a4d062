"""Tests for imagegen.client: storages, ApiClient interceptors and SessionStore lifecycle."""

import json
import tempfile
import unittest
from pathlib import Path

import httpx

from imagegen.client import ApiClient, ApiError, FileStorage, MemoryStorage, SessionState, SessionStore
from imagegen.client.api import NETWORK_ERROR_MESSAGE, SESSION_EXPIRED_MESSAGE
from imagegen.client.storage import TOKEN_KEY, USER_KEY

USER = {"id": 1, "username": "alice", "email": "a@x.com", "role": "user"}


def _envelope(data, message: str = "") -> dict:
    return {"ok": True, "message": message, "data": data, "request_id": "r1"}


def _error(status: int, message: str, code: str) -> dict:
    return {
        "ok": False,
        "message": message,
        "error": {"code": code, "status": status, "details": None},
        "request_id": "r1",
    }


class FakeServer:
    """Minimal stand-in for the API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.valid_tokens = {"tok-1"}
        self.requests: list[httpx.Request] = []
        self.offline = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        auth = request.headers.get("Authorization", "")
        token = auth.removeprefix("Bearer ") if auth.startswith("Bearer ") else None
        path = request.url.path

        if path == "/api/auth/login":
            body = json.loads(request.content)
            if body["password"] != "secret1":
                return httpx.Response(401, json=_error(401, "Incorrect password", "unauthorized"))
            return httpx.Response(200, json=_envelope({"token": "tok-1", "token_type": "bearer", "user": USER}))
        if token is None:
            return httpx.Response(401, json=_error(401, "Access token is missing", "unauthorized"))
        if token not in self.valid_tokens:
            return httpx.Response(403, json=_error(403, "Access token is invalid or expired", "forbidden"))
        if path == "/api/auth/validate-token":
            return httpx.Response(200, json=_envelope({"valid": True, "user": {**USER, "status": "active"}}))
        if path == "/api/image-history":
            return httpx.Response(200, json=_envelope({"items": [], "total": 0}))
        return httpx.Response(404, json=_error(404, "Not Found", "not_found"))


class ClientTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.server = FakeServer()
        self.messages: list[str] = []
        self.persistent = MemoryStorage()
        self.session = MemoryStorage()
        self.api = ApiClient(
            "http://api.test",
            persistent=self.persistent,
            session=self.session,
            notify=self.messages.append,
            transport=httpx.MockTransport(self.server),
        )
        self.store = SessionStore(self.api)

    def tearDown(self) -> None:
        self.api.close()


class TestLogin(ClientTestCase):
    def test_remember_me_uses_persistent_storage(self) -> None:
        state = self.store.login("alice", "secret1", remember_me=True)
        self.assertTrue(state.logged_in)
        self.assertEqual(state.token, "tok-1")
        self.assertEqual(self.persistent.get(TOKEN_KEY), "tok-1")
        self.assertEqual(json.loads(self.persistent.get(USER_KEY))["username"], "alice")
        self.assertIsNone(self.session.get(TOKEN_KEY))

    def test_without_remember_me_uses_session_storage(self) -> None:
        self.store.login("alice", "secret1")
        self.assertEqual(self.session.get(TOKEN_KEY), "tok-1")
        self.assertIsNone(self.persistent.get(TOKEN_KEY))

    def test_token_attached_to_later_requests(self) -> None:
        self.store.login("alice", "secret1")
        self.api.get("/api/image-history")
        self.assertEqual(self.server.requests[-1].headers["Authorization"], "Bearer tok-1")

    def test_failed_login_raises_and_keeps_logged_out(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            self.store.login("alice", "wrong")
        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(ctx.exception.message, "Incorrect password")
        self.assertEqual(ctx.exception.code, "unauthorized")
        self.assertFalse(self.store.is_logged_in)

    def test_wrong_password_clears_an_active_session(self) -> None:
        self.store.login("alice", "secret1", remember_me=True)
        with self.assertRaises(ApiError) as ctx:
            self.store.login("alice", "wrong")
        self.assertEqual(ctx.exception.status, 401)
        self.assertFalse(self.store.is_logged_in)
        self.assertIsNone(self.persistent.get(TOKEN_KEY))
        self.assertIsNone(self.api.auth_token)


class TestUnauthorizedInterceptor(ClientTestCase):
    def test_401_clears_storage_and_state(self) -> None:
        self.store.login("alice", "secret1", remember_me=True)
        self.server.valid_tokens.clear()
        self.api.clear_auth_token()
        self.persistent.remove(TOKEN_KEY)
        # No token anywhere: the server answers 401.
        self.session.set(USER_KEY, json.dumps(USER))
        with self.assertRaises(ApiError) as ctx:
            self.api.get("/api/image-history")
        self.assertEqual(ctx.exception.status, 401)
        self.assertIn(SESSION_EXPIRED_MESSAGE, self.messages)
        self.assertIsNone(self.persistent.get(USER_KEY))
        self.assertIsNone(self.session.get(USER_KEY))
        self.assertFalse(self.store.is_logged_in)
        self.assertIsNone(self.api.auth_token)

    def test_403_only_notifies(self) -> None:
        self.store.login("alice", "secret1")
        self.server.valid_tokens.clear()
        with self.assertRaises(ApiError) as ctx:
            self.api.get("/api/image-history")
        self.assertEqual(ctx.exception.status, 403)
        self.assertEqual(self.session.get(TOKEN_KEY), "tok-1")
        self.assertEqual(len(self.messages), 1)

    def test_network_failure_has_distinct_message(self) -> None:
        self.server.offline = True
        with self.assertRaises(ApiError) as ctx:
            self.api.get("/api/image-history")
        self.assertIsNone(ctx.exception.status)
        self.assertEqual(self.messages, [NETWORK_ERROR_MESSAGE])


class TestRestore(ClientTestCase):
    def test_nothing_stored_stays_logged_out(self) -> None:
        self.assertEqual(self.store.restore(), SessionState())
        self.assertEqual(self.server.requests, [])

    def test_valid_stored_token_is_revalidated(self) -> None:
        self.persistent.set(TOKEN_KEY, "tok-1")
        self.persistent.set(USER_KEY, json.dumps(USER))
        state = self.store.restore()
        self.assertTrue(state.logged_in)
        self.assertEqual(state.user["status"], "active")
        self.assertEqual(self.server.requests[-1].url.path, "/api/auth/validate-token")
        self.assertEqual(self.api.auth_token, "tok-1")

    def test_session_storage_is_used_when_persistent_empty(self) -> None:
        self.session.set(TOKEN_KEY, "tok-1")
        self.assertTrue(self.store.restore().logged_in)

    def test_rejected_token_logs_out_completely(self) -> None:
        self.persistent.set(TOKEN_KEY, "stale")
        self.persistent.set(USER_KEY, json.dumps(USER))
        self.session.set(TOKEN_KEY, "stale")
        state = self.store.restore()
        self.assertFalse(state.logged_in)
        for storage in (self.persistent, self.session):
            self.assertIsNone(storage.get(TOKEN_KEY))
            self.assertIsNone(storage.get(USER_KEY))
        self.assertIsNone(self.api.auth_token)

    def test_unreachable_server_logs_out(self) -> None:
        self.persistent.set(TOKEN_KEY, "tok-1")
        self.server.offline = True
        self.assertFalse(self.store.restore().logged_in)
        self.assertIsNone(self.persistent.get(TOKEN_KEY))


class TestLogout(ClientTestCase):
    def test_logout_is_idempotent(self) -> None:
        self.store.login("alice", "secret1", remember_me=True)
        first = self.store.logout()
        second = self.store.logout()
        self.assertEqual(first, second)
        self.assertFalse(second.logged_in)
        self.assertIsNone(self.persistent.get(TOKEN_KEY))
        self.assertIsNone(self.api.auth_token)

    def test_logout_when_never_logged_in(self) -> None:
        self.assertEqual(self.store.logout(), SessionState())

    def test_requests_after_logout_carry_no_token(self) -> None:
        self.store.login("alice", "secret1")
        self.store.logout()
        with self.assertRaises(ApiError):
            self.api.get("/api/image-history")
        self.assertNotIn("Authorization", self.server.requests[-1].headers)


class TestFileStorage(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "session.json"

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_values_survive_new_instance(self) -> None:
        FileStorage(self.path).set(TOKEN_KEY, "tok-1")
        self.assertEqual(FileStorage(self.path).get(TOKEN_KEY), "tok-1")
        self.assertEqual(self.path.stat().st_mode & 0o777, 0o600)

    def test_remove_missing_key_is_noop(self) -> None:
        storage = FileStorage(self.path)
        storage.remove(TOKEN_KEY)
        self.assertFalse(self.path.exists())

    def test_corrupt_file_reads_as_empty(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(FileStorage(self.path).get(TOKEN_KEY))


if __name__ == "__main__":
    unittest.main()
