"""API tests for /api/auth/* and /api/user/profile: registration, login and token verification."""

import unittest
from datetime import UTC, datetime, timedelta

from api_support import ApiTestCase

from imagegen.core.security import create_access_token, decode_access_token
from imagegen.models import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestRegistration(ApiTestCase):
    def test_register_returns_201_with_account(self) -> None:
        resp = self.register()
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["message"], "Registration successful")
        self.assertEqual(body["data"]["username"], "alice")
        self.assertEqual(body["data"]["email"], "a@x.com")
        self.assertEqual(body["data"]["avatar_url"], "/uploads/default-avatar.svg")
        self.assertIsInstance(body["data"]["user_id"], int)
        self.assertNotIn("password_hash", body["data"])

    def test_duplicate_username_conflicts(self) -> None:
        self.assertEqual(self.register("alice", "a@x.com").status_code, 201)
        resp = self.register("alice", "other@x.com")
        self.assertEqual(resp.status_code, 409)
        self.assertFalse(resp.json()["ok"])
        self.assertEqual(resp.json()["message"], "Username already exists")
        self.assertEqual(resp.json()["error"]["code"], "conflict")

    def test_duplicate_email_conflicts(self) -> None:
        self.assertEqual(self.register("alice", "a@x.com").status_code, 201)
        resp = self.register("bob", "a@x.com")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["message"], "Email already registered")

    def test_validation_failures_are_400(self) -> None:
        cases = [
            ("ab", "a@x.com", "secret1"),
            ("bad name!", "a@x.com", "secret1"),
            ("alice", "not-an-email", "secret1"),
            ("alice", "a@x.com", "12345"),
            ("alice", "a@x.com", "x" * 21),
        ]
        for username, email, password in cases:
            with self.subTest(username=username, email=email, password=password):
                resp = self.register(username, email, password)
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["error"]["code"], "validation_error")

    def test_chinese_username_accepted(self) -> None:
        resp = self.register("张三_01", "zs@x.com")
        self.assertEqual(resp.status_code, 201, resp.text)

    def test_missing_fields_are_400(self) -> None:
        resp = self.client.post("/api/auth/register", json={"username": "alice"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Username, email and password are required")

    def test_form_registration_with_avatar(self) -> None:
        resp = self.client.post(
            "/api/auth/register",
            data={"username": "alice", "email": "a@x.com", "password": "secret1"},
            files={"avatar": ("me.png", PNG_BYTES, "image/png")},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        avatar_url = resp.json()["data"]["avatar_url"]
        user_id = resp.json()["data"]["user_id"]
        self.assertTrue(avatar_url.startswith(f"/uploads/user-{user_id}/avatars/avatar-"))
        self.assertTrue(avatar_url.endswith(".png"))

    def test_avatar_with_unsupported_type_is_415_and_creates_no_account(self) -> None:
        resp = self.client.post(
            "/api/auth/register",
            data={"username": "alice", "email": "a@x.com", "password": "secret1"},
            files={"avatar": ("notes.txt", b"hello", "text/plain")},
        )
        self.assertEqual(resp.status_code, 415)
        with self.db() as db:
            self.assertEqual(db.query(User).count(), 0)

    def test_unsupported_content_type_is_415(self) -> None:
        resp = self.client.post(
            "/api/auth/register",
            content=b"username=alice",
            headers={"Content-Type": "text/plain"},
        )
        self.assertEqual(resp.status_code, 415)


class TestLogin(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.assertEqual(self.register().status_code, 201)

    def test_login_returns_token_for_account(self) -> None:
        resp = self.client.post("/api/auth/login", json={"username": "alice", "password": "secret1"})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["token_type"], "bearer")
        self.assertEqual(data["user"]["username"], "alice")
        self.assertEqual(data["user"]["role"], "user")
        self.assertIsNotNone(data["user"]["last_login"])
        self.assertEqual(decode_access_token(data["token"])["sub"], str(data["user"]["id"]))

    def test_login_updates_last_login(self) -> None:
        self.login()
        with self.db() as db:
            user = db.query(User).filter(User.username == "alice").one()
            self.assertIsNotNone(user.last_login)

    def test_unknown_username_is_404(self) -> None:
        resp = self.client.post("/api/auth/login", json={"username": "nobody", "password": "secret1"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "User does not exist")

    def test_wrong_password_is_401(self) -> None:
        resp = self.client.post("/api/auth/login", json={"username": "alice", "password": "wrong"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "Incorrect password")

    def test_missing_fields_are_400(self) -> None:
        resp = self.client.post("/api/auth/login", json={"username": "alice"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "validation_error")

    def test_banned_user_can_still_log_in_by_default(self) -> None:
        with self.db() as db:
            db.query(User).filter(User.username == "alice").update({"status": "banned"})
            db.commit()
        self.login()


class TestValidateToken(ApiTestCase):
    def test_register_login_validate_scenario(self) -> None:
        self.assertEqual(self.register("alice", "a@x.com", "secret1").status_code, 201)
        token = self.login("alice", "secret1")
        resp = self.client.post("/api/auth/validate-token", headers=self.bearer(token))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["data"]["valid"])
        self.assertEqual(resp.json()["data"]["user"]["username"], "alice")
        wrong = self.client.post("/api/auth/login", json={"username": "alice", "password": "wrong"})
        self.assertEqual(wrong.status_code, 401)

    def test_missing_token_is_401(self) -> None:
        resp = self.client.post("/api/auth/validate-token")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "Access token is missing")
        self.assertEqual(resp.headers["www-authenticate"], "Bearer")

    def test_malformed_header_counts_as_missing(self) -> None:
        for header in ("Token abc", "Bearer ", "Basic dXNlcjpwYXNz"):
            with self.subTest(header=header):
                resp = self.client.post("/api/auth/validate-token", headers={"Authorization": header})
                self.assertEqual(resp.status_code, 401)

    def test_invalid_token_is_403(self) -> None:
        resp = self.client.post("/api/auth/validate-token", headers=self.bearer("garbage.token.value"))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["message"], "Access token is invalid or expired")

    def test_expired_token_is_403(self) -> None:
        token = self.user_token()
        user_id = int(decode_access_token(token)["sub"])
        issued = datetime.now(UTC) - timedelta(days=8)
        old = create_access_token(user_id, "alice", "a@x.com", "user", issued_at=issued)
        resp = self.client.post("/api/auth/validate-token", headers=self.bearer(old))
        self.assertEqual(resp.status_code, 403)

    def test_deleted_account_is_404(self) -> None:
        token = self.user_token()
        with self.db() as db:
            db.query(User).delete()
            db.commit()
        resp = self.client.post("/api/auth/validate-token", headers=self.bearer(token))
        self.assertEqual(resp.status_code, 404)


class TestUserProfile(ApiTestCase):
    def test_profile_of_logged_in_user(self) -> None:
        token = self.user_token()
        resp = self.client.get("/api/user/profile", headers=self.bearer(token))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["username"], "alice")
        self.assertIn("image:write", data["permissions"])

    def test_admin_token_cannot_use_user_routes(self) -> None:
        self.create_admin()
        token = self.admin_token()
        resp = self.client.get("/api/user/profile", headers=self.bearer(token))
        self.assertEqual(resp.status_code, 403)


if __name__ == "__main__":
    unittest.main()
