"""Tests for the response envelope, request ids, exception handlers and the health check."""

import unittest
from unittest.mock import patch

from api_support import ApiTestCase


class TestEnvelope(ApiTestCase):
    def test_success_envelope_carries_request_id(self) -> None:
        resp = self.client.get("/api/health", headers={"X-Request-ID": "req-123"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["x-request-id"], "req-123")
        body = resp.json()
        self.assertEqual(set(body), {"ok", "message", "data", "request_id"})
        self.assertTrue(body["ok"])
        self.assertEqual(body["request_id"], "req-123")

    def test_request_id_generated_when_absent(self) -> None:
        resp = self.client.get("/api/health")
        self.assertEqual(len(resp.headers["x-request-id"]), 32)
        self.assertEqual(resp.json()["request_id"], resp.headers["x-request-id"])

    def test_unknown_route_uses_error_envelope(self) -> None:
        resp = self.client.get("/api/does-not-exist")
        self.assertEqual(resp.status_code, 404)
        body = resp.json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["error"], {"code": "not_found", "status": 404, "details": None})

    def test_validation_error_lists_fields(self) -> None:
        resp = self.client.post("/api/auth/login", json={})
        self.assertEqual(resp.status_code, 400)
        details = resp.json()["error"]["details"]
        self.assertEqual({tuple(d["loc"]) for d in details}, {("body", "username"), ("body", "password")})


class TestHealth(ApiTestCase):
    def test_reports_database_and_image_service(self) -> None:
        data = self.client.get("/api/health").json()["data"]
        self.assertEqual(data["status"], "ok")
        self.assertEqual(data["environment"], "dev")
        self.assertEqual(data["database"], "connected")
        self.assertFalse(data["image_service_configured"])


class TestUnhandledErrors(ApiTestCase):
    raise_server_exceptions = False

    def test_unexpected_exception_becomes_generic_500(self) -> None:
        with patch("imagegen.api.health.check_db_connected", side_effect=RuntimeError("db password is hunter2")):
            with self.assertLogs("imagegen.main", level="ERROR"):
                resp = self.client.get("/api/health", headers={"X-Request-ID": "req-500"})
        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["message"], "Internal server error")
        self.assertEqual(body["error"]["code"], "internal_error")
        self.assertEqual(body["request_id"], "req-500")
        self.assertNotIn("hunter2", resp.text)

    def test_500_keeps_cors_headers_for_allowed_origin(self) -> None:
        origin = "http://localhost:5173"
        with patch("imagegen.api.health.check_db_connected", side_effect=RuntimeError("boom")):
            with self.assertLogs("imagegen.main", level="ERROR"):
                resp = self.client.get("/api/health", headers={"Origin": origin, "X-Request-ID": "req-cors"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.headers["access-control-allow-origin"], origin)
        self.assertEqual(resp.headers["access-control-allow-credentials"], "true")
        self.assertEqual(resp.headers["x-request-id"], "req-cors")
        self.assertEqual(resp.json()["error"]["code"], "internal_error")



if __name__ == "__main__":
    unittest.main()
