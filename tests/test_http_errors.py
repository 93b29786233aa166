import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from scavhunt.core.config import Settings
from scavhunt.core.errors import (
    ClientRequestError,
    PageOutOfRangeError,
    StorageUnavailableError,
    install_error_handlers,
)
from scavhunt.core.request_log import install_request_logging
from scavhunt.main import create_app


class RequestLoggingTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app(Settings(APP_ENV="test", DATABASE_URL="sqlite+pysqlite:///:memory:"))
        self.client = TestClient(self.app)

    def tearDown(self):
        self.client.close()

    def test_health_has_request_id(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})
        self.assertRegex(str(response.headers.get("x-request-id")), r"^[A-Za-z0-9._-]{1,128}$")

    def test_valid_request_id_is_preserved(self):
        response = self.client.get("/health", headers={"X-Request-ID": "hunt-check_2026.10"})
        self.assertEqual(response.headers.get("x-request-id"), "hunt-check_2026.10")

    def test_invalid_request_id_is_replaced(self):
        response = self.client.get("/health", headers={"X-Request-ID": "bad id with spaces"})
        request_id = response.headers.get("x-request-id")
        self.assertNotEqual(request_id, "bad id with spaces")
        self.assertRegex(str(request_id), r"^[A-Za-z0-9._-]{1,128}$")

    def test_access_line_is_logged(self):
        with self.assertLogs("scavhunt.http", level="INFO") as captured:
            self.client.get("/health", headers={"X-Request-ID": "abc"})
        self.assertIn("GET /health status=200", captured.output[0])
        self.assertIn("request_id=abc", captured.output[0])

    def test_unknown_route_message(self):
        response = self.client.get("/api/v1/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json(),
            {"status": "fail", "message": "Can't find /api/v1/nope on this server!"},
        )
        self.assertTrue(bool(response.headers.get("x-request-id")))


class ErrorHandlerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        app = FastAPI()
        install_request_logging(app)
        install_error_handlers(app)

        @app.get("/client")
        def _client():
            raise ClientRequestError("Cannot mix included and excluded fields in one projection")

        @app.get("/page")
        def _page():
            raise PageOutOfRangeError(page=4, limit=10, total=25)

        @app.get("/storage")
        def _storage():
            raise StorageUnavailableError("Database is unavailable")

        @app.get("/boom")
        def _boom():
            raise ValueError("unexpected")

        cls.client = TestClient(app, raise_server_exceptions=False)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()

    def test_client_error_is_fail(self):
        response = self.client.get("/client")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(),
            {"status": "fail", "message": "Cannot mix included and excluded fields in one projection"},
        )

    def test_page_error_points_to_last_page(self):
        response = self.client.get("/page")
        self.assertEqual(response.status_code, 404)
        body = response.json()
        self.assertEqual(body["status"], "fail")
        self.assertEqual(body["last_page"], 3)

    def test_storage_error_is_server_fault(self):
        with self.assertLogs("scavhunt.errors", level="ERROR"):
            response = self.client.get("/storage")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {"status": "error", "message": "Database is unavailable"})

    def test_unexpected_error_is_generic_500(self):
        with self.assertLogs("scavhunt.errors", level="ERROR"):
            response = self.client.get("/boom")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"status": "error", "message": "Something went wrong"})

    def test_unexpected_error_keeps_request_id_and_access_line(self):
        with self.assertLogs("scavhunt.http", level="INFO") as access, self.assertLogs("scavhunt.errors", level="ERROR"):
            response = self.client.get("/boom", headers={"X-Request-ID": "boom-1"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.headers.get("x-request-id"), "boom-1")
        self.assertIn("GET /boom status=500", access.output[0])
        self.assertIn("request_id=boom-1", access.output[0])


if __name__ == "__main__":
    unittest.main()
