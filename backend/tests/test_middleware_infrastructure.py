"""
Tests for middlewares, CORS and small infrastructure helpers.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rest_api.core.cors import DEFAULT_CORS_ORIGINS, get_cors_origins
from rest_api.core.middlewares import (
    ContentTypeValidationMiddleware,
    RecoveryMiddleware,
    SecurityHeadersMiddleware,
    register_middlewares,
)
from shared.config.constants import ErrorCode
from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    CorrelationIdMiddleware,
    get_request_id,
    request_id_var,
    resolve_request_id,
)
from shared.infrastructure.db import safe_commit


def build_client(*middlewares, **client_kwargs) -> TestClient:
    """Tiny app with a JSON GET/POST pair, an auth path and a failing route."""
    app = FastAPI()
    for middleware in middlewares:
        app.add_middleware(middleware)

    @app.get("/ping")
    def ping():
        return {"request_id": get_request_id()}

    @app.post("/ping")
    def ping_post(data: dict | None = None):
        return {"ok": True}

    @app.get("/api/v1/auth/me")
    def auth_me():
        return {"ok": True}

    @app.get("/boom")
    def boom():
        raise RuntimeError("database password is hunter2")

    return TestClient(app, **client_kwargs)


class TestSecurityHeaders:

    @pytest.fixture
    def client(self):
        return build_client(SecurityHeadersMiddleware)

    def test_standard_headers(self, client):
        headers = client.get("/ping").headers
        assert headers["X-Content-Type-Options"] == "nosniff"
        assert headers["X-Frame-Options"] == "DENY"
        assert headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "frame-ancestors 'none'" in headers["Content-Security-Policy"]

    def test_no_store_only_on_auth_paths(self, client):
        assert client.get("/api/v1/auth/me").headers["Cache-Control"] == "no-store"
        assert "Cache-Control" not in client.get("/ping").headers

    @pytest.mark.parametrize("environment, expect_hsts", [("production", True), ("development", False)])
    def test_hsts_only_in_production(self, client, environment, expect_hsts):
        with patch("shared.config.settings.settings") as mock_settings:
            mock_settings.environment = environment
            headers = client.get("/ping").headers
        assert ("Strict-Transport-Security" in headers) is expect_hsts


class TestContentTypeValidation:

    @pytest.fixture
    def client(self):
        return build_client(ContentTypeValidationMiddleware)

    def test_json_accepted(self, client):
        assert client.post("/ping", json={"key": "value"}).status_code == 200

    @pytest.mark.parametrize("content_type", ["text/plain", "application/x-www-form-urlencoded"])
    def test_other_bodies_rejected(self, client, content_type):
        response = client.post("/ping", content="key=value", headers={"Content-Type": content_type})
        assert response.status_code == 415
        assert response.json()["code"] == ErrorCode.INVALID_PARAMS

    def test_get_untouched(self, client):
        assert client.get("/ping").status_code == 200


class TestRecovery:

    def test_unhandled_error_becomes_generic_500(self):
        client = build_client(RecoveryMiddleware, raise_server_exceptions=False)
        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json() == {"code": ErrorCode.SERVER_ERROR, "message": "Internal server error"}
        assert "hunter2" not in response.text


class TestCorrelationId:

    @pytest.fixture
    def client(self):
        return build_client(CorrelationIdMiddleware)

    def test_generated_when_missing(self, client):
        response = client.get("/ping")
        request_id = response.headers["X-Request-ID"]
        assert len(request_id) == 36
        assert response.json()["request_id"] == request_id

    def test_client_id_echoed(self, client):
        response = client.get("/ping", headers={"X-Request-ID": "edge-7f3a:42"})
        assert response.headers["X-Request-ID"] == "edge-7f3a:42"

    @pytest.mark.parametrize("candidate", ["x" * 200, "bad id with spaces", "inject\\nline", ""])
    def test_unsafe_ids_replaced(self, candidate):
        assert len(resolve_request_id(candidate)) == 36

    def test_context_cleared_after_request(self, client):
        client.get("/ping")
        assert get_request_id() == ""

    def test_log_filter(self):
        record = MagicMock()
        token = request_id_var.set("req-123")
        try:
            assert CorrelationIdFilter().filter(record) is True
            assert record.request_id == "req-123"
        finally:
            request_id_var.reset(token)

        CorrelationIdFilter().filter(record)
        assert record.request_id == "-"


class TestSafeCommit:

    def test_commits(self):
        db = MagicMock()
        safe_commit(db)
        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_rolls_back_and_reraises(self):
        class CustomDBError(Exception):
            pass

        db = MagicMock()
        db.commit.side_effect = CustomDBError("boom")

        with pytest.raises(CustomDBError):
            safe_commit(db)
        db.rollback.assert_called_once()


def test_register_middlewares_order():
    app = FastAPI()
    register_middlewares(app)

    # user_middleware lists the outermost first
    assert [m.cls for m in app.user_middleware] == [
        CorrelationIdMiddleware,
        ContentTypeValidationMiddleware,
        SecurityHeadersMiddleware,
        RecoveryMiddleware,
    ]


class TestCorsOrigins:

    def test_defaults_without_configuration(self):
        with patch("rest_api.core.cors.settings") as mock_settings:
            mock_settings.allowed_origins = ""
            assert get_cors_origins() == DEFAULT_CORS_ORIGINS

    def test_parses_comma_separated_list(self):
        with patch("rest_api.core.cors.settings") as mock_settings:
            mock_settings.allowed_origins = "https://hub.campus.edu, https://admin.campus.edu,"
            assert get_cors_origins() == ["https://hub.campus.edu", "https://admin.campus.edu"]
