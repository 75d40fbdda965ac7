"""
Tests for the access gate and role dependencies.
"""

from unittest.mock import patch

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from rest_api.core.errors import register_exception_handlers
from shared.config.constants import ErrorCode, ErrorMessages
from shared.infrastructure.kv_store import StoreUnavailableError
from shared.security.auth import (
    AccessGate,
    Identity,
    current_identity,
    ensure_role,
    get_bearer_token,
    optional_identity,
    require_admin,
    require_committee,
    require_student,
)
from shared.security.token_blacklist import TokenRevocationStore
from shared.security.tokens import TokenCodec
from shared.utils.exceptions import (
    InsufficientRoleError,
    InvalidTokenError,
    ServiceUnavailableError,
    TokenExpiredError,
    TokenRevokedError,
    TokenTypeError,
    UnauthorizedError,
)

from conftest import TEST_JWT_SECRET, bearer


@pytest.fixture
def codec(clock):
    return TokenCodec(TEST_JWT_SECRET, "studyhub", access_ttl=3600, refresh_ttl=86400, clock=clock)


@pytest.fixture
def revocations(store, clock):
    return TokenRevocationStore(store, clock=clock)


@pytest.fixture
def gate(codec, revocations):
    return AccessGate(codec, revocations)


class TestBearerHeader:

    def test_missing(self):
        with pytest.raises(UnauthorizedError) as exc:
            get_bearer_token(None)
        assert exc.value.detail == ErrorMessages.NO_TOKEN

    @pytest.mark.parametrize("header", ["Token abc", "bearer abc", "Bearer", "Bearer ", "abc"])
    def test_malformed(self, header):
        with pytest.raises(UnauthorizedError) as exc:
            get_bearer_token(header)
        assert exc.value.detail == ErrorMessages.BAD_AUTH_HEADER

    def test_extracts_token(self):
        assert get_bearer_token("Bearer abc.def") == "abc.def"


class TestAuthenticate:

    def test_valid_access_token(self, gate, codec):
        token = codec.issue_access(3, "committee")
        identity = gate.authenticate(f"Bearer {token}")
        assert identity.user_id == 3
        assert identity.role == "committee"
        assert identity.token == token

    def test_expired(self, gate, codec, clock):
        token = codec.issue_access(3, "student")
        clock.advance(3600)
        with pytest.raises(TokenExpiredError) as exc:
            gate.authenticate(f"Bearer {token}")
        assert exc.value.code == ErrorCode.INVALID_TOKEN
        assert exc.value.detail == ErrorMessages.TOKEN_EXPIRED

    def test_refresh_token_rejected(self, gate, codec):
        with pytest.raises(TokenTypeError) as exc:
            gate.authenticate(f"Bearer {codec.issue_refresh(3, 'student')}")
        assert exc.value.detail == ErrorMessages.TOKEN_WRONG_TYPE

    def test_garbage(self, gate):
        with pytest.raises(InvalidTokenError) as exc:
            gate.authenticate("Bearer nonsense")
        assert exc.value.status_code == 401

    def test_revoked(self, gate, codec, revocations):
        token = codec.issue_access(3, "student")
        revocations.revoke(token, 3600)
        with pytest.raises(TokenRevokedError):
            gate.authenticate(f"Bearer {token}")

    def test_user_revoked(self, gate, codec, revocations, clock):
        token = codec.issue_access(3, "student")
        clock.advance(0.5)
        revocations.revoke_user(3, 86400)
        with pytest.raises(TokenRevokedError):
            gate.authenticate(f"Bearer {token}")

    def test_login_right_after_user_revocation(self, gate, codec, revocations, clock):
        revocations.revoke_user(3, 86400)
        clock.advance(0.001)
        assert gate.authenticate(f"Bearer {codec.issue_access(3, 'student')}").user_id == 3

    def test_store_down_fails_closed(self, gate, codec, revocations):
        token = codec.issue_access(3, "student")
        with patch.object(revocations, "is_revoked", side_effect=StoreUnavailableError("down")):
            with pytest.raises(ServiceUnavailableError) as exc:
                gate.authenticate(f"Bearer {token}")
        assert exc.value.status_code == 503
        assert exc.value.code == ErrorCode.SERVER_ERROR

    def test_optional_returns_none(self, gate):
        assert gate.authenticate_optional(None) is None
        assert gate.authenticate_optional("Bearer nonsense") is None


class TestEnsureRole:

    def test_no_identity(self):
        with pytest.raises(UnauthorizedError):
            ensure_role(None, {"admin"})

    def test_role_outside_set(self, gate, codec):
        identity = gate.authenticate(f"Bearer {codec.issue_access(1, 'student')}")
        with pytest.raises(InsufficientRoleError) as exc:
            ensure_role(identity, {"committee", "admin"})
        assert exc.value.status_code == 403

    def test_role_inside_set(self, gate, codec):
        identity = gate.authenticate(f"Bearer {codec.issue_access(1, 'admin')}")
        assert ensure_role(identity, {"committee", "admin"}) is identity


class TestDependencies:
    """Gate dependencies mounted on a bare app."""

    @pytest.fixture
    def app_client(self, gate):
        app = FastAPI()
        app.state.access_gate = gate
        register_exception_handlers(app)

        @app.get("/me")
        def me(identity: Identity = Depends(current_identity)):
            return {"user_id": identity.user_id}

        @app.get("/maybe")
        def maybe(identity: Identity | None = Depends(optional_identity)):
            return {"user_id": identity.user_id if identity else None}

        @app.get("/student")
        def student_only(identity: Identity = Depends(require_student)):
            return {"ok": True}

        @app.get("/committee")
        def committee_only(identity: Identity = Depends(require_committee)):
            return {"ok": True}

        @app.get("/admin")
        def admin_only(identity: Identity = Depends(require_admin)):
            return {"ok": True}

        return TestClient(app)

    def test_unauthenticated_body(self, app_client):
        response = app_client.get("/me")
        assert response.status_code == 401
        assert response.json() == {"code": ErrorCode.UNAUTHORIZED, "message": ErrorMessages.NO_TOKEN}

    def test_authenticated(self, app_client, codec):
        response = app_client.get("/me", headers=bearer(codec.issue_access(9, "student")))
        assert response.json() == {"user_id": 9}

    def test_optional(self, app_client, codec):
        assert app_client.get("/maybe").json() == {"user_id": None}
        assert app_client.get("/maybe", headers=bearer(codec.issue_access(9, "student"))).json() == {"user_id": 9}

    @pytest.mark.parametrize(
        "role,path,status_code",
        [
            ("student", "/student", 200),
            ("student", "/committee", 403),
            ("student", "/admin", 403),
            ("committee", "/committee", 200),
            ("committee", "/admin", 403),
            ("admin", "/student", 200),
            ("admin", "/committee", 200),
            ("admin", "/admin", 200),
        ],
    )
    def test_role_matrix(self, app_client, codec, role, path, status_code):
        response = app_client.get(path, headers=bearer(codec.issue_access(1, role)))
        assert response.status_code == status_code
        if status_code == 403:
            assert response.json()["code"] == ErrorCode.FORBIDDEN
