# This project was developed with assistance from AI tools.
"""Tests for JWT authentication middleware."""

import pytest
from db.enums import UserRole
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from src.core.config import settings
from src.middleware.auth import CurrentUser, OptionalUser, _resolve_role, require_roles
from src.schemas.auth import TokenPayload

# ---------------------------------------------------------------------------
# AUTH_DISABLED bypass
# ---------------------------------------------------------------------------


def test_auth_disabled_returns_dev_admin(monkeypatch):
    """When AUTH_DISABLED=true, any request gets a dev admin user."""
    monkeypatch.setattr(settings, "AUTH_DISABLED", True)

    app = FastAPI()

    @app.get("/me")
    async def me(user: CurrentUser):
        return {"user_id": user.user_id, "role": user.role.value, "full": user.data_scope.full_access}

    test_client = TestClient(app)
    resp = test_client.get("/me")
    assert resp.status_code == 200
    assert resp.json() == {"user_id": "dev-user", "role": "admin", "full": True}


# ---------------------------------------------------------------------------
# Missing / malformed token
# ---------------------------------------------------------------------------


def test_missing_token_returns_401(monkeypatch):
    """A request with no Authorization header should get 401."""
    monkeypatch.setattr(settings, "AUTH_DISABLED", False)

    app = FastAPI()

    @app.get("/me")
    async def me(user: CurrentUser):
        return {}

    test_client = TestClient(app)
    resp = test_client.get("/me")
    assert resp.status_code == 401
    assert "Missing authentication token" in resp.json()["detail"]


def test_optional_user_without_header_is_anonymous(monkeypatch):
    """Portal routes accept requests with no session at all."""
    monkeypatch.setattr(settings, "AUTH_DISABLED", False)

    app = FastAPI()

    @app.get("/maybe")
    async def maybe(user: OptionalUser):
        return {"anonymous": user is None}

    resp = TestClient(app).get("/maybe")
    assert resp.status_code == 200
    assert resp.json() == {"anonymous": True}


# ---------------------------------------------------------------------------
# Role resolution
# ---------------------------------------------------------------------------


def test_resolve_role_picks_known_role():
    """Keycloak built-in roles are ignored."""
    payload = TokenPayload(
        sub="user-1",
        realm_access={"roles": ["offline_access", "broker", "uma_authorization"]},
    )
    assert _resolve_role(payload) == UserRole.BROKER


def test_resolve_role_prefers_most_privileged():
    payload = TokenPayload(sub="user-1", realm_access={"roles": ["broker", "staff"]})
    assert _resolve_role(payload) == UserRole.STAFF


def test_resolve_role_no_known_role_is_forbidden():
    """Tokens without any of our roles are rejected with 403."""
    payload = TokenPayload(
        sub="user-1",
        realm_access={"roles": ["offline_access", "uma_authorization"]},
    )

    with pytest.raises(HTTPException) as exc_info:
        _resolve_role(payload)
    assert exc_info.value.status_code == 403
    assert exc_info.value.detail == "No recognized role assigned"


# ---------------------------------------------------------------------------
# require_roles dependency
# ---------------------------------------------------------------------------


def test_require_roles_rejects_wrong_role(monkeypatch):
    """require_roles returns 403 when user's role is not in allowed set."""
    monkeypatch.setattr(settings, "AUTH_DISABLED", True)

    app = FastAPI()

    check_broker = require_roles(UserRole.BROKER)

    @app.get("/broker-only", dependencies=[Depends(check_broker)])
    async def broker_only(user: CurrentUser):
        return {"ok": True}

    test_client = TestClient(app)
    # dev-user is admin, not broker
    resp = test_client.get("/broker-only")
    assert resp.status_code == 403
    assert "Insufficient permissions" in resp.json()["detail"]


def test_require_roles_allows_listed_role(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_DISABLED", True)

    app = FastAPI()

    @app.get("/staff", dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.STAFF))])
    async def staff_only():
        return {"ok": True}

    assert TestClient(app).get("/staff").status_code == 200


def test_malformed_bearer_token_returns_401(monkeypatch):
    """A header that is present but not a JWT is rejected before any key lookup."""
    monkeypatch.setattr(settings, "AUTH_DISABLED", False)

    app = FastAPI()

    @app.get("/maybe")
    async def maybe(user: OptionalUser):
        return {}

    resp = TestClient(app).get("/maybe", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"
