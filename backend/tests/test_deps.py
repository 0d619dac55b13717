"""Tests for request authentication: authenticate, authorize, optional_auth."""

from typing import Optional

import pytest
from fastapi import Depends, Request
from fastapi.testclient import TestClient

from clicktales.domains.auth.deps import authenticate, authorize, optional_auth
from clicktales.domains.user.models import User, UserRole
from clicktales.domains.user.schemas import AuthIdentity
from clicktales.main import create_app

from conftest import STRONG_PASSWORD, bearer


@pytest.fixture
def guarded_client(settings, sender, passwords):
    app = create_app(settings, notification_sender=sender, password_service=passwords)

    @app.get("/_test/me")
    async def me(request: Request, identity: AuthIdentity = Depends(authenticate)):
        assert request.state.user == identity
        return {"id": identity.id, "role": identity.role.value, "name": identity.name}

    @app.get("/_test/admin")
    async def admin_only(identity: AuthIdentity = Depends(authorize(UserRole.ADMIN, UserRole.MODERATOR))):
        return {"id": identity.id}

    @app.get("/_test/public")
    async def public(identity: Optional[AuthIdentity] = Depends(optional_auth)):
        return {"anonymous": identity is None}

    with TestClient(app) as c:
        yield c


def register(client, email="a@x.com", username="alice"):
    resp = client.post(
        "/api/auth/register",
        json={"email": email, "username": username, "name": "Alice", "password": STRONG_PASSWORD},
    )
    return resp.json()["data"]


async def promote(app, user_id: str):
    async with app.state.db.session() as session:
        user = await session.get(User, user_id)
        user.role = UserRole.ADMIN


class TestAuthenticate:
    def test_attaches_identity(self, guarded_client):
        data = register(guarded_client)
        resp = guarded_client.get("/_test/me", headers=bearer(data["accessToken"]))
        assert resp.status_code == 200
        assert resp.json() == {"id": data["user"]["id"], "role": "USER", "name": "Alice"}

    def test_missing_header(self, guarded_client):
        resp = guarded_client.get("/_test/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "No token provided"

    def test_non_bearer_scheme(self, guarded_client):
        resp = guarded_client.get("/_test/me", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401


class TestAuthorize:
    def test_forbidden_for_plain_user(self, guarded_client):
        data = register(guarded_client)
        resp = guarded_client.get("/_test/admin", headers=bearer(data["accessToken"]))
        assert resp.status_code == 403
        assert resp.json()["success"] is False

    def test_unauthenticated_is_401_not_403(self, guarded_client):
        resp = guarded_client.get("/_test/admin")
        assert resp.status_code == 401

    def test_admin_allowed(self, guarded_client):
        data = register(guarded_client)
        guarded_client.portal.call(promote, guarded_client.app, data["user"]["id"])

        # Role comes from the current record, not the token
        resp = guarded_client.get("/_test/admin", headers=bearer(data["accessToken"]))
        assert resp.status_code == 200


class TestOptionalAuth:
    def test_no_token_is_anonymous(self, guarded_client):
        resp = guarded_client.get("/_test/public")
        assert resp.status_code == 200
        assert resp.json() == {"anonymous": True}

    def test_bad_token_is_anonymous(self, guarded_client):
        resp = guarded_client.get("/_test/public", headers=bearer("garbage"))
        assert resp.status_code == 200
        assert resp.json() == {"anonymous": True}

    def test_good_token_is_identified(self, guarded_client):
        data = register(guarded_client)
        resp = guarded_client.get("/_test/public", headers=bearer(data["accessToken"]))
        assert resp.json() == {"anonymous": False}
