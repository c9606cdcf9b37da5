"""
Tests for bearer extraction and the principal middleware.
"""

from datetime import timedelta

import pytest

from rbacd.auth.jwt_handler import JWTHandler
from rbacd.auth.principal import extract_bearer_token
from conftest import TEST_SECRET, bearer


@pytest.mark.parametrize("header, expected", [
    ("Bearer abc.def.ghi", "abc.def.ghi"),
    ("bearer   abc", "abc"),
    ("Basic dXNlcjpwYXNz", None),
    ("Bearer", None),
    ("Bearer   ", None),
    ("", None),
    (None, None),
])
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


class TestPrincipalMiddleware:
    """Test request authentication."""

    async def test_missing_token(self, client):
        resp = await client.get("/auth/me")

        assert resp.status == 401
        body = await resp.json()
        assert body == {"code": 401, "msg": "not logged in", "data": None}

    async def test_wrong_scheme(self, client):
        resp = await client.get("/auth/me", headers={"Authorization": "Token abc"})

        assert (await resp.json())["msg"] == "not logged in"

    async def test_garbage_token(self, client):
        resp = await client.get("/auth/me", headers={"Authorization": "Bearer garbage"})

        assert resp.status == 401
        assert (await resp.json())["msg"] == "session expired"

    async def test_expired_token_looks_like_any_other_failure(self, client, admin):
        expired = JWTHandler(TEST_SECRET, access_ttl=timedelta(seconds=-30))
        forged = JWTHandler("some-other-secret-of-reasonable-length-here")

        for handler in (expired, forged):
            resp = await client.get("/auth/me", headers=bearer(handler, admin))
            assert resp.status == 401
            assert await resp.json() == {"code": 401, "msg": "session expired", "data": None}

    async def test_refresh_token_not_accepted_as_bearer(self, client, jwt_handler, admin):
        refresh = jwt_handler.issue({"user_id": admin.id}).refresh_token

        resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {refresh}"})

        assert resp.status == 401

    async def test_public_paths_skip_authentication(self, client):
        resp = await client.post("/auth/login", json={"username": "nobody", "password": "x"})

        # Reached the handler: unknown user, not "not logged in"
        assert resp.status == 404

    async def test_valid_token_attaches_principal(self, client, admin_headers, admin):
        resp = await client.get("/auth/me", headers=admin_headers)

        assert resp.status == 200
        assert (await resp.json())["data"]["id"] == admin.id

    async def test_unknown_route_still_requires_token(self, client):
        resp = await client.get("/nowhere")

        assert resp.status == 401

    async def test_unknown_route_with_token(self, client, admin_headers):
        resp = await client.get("/nowhere", headers=admin_headers)

        assert resp.status == 404
        assert (await resp.json())["code"] == 404

    async def test_preflight_passes_without_token(self, client):
        resp = await client.options("/user/page")

        assert resp.status == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_request_id_header(self, client, admin_headers):
        resp = await client.get("/auth/me", headers={**admin_headers, "X-Request-Id": "req-1"})

        assert resp.headers["X-Request-Id"] == "req-1"
