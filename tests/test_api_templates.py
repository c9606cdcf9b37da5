"""
HTTP tests for templates: authentication only, no permission gate.
"""

from rbacd.storage.database import TEMPLATE
from conftest import bearer, make_user


class TestTemplates:
    """Template CRUD for any authenticated user."""

    async def test_requires_login(self, client):
        resp = await client.post("/template", json={"name": "Welcome"})

        assert resp.status == 401

    async def test_crud_without_roles(self, client, db, jwt_handler):
        headers = bearer(jwt_handler, make_user(db, "plain", role_codes=[]))

        resp = await client.post("/template", headers=headers, json={"name": "Welcome"})
        assert resp.status == 200
        template_id = (await resp.json())["data"]["id"]

        resp = await client.put(f"/template/{template_id}", headers=headers, json={"name": "Hello"})
        assert resp.status == 200
        assert db.get(TEMPLATE, template_id).data == {"name": "Hello"}

        resp = await client.get(f"/template/{template_id}", headers=headers)
        assert (await resp.json())["data"]["name"] == "Hello"

        resp = await client.delete(f"/template/{template_id}", headers=headers)
        assert resp.status == 200
        assert db.get(TEMPLATE, template_id) is None

    async def test_null_name_rejected(self, client, db, admin_headers):
        template = db.insert(TEMPLATE, {"name": "Welcome"})

        resp = await client.put(f"/template/{template.id}", headers=admin_headers, json={"name": None})

        assert resp.status == 400
        assert db.get(TEMPLATE, template.id).data == {"name": "Welcome"}

    async def test_page_order(self, client, db, admin_headers):
        for name in ("first", "second", "third"):
            db.insert(TEMPLATE, {"name": name})

        resp = await client.post("/template/page", headers=admin_headers, json={
            "page": 1, "page_size": 2, "order": "asc",
        })

        data = (await resp.json())["data"]
        assert data["total"] == 3
        assert [t["name"] for t in data["list"]] == ["first", "second"]

    async def test_page_size_limit(self, client, admin_headers):
        resp = await client.post("/template/page", headers=admin_headers, json={"page_size": 101})

        assert resp.status == 400
        assert (await resp.json())["data"][0]["field"] == "page_size"
