"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- The user role is denied deletes (403)
- Admin and editor roles can delete and archive
- Registration bootstraps the first admin
"""

import pytest

from conftest import PASSWORD, auth_headers


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/inputs"),
            ("POST", "/api/inputs"),
            ("GET", "/api/inventory"),
            ("DELETE", "/api/inventory/1"),
            ("GET", "/api/products"),
            ("GET", "/api/pricing"),
            ("POST", "/api/pricing/recalculate"),
            ("GET", "/api/fixed-costs"),
            ("GET", "/api/customers"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("POST", "/api/orders/1/cancel"),
            ("GET", "/api/reports/sales-summary"),
            ("GET", "/api/notifications"),
            ("GET", "/api/notifications/stream"),
            ("GET", "/api/notifications/connections"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_rejects_unknown_token(self, client, db_session):
        resp = client.get("/api/orders", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_query_token_is_accepted(self, client, admin_headers):
        token = admin_headers["Authorization"].split(" ", 1)[1]
        resp = client.get(f"/api/notifications?token={token}")
        assert resp.status_code == 200

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# USER ROLE DENIED DELETES (403)
# =============================================================================


class TestUserDeniedDeletes:
    def test_cannot_archive_product(self, client, user_headers, bread):
        resp = client.delete(f"/api/products/{bread.id}", headers=user_headers)
        assert resp.status_code == 403
        assert resp.json["code"] == "FORBIDDEN"

    def test_cannot_delete_inventory(self, client, user_headers, flour):
        resp = client.delete(f"/api/inventory/{flour.id}", headers=user_headers)
        assert resp.status_code == 403

    def test_cannot_delete_input(self, client, user_headers, flour):
        resp = client.delete(f"/api/inputs/{flour.input_id}", headers=user_headers)
        assert resp.status_code == 403

    def test_cannot_delete_pricing(self, client, user_headers, bread_pricing):
        resp = client.delete(f"/api/pricing/{bread_pricing.id}", headers=user_headers)
        assert resp.status_code == 403

    def test_can_still_read(self, client, user_headers, bread):
        resp = client.get("/api/products", headers=user_headers)
        assert resp.status_code == 200


class TestPrivilegedDeletes:
    def test_editor_archives_product(self, client, editor_headers, bread):
        resp = client.delete(f"/api/products/{bread.id}", headers=editor_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["status"] == "ARCHIVED"

        listed = client.get("/api/products", headers=editor_headers).json["items"]
        assert listed == []

    def test_admin_deletes_pricing(self, client, admin_headers, bread_pricing):
        resp = client.delete(f"/api/pricing/{bread_pricing.id}", headers=admin_headers)
        assert resp.status_code == 200

    def test_inventory_used_by_recipe_is_a_conflict(self, client, admin_headers, bread, flour):
        resp = client.delete(f"/api/inventory/{flour.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["code"] == "CONFLICT"


# =============================================================================
# REGISTRATION / SESSION LIFECYCLE
# =============================================================================


class TestRegistration:
    def _register(self, client, email):
        return client.post("/api/auth/register", json={
            "name": email.split("@")[0],
            "email": email,
            "password": PASSWORD,
        })

    def test_first_user_is_admin_then_users(self, client, db_session):
        first = self._register(client, "owner@kitchen.test")
        second = self._register(client, "helper@kitchen.test")

        assert first.status_code == 201
        assert first.json["user"]["role"] == "admin"
        assert second.json["user"]["role"] == "user"

    def test_duplicate_email(self, client, db_session):
        self._register(client, "owner@kitchen.test")
        resp = self._register(client, "OWNER@kitchen.test")
        assert resp.status_code == 409

    def test_weak_password(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "weak", "email": "weak@kitchen.test", "password": "password",
        })
        assert resp.status_code == 400
        assert resp.json["code"] == "WEAK_PASSWORD"

    def test_login_me_logout(self, client, db_session):
        self._register(client, "owner@kitchen.test")

        bad = client.post("/api/auth/login", json={"email": "owner@kitchen.test", "password": "Wrong123!"})
        assert bad.status_code == 401

        login = client.post("/api/auth/login", json={"email": "owner@kitchen.test", "password": PASSWORD})
        assert login.status_code == 200
        headers = auth_headers(login.json["token"])

        me = client.get("/api/auth/me", headers=headers)
        assert me.json["user"]["email"] == "owner@kitchen.test"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401
