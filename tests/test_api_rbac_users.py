"""HTTP tests for /api/v1/rbac, /api/v1/users, and /api/v1/health."""

import unittest

from app.models import AuthSession, Role
from tests.support import TEST_PASSWORD, ApiTestCase


class AdminApiTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed()
        admin_role = self.db.query(Role).filter(Role.name == "ADMIN").one()
        self.make_user("admin@example.com", role=admin_role, full_name="Admin")
        self.admin = self.auth_headers(self.login("admin@example.com")["access_token"])
        self.alice = self.register("alice@example.com")
        self.viewer = self.auth_headers(self.alice["access_token"])


class TestRbacApi(AdminApiTestCase):
    def test_list_roles(self) -> None:
        resp = self.client.get("/api/v1/rbac/roles", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        roles = {r["name"]: r for r in resp.json()}
        self.assertEqual(set(roles), {"ADMIN", "MANAGER", "DESIGNER", "SALES", "VIEWER"})
        self.assertEqual(roles["VIEWER"]["user_count"], 1)
        self.assertIn("quotes:read", roles["VIEWER"]["permissions"])

    def test_viewer_cannot_list_roles(self) -> None:
        resp = self.client.get("/api/v1/rbac/roles", headers=self.viewer)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["detail"], "Insufficient permissions. Required: roles:read")

    def test_list_permissions(self) -> None:
        resp = self.client.get("/api/v1/rbac/permissions", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        perms = {p["name"]: p for p in resp.json()}
        self.assertEqual(len(perms), 30)
        self.assertEqual(perms["system:backup"]["role_count"], 1)

    def test_create_role_grant_and_read_back(self) -> None:
        resp = self.client.post(
            "/api/v1/rbac/roles",
            json={"name": "AUDITOR", "description": "Reads audit logs"},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertEqual(resp.json()["permissions"], [])

        resp = self.client.post(
            "/api/v1/rbac/roles/AUDITOR/permissions/system:audit", headers=self.admin
        )
        self.assertEqual(resp.json(), {"message": "Permission granted"})
        resp = self.client.post(
            "/api/v1/rbac/roles/AUDITOR/permissions/system:audit", headers=self.admin
        )
        self.assertEqual(resp.json(), {"message": "Permission already granted"})

        resp = self.client.get("/api/v1/rbac/roles/AUDITOR/permissions", headers=self.admin)
        self.assertEqual(resp.json(), {"role_name": "AUDITOR", "permissions": ["system:audit"]})

    def test_create_role_conflict_and_validation(self) -> None:
        resp = self.client.post("/api/v1/rbac/roles", json={"name": "VIEWER"}, headers=self.admin)
        self.assertEqual(resp.status_code, 409)
        resp = self.client.post("/api/v1/rbac/roles", json={"name": "lower"}, headers=self.admin)
        self.assertEqual(resp.status_code, 422)

    def test_create_permission(self) -> None:
        resp = self.client.post(
            "/api/v1/rbac/permissions", json={"name": "invoices:read"}, headers=self.admin
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["role_count"], 0)
        resp = self.client.post(
            "/api/v1/rbac/permissions", json={"name": "invoices:read"}, headers=self.admin
        )
        self.assertEqual(resp.status_code, 409)
        resp = self.client.post(
            "/api/v1/rbac/permissions", json={"name": "no-colon"}, headers=self.admin
        )
        self.assertEqual(resp.status_code, 422)

    def test_grant_unknown_permission(self) -> None:
        resp = self.client.post(
            "/api/v1/rbac/roles/VIEWER/permissions/invoices:read", headers=self.admin
        )
        self.assertEqual(resp.status_code, 404)

    def test_unknown_role_has_no_permissions(self) -> None:
        resp = self.client.get("/api/v1/rbac/roles/GHOST/permissions", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["permissions"], [])

    def test_assign_role_not_found(self) -> None:
        sales = self.db.query(Role).filter(Role.name == "SALES").one()
        resp = self.client.post(f"/api/v1/rbac/users/9999/role/{sales.id}", headers=self.admin)
        self.assertEqual(resp.status_code, 404)
        resp = self.client.post(
            f"/api/v1/rbac/users/{self.alice['user']['id']}/role/9999", headers=self.admin
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "Role with ID 9999 not found")

    def test_viewer_cannot_assign_roles(self) -> None:
        admin_role = self.db.query(Role).filter(Role.name == "ADMIN").one()
        resp = self.client.post(
            f"/api/v1/rbac/users/{self.alice['user']['id']}/role/{admin_role.id}",
            headers=self.viewer,
        )
        self.assertEqual(resp.status_code, 403)


class TestUsersApi(AdminApiTestCase):
    def test_me(self) -> None:
        resp = self.client.get("/api/v1/users/me", headers=self.viewer)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["email"], "alice@example.com")
        self.assertNotIn("password_hash", resp.json())

    def test_list_requires_users_read(self) -> None:
        self.assertEqual(self.client.get("/api/v1/users", headers=self.viewer).status_code, 403)
        resp = self.client.get("/api/v1/users", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            {u["email"] for u in resp.json()}, {"admin@example.com", "alice@example.com"}
        )

    def test_get_user(self) -> None:
        resp = self.client.get(f"/api/v1/users/{self.alice['user']['id']}", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["role"], "VIEWER")
        self.assertEqual(self.client.get("/api/v1/users/9999", headers=self.admin).status_code, 404)

    def test_update_user(self) -> None:
        user_id = self.alice["user"]["id"]
        resp = self.client.patch(
            f"/api/v1/users/{user_id}",
            json={"full_name": "Alice Smith", "email": "Alice.Smith@example.com"},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["email"], "alice.smith@example.com")
        self.assertEqual(resp.json()["full_name"], "Alice Smith")

    def test_update_user_email_conflict(self) -> None:
        resp = self.client.patch(
            f"/api/v1/users/{self.alice['user']['id']}",
            json={"email": "admin@example.com"},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 409)

    def test_update_requires_users_update(self) -> None:
        resp = self.client.patch(
            f"/api/v1/users/{self.alice['user']['id']}",
            json={"full_name": "Mallory"},
            headers=self.viewer,
        )
        self.assertEqual(resp.status_code, 403)

    def test_change_password(self) -> None:
        resp = self.client.post(
            "/api/v1/users/me/password",
            json={"current_password": "wrong-password", "new_password": "new-password-123"},
            headers=self.viewer,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Current password is incorrect")

        resp = self.client.post(
            "/api/v1/users/me/password",
            json={"current_password": TEST_PASSWORD, "new_password": "new-password-123"},
            headers=self.viewer,
        )
        self.assertEqual(resp.status_code, 200)
        self.login("alice@example.com", "new-password-123")
        resp = self.client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": TEST_PASSWORD}
        )
        self.assertEqual(resp.status_code, 401)

    def test_delete_user_removes_sessions(self) -> None:
        user_id = self.alice["user"]["id"]
        resp = self.client.delete(f"/api/v1/users/{user_id}", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        db = self.new_session()
        self.assertEqual(db.query(AuthSession).filter(AuthSession.user_id == user_id).count(), 0)
        resp = self.client.post(
            "/api/v1/auth/refresh", json={"refresh_token": self.alice["refresh_token"]}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(
            self.client.delete(f"/api/v1/users/{user_id}", headers=self.admin).status_code, 404
        )


class TestHealth(ApiTestCase):
    def test_health(self) -> None:
        resp = self.client.get("/api/v1/health/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["service"], "tessera")
        self.assertEqual(body["database"], "connected")

    def test_root(self) -> None:
        self.assertEqual(self.client.get("/").json(), {"message": "Tessera API"})


if __name__ == "__main__":
    unittest.main()
