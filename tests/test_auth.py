"""
Authentication Tests: login, bearer tokens, revocation.
"""

import jwt

from collab_portal.services import directory_service
from collab_portal.services.jwt_service import decode_access_token, generate_access_token

# Matches the password conftest hashes for every fixture user
TEST_PASSWORD = "Pass1234!"


def _login(client, username, password=TEST_PASSWORD):
    return client.post("/api/v1/auth/login", json={"username": username, "password": password})


class TestLogin:

    def test_login_returns_bearer_token(self, client, world):
        res = _login(client, world.supervisor.username)
        assert res.status_code == 200
        body = res.get_json()
        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == 28800
        assert body["user"]["role"] == "supervisor"

        payload = decode_access_token(body["access_token"])
        assert payload["sub"] == str(world.supervisor.id)
        assert payload["role"] == "supervisor"

    def test_username_is_case_insensitive(self, client, world):
        assert _login(client, world.viewer.username.upper()).status_code == 200

    def test_wrong_password(self, client, world):
        res = _login(client, world.viewer.username, "nope-nope")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_missing_fields(self, client):
        res = client.post("/api/v1/auth/login", json={"username": "x"})
        assert res.status_code == 400

    def test_inactive_user_cannot_login(self, client, world):
        directory_service.deactivate_user(world.viewer.id)
        assert _login(client, world.viewer.username).status_code == 401

    def test_deleted_user_cannot_login(self, client, world):
        directory_service.delete_user(world.viewer.id, actor=world.admin)
        assert _login(client, world.viewer.username).status_code == 401


class TestBearerToken:

    def test_me(self, client, world, auth_headers):
        res = client.get("/api/v1/auth/me", headers=auth_headers(world.chairman))
        assert res.status_code == 200
        user = res.get_json()["user"]
        assert user["role"] == "chairman"
        assert user["role_label"] == "Deputy"

    def test_missing_token(self, client, world):
        res = client.get("/api/v1/events")
        assert res.status_code == 401

    def test_garbage_token(self, client, world):
        res = client.get("/api/v1/events", headers={"Authorization": "Bearer abc.def.ghi"})
        assert res.status_code == 401

    def test_expired_token(self, app, client, world, monkeypatch):
        monkeypatch.setitem(app.config, "JWT_ACCESS_EXPIRES", -10)
        token = generate_access_token(world.viewer.id, "viewer")
        monkeypatch.setitem(app.config, "JWT_ACCESS_EXPIRES", 28800)
        res = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_foreign_signature(self, client, world):
        token = jwt.encode(
            {"sub": str(world.admin.id), "type": "access", "iat": 0, "exp": 4102444800},
            "not-the-secret", algorithm="HS256",
        )
        res = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_health_needs_no_token(self, client):
        assert client.get("/api/v1/health").status_code == 200
        assert client.get("/api/v1/health/ready").status_code == 200


class TestRevocation:

    def test_role_change_revokes_existing_token(self, client, world, auth_headers):
        headers = auth_headers(world.collab)
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 200

        res = client.put(
            f"/api/v1/users/{world.collab.id}", json={"role": "viewer"},
            headers=auth_headers(world.admin),
        )
        assert res.status_code == 200

        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

        # A fresh login carries the new role
        fresh = _login(client, world.collab.username).get_json()
        res = client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {fresh['access_token']}"},
        )
        assert res.status_code == 200
        assert res.get_json()["user"]["role"] == "viewer"

    def test_deactivation_rejects_token(self, client, world, auth_headers):
        headers = auth_headers(world.viewer)
        directory_service.deactivate_user(world.viewer.id)
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_string_false_deactivates_over_api(self, client, world, auth_headers):
        headers = auth_headers(world.viewer)
        res = client.put(
            f"/api/v1/users/{world.viewer.id}", json={"is_active": "false"},
            headers=auth_headers(world.admin),
        )
        assert res.status_code == 200
        assert res.get_json()["is_active"] is False
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_unparseable_active_flag_is_400(self, client, world, auth_headers):
        res = client.put(
            f"/api/v1/users/{world.viewer.id}", json={"is_active": "nope"},
            headers=auth_headers(world.admin),
        )
        assert res.status_code == 400
        assert res.get_json()["details"] == {"is_active": "invalid"}

    def test_soft_delete_rejects_token(self, client, world, auth_headers):
        headers = auth_headers(world.protocol)
        res = client.delete(f"/api/v1/users/{world.protocol.id}", headers=auth_headers(world.admin))
        assert res.status_code == 200
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401
