"""HTTP tests for self-registration and admin account management."""

import pytest

from civicfix.db.models.user import Role

from conftest import TEST_PASSWORD


SIGNUP = {
    "full_name": "Asha Rao",
    "username": "asha",
    "email": "asha@example.org",
    "password": "streetlights",
}


class TestSignup:
    def test_creates_citizen_who_can_log_in(self, client) -> None:
        resp = client.post("/signup", json=SIGNUP)
        assert resp.status_code == 201
        body = resp.json()
        assert (body["username"], body["role"]) == ("asha", "citizen")

        login = client.post("/login", data={"username": "asha", "password": "streetlights"})
        assert login.status_code == 200
        assert client.get("/me").json()["role"] == "citizen"

    def test_role_in_body_is_ignored(self, client) -> None:
        resp = client.post("/signup", json={**SIGNUP, "role": "admin"})
        assert resp.status_code == 201
        assert resp.json()["role"] == "citizen"

    @pytest.mark.parametrize(
        "patch",
        [
            {"full_name": " "},
            {"username": ""},
            {"password": "123"},
            {"email": "not-an-email"},
            {"username": "city_manager"},
        ],
    )
    def test_rejected(self, client, users, patch) -> None:
        resp = client.post("/signup", json={**SIGNUP, **patch})
        assert resp.status_code == 400

    def test_duplicate_username(self, client) -> None:
        assert client.post("/signup", json=SIGNUP).status_code == 201
        resp = client.post("/signup", json={**SIGNUP, "email": "other@example.org"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "This username is already taken"


class TestAdminUsers:
    def test_non_admin_forbidden(self, login) -> None:
        client = login(Role.CITY_MANAGER)
        assert client.get("/users").status_code == 403
        assert client.post("/users", json={**SIGNUP, "role": "contractor"}).status_code == 403

    def test_list_with_filters(self, login, users) -> None:
        client = login(Role.ADMIN)
        everyone = client.get("/users").json()
        assert {u["username"] for u in everyone} == {u.username for u in users.values()}

        managers = client.get("/users", params={"role": "city_manager"}).json()
        assert [u["id"] for u in managers] == [users[Role.CITY_MANAGER].id]

        assert client.get("/users", params={"role": "mayor"}).status_code == 400

    def test_create_staff_account(self, login) -> None:
        client = login(Role.ADMIN)
        resp = client.post("/users", json={**SIGNUP, "username": "crew7", "role": "contractor"})
        assert resp.status_code == 201
        assert resp.json()["role"] == "contractor"
        assert resp.json()["roleLabel"] == "Contractor"

    def test_create_requires_valid_role(self, login) -> None:
        client = login(Role.ADMIN)
        assert client.post("/users", json={**SIGNUP, "role": ""}).status_code == 400

    def test_update_role_and_password(self, client, login, users) -> None:
        target = users[Role.CONTRACTOR]
        login(Role.ADMIN)
        resp = client.patch(
            f"/users/{target.id}",
            json={"role": "issue_resolver", "full_name": "Crew Lead", "new_password": "fresh-pass"},
        )
        assert resp.status_code == 200
        assert (resp.json()["role"], resp.json()["name"]) == ("issue_resolver", "Crew Lead")

        relog = client.post("/login", data={"username": target.username, "password": "fresh-pass"})
        assert relog.status_code == 200
        assert relog.json()["role"] == "issue_resolver"

    def test_deactivate_blocks_login(self, client, login, users) -> None:
        target = users[Role.INFRA_MANAGER]
        login(Role.ADMIN)
        resp = client.delete(f"/users/{target.id}")
        assert resp.json() == {"status": "ok", "id": target.id, "isActive": False}

        relog = client.post("/login", data={"username": target.username, "password": TEST_PASSWORD})
        assert relog.status_code == 403

    def test_admin_cannot_lock_themselves_out(self, login, users) -> None:
        me = users[Role.ADMIN]
        client = login(Role.ADMIN)
        assert client.delete(f"/users/{me.id}").status_code == 400
        assert client.patch(f"/users/{me.id}", json={"is_active": False}).status_code == 400
        assert client.patch(f"/users/{me.id}", json={"role": "citizen"}).status_code == 400

    def test_missing_user(self, login) -> None:
        client = login(Role.ADMIN)
        assert client.patch("/users/9999", json={"full_name": "Nobody"}).status_code == 404
        assert client.delete("/users/9999").status_code == 404
