"""API tests for user management and password change."""


def test_admin_lists_and_creates_users(client, admin_headers) -> None:
    response = client.post(
        "/api/users/",
        json={"username": "omar", "password": "secret123", "full_name": "Omar Ali", "role": "user"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.get_json()["is_active"] is True

    usernames = [u["username"] for u in client.get("/api/users/", headers=admin_headers).get_json()]
    assert usernames == ["admin", "omar"]


def test_duplicate_username_conflicts(client, admin_headers) -> None:
    response = client.post(
        "/api/users/",
        json={"username": "admin", "password": "secret123", "full_name": "Again"},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_create_requires_password(client, admin_headers) -> None:
    response = client.post("/api/users/", json={"username": "x", "full_name": "X"}, headers=admin_headers)
    assert response.status_code == 400
    assert "password" in response.get_json()["errors"]


def test_invalid_role_rejected(client, admin_headers) -> None:
    response = client.post(
        "/api/users/",
        json={"username": "x", "password": "secret123", "full_name": "X", "role": "superuser"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_non_admin_cannot_manage_users(client, user_headers) -> None:
    assert client.get("/api/users/", headers=user_headers).status_code == 403
    assert client.post("/api/users/", json={}, headers=user_headers).status_code == 403


def test_update_user(client, admin_headers, regular_user) -> None:
    response = client.put(
        f"/api/users/{regular_user.id}",
        json={"role": "admin", "phone": "0509999999"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["role"] == "admin"
    assert body["phone"] == "0509999999"
    assert body["full_name"] == "Sara Ahmed"


def test_admin_cannot_delete_self(client, admin_headers, admin_user) -> None:
    response = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 400


def test_admin_deletes_other_user(client, admin_headers, regular_user) -> None:
    assert client.delete(f"/api/users/{regular_user.id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/users/{regular_user.id}", headers=admin_headers).status_code == 404


def test_change_own_password(client, user_headers, regular_user) -> None:
    response = client.put(
        f"/api/users/{regular_user.id}/password",
        json={"current_password": "secret123", "new_password": "newsecret1"},
        headers=user_headers,
    )
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"username": "sara", "password": "newsecret1"})
    assert login.status_code == 200


def test_change_password_requires_current_password(client, user_headers, regular_user) -> None:
    response = client.put(
        f"/api/users/{regular_user.id}/password",
        json={"current_password": "wrong", "new_password": "newsecret1"},
        headers=user_headers,
    )
    assert response.status_code == 400


def test_cannot_change_someone_elses_password(client, user_headers, admin_user) -> None:
    response = client.put(
        f"/api/users/{admin_user.id}/password",
        json={"current_password": "secret123", "new_password": "newsecret1"},
        headers=user_headers,
    )
    assert response.status_code == 403
