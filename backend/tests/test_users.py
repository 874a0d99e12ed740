USERS = "/api/admin/users"


async def test_admin_creates_and_lists_users(client, admin_headers):
    resp = await client.post(
        USERS,
        json={"username": "redaktor", "password": "password123", "role": "editor", "fullName": "Jana Nováková"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["username"] == "redaktor"
    assert created["role"] == "editor"
    assert created["fullName"] == "Jana Nováková"
    assert "hashedPassword" not in created and "password" not in created

    resp = await client.get(USERS, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert [u["username"] for u in body["users"]] == ["admin", "redaktor"]


async def test_duplicate_username_is_conflict(client, admin_headers):
    body = {"username": "admin", "password": "password123"}
    resp = await client.post(USERS, json=body, headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


async def test_user_management_requires_admin(client, editor_headers):
    assert (await client.get(USERS, headers=editor_headers)).status_code == 403
    resp = await client.post(USERS, json={"username": "x-user", "password": "password123"}, headers=editor_headers)
    assert resp.status_code == 403


async def test_me_and_password_change(client, editor_user, editor_headers):
    resp = await client.get(f"{USERS}/me", headers=editor_headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == editor_user.id

    resp = await client.post(
        f"{USERS}/me/password",
        json={"currentPassword": "wrong-password", "newPassword": "new-password-456"},
        headers=editor_headers,
    )
    assert resp.status_code == 400

    resp = await client.post(
        f"{USERS}/me/password",
        json={"currentPassword": "password123", "newPassword": "new-password-456"},
        headers=editor_headers,
    )
    assert resp.status_code == 204

    resp = await client.post("/api/admin/auth/login", json={"username": "editor", "password": "new-password-456"})
    assert resp.status_code == 200


async def test_admin_cannot_deactivate_or_demote_self(client, admin_user, admin_headers):
    assert (await client.delete(f"{USERS}/{admin_user.id}", headers=admin_headers)).status_code == 400
    resp = await client.patch(f"{USERS}/{admin_user.id}", json={"role": "viewer"}, headers=admin_headers)
    assert resp.status_code == 400


async def test_deactivate_user(client, admin_headers, editor_user, editor_headers):
    resp = await client.delete(f"{USERS}/{editor_user.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["isActive"] is False
    assert (await client.get(f"{USERS}/me", headers=editor_headers)).status_code == 401


async def test_update_user_role(client, admin_headers, viewer_user):
    resp = await client.patch(f"{USERS}/{viewer_user.id}", json={"role": "editor"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "editor"


async def test_unknown_user_is_404(client, admin_headers):
    resp = await client.get(f"{USERS}/9999", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"
