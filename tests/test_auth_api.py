"""Authentication endpoints."""

from fct_admin.db.mongodb import COLLECTIONS

PASSWORD = "secret123"


def test_login_returns_role_and_permissions(client, make_user):
    make_user(email="coord@example.com", role="coordinador")

    response = client.post("/api/auth/login", json={"email": "coord@example.com", "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["tokenType"] == "bearer"
    assert body["role"] == "coordinador"
    assert body["permissions"] == {
        "canCreate": False,
        "canEdit": True,
        "canDelete": False,
        "canManageUsers": False,
        "canViewPendingTasks": True,
    }


def test_login_without_role_document_has_no_access(client, make_user):
    make_user(email="nobody@example.com", role=None)

    body = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}).json()

    assert body["role"] is None
    assert not any(body["permissions"].values())


def test_login_with_bad_credentials(client, make_user):
    make_user(email="ana@example.com")

    response = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json() == {
        "detail": "Credenciales inválidas. El usuario no existe o la contraseña es incorrecta.",
        "code": "invalid-credential",
    }


def test_login_with_malformed_email(client):
    response = client.post("/api/auth/login", json={"email": "ana", "password": PASSWORD})
    assert response.status_code == 400
    assert response.json()["code"] == "invalid-email"


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code in (401, 403)

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_me(client, as_role):
    headers = as_role("admin")

    body = client.get("/api/auth/me", headers=headers).json()

    assert body["email"] == "admin@example.com"
    assert body["role"] == "admin"
    assert body["roleName"] == "Administrador"
    assert body["permissions"]["canManageUsers"] is True


def test_role_change_applies_on_next_request(client, as_role, collections):
    headers = as_role("registrador")
    collections["users"].update_one({"email": "registrador@example.com"}, {"$set": {"role": "admin"}})

    body = client.get("/api/auth/me", headers=headers).json()

    assert body["role"] == "admin"


def test_logout(client, as_role):
    response = client.post("/api/auth/logout", headers=as_role("registrador"))
    assert response.status_code == 200
    assert response.json()["message"] == "Sesión cerrada"


def test_profile_update(client, as_role, collections):
    headers = as_role("registrador")

    response = client.put("/api/auth/profile", headers=headers, json={
        "displayName": "Regi Strador",
        "email": "nuevo@example.com",
        "currentPassword": PASSWORD,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["displayName"] == "Regi Strador"
    assert body["email"] == "nuevo@example.com"
    assert body["role"] == "registrador"
    assert collections["users"].find_one({"email": "nuevo@example.com"}) is not None


def test_profile_password_change_requires_current_password(client, as_role):
    response = client.put("/api/auth/profile", headers=as_role("registrador"), json={"newPassword": "otra-clave"})

    assert response.status_code == 401
    assert response.json()["code"] == "requires-recent-login"


def test_bootstrap_admin_only_once(client, mongo_db):
    payload = {"email": "admin@example.com", "password": PASSWORD, "displayName": "Admin"}

    first = client.post("/api/auth/bootstrap-admin", json=payload)
    assert first.status_code == 201
    assert mongo_db[COLLECTIONS["users"]].find_one({"email": "admin@example.com"})["role"] == "admin"

    second = client.post("/api/auth/bootstrap-admin", json={**payload, "email": "otro@example.com"})
    assert second.status_code == 409
    assert second.json()["detail"] == "Ya existe un usuario administrador."
