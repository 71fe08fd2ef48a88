"""User management endpoints."""

from fct_admin.services.identity_service import IdentityService

PASSWORD = "secret123"

NEW_USER = {
    "nombre": "Luis",
    "apellido": "Pérez",
    "email": "luis@example.com",
    "password": PASSWORD,
    "confirmPassword": PASSWORD,
    "role": "coordinador",
}


def test_create_user_writes_account_and_role(client, as_role, collections):
    headers = as_role("admin")

    response = client.post("/api/users", headers=headers, json=NEW_USER)

    assert response.status_code == 201
    body = response.json()
    assert body["nombreCompleto"] == "Luis Pérez"
    assert body["role"] == "coordinador"
    assert collections["users"].find_one({"_id": body["id"]})["email"] == "luis@example.com"

    login = client.post("/api/auth/login", json={"email": "luis@example.com", "password": PASSWORD})
    assert login.json()["role"] == "coordinador"


def test_create_user_password_mismatch(client, as_role):
    response = client.post("/api/users", headers=as_role("admin"), json={**NEW_USER, "confirmPassword": "otra"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Las contraseñas no coinciden."


def test_create_user_with_short_password(client, as_role, collections):
    short = {**NEW_USER, "password": "123", "confirmPassword": "123"}

    response = client.post("/api/users", headers=as_role("admin"), json=short)

    assert response.status_code == 400
    assert response.json()["code"] == "weak-password"
    assert collections["users"].count_documents({"email": "luis@example.com"}) == 0


def test_list_users_reports_missing_role_as_registrador(client, as_role, collections):
    headers = as_role("admin")
    collections["users"].insert_one({"_id": "legacy", "email": "legacy@example.com", "role": ""})

    users = client.get("/api/users", headers=headers).json()

    roles = {user["email"]: user["role"] for user in users}
    assert roles == {"admin@example.com": "admin", "legacy@example.com": "registrador"}


def test_update_role(client, as_role, collections):
    headers = as_role("admin")
    uid = client.post("/api/users", headers=headers, json=NEW_USER).json()["id"]

    response = client.put(f"/api/users/{uid}/role", headers=headers, json={"role": "registrador"})

    assert response.status_code == 200
    assert collections["users"].find_one({"_id": uid})["role"] == "registrador"

    missing = client.put("/api/users/nope/role", headers=headers, json={"role": "admin"})
    assert missing.status_code == 404


def test_delete_user(client, as_role, collections):
    headers = as_role("admin")
    uid = client.post("/api/users", headers=headers, json=NEW_USER).json()["id"]

    response = client.delete(f"/api/users/{uid}", headers=headers)

    assert response.status_code == 200
    assert collections["users"].find_one({"_id": uid}) is None
    assert IdentityService().get_identity(uid) is None
    assert client.delete(f"/api/users/{uid}", headers=headers).status_code == 404


def test_cannot_delete_self(client, as_role):
    headers = as_role("admin")
    me = client.get("/api/auth/me", headers=headers).json()

    response = client.delete(f"/api/users/{me['uid']}", headers=headers)

    assert response.status_code == 400
