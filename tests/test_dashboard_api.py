"""Dashboard stats, role-aware navigation and catalog seeding."""

from unittest.mock import patch

from fct_admin.services.ciclos_catalog import catalog_size


def _keys(items):
    return [item["key"] for item in items]


def test_stats_count_every_collection(client, as_role, collections):
    headers = as_role("coordinador")
    collections["empresas"].insert_many([{"nombre": "A"}, {"nombre": "B"}])
    collections["estudiantes"].insert_one({"nombre": "Marta"})
    collections["ciclos"].insert_many([{"nombre": "DAW"}, {"nombre": "DAM"}, {"nombre": "ASIR"}])

    stats = client.get("/api/dashboard/stats", headers=headers).json()

    assert stats == {"empresas": 2, "estudiantes": 1, "asignaciones": 0, "ciclos": 3}


def test_navigation_for_admin(client, as_role):
    keys = _keys(client.get("/api/dashboard/navigation", headers=as_role("admin")).json())
    assert keys == [
        "dashboard", "empresas", "estudiantes", "asignaciones", "ciclos",
        "pendientes", "usuarios", "configuracion",
    ]


def test_navigation_hides_users_for_registrador(client, as_role):
    keys = _keys(client.get("/api/dashboard/navigation", headers=as_role("registrador")).json())
    assert "pendientes" in keys
    assert "usuarios" not in keys


def test_navigation_without_role_hides_gated_entries(client, as_role):
    keys = _keys(client.get("/api/dashboard/navigation", headers=as_role(None)).json())
    assert "pendientes" not in keys
    assert "usuarios" not in keys
    assert "empresas" in keys


def test_actions_follow_permissions(client, as_role):
    coordinador = _keys(client.get(
        "/api/dashboard/actions", headers=as_role("coordinador"), params={"section": "empresas"}
    ).json())
    assert coordinador == ["empresas.edit"]

    registrador = _keys(client.get(
        "/api/dashboard/actions", headers=as_role("registrador"), params={"section": "ciclos"}
    ).json())
    assert registrador == ["ciclos.create"]

    admin = _keys(client.get("/api/dashboard/actions", headers=as_role("admin")).json())
    assert "usuarios.create" in admin
    assert "asignaciones.delete" in admin


def test_recent_assignments_are_paginated(client, as_role, collections):
    headers = as_role("admin")
    for month in range(1, 8):
        collections["asignaciones"].insert_one({
            "estudianteId": "x", "empresaId": "y",
            "fechaInicio": f"2024-{month:02d}-01", "fechaFin": f"2024-{month:02d}-28",
        })

    first = client.get("/api/dashboard/recent-assignments", headers=headers, params={"pageSize": 5}).json()
    second = client.get(
        "/api/dashboard/recent-assignments", headers=headers, params={"page": 2, "pageSize": 5}
    ).json()

    assert first["total"] == 7
    assert [a["fechaInicio"] for a in first["asignaciones"]][:2] == ["2024-07-01", "2024-06-01"]
    assert len(second["asignaciones"]) == 2
    assert second["asignaciones"][0]["estudiante"]["nombre"] == "Desconocido"


def test_seed_ciclos_is_idempotent(client, as_role, collections):
    headers = as_role("admin")

    first = client.post("/api/ciclos/seed", headers=headers).json()
    second = client.post("/api/ciclos/seed", headers=headers).json()

    assert first["added"] == catalog_size()
    assert second == {
        "message": f"Proceso completado. Se agregaron 0 ciclos formativos. {catalog_size()} ya existían.",
        "added": 0,
        "existing": catalog_size(),
        "details": second["details"],
    }
    assert collections["ciclos"].count_documents({}) == catalog_size()


def test_ciclos_overview_is_paginated(client, as_role):
    headers = as_role("admin")
    client.post("/api/ciclos/seed", headers=headers)

    page = client.get("/api/ciclos/overview", headers=headers, params={"page": 1, "pageSize": 4}).json()

    assert page["total"] == catalog_size()
    assert len(page["ciclos"]) == 4
    familias = [ciclo["familia"] for ciclo in page["ciclos"]]
    assert familias == sorted(familias)


def test_diagnostics_reports_degraded_state(client, monkeypatch):
    monkeypatch.delenv("POSTGRES_PASSWORD", raising=False)
    with patch("fct_admin.main.test_postgres_connection", return_value=True), \
            patch("fct_admin.main.test_mongo_connection", return_value=False):
        body = client.get("/diagnostics").json()

    assert body["status"] == "degraded"
    assert body["mongodb"] == "disconnected"
    assert body["config"] == {"postgres_password": "default"}


def test_diagnostics_ok(client, monkeypatch):
    from fct_admin.core.config import get_settings

    monkeypatch.setenv("POSTGRES_PASSWORD", "s3cret")
    get_settings.cache_clear()

    with patch("fct_admin.main.test_postgres_connection", return_value=True), \
            patch("fct_admin.main.test_mongo_connection", return_value=True):
        body = client.get("/diagnostics").json()

    assert body == {"status": "ok", "postgres": "connected", "mongodb": "connected", "config": {}}


def test_create_action_labels(client, as_role):
    actions = client.get("/api/dashboard/actions", headers=as_role("admin")).json()

    labels = {item["key"]: item["label"] for item in actions if item["key"].endswith(".create")}
    assert labels == {
        "empresas.create": "Nueva Empresa",
        "estudiantes.create": "Nuevo Estudiante",
        "asignaciones.create": "Nueva Asignación",
        "ciclos.create": "Nuevo Ciclo Formativo",
        "usuarios.create": "Añadir Usuario",
    }
