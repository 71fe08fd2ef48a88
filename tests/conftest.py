"""
Shared fixtures.

Every test gets a fresh in-memory document store (mongomock) and a fresh
in-memory SQLite accounts table, so nothing here needs a running MongoDB or
PostgreSQL.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from fct_admin.core.config import get_settings
from fct_admin.db.mongodb import COLLECTIONS, get_mongo_db, set_mongo_client
from fct_admin.db.postgres import init_identity_schema, set_engine
from fct_admin.services.identity_service import IdentityService
from fct_admin.services.mongo_service import RoleAssignmentService

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret")
    monkeypatch.setenv("MONGODB_DB", "fct_admin_test")
    monkeypatch.setenv("MONGODB_USE_TRANSACTIONS", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def mongo_db(settings_env):
    set_mongo_client(mongomock.MongoClient())
    yield get_mongo_db()
    set_mongo_client(None)


@pytest.fixture(autouse=True)
def identity_db(settings_env):
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    set_engine(engine)
    init_identity_schema()
    yield engine
    engine.dispose()


@pytest.fixture
def collections(mongo_db):
    return {key: mongo_db[name] for key, name in COLLECTIONS.items()}


@pytest.fixture
def client():
    from fct_admin.main import app
    return TestClient(app)


@pytest.fixture
def make_user():
    """Create an account; `role=None` leaves it without a role document."""

    def _make(email="user@example.com", role="registrador", password=PASSWORD, nombre="Ana", apellido="García"):
        identity = IdentityService().create_account(email, password, display_name=f"{nombre} {apellido}")
        if role is not None:
            RoleAssignmentService().assign(identity.uid, identity.email, role, nombre=nombre, apellido=apellido)
        return identity

    return _make


@pytest.fixture
def login(client):
    """Sign in through the API and return the Authorization header."""

    def _login(email, password=PASSWORD):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['accessToken']}"}

    return _login


@pytest.fixture
def as_role(make_user, login):
    """Headers for a freshly created user with the given role."""

    def _as(role, email=None):
        email = email or f"{role or 'norole'}@example.com"
        make_user(email=email, role=role)
        return login(email)

    return _as
