import os
from typing import Generator

# The app's lifespan connects whatever DATABASE_URL names; keep it in memory for tests.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from leadmarket import config, crud
from leadmarket.db import EntityStore
from leadmarket.main import app, get_db


@pytest.fixture(scope="function")
def store() -> Generator:
    # Use in-memory SQLite with a single connection
    s = EntityStore("sqlite://").connect()
    try:
        yield s
    finally:
        s.disconnect()


@pytest.fixture(scope="function")
def db_session(store) -> Generator:
    db = store.new_session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(db_session, tmp_path):
    config.configure(upload_dir=str(tmp_path / "uploads"), seed_admin_key=None,
                     smtp_host=None, smtp_user=None, notify_email=None)

    # Override dependency to use the same session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    config.reload()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    """Register a user through the API, log in, and return auth headers."""
    def _signup(email: str, role: str = "business", password: str = "pw", **extra) -> dict:
        body = {"name": extra.pop("name", email.split("@")[0]), "email": email,
                "password": password, "role": role, **extra}
        r = client.post("/api/auth/register", json=body)
        assert r.status_code == 200, r.text
        r = client.post("/api/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return bearer(r.json()["token"])
    return _signup


@pytest.fixture
def admin_headers(client, db_session):
    crud.seed_admin(db_session, "admin@x.com", "adminpass")
    r = client.post("/api/auth/login", json={"email": "admin@x.com", "password": "adminpass"})
    assert r.status_code == 200, r.text
    return bearer(r.json()["token"])
