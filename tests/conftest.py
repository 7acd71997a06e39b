"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database seeded with the demo resources
  • a frozen business clock (tests.mocks.models.FIXED_NOW)
  • rate limiting disabled

The `client` fixture runs the full lifespan (DB init / shutdown).
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.dependencies import business_now
from app.main import app
from tests.mocks.models import FIXED_NOW


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Internal fixture that points the DB at a temp file and disables
    rate limiting so that the app lifespan runs cleanly.
    """
    import app.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))

    from app.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)

    app.dependency_overrides[business_now] = lambda: FIXED_NOW
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(_test_env) -> TestClient:
    """FastAPI TestClient with temp DB and frozen clock."""
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
def resources(client) -> dict[str, dict]:
    """Seeded resources keyed by name."""
    resp = client.get("/api/resources", params={"page_size": 100})
    assert resp.status_code == 200
    return {item["name"]: item for item in resp.json()["items"]}


@pytest.fixture()
def court(resources) -> dict:
    return resources["Padel Court A"]


@pytest.fixture()
def bike(resources) -> dict:
    return resources["Vélo spinning"]
