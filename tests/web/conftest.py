"""Web test fixtures — TestClient with shared in-memory SQLite."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import StaticPool

from invoicely.repositories.sqlalchemy import SQLAlchemyClientRepository, SQLAlchemyProfileRepository
from tests.conftest import OWNER_ID, SCHEMA_DDL, make_client, make_profile

OWNER_HEADERS = {"X-Owner-Id": OWNER_ID}


def _make_test_engine():
    """Create a fresh in-memory SQLite engine with shared connection pool."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    with engine.connect() as conn:
        for statement in SCHEMA_DDL.strip().split(";"):
            stmt = statement.strip()
            if stmt:
                conn.execute(text(stmt))
        conn.commit()

    return engine


def create_profile_in_db(engine, **overrides):
    with engine.connect() as conn:
        return SQLAlchemyProfileRepository(conn).save(make_profile(**overrides))


def create_client_in_db(engine, **overrides):
    with engine.connect() as conn:
        return SQLAlchemyClientRepository(conn).create(make_client(**overrides))


def invoice_payload(recipient_id: int | None, **overrides) -> dict:
    payload = {
        "recipient_id": recipient_id,
        "invoice_number": "42",
        "issue_date": "2025-03-01",
        "due_date": "2025-03-31",
        "customer_ref": "PO-1",
        "line_items": [
            {"name": "Design", "description": "Landing page", "quantity": "2", "unit_cost": "50"},
            {"name": "Hosting", "quantity": "1", "unit_cost": "19.99"},
            {"name": "", "quantity": "0", "unit_cost": "0"},
        ],
        "tax": "5",
        "notes": "Net 30",
    }
    payload.update(overrides)
    return payload


@pytest.fixture(autouse=True)
def web_test_db(monkeypatch):
    """Set up in-memory DB and patch the web app to use it."""
    engine = _make_test_engine()

    import web.deps as deps_module

    monkeypatch.setattr(deps_module, "get_engine", lambda: engine)

    import web.app as app_module

    monkeypatch.setattr(app_module, "initialize_db", lambda: None)

    yield engine

    engine.dispose()


@pytest.fixture()
def test_engine(web_test_db):
    """Expose the test engine for helpers that need direct DB access."""
    return web_test_db


@pytest.fixture()
def client():
    from starlette.testclient import TestClient

    from web.app import app

    return TestClient(app)


@pytest.fixture()
def recipient(test_engine):
    """Sender profile plus one client for the test owner."""
    create_profile_in_db(test_engine)
    return create_client_in_db(test_engine)
