"""Root conftest — in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from invoicely.models.invoice import InvoiceDocument, LineItem
from invoicely.models.party import Address, Client, SenderProfile

# Matches Alembic head: 3f1a9c2e7b10 (initial schema)
SCHEMA_DDL = """
CREATE TABLE sender_profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id VARCHAR(255) NOT NULL UNIQUE,
    display_name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL DEFAULT '',
    street1 TEXT NOT NULL,
    street2 TEXT NOT NULL DEFAULT '',
    city TEXT NOT NULL,
    state TEXT NOT NULL,
    country TEXT NOT NULL,
    zip TEXT NOT NULL,
    currency VARCHAR(3) NOT NULL DEFAULT 'USD',
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
);

CREATE TABLE clients (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    owner_id VARCHAR(255) NOT NULL,
    display_name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL DEFAULT '',
    street1 TEXT NOT NULL,
    street2 TEXT NOT NULL DEFAULT '',
    city TEXT NOT NULL,
    state TEXT NOT NULL,
    country TEXT NOT NULL,
    zip TEXT NOT NULL,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL,
    deleted_at DATETIME
);

CREATE TABLE invoices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    owner_id VARCHAR(255) NOT NULL,
    recipient_id INTEGER REFERENCES clients(id),
    invoice_number TEXT NOT NULL,
    issue_date TEXT,
    due_date TEXT,
    customer_ref TEXT NOT NULL DEFAULT '',
    tax TEXT NOT NULL DEFAULT '0',
    notes TEXT NOT NULL DEFAULT '',
    status VARCHAR(20) NOT NULL DEFAULT 'draft',
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL,
    deleted_at DATETIME
);

CREATE TABLE invoice_line_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    quantity TEXT NOT NULL,
    unit_cost TEXT NOT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0
);
"""

OWNER_ID = "user_123"


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


def make_address(**overrides) -> Address:
    defaults = dict(
        street1="100 Main St",
        street2="Suite 4",
        city="Springfield",
        state="IL",
        country="USA",
        zip="62701",
    )
    defaults.update(overrides)
    return Address(**defaults)


def make_profile(**overrides) -> SenderProfile:
    defaults = dict(
        owner_id=OWNER_ID,
        display_name="Jane Freelancer",
        email="jane@example.com",
        phone="555-0100",
        address=make_address(),
        currency="USD",
    )
    defaults.update(overrides)
    return SenderProfile(**defaults)


def make_client(**overrides) -> Client:
    defaults = dict(
        owner_id=OWNER_ID,
        display_name="Acme & Sons, Inc.",
        email="billing@acme.test",
        address=make_address(street1="1 Industrial Way", street2="", city="Shelbyville", zip="62565"),
    )
    defaults.update(overrides)
    return Client(**defaults)


def make_line_items(count: int) -> list[LineItem]:
    return [
        LineItem(
            name=f"Item-{i:02d}",
            description=f"Work package {i:02d}",
            quantity=Decimal(i % 3 + 1),
            unit_cost=Decimal("12.50"),
        )
        for i in range(count)
    ]


def make_invoice(item_count: int = 2, **overrides) -> InvoiceDocument:
    defaults = dict(
        owner_id=OWNER_ID,
        invoice_number="INV-007",
        issue_date=date(2025, 3, 1),
        due_date=date(2025, 3, 31),
        line_items=make_line_items(item_count),
        tax=Decimal("5.00"),
        notes="Payment due within 30 days.",
    )
    defaults.update(overrides)
    return InvoiceDocument(**defaults)


@pytest.fixture()
def sample_profile():
    return make_profile


@pytest.fixture()
def sample_client():
    return make_client


@pytest.fixture()
def sample_invoice():
    return make_invoice
