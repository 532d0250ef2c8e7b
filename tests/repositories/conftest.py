import pytest
from sqlalchemy import Connection

from invoicely.repositories.sqlalchemy import (
    SQLAlchemyClientRepository,
    SQLAlchemyInvoiceRepository,
    SQLAlchemyProfileRepository,
)


@pytest.fixture()
def profile_repo(db_connection: Connection) -> SQLAlchemyProfileRepository:
    return SQLAlchemyProfileRepository(db_connection)


@pytest.fixture()
def client_repo(db_connection: Connection) -> SQLAlchemyClientRepository:
    return SQLAlchemyClientRepository(db_connection)


@pytest.fixture()
def invoice_repo(db_connection: Connection) -> SQLAlchemyInvoiceRepository:
    return SQLAlchemyInvoiceRepository(db_connection)
