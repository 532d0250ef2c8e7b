from __future__ import annotations

import logging

from fastapi import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from invoicely.db import get_engine
from invoicely.repositories.sqlalchemy import (
    SQLAlchemyClientRepository,
    SQLAlchemyInvoiceRepository,
    SQLAlchemyProfileRepository,
)
from invoicely.services.invoice_service import InvoiceService
from invoicely.services.suggestion_service import CostSuggestionIndex

logger = logging.getLogger(__name__)

OWNER_HEADER = "x-owner-id"
PUBLIC_EXACT_PATHS = {"/health"}


class OwnerIdentityMiddleware:
    """Pure ASGI middleware: requires the authenticated owner id set by the auth proxy."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        path = request.url.path
        if path in PUBLIC_EXACT_PATHS:
            await self.app(scope, receive, send)
            return
        owner_id = request.headers.get(OWNER_HEADER, "").strip()
        if not owner_id:
            logger.info("Rejected %s %s: no owner identity", request.method, path)
            response = JSONResponse({"error": "Unauthorized"}, status_code=401)
            await response(scope, receive, send)
            return
        scope.setdefault("state", {})["owner_id"] = owner_id
        await self.app(scope, receive, send)


class DBConnectionMiddleware:
    """Pure ASGI middleware: creates a single DB connection per request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request.state.db_conn = None
        try:
            await self.app(scope, receive, send)
        finally:
            conn = getattr(request.state, "db_conn", None)
            if conn is not None:
                conn.close()
                logger.debug("DB connection closed for %s %s", request.method, request.url.path)


def _get_conn(request: Request):
    """Lazy per-request connection, created on first use, closed by middleware."""
    if request.state.db_conn is None:
        logger.debug("Creating DB connection for %s %s", request.method, request.url.path)
        request.state.db_conn = get_engine().connect()
    return request.state.db_conn


def get_owner_id(request: Request) -> str:
    return request.state.owner_id


def get_invoice_service(request: Request) -> InvoiceService:
    conn = _get_conn(request)
    return InvoiceService(
        SQLAlchemyInvoiceRepository(conn),
        SQLAlchemyClientRepository(conn),
        SQLAlchemyProfileRepository(conn),
    )


def get_suggestion_index(request: Request) -> CostSuggestionIndex:
    return CostSuggestionIndex(SQLAlchemyInvoiceRepository(_get_conn(request)))
