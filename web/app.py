from __future__ import annotations

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from invoicely.db import initialize_db
from invoicely.logging import configure_logging, reconfigure
from invoicely.services.invoice_service import ResourceNotFoundError
from web.deps import DBConnectionMiddleware, OwnerIdentityMiddleware
from web.routes.invoice import router as invoice_router
from web.routes.line_items import router as line_items_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    initialize_db()
    # Re-apply logging config; Alembic's fileConfig may have overridden it
    reconfigure()
    logger.info("Application started")
    yield


app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)

app.add_middleware(DBConnectionMiddleware)
app.add_middleware(OwnerIdentityMiddleware)

app.include_router(invoice_router)
app.include_router(line_items_router)


@app.exception_handler(ResourceNotFoundError)
async def not_found_handler(request: Request, exc: ResourceNotFoundError):
    logger.warning("Not found on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc), "resource": exc.resource}, status_code=404)


@app.exception_handler(ValueError)
async def invalid_input_handler(request: Request, exc: ValueError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=422)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s:\n%s",
        request.method,
        request.url.path,
        traceback.format_exc(),
    )
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@app.get("/health")
async def health():
    return {"status": "ok"}
