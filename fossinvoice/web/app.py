"""
FastAPI application exposing the FOSSInvoice persistence engine.
"""
import logging
import os
import sqlite3
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fossinvoice.invoicing.storage.database import init_database
from fossinvoice.shared.errors import InvalidDataError, MissingKeyError, NotFoundError
from fossinvoice.shared.logging_config import configure_logging
from fossinvoice.web import dependencies

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: create or migrate the database before serving."""
    init_database(dependencies.get_database_path())
    yield


app = FastAPI(title="FOSSInvoice", version="0.1.0", lifespan=lifespan)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(MissingKeyError)
@app.exception_handler(InvalidDataError)
async def invalid_request_handler(request: Request, exc: Exception):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(sqlite3.IntegrityError)
async def integrity_error_handler(request: Request, exc: sqlite3.IntegrityError):
    log.warning("Constraint violation on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": f"Constraint violation: {exc}"}, status_code=409)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Internal server error."}, status_code=500)


# Import and include routers
from fossinvoice.web.routers import companies, invoices, settings  # noqa: E402

app.include_router(companies.router)
app.include_router(invoices.router)
app.include_router(settings.router)


def main():
    configure_logging()
    uvicorn.run(
        "fossinvoice.web.app:app",
        host=os.environ.get("FOSSINVOICE_HOST", "127.0.0.1"),
        port=int(os.environ.get("FOSSINVOICE_PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    main()
