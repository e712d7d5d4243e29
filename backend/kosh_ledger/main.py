"""
Kosh Ledger – FastAPI application entry point.

Run with:
    uvicorn kosh_ledger.main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from kosh_ledger.api.routes import router
from kosh_ledger.core.config import settings
from kosh_ledger.core.database import create_db_and_tables
from kosh_ledger.core.errors import (
    ConfigurationError,
    InvalidPeriodError,
    LedgerError,
    NotFoundError,
    ReportTimeoutError,
)
from kosh_ledger.core.logging import report_scope, setup_logging

# Engine error -> HTTP status; anything else derived from LedgerError is a 400
ERROR_STATUS = {
    NotFoundError: 404,
    InvalidPeriodError: 422,
    ConfigurationError: 409,
    ReportTimeoutError: 504,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    setup_logging()
    logger.info("Starting Kosh Ledger backend …")
    create_db_and_tables()
    logger.info("Database tables ready")
    yield
    logger.info("Kosh Ledger backend shut down")


app = FastAPI(
    title="Kosh Ledger API",
    description="Ledgers, stock reconciliation and GSTR-1 reports over the POS store",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS – allow frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.middleware("http")
async def log_report(request: Request, call_next):
    """Run each request inside a report scope named after its path."""
    with report_scope(request.url.path):
        response = await call_next(request)
        logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
    return response


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    if status_code >= 500:
        logger.error(f"{request.url.path}: {exc}")
    else:
        logger.warning(f"{request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/")
def root():
    return {"message": "Kosh Ledger API", "docs": "/docs"}
