"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, DB table creation, cleanup
  2. Middleware — CORS and per-request logging
  3. Exception handlers — maps domain errors to HTTP responses
  4. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn bookkeeping.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bookkeeping.config import settings
from bookkeeping.database import engine, Base
from bookkeeping.exceptions import register_exception_handlers
from bookkeeping.logging_config import configure_logging
from bookkeeping.middleware import RequestLoggingMiddleware
from bookkeeping.routers import (
    admin,
    auth,
    directory,
    financial_accounts,
    liabilities,
    transactions,
    transfers,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures logging, then creates all database tables if they don't
      exist (`bookkeeping init-db` does the same from the command line).

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="School bookkeeping API: cash accounts, ledger entries, transfers and vendor liabilities",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(RequestLoggingMiddleware)

# CORS: Allow specified frontend origins to make requests.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(financial_accounts.router, prefix="/financial-accounts", tags=["Financial Accounts"])
app.include_router(directory.router)
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
app.include_router(transfers.router, prefix="/transfers", tags=["Transfers"])
app.include_router(liabilities.router, prefix="/liabilities", tags=["Liabilities"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for deployment (Docker, Kubernetes, load balancers)."""
    return {"status": "ok", "version": settings.APP_VERSION}
