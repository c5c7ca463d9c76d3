"""
Test fixtures for the bookkeeping test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory: Fresh file-backed SQLite database per test
  - client: Async HTTP test client (unauthenticated)
  - admin_user / operator_user: Users created through auth_service
  - admin_client / operator_client: Clients logged in through /auth/login
  - accounts: "Bank" (is_bank, opening balance 1,000,000) and "SPP" (empty)

Key design decisions:
  - Each test gets its own SQLite FILE (under tmp_path) built with the
    production build_engine(), so every session gets a real connection and
    the BEGIN IMMEDIATE locking is exercised exactly as in production.
    Concurrency tests rely on this.
  - FastAPI's get_db is overridden with session_scope() on the test
    engine: one request, one unit of work, same as production.
  - Tests never hold a session open while calling the API; the open unit
    would hold the database write lock.
"""

import os
import tempfile
import uuid
from decimal import Decimal

# Settings are read at import time; these must be set first
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'bookkeeping-test.db')}",
)

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bookkeeping.database import Base, build_engine, get_db, session_scope
from bookkeeping.main import app
from bookkeeping.models.financial_account import FinancialAccount
from bookkeeping.models.user import User, UserRole
from bookkeeping.services import account_service, auth_service

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminPass123!"
OPERATOR_EMAIL = "operator@example.com"
OPERATOR_PASSWORD = "OperatorPass123!"


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a fresh SQLite file with all tables for each test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookkeeping.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    """Session factory bound to the test engine; use with session_scope()."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def client(session_factory):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    per-test database instead of the real one.
    """
    async def override_get_db():
        async with session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def login(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/auth/login",
        json={"email": email, "password": password},
    )
    assert response.status_code == 200, f"Login failed: {response.text}"
    return response.json()["token"]


@pytest_asyncio.fixture
async def admin_user(session_factory) -> User:
    async with session_scope(session_factory) as db:
        return await auth_service.create_user(
            db,
            email=ADMIN_EMAIL,
            password=ADMIN_PASSWORD,
            name="Admin Sekolah",
            role=UserRole.ADMIN,
        )


@pytest_asyncio.fixture
async def operator_user(session_factory) -> User:
    async with session_scope(session_factory) as db:
        return await auth_service.create_user(
            db,
            email=OPERATOR_EMAIL,
            password=OPERATOR_PASSWORD,
            name="Bu Operator",
            role=UserRole.OPERATOR,
        )


@pytest_asyncio.fixture
async def admin_client(client, admin_user):
    """Test client logged in as an ADMIN."""
    token = await login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest_asyncio.fixture
async def operator_client(client, operator_user):
    """
    A separate test client logged in as an OPERATOR.

    Independent of `client`, so a test can use admin_client and
    operator_client side by side.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        token = await login(ac, OPERATOR_EMAIL, OPERATOR_PASSWORD)
        ac.headers["Authorization"] = f"Bearer {token}"
        yield ac


@pytest_asyncio.fixture
async def accounts(session_factory, admin_user) -> dict[str, uuid.UUID]:
    """
    Two financial accounts:
      - "Bank": is_bank, opening balance 1,000,000.00 (one opening DEBIT entry)
      - "SPP": empty
    """
    async with session_scope(session_factory) as db:
        bank = await account_service.create_account(
            db, name="Bank", author_id=admin_user.id,
            is_bank=True, opening_balance=Decimal("1000000.00"),
        )
        spp = await account_service.create_account(
            db, name="SPP", author_id=admin_user.id,
        )
    return {"Bank": bank.id, "SPP": spp.id}


@pytest_asyncio.fixture
async def read_balance(session_factory):
    """Returns a coroutine that reads an account's stored balance in its own unit."""
    async def _read(account_id: uuid.UUID) -> Decimal:
        async with session_scope(session_factory) as db:
            account = await db.get(FinancialAccount, account_id)
            return account.balance
    return _read
