"""
Financial accounts router — the school's cash pools.

Endpoints:
  POST /financial-accounts                       — Create an account (admin)
  GET  /financial-accounts                       — List accounts
  GET  /financial-accounts/overview              — Dashboard balances
  GET  /financial-accounts/{account_id}          — Account details
  GET  /financial-accounts/{account_id}/balance  — Cached vs. computed balance
  GET  /financial-accounts/{account_id}/ledger   — Entries in chain order

Balances are read-only here; they only move through transactions,
transfers and liability payments.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.database import get_db
from bookkeeping.dependencies import get_current_user, require_admin
from bookkeeping.models.user import User
from bookkeeping.schemas.account import (
    AccountCreateRequest,
    AccountResponse,
    BalanceResponse,
    OverviewResponse,
)
from bookkeeping.schemas.transaction import TransactionResponse
from bookkeeping.services import account_service, transaction_service

router = APIRouter()


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a financial account",
)
async def create_account(
    request: AccountCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new financial account.

    - **name**: Unique (e.g. "SPP", "Kegiatan", "Bank")
    - **is_bank**: Excluded from the total operating balance
    - **opening_balance**: Recorded as an opening DEBIT entry when non-zero
    """
    return await account_service.create_account(
        db=db,
        name=request.name,
        author_id=admin.id,
        is_bank=request.is_bank,
        opening_balance=request.opening_balance,
    )


@router.get(
    "",
    response_model=list[AccountResponse],
    summary="List financial accounts",
)
async def list_accounts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.list_accounts(db)


# Declared before /{account_id} so "overview" isn't parsed as an id
@router.get(
    "/overview",
    response_model=OverviewResponse,
    summary="Dashboard balance overview",
)
async def overview(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Per-account balances and the total operating balance (bank accounts excluded)."""
    return await account_service.get_overview(db)


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get a financial account",
)
async def get_account(
    account_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_account(db, account_id)


@router.get(
    "/{account_id}/balance",
    response_model=BalanceResponse,
    summary="Verify an account balance",
)
async def get_balance(
    account_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the account balance — cached and recomputed from its entries.

    `match` is false if the two disagree or the balance chain is broken.
    """
    return await account_service.get_balance(db, account_id)


@router.get(
    "/{account_id}/ledger",
    response_model=list[TransactionResponse],
    summary="List an account's entries in chain order",
)
async def get_ledger(
    account_id: uuid.UUID,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_account_ledger(
        db, account_id, limit=limit, offset=offset
    )
