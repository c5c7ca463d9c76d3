"""
Transactions router — record and query ledger entries.

Endpoints:
  POST /transactions                   — Record a DEBIT/CREDIT entry, or a
                                         liability-flagged entry (operator)
  GET  /transactions                   — List entries (with filters)
  GET  /transactions/{transaction_id}  — Get a single entry

Entries are immutable: there are no update or delete endpoints. A mistake
is corrected by recording a new, opposite entry.
"""

import datetime as dt
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.database import get_db
from bookkeeping.dependencies import get_current_user, require_operator
from bookkeeping.models.transaction import TransactionType
from bookkeeping.models.user import User
from bookkeeping.schemas.liability import TransactionCreateResponse
from bookkeeping.schemas.transaction import (
    TransactionCreateRequest,
    TransactionResponse,
)
from bookkeeping.services import liability_service, transaction_service

router = APIRouter()


@router.post(
    "",
    response_model=TransactionCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transaction",
)
async def create_transaction(
    request: TransactionCreateRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a DEBIT (money in) or CREDIT (money out) entry.

    The account balance is read and updated in the same database
    transaction as the entry insert, and the entry stores the balance
    before and after.

    With **is_liability** set, the entry also registers a liability:
    - **WE_ARE_OWED**: the school lends money; a CREDIT entry is recorded now
    - **WE_OWE**: the school borrows; nothing is posted until it is paid
    """
    if request.is_liability:
        created = await liability_service.create_liability_from_transaction(
            db=db,
            entry_date=request.date,
            description=request.description,
            amount=request.amount,
            account_id=request.account_id,
            author_id=user.id,
            vendor_name=request.vendor_name,
            due_date=request.due_date,
            direction=request.liability_direction,
            txn_type=request.type,
            category_id=request.category_id,
            student_id=request.student_id,
            proof_file=request.proof_file,
            notes=request.notes,
        )
        return {"transaction": created.transaction, "liability": created.liability}

    txn = await transaction_service.record_transaction(
        db=db,
        entry_date=request.date,
        description=request.description,
        amount=request.amount,
        txn_type=request.type,
        account_id=request.account_id,
        author_id=user.id,
        category_id=request.category_id,
        student_id=request.student_id,
        proof_file=request.proof_file,
    )
    return {"transaction": txn, "liability": None}


@router.get(
    "",
    response_model=list[TransactionResponse],
    summary="List transactions",
)
async def list_transactions(
    account_id: uuid.UUID | None = Query(None),
    type: TransactionType | None = Query(None, description="DEBIT or CREDIT"),
    category_id: uuid.UUID | None = Query(None),
    student_id: uuid.UUID | None = Query(None),
    start_date: dt.date | None = Query(None, description="Inclusive"),
    end_date: dt.date | None = Query(None, description="Inclusive"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List entries, newest business date first."""
    return await transaction_service.get_transactions(
        db=db,
        account_id=account_id,
        type_filter=type,
        category_id=category_id,
        student_id=student_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(db, transaction_id)
