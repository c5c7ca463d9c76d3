"""
Liabilities router — vendor debts, payments and aging.

Endpoints:
  POST /liabilities                           — Register a liability (operator)
  GET  /liabilities                           — List (status, vendor, due-date filters)
  POST /liabilities/sweep                     — Mark past-due PENDING as OVERDUE (operator)
  GET  /liabilities/reminders/summary         — Counts and totals due soon / overdue
  POST /liabilities/reminders                 — Sweep, then list due soon / overdue (operator)
  GET  /liabilities/{liability_id}            — Get a liability
  GET  /liabilities/{liability_id}/payments   — Its payments, newest first
  POST /liabilities/{liability_id}/payments   — Pay (fully or partially) (operator)

Liability-flagged transactions (POST /transactions with is_liability) also
create liabilities; this router's POST only registers one without moving
money.
"""

import datetime as dt
import uuid

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.config import settings
from bookkeeping.database import get_db
from bookkeeping.dependencies import get_current_user, require_operator
from bookkeeping.models.liability import LiabilityStatus
from bookkeeping.models.user import User
from bookkeeping.schemas.liability import (
    LiabilityCreateRequest,
    LiabilityPaymentRequest,
    LiabilityPaymentResponse,
    LiabilityResponse,
    PaymentResultResponse,
    ReminderRequest,
    RemindersResponse,
    ReminderSummaryResponse,
    SweepRequest,
    SweepResponse,
)
from bookkeeping.services import liability_service

router = APIRouter()


@router.post(
    "",
    response_model=LiabilityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a liability",
)
async def create_liability(
    request: LiabilityCreateRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """
    Register a liability without moving money.

    Needs an **account_id** or **transaction_id** so it can be settled later.
    """
    return await liability_service.create_liability(
        db=db,
        vendor_name=request.vendor_name,
        amount=request.amount,
        due_date=request.due_date,
        direction=request.direction,
        author_id=user.id,
        account_id=request.account_id,
        transaction_id=request.transaction_id,
        description=request.description,
        notes=request.notes,
    )


@router.get(
    "",
    response_model=list[LiabilityResponse],
    summary="List liabilities",
)
async def list_liabilities(
    status_filter: LiabilityStatus | None = Query(None, alias="status"),
    vendor: str | None = Query(None, description="Case-insensitive substring"),
    due_from: dt.date | None = Query(None),
    due_to: dt.date | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List liabilities, soonest due first.

    Statuses are shown as stored; run the sweep to age PENDING liabilities.
    """
    return await liability_service.list_liabilities(
        db=db,
        status_filter=status_filter,
        vendor=vendor,
        due_from=due_from,
        due_to=due_to,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Mark past-due liabilities OVERDUE",
)
async def sweep_overdue(
    request: SweepRequest | None = Body(None),
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """Idempotent: running it twice for the same date changes nothing the second time."""
    as_of = request.as_of if request else None
    result = await liability_service.sweep_overdue(db, now=as_of, author_id=user.id)
    return SweepResponse(updated_count=result.updated_count, liability_ids=result.liability_ids)


@router.get(
    "/reminders/summary",
    response_model=ReminderSummaryResponse,
    summary="Summarize liabilities due soon and overdue",
)
async def reminder_summary(
    days_ahead: int = Query(settings.REMINDER_DAYS_AHEAD, ge=0, le=365),
    as_of: dt.date | None = Query(None, description="Default today"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Read-only: statuses are counted as stored, so run the sweep first to age them."""
    return await liability_service.summarize_upcoming(db, now=as_of, horizon_days=days_ahead)


@router.post(
    "/reminders",
    response_model=RemindersResponse,
    summary="Generate liability reminders",
)
async def generate_reminders(
    request: ReminderRequest | None = Body(None),
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """Runs the aging sweep first, then lists what is coming due and what is overdue."""
    request = request or ReminderRequest()
    days_ahead = request.days_ahead
    if days_ahead is None:
        days_ahead = settings.REMINDER_DAYS_AHEAD
    return await liability_service.generate_reminders(
        db, author_id=user.id, now=request.as_of, horizon_days=days_ahead
    )


@router.get(
    "/{liability_id}",
    response_model=LiabilityResponse,
    summary="Get a liability",
)
async def get_liability(
    liability_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await liability_service.get_liability(db, liability_id)


@router.get(
    "/{liability_id}/payments",
    response_model=list[LiabilityPaymentResponse],
    summary="List a liability's payments",
)
async def list_payments(
    liability_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await liability_service.get_payments(db, liability_id)


@router.post(
    "/{liability_id}/payments",
    response_model=PaymentResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Pay a liability",
)
async def pay_liability(
    liability_id: uuid.UUID,
    request: LiabilityPaymentRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """
    Apply a full or partial payment.

    - 409 if the liability is already PAID
    - 422 if the amount exceeds what remains (the response carries `remaining`)
    - 404 if there is no account to settle against
    """
    result = await liability_service.pay_liability(
        db=db,
        liability_id=liability_id,
        amount=request.amount,
        description=request.description,
        author_id=user.id,
        payment_date=request.date,
        proof_file=request.proof_file,
    )
    return {
        "transaction": result.transaction,
        "payment": result.payment,
        "liability": result.liability,
    }
