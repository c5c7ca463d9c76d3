"""
Liability service — vendor debts, their settlement, and the aging sweep.

This module handles:
  - Creating liabilities, either alongside a ledger entry
    (create_liability_from_transaction) or on their own (create_liability)
  - Settling them with full or partial payments (pay_liability)
  - Moving past-due liabilities to OVERDUE (sweep_overdue)
  - Reminder summaries and reports (summarize_upcoming, generate_reminders)

Direction:
  WE_ARE_OWED (the school lent money): the cash left at creation as a CREDIT
  entry; each payment brings money back in as a DEBIT entry.
  WE_OWE (the school borrowed): nothing moves at creation; each payment pays
  money out as a CREDIT entry.

Settlement account:
  A payment goes through the account of the liability's originating entry
  if it has one, else through the liability's stored account_id. When
  neither exists the payment fails with SettlementAccountNotFoundError;
  no other account is ever picked.

Atomicity and locking:
  pay_liability locks the liability row, then the settlement account,
  re-reading both. The remaining-amount check, the ledger entry, the
  LiabilityPayment row, the paid_amount/status update and the audit
  entries share one unit of work, so two payments racing on one liability
  can never settle more than its amount.

Aging:
  Day-granular. A PENDING liability is overdue once due_date < as-of date.
  Only sweep_overdue (and generate_reminders, which runs it) changes
  status; list and summary reads never do.
"""

import datetime as dt
import logging
import uuid
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.exceptions import (
    AlreadySettledError,
    LedgerValidationError,
    LiabilityNotFoundError,
    OverpaymentError,
    SettlementAccountNotFoundError,
)
from bookkeeping.models.liability import Liability, LiabilityDirection, LiabilityStatus
from bookkeeping.models.liability_payment import LiabilityPayment
from bookkeeping.models.transaction import Transaction, TransactionType
from bookkeeping.services import audit_service
from bookkeeping.services.audit_service import AuditAction

logger = logging.getLogger(__name__)


def parse_direction(value: LiabilityDirection | str) -> LiabilityDirection:
    if isinstance(value, LiabilityDirection):
        return value
    try:
        return LiabilityDirection(str(value).upper())
    except ValueError:
        raise LedgerValidationError(f"Unknown liability direction: {value!r}")


def _as_of_date(now: dt.datetime | dt.date | None) -> dt.date:
    if now is None:
        return dt.date.today()
    if isinstance(now, dt.datetime):
        return now.date()
    return now


def _audit_details(liability: Liability) -> dict:
    return {
        "liability_id": liability.id,
        "vendor_name": liability.vendor_name,
        "amount": liability.amount,
        "direction": liability.direction,
        "due_date": liability.due_date,
        "transaction_id": liability.transaction_id,
        "account_id": liability.account_id,
        "category_id": liability.category_id,
        "student_id": liability.student_id,
    }


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class LiabilityCreation(NamedTuple):
    liability: Liability
    transaction: Transaction | None  # the origination entry, WE_ARE_OWED only


async def create_liability_from_transaction(
    db: AsyncSession,
    entry_date: dt.date,
    description: str,
    amount: Decimal | str | int,
    account_id: uuid.UUID,
    author_id: uuid.UUID,
    vendor_name: str,
    due_date: dt.date,
    direction: LiabilityDirection | str,
    txn_type: TransactionType | str | None = None,
    category_id: uuid.UUID | None = None,
    student_id: uuid.UUID | None = None,
    proof_file: str | None = None,
    notes: str | None = None,
) -> LiabilityCreation:
    """
    Record a liability-flagged transaction.

    WE_ARE_OWED: money leaves now. A CREDIT entry is recorded on the account
    and the new PENDING liability points at it through transaction_id.

    WE_OWE: no money moves yet. Only the liability is created, with
    account_id kept for future payments and no transaction.

    Either way the category and student are resolved up front and kept on
    the liability, so every settlement entry is filed under them too.

    Args:
        txn_type: Optional; when given it must be the direction's cash
                  flow: CREDIT for both (WE_ARE_OWED pays out now, WE_OWE
                  pays out when settled).
        proof_file: Only for WE_ARE_OWED; a WE_OWE liability has no entry
                    yet, so its receipts belong on the payments.
        Remaining args match transaction_service.record_transaction plus
        the liability's vendor_name, due_date, direction and notes.

    Returns:
        LiabilityCreation(liability, transaction or None).

    Raises:
        LedgerValidationError: Bad amount/direction/vendor, a txn_type
                               that contradicts the direction, or a
                               proof_file on a WE_OWE liability.
        AccountNotFoundError, CategoryNotFoundError, StudentNotFoundError
        (and the other record_transaction errors).
    """
    from bookkeeping.services import transaction_service
    from bookkeeping.services.account_service import get_account

    direction = parse_direction(direction)
    amount = transaction_service.parse_amount(amount)
    vendor_name = (vendor_name or "").strip()
    if not vendor_name:
        raise LedgerValidationError("Vendor name is required")

    origination = direction.origination_type
    expected_type = origination or direction.settlement_type
    if txn_type is not None:
        if transaction_service.parse_type(txn_type) is not expected_type:
            raise LedgerValidationError(
                f"A {direction.value} liability is recorded as a {expected_type.value} entry"
            )
    if origination is None and proof_file:
        raise LedgerValidationError(
            "A WE_OWE liability has no entry yet; attach the proof to its payments"
        )

    txn = None
    if origination is not None:
        txn = await transaction_service.record_transaction(
            db,
            entry_date=entry_date,
            description=description,
            amount=amount,
            txn_type=origination,
            account_id=account_id,
            author_id=author_id,
            category_id=category_id,
            student_id=student_id,
            proof_file=proof_file,
        )
    else:
        account = await get_account(db, account_id)
        await transaction_service.take_snapshot(
            db, account, author_id, category_id=category_id, student_id=student_id
        )

    liability = Liability(
        vendor_name=vendor_name,
        amount=amount,
        paid_amount=Decimal("0.00"),
        due_date=due_date,
        direction=direction,
        status=LiabilityStatus.PENDING,
        transaction_id=txn.id if txn else None,
        account_id=account_id,
        category_id=category_id,
        student_id=student_id,
        description=(description or "").strip() or None,
        notes=notes,
        user_id=author_id,
    )
    db.add(liability)
    await db.flush()

    await audit_service.record(
        db, AuditAction.CREATE_LIABILITY, author_id, _audit_details(liability)
    )

    logger.info(
        "Created %s liability of %s for %s", direction.value, amount, vendor_name,
        extra={"liability_id": str(liability.id)},
    )
    return LiabilityCreation(liability=liability, transaction=txn)


async def create_liability(
    db: AsyncSession,
    vendor_name: str,
    amount: Decimal | str | int,
    due_date: dt.date,
    direction: LiabilityDirection | str,
    author_id: uuid.UUID,
    account_id: uuid.UUID | None = None,
    transaction_id: uuid.UUID | None = None,
    description: str | None = None,
    notes: str | None = None,
) -> Liability:
    """
    Register a liability without moving any money.

    At least one of account_id / transaction_id is required so that the
    liability can always be settled later.

    Raises:
        LedgerValidationError: Missing vendor/account, bad amount/direction.
        AccountNotFoundError / TransactionNotFoundError: Unknown reference.
    """
    from bookkeeping.services import transaction_service
    from bookkeeping.services.account_service import get_account

    direction = parse_direction(direction)
    amount = transaction_service.parse_amount(amount)
    vendor_name = (vendor_name or "").strip()
    if not vendor_name:
        raise LedgerValidationError("Vendor name is required")
    if account_id is None and transaction_id is None:
        raise LedgerValidationError(
            "A liability needs an account_id or a transaction_id to be settled against"
        )

    if account_id is not None:
        await get_account(db, account_id)
    if transaction_id is not None:
        await transaction_service.get_transaction(db, transaction_id)

    liability = Liability(
        vendor_name=vendor_name,
        amount=amount,
        paid_amount=Decimal("0.00"),
        due_date=due_date,
        direction=direction,
        status=LiabilityStatus.PENDING,
        transaction_id=transaction_id,
        account_id=account_id,
        description=description,
        notes=notes,
        user_id=author_id,
    )
    db.add(liability)
    await db.flush()

    await audit_service.record(
        db, AuditAction.CREATE_LIABILITY, author_id, _audit_details(liability)
    )

    logger.info(
        "Registered %s liability of %s for %s", direction.value, amount, vendor_name,
        extra={"liability_id": str(liability.id)},
    )
    return liability


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

class PaymentResult(NamedTuple):
    transaction: Transaction
    payment: LiabilityPayment
    liability: Liability


async def _lock_liability(db: AsyncSession, liability_id: uuid.UUID) -> Liability:
    result = await db.execute(
        select(Liability)
        .where(Liability.id == liability_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    liability = result.scalar_one_or_none()
    if liability is None:
        raise LiabilityNotFoundError(liability_id)
    return liability


async def _settlement_account_id(db: AsyncSession, liability: Liability) -> uuid.UUID:
    """Originating entry's account, else the stored account, else fail."""
    if liability.transaction_id is not None:
        origin = await db.get(Transaction, liability.transaction_id)
        if origin is not None:
            return origin.account_id
    if liability.account_id is not None:
        return liability.account_id
    raise SettlementAccountNotFoundError(liability.id)


async def pay_liability(
    db: AsyncSession,
    liability_id: uuid.UUID,
    amount: Decimal | str | int,
    description: str,
    author_id: uuid.UUID,
    payment_date: dt.date | None = None,
    proof_file: str | None = None,
) -> PaymentResult:
    """
    Apply a full or partial payment to a liability.

    Inside the caller's unit of work:
      1. Lock and re-read the liability; reject PAID ones and payments
         larger than what remains.
      2. Resolve and lock the settlement account.
      3. Post the settlement entry (DEBIT for WE_ARE_OWED, CREDIT for
         WE_OWE) with balance snapshots, filed under the liability's
         category and student.
      4. Add the LiabilityPayment row for that entry.
      5. Increase paid_amount; mark PAID when nothing remains, and on that
         transition record the entry as the liability's transaction_id if
         it has none.
      6. Write the PAY_LIABILITY and CREATE_TRANSACTION_* audit entries.

    Args:
        db: Database session (one unit of work).
        liability_id: The liability being settled.
        amount: Positive payment amount, at most the remaining amount.
        description: Narrative for the payment and its ledger entry.
        author_id: The user recording the payment.
        payment_date: Business date (default today).
        proof_file: Optional receipt reference for the ledger entry.

    Returns:
        PaymentResult(transaction, payment, liability).

    Raises:
        LedgerValidationError: Bad amount or empty description.
        LiabilityNotFoundError: Unknown liability.
        AlreadySettledError: The liability is already PAID.
        OverpaymentError: amount exceeds the remaining amount (carried on
                          the error as `remaining`).
        SettlementAccountNotFoundError: No account to settle against.
        InsufficientFundsError: Only with ENFORCE_NON_NEGATIVE_BALANCES.
    """
    from bookkeeping.services import transaction_service
    from bookkeeping.services.account_service import lock_account

    amount = transaction_service.parse_amount(amount)
    description = (description or "").strip()
    if not description:
        raise LedgerValidationError("Description is required")
    payment_date = payment_date or dt.date.today()

    liability = await _lock_liability(db, liability_id)

    if liability.status is LiabilityStatus.PAID:
        logger.warning("Rejected payment on settled liability %s", liability.id)
        raise AlreadySettledError(liability.id)

    remaining = liability.remaining_amount
    if amount > remaining:
        logger.warning(
            "Rejected overpayment of %s on liability %s (remaining %s)",
            amount, liability.id, remaining,
        )
        raise OverpaymentError(liability.id, amount, remaining)

    account = await lock_account(db, await _settlement_account_id(db, liability))
    snapshot = await transaction_service.take_snapshot(
        db,
        account,
        author_id,
        category_id=liability.category_id,
        student_id=liability.student_id,
    )

    txn_type = liability.direction.settlement_type
    txn = transaction_service.post_entry(
        db,
        account,
        txn_type,
        amount,
        payment_date,
        description,
        author_id,
        snapshot,
        category_id=liability.category_id,
        student_id=liability.student_id,
        proof_file=proof_file,
    )
    await db.flush()

    payment = LiabilityPayment(
        amount=amount,
        description=description,
        liability_id=liability.id,
        transaction_id=txn.id,
        user_id=author_id,
        date=payment_date,
    )
    db.add(payment)

    old_status = liability.status
    liability.paid_amount = liability.paid_amount + amount
    if liability.paid_amount == liability.amount:
        liability.status = LiabilityStatus.PAID
        if liability.transaction_id is None:
            liability.transaction_id = txn.id
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.PAY_LIABILITY,
        author_id,
        {
            "liability_id": liability.id,
            "payment_id": payment.id,
            "payment_transaction_id": txn.id,
            "vendor_name": liability.vendor_name,
            "amount": amount,
            "paid_amount": liability.paid_amount,
            "remaining_amount": liability.remaining_amount,
            "old_status": old_status,
            "new_status": liability.status,
        },
    )
    await audit_service.record(
        db,
        AuditAction.for_transaction(txn_type),
        author_id,
        {
            "transaction_id": txn.id,
            "description": txn.description,
            "amount": txn.amount,
            "account_id": txn.account_id,
            "liability_id": liability.id,
        },
    )

    logger.info(
        "Paid %s on liability %s (%s of %s settled)",
        amount, liability.id, liability.paid_amount, liability.amount,
        extra={"liability_id": str(liability.id), "transaction_id": str(txn.id)},
    )
    return PaymentResult(transaction=txn, payment=payment, liability=liability)


# ---------------------------------------------------------------------------
# Aging
# ---------------------------------------------------------------------------

class SweepResult(NamedTuple):
    updated_count: int
    liability_ids: list[uuid.UUID]


async def sweep_overdue(
    db: AsyncSession,
    now: dt.datetime | dt.date | None = None,
    author_id: uuid.UUID | None = None,
) -> SweepResult:
    """
    Move every PENDING liability whose due date has passed to OVERDUE.

    Idempotent: OVERDUE and PAID liabilities are never selected, so a second
    run with the same `now` changes nothing. Touches no account and creates
    no transaction.

    Args:
        db: Database session.
        now: Point in time to age against (default today). Only its date
             matters.
        author_id: Who triggered the sweep; None for scheduled runs.

    Returns:
        SweepResult(updated_count, liability_ids).
    """
    as_of = _as_of_date(now)

    result = await db.execute(
        select(Liability)
        .where(Liability.status == LiabilityStatus.PENDING)
        .where(Liability.due_date < as_of)
        .order_by(Liability.due_date.asc())
        .with_for_update()
    )
    overdue = list(result.scalars().all())
    if not overdue:
        return SweepResult(updated_count=0, liability_ids=[])

    ids = [liability.id for liability in overdue]
    await db.execute(
        update(Liability)
        .where(Liability.id.in_(ids))
        .where(Liability.status == LiabilityStatus.PENDING)
        .values(status=LiabilityStatus.OVERDUE, updated_at=dt.datetime.now(dt.timezone.utc))
        .execution_options(synchronize_session="fetch")
    )

    for liability in overdue:
        await audit_service.record(
            db,
            AuditAction.UPDATE_LIABILITY_STATUS,
            author_id,
            {
                "liability_id": liability.id,
                "old_status": LiabilityStatus.PENDING,
                "new_status": LiabilityStatus.OVERDUE,
                "due_date": liability.due_date,
            },
        )

    logger.info("Marked %d liabilities overdue as of %s", len(ids), as_of)
    return SweepResult(updated_count=len(ids), liability_ids=ids)


def _upcoming_filter(as_of: dt.date, horizon_days: int):
    return (
        (Liability.status == LiabilityStatus.PENDING)
        & (Liability.due_date >= as_of)
        & (Liability.due_date <= as_of + dt.timedelta(days=horizon_days))
    )


async def summarize_upcoming(
    db: AsyncSession,
    now: dt.datetime | dt.date | None = None,
    horizon_days: int = 7,
) -> dict:
    """
    Count and total the liabilities due soon and those already overdue.

    Read-only: statuses are taken as stored (run sweep_overdue first to
    age them).

    Returns:
        Dict with as_of, horizon_days, upcoming_count,
        upcoming_total_amount, upcoming_remaining_amount, overdue_count,
        overdue_total_amount and overdue_remaining_amount.
    """
    if horizon_days < 0:
        raise LedgerValidationError("horizon_days cannot be negative")
    as_of = _as_of_date(now)

    async def _totals(condition) -> tuple[int, Decimal, Decimal]:
        result = await db.execute(
            select(Liability.amount, Liability.paid_amount).where(condition)
        )
        rows = result.all()
        total = sum((row.amount for row in rows), Decimal("0.00"))
        paid = sum((row.paid_amount for row in rows), Decimal("0.00"))
        return len(rows), total, total - paid

    upcoming_count, upcoming_total, upcoming_remaining = await _totals(
        _upcoming_filter(as_of, horizon_days)
    )
    overdue_count, overdue_total, overdue_remaining = await _totals(
        Liability.status == LiabilityStatus.OVERDUE
    )

    return {
        "as_of": as_of,
        "horizon_days": horizon_days,
        "upcoming_count": upcoming_count,
        "upcoming_total_amount": upcoming_total,
        "upcoming_remaining_amount": upcoming_remaining,
        "overdue_count": overdue_count,
        "overdue_total_amount": overdue_total,
        "overdue_remaining_amount": overdue_remaining,
    }


async def generate_reminders(
    db: AsyncSession,
    author_id: uuid.UUID | None,
    now: dt.datetime | dt.date | None = None,
    horizon_days: int = 7,
) -> dict:
    """
    Age liabilities, then list what is coming due and what is overdue.

    Runs sweep_overdue first, so the overdue list includes anything that
    just passed its due date. Writes one GENERATE_LIABILITY_REMINDERS audit
    entry summarizing the report.

    Returns:
        Dict with as_of, horizon_days, swept_count, upcoming (each with
        days_until_due) and overdue (each with days_overdue), both ordered
        by due date.
    """
    if horizon_days < 0:
        raise LedgerValidationError("horizon_days cannot be negative")
    as_of = _as_of_date(now)

    swept = await sweep_overdue(db, now=as_of, author_id=author_id)

    upcoming_result = await db.execute(
        select(Liability)
        .where(_upcoming_filter(as_of, horizon_days))
        .order_by(Liability.due_date.asc())
    )
    overdue_result = await db.execute(
        select(Liability)
        .where(Liability.status == LiabilityStatus.OVERDUE)
        .order_by(Liability.due_date.asc())
        .execution_options(populate_existing=True)
    )

    upcoming = [
        {"liability": liability, "days_until_due": (liability.due_date - as_of).days}
        for liability in upcoming_result.scalars().all()
    ]
    overdue = [
        {"liability": liability, "days_overdue": (as_of - liability.due_date).days}
        for liability in overdue_result.scalars().all()
    ]

    await audit_service.record(
        db,
        AuditAction.GENERATE_LIABILITY_REMINDERS,
        author_id,
        {
            "as_of": as_of,
            "horizon_days": horizon_days,
            "swept_count": swept.updated_count,
            "upcoming_count": len(upcoming),
            "overdue_count": len(overdue),
            "upcoming_total": sum(
                (item["liability"].amount for item in upcoming), Decimal("0.00")
            ),
            "overdue_total": sum(
                (item["liability"].amount for item in overdue), Decimal("0.00")
            ),
        },
    )

    return {
        "as_of": as_of,
        "horizon_days": horizon_days,
        "swept_count": swept.updated_count,
        "upcoming": upcoming,
        "overdue": overdue,
    }


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def list_liabilities(
    db: AsyncSession,
    status_filter: LiabilityStatus | None = None,
    vendor: str | None = None,
    due_from: dt.date | None = None,
    due_to: dt.date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Liability]:
    """
    List liabilities ordered by due date (soonest first).

    `vendor` matches as a case-insensitive substring of vendor_name.
    """
    query = (
        select(Liability)
        .order_by(Liability.due_date.asc(), Liability.created_at.asc())
        .limit(limit)
        .offset(offset)
    )

    if status_filter:
        query = query.where(Liability.status == status_filter)
    if vendor:
        query = query.where(Liability.vendor_name.ilike(f"%{vendor}%"))
    if due_from:
        query = query.where(Liability.due_date >= due_from)
    if due_to:
        query = query.where(Liability.due_date <= due_to)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_liability(db: AsyncSession, liability_id: uuid.UUID) -> Liability:
    liability = await db.get(Liability, liability_id)
    if liability is None:
        raise LiabilityNotFoundError(liability_id)
    return liability


async def get_payments(db: AsyncSession, liability_id: uuid.UUID) -> list[LiabilityPayment]:
    """
    List the payments made against a liability, newest first.

    Raises:
        LiabilityNotFoundError: If the liability doesn't exist.
    """
    await get_liability(db, liability_id)

    result = await db.execute(
        select(LiabilityPayment)
        .where(LiabilityPayment.liability_id == liability_id)
        .order_by(LiabilityPayment.date.desc(), LiabilityPayment.created_at.desc())
    )
    return list(result.scalars().all())
