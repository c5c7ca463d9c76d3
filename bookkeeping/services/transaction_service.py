"""
Transaction service — the ledger engine.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Recording individual DEBIT (money in) and CREDIT (money out) entries
  - Executing atomic transfers between two financial accounts
  - Keeping every account's balance chain unbroken

Atomicity:
  Each public operation runs inside the caller's unit of work
  (database.session_scope). The balance read, the Transaction insert, the
  balance write and the audit entry are all part of it: either all of them
  commit, or none of them do. Services flush but never commit.

Stale reads:
  Accounts are loaded with SELECT ... FOR UPDATE and populate_existing, so
  the balance used for balance_before is the one held under the lock,
  never a copy cached earlier in the session. On SQLite the whole unit
  already holds the write lock (BEGIN IMMEDIATE, see database.py).

Entry numbers:
  Every entry takes the next number from FinancialAccount.last_entry_number.
  The unique (account_id, entry_number) constraint turns any lost update
  that slips past the locks into a StorageFailureError instead of a broken
  chain.

Deadlock prevention:
  A transfer locks its two accounts in sorted-id order, so transfers
  A->B and B->A running together always lock in the same sequence.

Overdrafts:
  Transfers never leave the source account below zero. Ordinary entries
  may, unless ENFORCE_NON_NEGATIVE_BALANCES is set, in which case every
  balance-decreasing entry is checked.
"""

import datetime as dt
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.config import settings
from bookkeeping.exceptions import (
    CategoryNotFoundError,
    InsufficientFundsError,
    LedgerValidationError,
    StudentNotFoundError,
    TransactionNotFoundError,
    UserNotFoundError,
)
from bookkeeping.models.category import Category
from bookkeeping.models.financial_account import FinancialAccount
from bookkeeping.models.student import Student
from bookkeeping.models.transaction import Transaction, TransactionType
from bookkeeping.models.user import User
from bookkeeping.services import audit_service
from bookkeeping.services.audit_service import AuditAction

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MAX_INTEGER_DIGITS = 16


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def parse_amount(value: Decimal | str | int) -> Decimal:
    """
    Validate a money amount and return it as a 2-place Decimal.

    Raises:
        LedgerValidationError: If the value is not numeric, not positive,
                               too large for an 18-digit column, or has
                               more than two decimal places.
    """
    if isinstance(value, bool):
        raise LedgerValidationError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise LedgerValidationError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise LedgerValidationError(f"Invalid amount: {value!r}")
    if amount <= 0:
        raise LedgerValidationError("Amount must be greater than zero")
    # Numeric(18, 2) holds at most 16 integer digits
    if amount.adjusted() >= MAX_INTEGER_DIGITS:
        raise LedgerValidationError(f"Amount is too large: {value!r}")
    if amount != amount.quantize(CENT):
        raise LedgerValidationError("Amount cannot have more than two decimal places")

    return amount.quantize(CENT)


def parse_type(value: TransactionType | str) -> TransactionType:
    """Return the TransactionType for `value` or raise LedgerValidationError."""
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).upper())
    except ValueError:
        raise LedgerValidationError(f"Unknown transaction type: {value!r}")


def _require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise LedgerValidationError(f"{field} is required")
    return text


# ---------------------------------------------------------------------------
# Name snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NameSnapshot:
    """Display names copied onto a Transaction at write time."""
    account_name: str
    user_name: str
    category_name: str | None = None
    student_name: str | None = None


async def take_snapshot(
    db: AsyncSession,
    account: FinancialAccount,
    author_id: uuid.UUID,
    category_id: uuid.UUID | None = None,
    student_id: uuid.UUID | None = None,
) -> NameSnapshot:
    """
    Resolve the author, category and student and capture their names.

    Raises:
        UserNotFoundError, CategoryNotFoundError, StudentNotFoundError
    """
    author = await db.get(User, author_id)
    if author is None:
        raise UserNotFoundError(author_id)

    category_name = None
    if category_id is not None:
        category = await db.get(Category, category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        category_name = category.name

    student_name = None
    if student_id is not None:
        student = await db.get(Student, student_id)
        if student is None:
            raise StudentNotFoundError(student_id)
        student_name = student.name

    return NameSnapshot(
        account_name=account.name,
        user_name=author.display_name,
        category_name=category_name,
        student_name=student_name,
    )


# ---------------------------------------------------------------------------
# Posting
# ---------------------------------------------------------------------------

def post_entry(
    db: AsyncSession,
    account: FinancialAccount,
    txn_type: TransactionType,
    amount: Decimal,
    entry_date: dt.date,
    description: str,
    author_id: uuid.UUID,
    snapshot: NameSnapshot,
    category_id: uuid.UUID | None = None,
    student_id: uuid.UUID | None = None,
    proof_file: str | None = None,
    txn_id: uuid.UUID | None = None,
    related_transaction_id: uuid.UUID | None = None,
) -> Transaction:
    """
    Append one entry to a LOCKED account's chain and move its balance.

    The caller must have loaded `account` with lock_account() in the same
    unit of work, and is responsible for flushing.

    Raises:
        InsufficientFundsError: Only when ENFORCE_NON_NEGATIVE_BALANCES is
                                on and a CREDIT would overdraw.
    """
    balance_before = account.balance
    balance_after = txn_type.apply(balance_before, amount).quantize(CENT)

    if (
        settings.ENFORCE_NON_NEGATIVE_BALANCES
        and txn_type is TransactionType.CREDIT
        and balance_after < 0
    ):
        logger.warning(
            "Rejected overdraft on account %s", account.id,
            extra={"account_id": str(account.id), "amount": str(amount)},
        )
        raise InsufficientFundsError(account.id, amount, balance_before)

    account.last_entry_number += 1
    txn = Transaction(
        id=txn_id or uuid.uuid4(),
        entry_number=account.last_entry_number,
        date=entry_date,
        description=description,
        amount=amount,
        type=txn_type,
        account_id=account.id,
        category_id=category_id,
        student_id=student_id,
        user_id=author_id,
        account_name=snapshot.account_name,
        category_name=snapshot.category_name,
        student_name=snapshot.student_name,
        user_name=snapshot.user_name,
        balance_before=balance_before,
        balance_after=balance_after,
        proof_file=proof_file,
        related_transaction_id=related_transaction_id,
    )
    account.balance = balance_after
    db.add(txn)
    return txn


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------

async def record_transaction(
    db: AsyncSession,
    entry_date: dt.date,
    description: str,
    amount: Decimal | str | int,
    txn_type: TransactionType | str,
    account_id: uuid.UUID,
    author_id: uuid.UUID,
    category_id: uuid.UUID | None = None,
    student_id: uuid.UUID | None = None,
    proof_file: str | None = None,
) -> Transaction:
    """
    Record a single DEBIT or CREDIT entry on one account.

    The account's balance is read under lock, the entry is written with
    balance_before/balance_after snapshots, and the balance is updated,
    all in the caller's unit of work.

    Args:
        db: Database session (one unit of work).
        entry_date: Business date of the entry.
        description: Free-text narrative (required).
        amount: Positive amount with at most two decimal places.
        txn_type: DEBIT (money in) or CREDIT (money out).
        account_id: The financial account to post to.
        author_id: The user recording the entry.
        category_id: Optional category tag.
        student_id: Optional student the entry relates to.
        proof_file: Optional blob-store reference to a receipt.

    Returns:
        The created Transaction (flushed).

    Raises:
        LedgerValidationError: Bad amount, type or empty description.
        AccountNotFoundError / CategoryNotFoundError /
        StudentNotFoundError / UserNotFoundError: Missing reference.
        InsufficientFundsError: Only with ENFORCE_NON_NEGATIVE_BALANCES.
    """
    from bookkeeping.services.account_service import lock_account

    amount = parse_amount(amount)
    txn_type = parse_type(txn_type)
    description = _require_text(description, "Description")

    account = await lock_account(db, account_id)
    snapshot = await take_snapshot(db, account, author_id, category_id, student_id)

    txn = post_entry(
        db,
        account,
        txn_type,
        amount,
        entry_date,
        description,
        author_id,
        snapshot,
        category_id=category_id,
        student_id=student_id,
        proof_file=proof_file,
    )
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.for_transaction(txn_type),
        author_id,
        {
            "transaction_id": txn.id,
            "description": txn.description,
            "amount": txn.amount,
            "account_id": txn.account_id,
            "balance_before": txn.balance_before,
            "balance_after": txn.balance_after,
        },
    )

    logger.info(
        "Recorded %s of %s on %s", txn_type.value, amount, account.name,
        extra={"transaction_id": str(txn.id), "account_id": str(account.id)},
    )
    return txn


class TransferResult(NamedTuple):
    credit_leg: Transaction  # money out of the source
    debit_leg: Transaction   # money into the destination


async def record_transfer(
    db: AsyncSession,
    entry_date: dt.date,
    description: str,
    amount: Decimal | str | int,
    source_account_id: uuid.UUID,
    destination_account_id: uuid.UUID,
    author_id: uuid.UUID,
) -> TransferResult:
    """
    Move money between two accounts atomically.

    Writes a CREDIT leg on the source ("Transfer to <dest>") and a DEBIT
    leg on the destination ("Transfer from <source>"), each pointing at the
    other through related_transaction_id. Both ids are generated up front so
    neither row is touched again after insert.

    DEADLOCK PREVENTION: accounts are locked in sorted id order.

    Returns:
        TransferResult(credit_leg, debit_leg).

    Raises:
        LedgerValidationError: Bad amount, empty description, or source ==
                               destination.
        AccountNotFoundError: If either account doesn't exist.
        InsufficientFundsError: If the source balance would go below zero.
    """
    from bookkeeping.services.account_service import lock_account

    amount = parse_amount(amount)
    description = _require_text(description, "Description")
    if source_account_id == destination_account_id:
        raise LedgerValidationError("Source and destination accounts must differ")

    # Lock accounts in consistent order (sorted by id) to prevent deadlocks
    locked = {}
    for account_id in sorted([source_account_id, destination_account_id]):
        locked[account_id] = await lock_account(db, account_id)
    source = locked[source_account_id]
    dest = locked[destination_account_id]

    if source.balance - amount < 0:
        logger.warning(
            "Rejected transfer of %s from %s: balance %s", amount, source.name, source.balance,
            extra={"account_id": str(source.id)},
        )
        raise InsufficientFundsError(source.id, amount, source.balance)

    author = await db.get(User, author_id)
    if author is None:
        raise UserNotFoundError(author_id)

    credit_id, debit_id = uuid.uuid4(), uuid.uuid4()

    credit_leg = post_entry(
        db,
        source,
        TransactionType.CREDIT,
        amount,
        entry_date,
        f"Transfer to {dest.name}: {description}",
        author_id,
        NameSnapshot(account_name=source.name, user_name=author.display_name),
        txn_id=credit_id,
        related_transaction_id=debit_id,
    )
    debit_leg = post_entry(
        db,
        dest,
        TransactionType.DEBIT,
        amount,
        entry_date,
        f"Transfer from {source.name}: {description}",
        author_id,
        NameSnapshot(account_name=dest.name, user_name=author.display_name),
        txn_id=debit_id,
        related_transaction_id=credit_id,
    )
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.CREATE_TRANSFER,
        author_id,
        {
            "credit_transaction_id": credit_leg.id,
            "debit_transaction_id": debit_leg.id,
            "amount": amount,
            "source_account_id": source.id,
            "destination_account_id": dest.id,
            "description": description,
        },
    )

    logger.info(
        "Transferred %s from %s to %s", amount, source.name, dest.name,
        extra={"credit_transaction_id": str(credit_id), "debit_transaction_id": str(debit_id)},
    )
    return TransferResult(credit_leg=credit_leg, debit_leg=debit_leg)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_transactions(
    db: AsyncSession,
    account_id: uuid.UUID | None = None,
    type_filter: TransactionType | None = None,
    category_id: uuid.UUID | None = None,
    student_id: uuid.UUID | None = None,
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """
    List transactions with optional filters, newest business date first.

    Args:
        db: Database session.
        account_id: Only entries on this account.
        type_filter: DEBIT or CREDIT.
        category_id: Only entries tagged with this category.
        student_id: Only entries linked to this student.
        start_date: Inclusive lower bound on the business date.
        end_date: Inclusive upper bound on the business date.
        limit: Max number of results (default 50).
        offset: Number of results to skip (for pagination).
    """
    query = (
        select(Transaction)
        .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if account_id:
        query = query.where(Transaction.account_id == account_id)
    if type_filter:
        query = query.where(Transaction.type == type_filter)
    if category_id:
        query = query.where(Transaction.category_id == category_id)
    if student_id:
        query = query.where(Transaction.student_id == student_id)
    if start_date:
        query = query.where(Transaction.date >= start_date)
    if end_date:
        query = query.where(Transaction.date <= end_date)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_transaction(db: AsyncSession, transaction_id: uuid.UUID) -> Transaction:
    """
    Get a single transaction by ID.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist.
    """
    txn = await db.get(Transaction, transaction_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


async def get_account_ledger(
    db: AsyncSession,
    account_id: uuid.UUID,
    limit: int = 100,
    offset: int = 0,
) -> list[Transaction]:
    """
    Return one account's entries in chain order (entry_number ascending).

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    from bookkeeping.services.account_service import get_account
    await get_account(db, account_id)

    result = await db.execute(
        select(Transaction)
        .where(Transaction.account_id == account_id)
        .order_by(Transaction.entry_number.asc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
