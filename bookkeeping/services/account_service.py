"""
Account service — business logic for financial accounts (cash pools).

This module handles:
  - Account creation (unique name, optional opening balance)
  - Account retrieval and row locking for the ledger engine
  - Balance verification (cached vs. computed from the entry chain)
  - The dashboard overview (total operating balance)

Balances are only ever changed by transaction_service.post_entry(), which
requires an account loaded through lock_account() in the same unit of work.
A non-zero opening balance is therefore recorded as an opening DEBIT entry
rather than written straight into the balance column, so every account's
chain starts at zero.
"""

import datetime as dt
import logging
import uuid
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.exceptions import (
    AccountNotFoundError,
    DuplicateNameError,
    LedgerValidationError,
)
from bookkeeping.models.financial_account import FinancialAccount
from bookkeeping.models.transaction import Transaction, TransactionType
from bookkeeping.services import audit_service
from bookkeeping.services.audit_service import AuditAction

logger = logging.getLogger(__name__)

OPENING_BALANCE_DESCRIPTION = "Opening balance"


async def create_account(
    db: AsyncSession,
    name: str,
    author_id: uuid.UUID,
    is_bank: bool = False,
    opening_balance: Decimal | str | int = Decimal("0.00"),
    opening_date: dt.date | None = None,
) -> FinancialAccount:
    """
    Create a new financial account.

    Args:
        db: Database session.
        name: Unique, human-meaningful name (e.g. "SPP", "Bank").
        author_id: The admin creating the account.
        is_bank: Exclude this account from the total operating balance.
        opening_balance: Starting balance (>= 0). Recorded as an opening
                         DEBIT entry when non-zero.
        opening_date: Business date of the opening entry (default today).

    Returns:
        The newly created FinancialAccount instance.

    Raises:
        LedgerValidationError: Empty name or invalid opening balance.
        DuplicateNameError: If an account with this name already exists.
    """
    from bookkeeping.services import transaction_service

    name = (name or "").strip()
    if not name:
        raise LedgerValidationError("Account name is required")

    try:
        opening = Decimal(str(opening_balance))
    except InvalidOperation:
        raise LedgerValidationError(f"Invalid opening balance: {opening_balance!r}")
    if not opening.is_finite():
        raise LedgerValidationError(f"Invalid opening balance: {opening_balance!r}")
    if opening < 0:
        raise LedgerValidationError("Opening balance cannot be negative")
    if opening > 0:
        opening = transaction_service.parse_amount(opening)

    existing = await db.execute(
        select(FinancialAccount).where(FinancialAccount.name == name)
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateNameError("Financial account", name)

    account = FinancialAccount(name=name, is_bank=is_bank)
    db.add(account)
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.CREATE_ACCOUNT,
        author_id,
        {"account_id": account.id, "name": name, "is_bank": is_bank, "opening_balance": opening},
    )

    if opening > 0:
        await transaction_service.record_transaction(
            db,
            entry_date=opening_date or dt.date.today(),
            description=OPENING_BALANCE_DESCRIPTION,
            amount=opening,
            txn_type=TransactionType.DEBIT,
            account_id=account.id,
            author_id=author_id,
        )

    logger.info("Created financial account %s", name, extra={"account_id": str(account.id)})
    return account


async def list_accounts(db: AsyncSession) -> list[FinancialAccount]:
    """List all financial accounts, alphabetically."""
    result = await db.execute(select(FinancialAccount).order_by(FinancialAccount.name))
    return list(result.scalars().all())


async def get_account(db: AsyncSession, account_id: uuid.UUID) -> FinancialAccount:
    """
    Get a single account (no lock).

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    account = await db.get(FinancialAccount, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)
    return account


async def lock_account(db: AsyncSession, account_id: uuid.UUID) -> FinancialAccount:
    """
    Load an account for a balance change.

    Takes a row lock on server databases (no-op on SQLite, where the unit
    already holds the write lock) and always re-reads the row, so the
    balance returned is current even if the session had it cached.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    result = await db.execute(
        select(FinancialAccount)
        .where(FinancialAccount.id == account_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()

    if account is None:
        raise AccountNotFoundError(account_id)
    return account


async def get_balance(db: AsyncSession, account_id: uuid.UUID) -> dict:
    """
    Get the account balance — both cached and computed from its entries.

    The computed balance is the sum of signed amounts (DEBIT +, CREDIT -)
    of every entry on the account. Walking the entries in entry_number
    order also checks the chain: each entry's balance_before must equal
    the previous entry's balance_after (zero for the first entry). Any
    mismatch signals a data integrity issue.

    Returns:
        Dict with account_id, name, cached_balance, computed_balance,
        match, entry_count and chain_breaks (entry numbers that don't
        continue the chain).
    """
    account = await get_account(db, account_id)

    result = await db.execute(
        select(Transaction)
        .where(Transaction.account_id == account_id)
        .order_by(Transaction.entry_number.asc())
    )
    entries = list(result.scalars().all())

    previous_after = Decimal("0.00")
    chain_breaks = []
    for entry in entries:
        if entry.balance_before != previous_after:
            chain_breaks.append(entry.entry_number)
        previous_after = entry.balance_after
    computed_sum = sum((entry.signed_amount for entry in entries), Decimal("0.00"))

    match = account.balance == computed_sum and not chain_breaks
    if not match:
        logger.error(
            "Balance mismatch on %s: cached %s, computed %s",
            account.name, account.balance, computed_sum,
            extra={"account_id": str(account.id), "chain_breaks": chain_breaks},
        )

    return {
        "account_id": account.id,
        "name": account.name,
        "cached_balance": account.balance,
        "computed_balance": computed_sum,
        "match": match,
        "entry_count": len(entries),
        "chain_breaks": chain_breaks,
    }


async def get_overview(db: AsyncSession) -> dict:
    """
    Dashboard summary of all account balances.

    total_operating_balance excludes accounts flagged is_bank; bank_balance
    is the sum of those excluded accounts.
    """
    accounts = await list_accounts(db)

    operating = sum((a.balance for a in accounts if not a.is_bank), Decimal("0.00"))
    bank = sum((a.balance for a in accounts if a.is_bank), Decimal("0.00"))

    return {
        "total_operating_balance": operating,
        "bank_balance": bank,
        "accounts": accounts,
    }
