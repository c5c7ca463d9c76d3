"""
Audit service — append-only trail of every mutating operation.

Entries are added to the caller's session and flushed with the rest of the
unit of work. They are never committed on their own: if the operation
rolls back, its audit entries disappear with it, and a committed change
always has its entries.

The ledger never reads the trail back. Only the admin audit-log endpoint
queries it (list_entries).
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    # Ledger
    CREATE_TRANSACTION_DEBIT = "CREATE_TRANSACTION_DEBIT"
    CREATE_TRANSACTION_CREDIT = "CREATE_TRANSACTION_CREDIT"
    CREATE_TRANSFER = "CREATE_TRANSFER"

    # Liabilities
    CREATE_LIABILITY = "CREATE_LIABILITY"
    PAY_LIABILITY = "PAY_LIABILITY"
    UPDATE_LIABILITY_STATUS = "UPDATE_LIABILITY_STATUS"
    GENERATE_LIABILITY_REMINDERS = "GENERATE_LIABILITY_REMINDERS"

    # Directory
    CREATE_ACCOUNT = "CREATE_ACCOUNT"
    CREATE_CATEGORY = "CREATE_CATEGORY"
    UPDATE_CATEGORY = "UPDATE_CATEGORY"
    DEACTIVATE_CATEGORY = "DEACTIVATE_CATEGORY"
    CREATE_STUDENT = "CREATE_STUDENT"
    UPDATE_STUDENT = "UPDATE_STUDENT"
    DEACTIVATE_STUDENT = "DEACTIVATE_STUDENT"
    CREATE_USER = "CREATE_USER"
    DEACTIVATE_USER = "DEACTIVATE_USER"

    @staticmethod
    def for_transaction(txn_type: Enum) -> str:
        return f"CREATE_TRANSACTION_{txn_type.value}"


def _json_safe(value: Any) -> Any:
    """Convert ledger values (Decimal, UUID, dates, enums) into JSON types."""
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    # Strings keep money exact
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


async def record(
    db: AsyncSession,
    action: str,
    user_id: uuid.UUID | None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Add an audit entry to the current unit of work.

    Args:
        db: Database session of the operation being audited.
        action: One of the AuditAction constants.
        user_id: Actor, or None for system actions.
        details: What changed. Decimal/UUID/date values are stringified.

    Returns:
        The pending AuditLog instance (flushed, not committed).
    """
    entry = AuditLog(
        action=action,
        user_id=user_id,
        details=_json_safe(details or {}),
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_entries(
    db: AsyncSession,
    action: str | None = None,
    user_id: uuid.UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[AuditLog]:
    """
    [ADMIN ONLY] Query the audit trail, most recent first.

    `action` matches as a case-insensitive substring, so "liability"
    returns every liability-related entry.
    """
    query = (
        select(AuditLog)
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if action:
        query = query.where(AuditLog.action.ilike(f"%{action}%"))
    if user_id:
        query = query.where(AuditLog.user_id == user_id)
    if start:
        query = query.where(AuditLog.created_at >= start)
    if end:
        query = query.where(AuditLog.created_at <= end)

    result = await db.execute(query)
    return list(result.scalars().all())
