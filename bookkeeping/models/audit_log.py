"""
AuditLog model — append-only record of every mutating operation.

Rows are written in the same unit of work as the change they describe, so
a rolled-back operation leaves no audit row either. The ledger never reads
this table; only the admin audit-log endpoint does.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # e.g. CREATE_TRANSACTION_DEBIT, CREATE_TRANSFER, PAY_LIABILITY
    action: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    # What changed (ids, amounts, old/new status); JSON-safe values only
    details: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    # Actor (None for system actions such as a scheduled sweep)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
