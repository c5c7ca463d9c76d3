"""
Category model — a named tag classifying transactions ("Rutin", "Kegiatan").

A category has a default direction (DEBIT for income, CREDIT for expenses)
and may point at the financial account it is normally booked to. The
ledger only reads categories; their names are snapshotted onto each
Transaction, so renaming one never rewrites history. Categories are
deactivated, never deleted.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.database import Base
from bookkeeping.models.transaction import TransactionType


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )

    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="transaction_type"),
        nullable=False,
    )

    financial_account_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("financial_accounts.id"),
        nullable=True,
    )

    # Retired categories stay for the entries that reference them
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
