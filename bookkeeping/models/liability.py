"""
Liability model — money owed between the school and an outside party.

Direction (who owes whom):
  - WE_ARE_OWED: the school lent money. The cash left when the liability was
    recorded (a CREDIT entry, linked through transaction_id); settlements
    bring money back in as DEBIT entries.
  - WE_OWE: the school borrowed (goods now, pay later). Nothing moves at
    creation; settlements pay money out as CREDIT entries through account_id.

Lifecycle:
    PENDING ──(due date passed, aging sweep)──▶ OVERDUE
    PENDING | OVERDUE ──(paid_amount reaches amount)──▶ PAID
  Status never moves backwards.

Invariants (CHECK constraints back the service-layer rules):
  - amount > 0 and never changes after creation
  - 0 <= paid_amount <= amount, and paid_amount only grows
  - status is PAID exactly when paid_amount == amount
  - paid_amount equals the sum of this liability's LiabilityPayment rows
"""

import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Text,
    Numeric,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.database import Base
from bookkeeping.models.transaction import TransactionType


class LiabilityStatus(str, enum.Enum):
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    PAID = "PAID"


class LiabilityDirection(str, enum.Enum):
    """Who owes whom. Kept apart from TransactionType, which is about cash flow."""
    WE_ARE_OWED = "WE_ARE_OWED"
    WE_OWE = "WE_OWE"

    @property
    def origination_type(self) -> TransactionType | None:
        """Entry recorded when the liability is created, if any."""
        if self is LiabilityDirection.WE_ARE_OWED:
            return TransactionType.CREDIT
        return None

    @property
    def settlement_type(self) -> TransactionType:
        """Entry recorded for each payment against the liability."""
        if self is LiabilityDirection.WE_ARE_OWED:
            return TransactionType.DEBIT
        return TransactionType.CREDIT


class Liability(Base):
    __tablename__ = "liabilities"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_liabilities_positive_amount"),
        CheckConstraint("paid_amount >= 0", name="ck_liabilities_paid_non_negative"),
        CheckConstraint("paid_amount <= amount", name="ck_liabilities_not_overpaid"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    vendor_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
    )

    # Total owed
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
    )

    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    due_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    direction: Mapped[LiabilityDirection] = mapped_column(
        Enum(LiabilityDirection, name="liability_direction"),
        nullable=False,
    )

    status: Mapped[LiabilityStatus] = mapped_column(
        Enum(LiabilityStatus, name="liability_status"),
        nullable=False,
        default=LiabilityStatus.PENDING,
        index=True,
    )

    # Originating entry (WE_ARE_OWED), or the settling entry once PAID
    transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("transactions.id"),
        nullable=True,
    )

    # Account future payments go through when there is no originating entry
    account_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("financial_accounts.id"),
        nullable=True,
    )

    # Copied onto every settlement entry
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
    )
    student_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("students.id"),
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Creator
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def remaining_amount(self) -> Decimal:
        return self.amount - self.paid_amount
