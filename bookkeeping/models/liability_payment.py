"""
LiabilityPayment model — one (partial or full) settlement of a Liability.

Each payment is created together with exactly one Transaction that moves
the money, in the same unit of work as the liability's paid_amount update.
transaction_id is unique: a ledger entry settles at most one payment.
Rows are immutable.
"""

import uuid
import datetime as dt
from decimal import Decimal

from sqlalchemy import String, Numeric, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.database import Base


class LiabilityPayment(Base):
    __tablename__ = "liability_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_liability_payments_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    liability_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("liabilities.id"),
        nullable=False,
        index=True,
    )

    transaction_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("transactions.id"),
        unique=True,
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
    )

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
    )
