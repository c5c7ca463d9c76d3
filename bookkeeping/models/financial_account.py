"""
FinancialAccount model — a named cash pool of the school ("SPP", "Bank", ...).

Balance management:
  `balance` is the running balance, updated in the SAME unit of work as the
  Transaction that moves it. Nothing outside the ledger services writes it.

  `last_entry_number` counts the transactions posted to this account. Each
  new Transaction takes last_entry_number + 1 as its `entry_number`, and a
  unique constraint on (account_id, entry_number) makes the database refuse
  two entries built from the same stale read. Ordered by entry_number, an
  account's transactions form an unbroken balance_before/balance_after chain.

Why Numeric(18, 2)?
  Money is held as Decimal end to end. Floats cannot represent amounts
  like 0.10 exactly; Decimal arithmetic on two-place values can.

No CHECK on the balance:
  Ordinary expense entries may overdraw an account (recording what already
  happened takes precedence). Transfers are checked in the service layer,
  and ENFORCE_NON_NEGATIVE_BALANCES extends the check to every entry.

Accounts flagged `is_bank` hold money deposited at the bank and are left out
of the "total operating balance" on the accounts overview.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Boolean, Integer, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.database import Base


class FinancialAccount(Base):
    __tablename__ = "financial_accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Human-meaningful unique name, copied onto each Transaction
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    is_bank: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Number of transactions posted so far (see module docstring)
    last_entry_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
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
