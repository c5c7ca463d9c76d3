"""
Transaction model — one immutable movement of money on one account.

Direction:
  - DEBIT: money received, the account balance increases
  - CREDIT: money paid out, the account balance decreases
  `amount` is always positive; the type carries the direction.

Balance snapshots:
  balance_before is the account balance read inside the unit of work that
  created the row; balance_after = balance_before +/- amount. For one account,
  ordered by entry_number, each row's balance_before equals the previous
  row's balance_after.

Name snapshots:
  account_name, category_name, student_name and user_name are copied from the
  referenced records at write time. Reports print these, so renaming (or
  deactivating) a student or account never changes historical entries.

Transfers:
  A transfer is two rows, a CREDIT on the source and a DEBIT on the
  destination, each pointing at the other through related_transaction_id.
  Both ids are generated before insert, so neither row is updated afterwards.
  related_transaction_id carries no foreign key because the two legs are
  inserted in the same flush.

Rows are never updated or deleted; corrections are new transactions.
"""

import enum
import uuid
import datetime as dt
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.database import Base


class TransactionType(str, enum.Enum):
    DEBIT = "DEBIT"     # money in
    CREDIT = "CREDIT"   # money out

    def apply(self, balance: Decimal, amount: Decimal) -> Decimal:
        """Return the balance after moving `amount` in this direction."""
        if self is TransactionType.DEBIT:
            return balance + amount
        return balance - amount


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_positive_amount"),
        # Two entries built from the same stale balance read collide here
        UniqueConstraint("account_id", "entry_number", name="uq_transactions_account_entry"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Position in the account's chain: 1, 2, 3, ...
    entry_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Business date (what the receipt says), distinct from created_at
    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
    )

    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="transaction_type"),
        nullable=False,
        index=True,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("financial_accounts.id"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
        index=True,
    )
    student_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("students.id"),
        nullable=True,
        index=True,
    )
    # Author
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # --- Name snapshots ---
    account_name: Mapped[str] = mapped_column(String(100), nullable=False)
    category_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    student_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # --- Balance snapshots ---
    balance_before: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    # Opaque blob-store reference to the uploaded receipt
    proof_file: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # The other leg of a transfer
    related_transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
        index=True,
    )

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
        index=True,
    )

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type is TransactionType.DEBIT else -self.amount
