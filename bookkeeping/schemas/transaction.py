"""
Pydantic schemas for Transaction and Transfer endpoints.

All monetary amounts are decimals with at most two places, serialized as
strings in JSON (e.g. "1200000.00") so no precision is lost on the way out.
Request bodies reject unknown fields.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bookkeeping.models.liability import LiabilityDirection
from bookkeeping.models.transaction import TransactionType

# Positive amount, at most two decimal places
Money = Annotated[Decimal, Field(gt=0, max_digits=18, decimal_places=2)]


class TransactionCreateRequest(BaseModel):
    """
    Request body for POST /transactions.

    With is_liability=true the entry also registers a liability:
    vendor_name, due_date and liability_direction become required, and
    `type` may be omitted (the direction decides what, if anything, is
    posted).
    """
    model_config = ConfigDict(extra="forbid")

    date: dt.date
    description: str = Field(min_length=1, max_length=500)
    amount: Money
    type: TransactionType | None = None
    account_id: uuid.UUID
    category_id: uuid.UUID | None = None
    student_id: uuid.UUID | None = None
    proof_file: str | None = Field(None, max_length=500)

    # --- Liability-flagged entries ---
    is_liability: bool = False
    vendor_name: str | None = Field(None, max_length=200)
    due_date: dt.date | None = None
    liability_direction: LiabilityDirection | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def check_required_fields(self):
        if self.is_liability:
            missing = [
                name for name in ("vendor_name", "due_date", "liability_direction")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Liability entries require: {', '.join(missing)}")
        elif self.type is None:
            raise ValueError("type is required")
        return self


class TransactionResponse(BaseModel):
    """Public representation of a ledger entry."""
    id: uuid.UUID
    entry_number: int
    date: dt.date
    description: str
    amount: Decimal
    type: TransactionType
    account_id: uuid.UUID
    category_id: uuid.UUID | None
    student_id: uuid.UUID | None
    user_id: uuid.UUID
    account_name: str
    category_name: str | None
    student_name: str | None
    user_name: str
    balance_before: Decimal
    balance_after: Decimal
    proof_file: str | None
    related_transaction_id: uuid.UUID | None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class TransferRequest(BaseModel):
    """Request body for POST /transfers."""
    model_config = ConfigDict(extra="forbid")

    date: dt.date
    description: str = Field(min_length=1, max_length=400)
    amount: Money
    source_account_id: uuid.UUID
    destination_account_id: uuid.UUID

    @model_validator(mode="after")
    def accounts_must_differ(self):
        """Cannot transfer money to the same account."""
        if self.source_account_id == self.destination_account_id:
            raise ValueError("Cannot transfer to the same account")
        return self


class TransferResponse(BaseModel):
    """Response body for a successful transfer."""
    amount: Decimal
    source_account_id: uuid.UUID
    destination_account_id: uuid.UUID
    credit_transaction: TransactionResponse  # source leg, money out
    debit_transaction: TransactionResponse   # destination leg, money in
