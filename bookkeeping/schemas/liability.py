"""
Pydantic schemas for Liability endpoints (creation, payments, aging).
"""

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bookkeeping.models.liability import LiabilityDirection, LiabilityStatus
from bookkeeping.schemas.transaction import Money, TransactionResponse


class LiabilityCreateRequest(BaseModel):
    """Request body for POST /liabilities (no money moves)."""
    model_config = ConfigDict(extra="forbid")

    vendor_name: str = Field(min_length=1, max_length=200)
    amount: Money
    due_date: dt.date
    direction: LiabilityDirection
    account_id: uuid.UUID | None = None
    transaction_id: uuid.UUID | None = None
    description: str | None = Field(None, max_length=500)
    notes: str | None = None

    @model_validator(mode="after")
    def needs_settlement_reference(self):
        if self.account_id is None and self.transaction_id is None:
            raise ValueError("account_id or transaction_id is required")
        return self


class LiabilityResponse(BaseModel):
    id: uuid.UUID
    vendor_name: str
    amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    due_date: dt.date
    direction: LiabilityDirection
    status: LiabilityStatus
    transaction_id: uuid.UUID | None
    account_id: uuid.UUID | None
    category_id: uuid.UUID | None
    student_id: uuid.UUID | None
    description: str | None
    notes: str | None
    user_id: uuid.UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class LiabilityPaymentRequest(BaseModel):
    """Request body for POST /liabilities/{id}/payments."""
    model_config = ConfigDict(extra="forbid")

    amount: Money
    description: str = Field(min_length=1, max_length=500)
    date: dt.date | None = None
    proof_file: str | None = Field(None, max_length=500)


class LiabilityPaymentResponse(BaseModel):
    id: uuid.UUID
    amount: Decimal
    description: str
    liability_id: uuid.UUID
    transaction_id: uuid.UUID
    user_id: uuid.UUID
    date: dt.date
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class PaymentResultResponse(BaseModel):
    """Everything a payment wrote: the entry, the payment row, the liability."""
    transaction: TransactionResponse
    payment: LiabilityPaymentResponse
    liability: LiabilityResponse


class TransactionCreateResponse(BaseModel):
    """
    Response for POST /transactions.

    `transaction` is None only for a WE_OWE liability entry (nothing is
    posted until it is paid); `liability` is set only for liability entries.
    """
    transaction: TransactionResponse | None = None
    liability: LiabilityResponse | None = None


# ---------------------------------------------------------------------------
# Aging and reminders
# ---------------------------------------------------------------------------

class SweepRequest(BaseModel):
    as_of: dt.date | None = None


class SweepResponse(BaseModel):
    updated_count: int
    liability_ids: list[uuid.UUID]


class ReminderSummaryResponse(BaseModel):
    as_of: dt.date
    horizon_days: int
    upcoming_count: int
    upcoming_total_amount: Decimal
    upcoming_remaining_amount: Decimal
    overdue_count: int
    overdue_total_amount: Decimal
    overdue_remaining_amount: Decimal


class ReminderRequest(BaseModel):
    days_ahead: int | None = Field(None, ge=0, le=365)
    as_of: dt.date | None = None


class UpcomingReminder(BaseModel):
    liability: LiabilityResponse
    days_until_due: int


class OverdueReminder(BaseModel):
    liability: LiabilityResponse
    days_overdue: int


class RemindersResponse(BaseModel):
    as_of: dt.date
    horizon_days: int
    swept_count: int
    upcoming: list[UpcomingReminder]
    overdue: list[OverdueReminder]
