"""
Pydantic schemas for FinancialAccount endpoints.

These schemas define the API contract for account creation, retrieval,
balance verification and the dashboard overview.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class AccountCreateRequest(BaseModel):
    """Request body for POST /financial-accounts."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    is_bank: bool = False
    opening_balance: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        max_digits=18,
        decimal_places=2,
        description="Recorded as an opening DEBIT entry when non-zero",
    )


class AccountResponse(BaseModel):
    """Public representation of a financial account."""
    id: uuid.UUID
    name: str
    balance: Decimal
    is_bank: bool
    last_entry_number: int
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    """
    Balance check response — includes both cached and computed values.

    `match` is true when the cached balance equals the sum of the account's
    signed entries and the balance_before/balance_after chain is unbroken.
    `chain_breaks` lists the entry numbers where the chain does not continue.
    """
    account_id: uuid.UUID
    name: str
    cached_balance: Decimal
    computed_balance: Decimal
    match: bool
    entry_count: int
    chain_breaks: list[int]


class OverviewResponse(BaseModel):
    """Dashboard summary. Bank accounts are excluded from the operating total."""
    total_operating_balance: Decimal
    bank_balance: Decimal
    accounts: list[AccountResponse]
