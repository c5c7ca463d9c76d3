"""
Pydantic schemas for the Category and Student directories.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from bookkeeping.models.transaction import TransactionType


class CategoryCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    type: TransactionType
    financial_account_id: uuid.UUID | None = None


class CategoryUpdateRequest(BaseModel):
    """Request body for PATCH /categories/{id} (all fields optional)."""
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=100)
    type: TransactionType | None = None
    financial_account_id: uuid.UUID | None = None  # explicit null clears it
    is_active: bool | None = None


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    type: TransactionType
    financial_account_id: uuid.UUID | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class StudentCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    nis: str | None = Field(None, max_length=30)  # school student number
    is_active: bool = True


class StudentUpdateRequest(BaseModel):
    """Request body for PATCH /students/{id} (all fields optional)."""
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=100)
    nis: str | None = Field(None, max_length=30)
    is_active: bool | None = None


class StudentResponse(BaseModel):
    id: uuid.UUID
    name: str
    nis: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
