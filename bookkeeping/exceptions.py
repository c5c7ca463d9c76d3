"""
Custom exception classes and FastAPI exception handlers.

The service layer raises these domain errors without importing any HTTP
concepts; register_exception_handlers() translates them into JSON
responses of the form {"detail": ..., "error_type": ...}.

Exception hierarchy:
    BookkeepingError (base)
    ├── LedgerValidationError          — malformed amount, unknown type, bad field combination
    ├── NotFoundError                  — a referenced record does not exist
    │   ├── AccountNotFoundError
    │   ├── CategoryNotFoundError
    │   ├── StudentNotFoundError
    │   ├── UserNotFoundError
    │   ├── TransactionNotFoundError
    │   ├── LiabilityNotFoundError
    │   └── SettlementAccountNotFoundError — liability has no account to settle against
    ├── InsufficientFundsError         — transfer (or enforced entry) would overdraw
    ├── OverpaymentError               — payment exceeds a liability's remaining amount
    ├── AlreadySettledError            — payment against a PAID liability
    ├── DuplicateNameError             — unique name already taken
    ├── DuplicateEmailError
    ├── InvalidCredentialsError
    └── StorageFailureError            — the unit of work could not be flushed/committed

Every one of these aborts the surrounding unit of work: nothing the failed
operation wrote is committed.
"""

import logging
import uuid
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BookkeepingError(Exception):
    """Base exception for all bookkeeping domain errors."""

    status_code = 400
    error_type = "bookkeeping_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def payload(self) -> dict:
        return {"detail": self.detail, "error_type": self.error_type}


# ---------------------------------------------------------------------------
# Validation / lookup
# ---------------------------------------------------------------------------

class LedgerValidationError(BookkeepingError):
    """Raised when input is malformed or out of range (rejected before any write)."""

    error_type = "validation_error"


class NotFoundError(BookkeepingError):
    """Raised when a referenced record does not exist."""

    status_code = 404
    error_type = "not_found"
    entity = "Record"

    def __init__(self, entity_id: uuid.UUID | str | None = None, detail: str | None = None):
        self.entity_id = entity_id
        super().__init__(detail or f"{self.entity} {entity_id} not found")


class AccountNotFoundError(NotFoundError):
    entity = "Financial account"
    error_type = "account_not_found"


class CategoryNotFoundError(NotFoundError):
    entity = "Category"
    error_type = "category_not_found"


class StudentNotFoundError(NotFoundError):
    entity = "Student"
    error_type = "student_not_found"


class UserNotFoundError(NotFoundError):
    entity = "User"
    error_type = "user_not_found"


class TransactionNotFoundError(NotFoundError):
    entity = "Transaction"
    error_type = "transaction_not_found"


class LiabilityNotFoundError(NotFoundError):
    entity = "Liability"
    error_type = "liability_not_found"


class SettlementAccountNotFoundError(NotFoundError):
    """
    Raised when a liability has neither an originating transaction nor a
    stored account_id, so there is no account to move the payment through.
    """

    error_type = "settlement_account_not_found"

    def __init__(self, liability_id: uuid.UUID):
        super().__init__(
            liability_id,
            detail=f"Liability {liability_id} has no account to settle against",
        )


# ---------------------------------------------------------------------------
# Ledger rules
# ---------------------------------------------------------------------------

class InsufficientFundsError(BookkeepingError):
    """
    Raised when a transfer (or, with ENFORCE_NON_NEGATIVE_BALANCES, any
    balance-decreasing entry) would leave the account below zero.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested: The amount the caller tried to move out.
        available: The balance read inside the unit of work.
    """

    status_code = 422
    error_type = "insufficient_funds"

    def __init__(self, account_id: uuid.UUID, requested: Decimal, available: Decimal):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds: requested {requested}, available {available}"
        )

    def payload(self) -> dict:
        return {
            **super().payload(),
            "requested": str(self.requested),
            "available": str(self.available),
        }


class OverpaymentError(BookkeepingError):
    """Raised when a payment exceeds what is still owed on a liability."""

    status_code = 422
    error_type = "overpayment"

    def __init__(self, liability_id: uuid.UUID, requested: Decimal, remaining: Decimal):
        self.liability_id = liability_id
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Payment of {requested} exceeds the remaining amount {remaining}"
        )

    def payload(self) -> dict:
        return {
            **super().payload(),
            "requested": str(self.requested),
            "remaining": str(self.remaining),
        }


class AlreadySettledError(BookkeepingError):
    """Raised when a payment is attempted on a liability that is already PAID."""

    status_code = 409
    error_type = "already_settled"

    def __init__(self, liability_id: uuid.UUID):
        self.liability_id = liability_id
        super().__init__(f"Liability {liability_id} is already paid")


# ---------------------------------------------------------------------------
# Directory / auth
# ---------------------------------------------------------------------------

class DuplicateNameError(BookkeepingError):
    """Raised when creating a record whose unique name is already taken."""

    status_code = 409
    error_type = "duplicate_name"

    def __init__(self, entity: str, name: str):
        self.name = name
        super().__init__(f"{entity} named {name!r} already exists")


class DuplicateEmailError(BookkeepingError):
    """Raised when creating a user with an email that's already in use."""

    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(BookkeepingError):
    """Raised when login credentials are incorrect."""

    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class StorageFailureError(BookkeepingError):
    """Raised when the unit of work cannot be flushed or committed."""

    status_code = 503
    error_type = "storage_failure"

    def __init__(self, detail: str = "The operation could not be stored; nothing was applied"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Each BookkeepingError subclass carries its own status code and
    payload, so a single handler covers the whole hierarchy.
    This is called once during app startup in main.py.
    """

    @app.exception_handler(BookkeepingError)
    async def bookkeeping_error_handler(
        request: Request, exc: BookkeepingError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=exc.payload())
