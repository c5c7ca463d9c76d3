"""
Transfers router — atomic money transfers between financial accounts.

Endpoints:
  POST /transfers — Move money from one account to another (operator)

A transfer creates two linked entries in one database transaction:
  1. A CREDIT on the source account ("Transfer to <destination>")
  2. A DEBIT on the destination account ("Transfer from <source>")

Each leg's related_transaction_id points at the other. Unlike ordinary
entries, a transfer is rejected if it would take the source below zero.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.database import get_db
from bookkeeping.dependencies import require_operator
from bookkeeping.models.user import User
from bookkeeping.schemas.transaction import TransferRequest, TransferResponse, TransactionResponse
from bookkeeping.services import transaction_service

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between accounts",
)
async def create_transfer(
    request: TransferRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """
    Transfer money from one financial account to another.

    This is an atomic operation — either both legs are recorded, or
    neither is. If the source account has insufficient funds, nothing is
    written and the response is 422.

    - Cannot transfer to the same account
    """
    result = await transaction_service.record_transfer(
        db=db,
        entry_date=request.date,
        description=request.description,
        amount=request.amount,
        source_account_id=request.source_account_id,
        destination_account_id=request.destination_account_id,
        author_id=user.id,
    )

    return TransferResponse(
        amount=result.credit_leg.amount,
        source_account_id=request.source_account_id,
        destination_account_id=request.destination_account_id,
        credit_transaction=TransactionResponse.model_validate(result.credit_leg),
        debit_transaction=TransactionResponse.model_validate(result.debit_leg),
    )
