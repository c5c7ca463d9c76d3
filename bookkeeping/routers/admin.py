"""
Admin router — user management and the audit trail.

All endpoints require ADMIN role.

Endpoints:
  GET  /admin/users        — List users
  POST /admin/users        — Create an ADMIN or OPERATOR user
  DELETE /admin/users/{id} — Deactivate a user (the row is kept)
  GET  /admin/audit-logs   — Query the audit trail (newest first)

Financial accounts are also admin-created, through POST /financial-accounts.
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.database import get_db
from bookkeeping.dependencies import require_admin
from bookkeeping.models.user import User
from bookkeeping.schemas.audit import AuditLogResponse
from bookkeeping.schemas.auth import UserCreateRequest
from bookkeeping.schemas.user import UserResponse
from bookkeeping.services import audit_service, auth_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="[Admin] List users",
)
async def list_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.list_users(db)


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a user",
)
async def create_user(
    request: UserCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Create an ADMIN or OPERATOR account.

    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    - **name**: Shown on the transactions this user records
    """
    return await auth_service.create_user(
        db=db,
        email=request.email,
        password=request.password,
        name=request.name,
        role=request.role,
        created_by=admin.id,
    )


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Deactivate a user",
)
async def deactivate_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Deactivated users can no longer log in; their entries keep their name."""
    await auth_service.deactivate_user(db, user_id=user_id, admin_id=admin.id)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

@router.get(
    "/audit-logs",
    response_model=list[AuditLogResponse],
    summary="[Admin] Query the audit trail",
)
async def list_audit_logs(
    action: str | None = Query(None, description="Case-insensitive substring, e.g. LIABILITY"),
    user_id: uuid.UUID | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    List audit entries, newest first.

    Every mutating operation writes at least one entry in the same database
    transaction as its change.
    """
    return await audit_service.list_entries(
        db=db,
        action=action,
        user_id=user_id,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )
