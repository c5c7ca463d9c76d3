"""
Directory router — categories and students.

Endpoints:
  GET    /categories                — List categories (optional ?type, ?active_only)
  POST   /categories                — Create a category (operator)
  GET    /categories/{category_id}
  PATCH  /categories/{category_id}  — Rename or change a category (operator)
  DELETE /categories/{category_id}  — Deactivate a category (operator)
  GET    /students                  — List students (optional ?active_only, ?search)
  POST   /students                  — Register a student (operator)
  GET    /students/{student_id}
  PATCH  /students/{student_id}     — Update a student (operator)
  DELETE /students/{student_id}     — Deactivate a student (operator)

Nothing here deletes rows: DELETE marks the record inactive.
Mounted without a prefix in main.py; each route carries its own path.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.database import get_db
from bookkeeping.dependencies import get_current_user, require_operator
from bookkeeping.models.transaction import TransactionType
from bookkeeping.models.user import User
from bookkeeping.schemas.directory import (
    CategoryCreateRequest,
    CategoryResponse,
    CategoryUpdateRequest,
    StudentCreateRequest,
    StudentResponse,
    StudentUpdateRequest,
)
from bookkeeping.services import directory_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Categories"],
    summary="Create a category",
)
async def create_category(
    request: CategoryCreateRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    return await directory_service.create_category(
        db=db,
        name=request.name,
        category_type=request.type,
        author_id=user.id,
        financial_account_id=request.financial_account_id,
    )


@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    tags=["Categories"],
    summary="List categories",
)
async def list_categories(
    type: TransactionType | None = Query(None, description="DEBIT (income) or CREDIT (expense)"),
    active_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await directory_service.list_categories(db, type_filter=type, active_only=active_only)


@router.get(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    tags=["Categories"],
    summary="Get a category",
)
async def get_category(
    category_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await directory_service.get_category(db, category_id)


@router.patch(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    tags=["Categories"],
    summary="Update a category",
)
async def update_category(
    category_id: uuid.UUID,
    updates: CategoryUpdateRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """
    Rename, retype or re-point a category.

    Only the fields sent are changed. Entries already recorded keep the
    category name they were written with.
    """
    return await directory_service.update_category(
        db, category_id, updates.model_dump(exclude_unset=True), author_id=user.id
    )


@router.delete(
    "/categories/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Categories"],
    summary="Deactivate a category",
)
async def deactivate_category(
    category_id: uuid.UUID,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    await directory_service.deactivate_category(db, category_id, author_id=user.id)


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------

@router.post(
    "/students",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Students"],
    summary="Register a student",
)
async def create_student(
    request: StudentCreateRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    return await directory_service.create_student(
        db=db,
        name=request.name,
        author_id=user.id,
        nis=request.nis,
        is_active=request.is_active,
    )


@router.get(
    "/students",
    response_model=list[StudentResponse],
    tags=["Students"],
    summary="List students",
)
async def list_students(
    active_only: bool = Query(False),
    search: str | None = Query(None, description="Matches name or NIS"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await directory_service.list_students(
        db, active_only=active_only, search=search, limit=limit, offset=offset
    )


@router.get(
    "/students/{student_id}",
    response_model=StudentResponse,
    tags=["Students"],
    summary="Get a student",
)
async def get_student(
    student_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await directory_service.get_student(db, student_id)


@router.patch(
    "/students/{student_id}",
    response_model=StudentResponse,
    tags=["Students"],
    summary="Update a student",
)
async def update_student(
    student_id: uuid.UUID,
    updates: StudentUpdateRequest,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    return await directory_service.update_student(
        db, student_id, updates.model_dump(exclude_unset=True), author_id=user.id
    )


@router.delete(
    "/students/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Students"],
    summary="Deactivate a student",
)
async def deactivate_student(
    student_id: uuid.UUID,
    user: User = Depends(require_operator),
    db: AsyncSession = Depends(get_db),
):
    """The student is marked inactive; their entries are untouched."""
    await directory_service.deactivate_student(db, student_id, author_id=user.id)
