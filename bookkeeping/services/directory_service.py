"""
Directory service — categories and students.

Both are reference data for the ledger: transactions point at them and copy
their names at write time, so later renames never rewrite history. Neither
is ever deleted; both are deactivated instead.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.exceptions import (
    CategoryNotFoundError,
    DuplicateNameError,
    LedgerValidationError,
    StudentNotFoundError,
)
from bookkeeping.models.category import Category
from bookkeeping.models.student import Student
from bookkeeping.models.transaction import TransactionType
from bookkeeping.services import audit_service
from bookkeeping.services.audit_service import AuditAction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

async def create_category(
    db: AsyncSession,
    name: str,
    category_type: TransactionType | str,
    author_id: uuid.UUID,
    financial_account_id: uuid.UUID | None = None,
) -> Category:
    """
    Create a transaction category.

    Args:
        db: Database session.
        name: Unique category name (e.g. "SPP", "Gaji Guru").
        category_type: DEBIT for income categories, CREDIT for expenses.
        author_id: The user creating the category.
        financial_account_id: Optional default account for entries in
                              this category.

    Raises:
        LedgerValidationError: Empty name or unknown type.
        DuplicateNameError: If the name is taken.
        AccountNotFoundError: If financial_account_id doesn't exist.
    """
    from bookkeeping.services.account_service import get_account
    from bookkeeping.services.transaction_service import parse_type

    name = (name or "").strip()
    if not name:
        raise LedgerValidationError("Category name is required")
    category_type = parse_type(category_type)

    existing = await db.execute(select(Category).where(Category.name == name))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateNameError("Category", name)

    if financial_account_id is not None:
        await get_account(db, financial_account_id)

    category = Category(
        name=name,
        type=category_type,
        financial_account_id=financial_account_id,
    )
    db.add(category)
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.CREATE_CATEGORY,
        author_id,
        {"category_id": category.id, "name": name, "type": category_type},
    )
    logger.info("Created category %s", name)
    return category


async def list_categories(
    db: AsyncSession,
    type_filter: TransactionType | None = None,
    active_only: bool = False,
) -> list[Category]:
    query = select(Category).order_by(Category.name)
    if type_filter:
        query = query.where(Category.type == type_filter)
    if active_only:
        query = query.where(Category.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: uuid.UUID) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


def _category_details(category: Category) -> dict:
    return {
        "name": category.name,
        "type": category.type,
        "financial_account_id": category.financial_account_id,
        "is_active": category.is_active,
    }


async def update_category(
    db: AsyncSession,
    category_id: uuid.UUID,
    updates: dict,
    author_id: uuid.UUID,
) -> Category:
    """
    Apply a partial update to a category.

    `updates` holds only the fields the caller sent (name, type,
    financial_account_id, is_active); a None financial_account_id clears
    the default account. Entries already recorded keep the category name
    they were written with.

    Raises:
        CategoryNotFoundError: Unknown category.
        LedgerValidationError: Empty name, unknown type or unknown field.
        DuplicateNameError: If the new name is taken.
        AccountNotFoundError: If financial_account_id doesn't exist.
    """
    from bookkeeping.services.account_service import get_account
    from bookkeeping.services.transaction_service import parse_type

    unknown = set(updates) - {"name", "type", "financial_account_id", "is_active"}
    if unknown:
        raise LedgerValidationError(f"Cannot update category fields: {', '.join(sorted(unknown))}")

    category = await get_category(db, category_id)
    changes = {
        field: value for field, value in updates.items()
        if value is not None or field == "financial_account_id"
    }

    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise LedgerValidationError("Category name is required")
        existing = await db.execute(
            select(Category).where(Category.name == changes["name"], Category.id != category.id)
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateNameError("Category", changes["name"])
    if "type" in changes:
        changes["type"] = parse_type(changes["type"])
    if changes.get("financial_account_id") is not None:
        await get_account(db, changes["financial_account_id"])

    old_data = _category_details(category)
    for field, value in changes.items():
        setattr(category, field, value)
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.UPDATE_CATEGORY,
        author_id,
        {"category_id": category.id, "old_data": old_data, "new_data": _category_details(category)},
    )
    logger.info("Updated category %s", category.name)
    return category


async def deactivate_category(
    db: AsyncSession,
    category_id: uuid.UUID,
    author_id: uuid.UUID,
) -> Category:
    """Retire a category. The row stays so existing entries keep their reference."""
    category = await get_category(db, category_id)
    if not category.is_active:
        return category

    category.is_active = False
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.DEACTIVATE_CATEGORY,
        author_id,
        {"category_id": category.id, "name": category.name, "type": category.type},
    )
    logger.info("Deactivated category %s", category.name)
    return category


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------

async def create_student(
    db: AsyncSession,
    name: str,
    author_id: uuid.UUID,
    nis: str | None = None,
    is_active: bool = True,
) -> Student:
    """
    Register a student.

    `nis` (the school's student number) is optional but unique when given.

    Raises:
        LedgerValidationError: Empty name.
        DuplicateNameError: If the nis is already registered.
    """
    name = (name or "").strip()
    if not name:
        raise LedgerValidationError("Student name is required")
    nis = (nis or "").strip() or None

    if nis is not None:
        existing = await db.execute(select(Student).where(Student.nis == nis))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateNameError("Student with NIS", nis)

    student = Student(name=name, nis=nis, is_active=is_active)
    db.add(student)
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.CREATE_STUDENT,
        author_id,
        {"student_id": student.id, "name": name, "nis": nis},
    )
    logger.info("Registered student %s", name)
    return student


async def list_students(
    db: AsyncSession,
    active_only: bool = False,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Student]:
    """List students alphabetically; `search` matches name or nis."""
    query = select(Student).order_by(Student.name).limit(limit).offset(offset)
    if active_only:
        query = query.where(Student.is_active.is_(True))
    if search:
        pattern = f"%{search}%"
        query = query.where(Student.name.ilike(pattern) | Student.nis.ilike(pattern))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_student(db: AsyncSession, student_id: uuid.UUID) -> Student:
    student = await db.get(Student, student_id)
    if student is None:
        raise StudentNotFoundError(student_id)
    return student


def _student_details(student: Student) -> dict:
    return {"name": student.name, "nis": student.nis, "is_active": student.is_active}


async def update_student(
    db: AsyncSession,
    student_id: uuid.UUID,
    updates: dict,
    author_id: uuid.UUID,
) -> Student:
    """
    Apply a partial update to a student (name, nis, is_active).

    An empty nis clears it. Entries already recorded keep the student
    name they were written with.

    Raises:
        StudentNotFoundError: Unknown student.
        LedgerValidationError: Empty name or unknown field.
        DuplicateNameError: If the new nis is already registered.
    """
    unknown = set(updates) - {"name", "nis", "is_active"}
    if unknown:
        raise LedgerValidationError(f"Cannot update student fields: {', '.join(sorted(unknown))}")

    student = await get_student(db, student_id)
    changes = {
        field: value for field, value in updates.items()
        if value is not None or field == "nis"
    }

    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise LedgerValidationError("Student name is required")
    if "nis" in changes:
        changes["nis"] = (changes["nis"] or "").strip() or None
        if changes["nis"] is not None:
            existing = await db.execute(
                select(Student).where(Student.nis == changes["nis"], Student.id != student.id)
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateNameError("Student with NIS", changes["nis"])

    old_data = _student_details(student)
    for field, value in changes.items():
        setattr(student, field, value)
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.UPDATE_STUDENT,
        author_id,
        {"student_id": student.id, "old_data": old_data, "new_data": _student_details(student)},
    )
    logger.info("Updated student %s", student.name)
    return student


async def deactivate_student(
    db: AsyncSession,
    student_id: uuid.UUID,
    author_id: uuid.UUID,
) -> Student:
    """Mark a student inactive (left or graduated). The row is never deleted."""
    student = await get_student(db, student_id)
    if not student.is_active:
        return student

    student.is_active = False
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.DEACTIVATE_STUDENT,
        author_id,
        {"student_id": student.id, "name": student.name, "nis": student.nis},
    )
    logger.info("Deactivated student %s", student.name)
    return student
