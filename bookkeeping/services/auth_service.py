"""
Authentication service — user provisioning and login business logic.

This module contains the core auth logic, separated from HTTP concerns.
The router (and the CLI) call these functions; the ledger itself only ever
sees the resulting user id as an opaque author id.

Login flow:
  1. Look up user by email
  2. Verify password against stored hash
  3. Return a JWT token

Security notes:
  - Passwords are hashed with Argon2id before storage
  - Login returns the same error for "wrong password", "email not found"
    and "deactivated" to prevent user enumeration
  - There is no self-signup: admins create users (POST /admin/users or
    `bookkeeping create-user`)
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    LedgerValidationError,
    UserNotFoundError,
)
from bookkeeping.models.user import User, UserRole
from bookkeeping.security import hash_password, verify_password, create_access_token
from bookkeeping.services import audit_service
from bookkeeping.services.audit_service import AuditAction

logger = logging.getLogger(__name__)


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str | None = None,
    role: UserRole = UserRole.OPERATOR,
    created_by: uuid.UUID | None = None,
) -> User:
    """
    Create a user account.

    Args:
        db: Database session.
        email: Login email (must be unique).
        password: Plaintext password (hashed before storage).
        name: Display name copied onto the transactions this user records.
        role: ADMIN or OPERATOR.
        created_by: The admin creating the user (None from the CLI).

    Returns:
        The created User instance.

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    email = email.strip().lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        name=name,
        hashed_password=hash_password(password),
        role=role,
    )
    db.add(user)
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.CREATE_USER,
        created_by,
        {"user_id": user.id, "email": email, "role": role},
    )
    logger.info("Created %s user %s", role.value, email)
    return user


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at))
    return list(result.scalars().all())


async def deactivate_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    admin_id: uuid.UUID,
) -> User:
    """
    Deactivate a user so they can no longer log in or use existing tokens.

    Users are never deleted: their id stays on the entries and audit rows
    they wrote.

    Raises:
        LedgerValidationError: If an admin tries to deactivate themselves.
        UserNotFoundError: Unknown user.
    """
    if user_id == admin_id:
        raise LedgerValidationError("You cannot deactivate your own account")

    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    if not user.is_active:
        return user

    user.is_active = False
    await db.flush()

    await audit_service.record(
        db,
        AuditAction.DEACTIVATE_USER,
        admin_id,
        {"user_id": user.id, "email": user.email, "name": user.name},
    )
    logger.info("Deactivated user %s", user.email)
    return user


async def login(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        InvalidCredentialsError: If email doesn't exist, the password is
                                 wrong, or the user is deactivated.
    """
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()

    # Same error for every case — prevents user enumeration
    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login for %s", email)
        raise InvalidCredentialsError()

    if not user.is_active:
        raise InvalidCredentialsError()

    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return user, token
