"""
FastAPI dependencies for authentication and authorization.

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a dependency chain that enforces both authentication and
role-based access control:

  get_current_user (JWT -> User)
      ├── require_operator (User -> User)   [ADMIN or OPERATOR]
      └── require_admin (User -> User)      [ADMIN]

Role-based access control:
  - Any authenticated user can read accounts, transactions and liabilities.
  - OPERATOR (and ADMIN) can record transactions, transfers, liabilities
    and payments, and run the aging sweep.
  - ADMIN alone provisions financial accounts and users and reads the
    audit log.

The ledger services never check roles themselves; by the time a handler
calls them, the dependency has already rejected unauthorized callers and
the user's id is passed through as the author id.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.database import get_db
from bookkeeping.models.user import User, UserRole
from bookkeeping.security import decode_access_token


# OAuth2PasswordBearer tells FastAPI where to look for the token:
# the "Authorization: Bearer <token>" header.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid, expired, or the user
                           doesn't exist or is deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    user = await db.get(User, user_id)

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def require_operator(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require a role allowed to change the books (OPERATOR or ADMIN).

    Raises:
        HTTPException 403: For any other role.
    """
    if user.role not in (UserRole.OPERATOR, UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator access required",
        )
    return user


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to have the ADMIN role.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
