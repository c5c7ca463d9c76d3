"""
Authentication router — login and the current user's profile.

Endpoints:
  POST /auth/login — Authenticate and get a token (public)
  GET  /auth/me    — The authenticated user's profile

There is no public signup; admins create users through /admin/users or
the `bookkeeping create-user` command.

Security notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - The request logging middleware records method, path, status and
    duration only, never bodies.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookkeeping.database import get_db
from bookkeeping.dependencies import get_current_user
from bookkeeping.models.user import User
from bookkeeping.schemas.auth import UserLoginRequest, TokenResponse
from bookkeeping.schemas.user import UserResponse
from bookkeeping.services import auth_service

router = APIRouter()


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all subsequent requests:

        Authorization: Bearer <token>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 60).
    """
    user, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )
    return TokenResponse(token=token, role=user.role)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the authenticated user",
)
async def me(user: User = Depends(get_current_user)):
    return user
