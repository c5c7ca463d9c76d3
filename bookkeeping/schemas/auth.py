"""
Pydantic schemas for authentication and user management.

Pydantic validates incoming data automatically — if a required field is
missing or the wrong type, FastAPI returns a 422 error before our code
even runs.
"""

from pydantic import BaseModel, EmailStr, Field

from bookkeeping.models.user import UserRole


class UserLoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Response body for successful login — contains the JWT."""
    token: str
    token_type: str = "bearer"
    role: UserRole


class UserCreateRequest(BaseModel):
    """Request body for POST /admin/users."""
    email: EmailStr
    password: str = Field(min_length=8)            # Minimum 8 characters
    name: str | None = Field(None, max_length=100)
    role: UserRole = UserRole.OPERATOR
