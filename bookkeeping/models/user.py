"""
User model — the authenticated identity behind every ledger entry.

Users are provisioned by an administrator (CLI `create-user` or
POST /admin/users); there is no self-service signup.

Roles:
  - ADMIN: everything an operator can do, plus account provisioning,
    user management and the audit log
  - OPERATOR: records transactions, transfers, liabilities and payments

The user's display name is copied onto each Transaction at write time
(user_name), so renaming a user never rewrites history.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.database import Base


class UserRole(str, enum.Enum):
    """Role held by a user. Inherits from str so it serializes as plain text."""
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Login identifier
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Argon2id hash of the password
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        default=UserRole.OPERATOR,
        nullable=False,
    )

    # Deactivated users can't log in but remain referenced by their entries
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def display_name(self) -> str:
        """Name used for transaction snapshots."""
        return self.name or self.email or "Unknown User"
