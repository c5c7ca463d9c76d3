"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from bookkeeping.models directly
"""

from bookkeeping.models.user import User, UserRole  # noqa: F401
from bookkeeping.models.financial_account import FinancialAccount  # noqa: F401
from bookkeeping.models.transaction import Transaction, TransactionType  # noqa: F401
from bookkeeping.models.category import Category  # noqa: F401
from bookkeeping.models.student import Student  # noqa: F401
from bookkeeping.models.liability import (  # noqa: F401
    Liability,
    LiabilityDirection,
    LiabilityStatus,
)
from bookkeeping.models.liability_payment import LiabilityPayment  # noqa: F401
from bookkeeping.models.audit_log import AuditLog  # noqa: F401
