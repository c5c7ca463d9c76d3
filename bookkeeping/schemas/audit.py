"""
Pydantic schemas for the admin audit-log endpoint.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    action: str
    details: dict[str, Any]
    user_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
