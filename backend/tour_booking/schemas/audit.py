"""
Pydantic schemas for audit log responses.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, Field

from tour_booking.schemas.common import CamelModel
from tour_booking.schemas.user import UserSummary


class AuditLogResponse(CamelModel):
    id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    action: str
    target_type: str
    target_id: Optional[str] = None
    # Stored in the "metadata" column, mapped to AuditLog.details
    details: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("details", "metadata"),
        serialization_alias="metadata",
    )
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime
    actor: Optional[UserSummary] = None
