"""
Audit log models for the motor park trips core.
"""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class AuditLogEntryModel(BaseModel):
    """
    Immutable record of a mutating action.

    Entries are appended by every component and never changed or removed.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    audit_id: str
    entity_type: str = Field(..., description="Kind of entity acted on (Trip, Booking, Parcel)")
    entity_id: str
    action: str = Field(..., description="Action name, e.g. seat_reserved")
    payload: Dict[str, Any] = Field(default_factory=dict)
    performed_by: str
    performed_at: datetime
