"""
Parcel models for the motor park trips core.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import ParcelStatus


class ParcelModel(BaseModel):
    """
    A parcel carried on a trip.

    The receiver's phone stays masked until release.
    """
    model_config = ConfigDict(from_attributes=True)

    parcel_id: str
    sender_name: str
    sender_phone: str
    receiver_name: str
    receiver_phone_masked: str
    fee: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    assigned_trip_id: Optional[str] = None
    status: ParcelStatus = Field(default=ParcelStatus.UNASSIGNED)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
