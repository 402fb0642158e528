"""
Finance models for the motor park trips core.

This module contains manual adjustments and the per-trip revenue split
read model computed by the finance calculator.
"""

from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .enums import PayoutStatus


class AdjustmentModel(BaseModel):
    """
    Signed manual correction to a trip's split.

    Positive amounts move money to the driver, negative amounts to the park.
    """
    model_config = ConfigDict(from_attributes=True)

    adjustment_id: str
    trip_id: str
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    reason: str = Field(..., min_length=1)
    created_by: str
    created_at: datetime = Field(default_factory=datetime.now)


class TripFinanceModel(BaseModel):
    """
    Revenue split for a trip, computed on demand and never stored.
    """
    model_config = ConfigDict(from_attributes=True)

    trip_id: str
    passenger_revenue: Decimal
    parcel_revenue: Decimal
    total_revenue: Decimal
    driver_passenger_split: Decimal = Field(..., description="80% of passenger revenue")
    park_passenger_split: Decimal = Field(..., description="20% of passenger revenue")
    driver_parcel_split: Decimal = Field(..., description="50% of parcel revenue")
    park_parcel_split: Decimal = Field(..., description="50% of parcel revenue")
    adjustment_total: Decimal
    driver_total: Decimal
    park_total: Decimal
    adjustments: List[AdjustmentModel] = Field(default_factory=list)
    payout_status: PayoutStatus
