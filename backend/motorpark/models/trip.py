"""
Trip-related Pydantic models for the motor park trips core.

This module contains models for scheduled departures, recurrence patterns,
and the create/update payloads accepted by the trip registry.
"""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import PayoutStatus, RecurrenceType, TripStatus


class RecurrencePatternModel(BaseModel):
    """
    Repetition rule for a recurring trip series.

    Days of week use 0 for Sunday through 6 for Saturday.
    """
    model_config = ConfigDict(from_attributes=True)

    type: RecurrenceType = Field(default=RecurrenceType.DAILY, description="Repetition rule")
    days_of_week: List[int] = Field(default_factory=list, description="Days for custom patterns (0=Sun..6=Sat)")
    end_date: Optional[date] = Field(None, description="Last date a trip may be generated on")
    exceptions: List[date] = Field(default_factory=list, description="Dates to skip")

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, v: List[int]) -> List[int]:
        """Reject weekday indexes outside 0..6."""
        for day in v:
            if not 0 <= day <= 6:
                raise ValueError(f"Day of week must be between 0 and 6, got {day}")
        return sorted(set(v))


class TripModel(BaseModel):
    """
    A scheduled departure on a route.

    ``confirmed_bookings_count`` counts every seat taken on the trip, pending
    holds included, so a held seat is unavailable before payment.
    """
    model_config = ConfigDict(from_attributes=True)

    trip_id: str
    park_id: str = Field(..., description="Owning park")
    route_id: str = Field(..., description="Route served by the trip")
    date: dt.date = Field(..., description="Departure day")
    unit_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Departure time (HH:MM)")
    seat_count: int = Field(..., ge=1, description="Seat capacity")
    confirmed_bookings_count: int = Field(default=0, ge=0, description="Seats taken (holds and confirmed)")
    max_parcels_per_vehicle: int = Field(default=0, ge=0, description="Parcel capacity")
    driver_id: Optional[str] = None
    driver_phone: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2, description="Price per seat")
    status: TripStatus = Field(default=TripStatus.DRAFT)
    payout_status: PayoutStatus = Field(default=PayoutStatus.NOT_SCHEDULED)
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePatternModel] = None
    parent_trip_id: Optional[str] = Field(None, description="Series id shared by recurring instances")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def available_seats(self) -> int:
        return self.seat_count - self.confirmed_bookings_count


class TripCreateModel(BaseModel):
    """Payload for creating a single trip or a recurring series."""
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    date: dt.date
    unit_time: str = Field(default="06:00", pattern=r"^\d{2}:\d{2}$")
    seat_count: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    max_parcels_per_vehicle: int = Field(default=0, ge=0)
    driver_id: Optional[str] = None
    driver_phone: Optional[str] = None
    status: TripStatus = TripStatus.DRAFT
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePatternModel] = None


class TripUpdateModel(BaseModel):
    """
    Partial update for one or more trips.

    Only fields explicitly set are applied. Driver changes go through
    driver assignment, not through this model.
    """
    model_config = ConfigDict(from_attributes=True)

    route_id: Optional[str] = None
    unit_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    seat_count: Optional[int] = Field(None, ge=1)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    max_parcels_per_vehicle: Optional[int] = Field(None, ge=0)
    driver_phone: Optional[str] = None
