"""
Passenger booking models for the motor park trips core.

This module contains models for passenger details, bookings and the seat
hold handed back to callers when a seat is reserved.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import BookingStatus, PaymentStatus


class PassengerDetailsModel(BaseModel):
    """
    Passenger and next-of-kin contact details.

    Supplied by the caller when a seat hold is requested.
    """
    model_config = ConfigDict(from_attributes=True)

    passenger_name: str = Field(..., min_length=1, max_length=200)
    passenger_phone: str = Field(..., min_length=1, max_length=32)
    nok_name: str = Field(..., min_length=1, max_length=200, description="Next of kin name")
    nok_phone: str = Field(..., min_length=1, max_length=32, description="Next of kin phone")
    nok_address: str = Field(default="", max_length=500, description="Next of kin address")


class BookingModel(BaseModel):
    """
    One passenger's seat on a trip.

    Created pending with a hold expiry; confirmed by payment or removed
    when the hold lapses.
    """
    model_config = ConfigDict(from_attributes=True)

    booking_id: str
    trip_id: str = Field(..., description="Associated trip ID")
    passenger_name: str
    passenger_phone: str
    nok_name: str
    nok_phone: str
    nok_address: str = ""
    seat_number: int = Field(..., ge=1, description="Seat assigned at hold time")
    amount_paid: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    booking_status: BookingStatus = Field(default=BookingStatus.PENDING)
    hold_expires_at: Optional[datetime] = Field(None, description="When an unpaid hold lapses")
    hold_token: Optional[str] = Field(None, description="Token identifying the seat hold")
    checked_in: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def is_hold_expired(self, now: datetime) -> bool:
        """True when the booking is pending and its hold window has passed."""
        return (
            self.booking_status == BookingStatus.PENDING
            and self.hold_expires_at is not None
            and now > self.hold_expires_at
        )


class SeatHoldModel(BaseModel):
    """Result of a successful seat reservation."""
    model_config = ConfigDict(from_attributes=True)

    booking: BookingModel
    hold_token: str
    expires_at: datetime
