"""
Motor park Pydantic models package.

This package contains all Pydantic v2 models used throughout the trips core
for data validation, serialization, and type safety.
"""

# Enums
from .enums import (
    TripStatus,
    PayoutStatus,
    PaymentStatus,
    BookingStatus,
    RecurrenceType,
    ApplyScope,
    ParcelStatus,
    BOOKABLE_TRIP_STATUSES,
    BILLABLE_PARCEL_STATUSES,
)

# Trip models
from .trip import (
    RecurrencePatternModel,
    TripModel,
    TripCreateModel,
    TripUpdateModel,
)

# Booking models
from .booking import (
    PassengerDetailsModel,
    BookingModel,
    SeatHoldModel,
)

# Parcel, finance and audit models
from .parcel import ParcelModel
from .finance import AdjustmentModel, TripFinanceModel
from .audit import AuditLogEntryModel

__all__ = [
    # Enums
    "TripStatus",
    "PayoutStatus",
    "PaymentStatus",
    "BookingStatus",
    "RecurrenceType",
    "ApplyScope",
    "ParcelStatus",
    "BOOKABLE_TRIP_STATUSES",
    "BILLABLE_PARCEL_STATUSES",

    # Trip models
    "RecurrencePatternModel",
    "TripModel",
    "TripCreateModel",
    "TripUpdateModel",

    # Booking models
    "PassengerDetailsModel",
    "BookingModel",
    "SeatHoldModel",

    # Parcel, finance and audit models
    "ParcelModel",
    "AdjustmentModel",
    "TripFinanceModel",
    "AuditLogEntryModel",
]
