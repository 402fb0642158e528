"""
Enums for the motor park trips core.

This module contains all enumeration types used throughout the package
for consistent data validation and type safety.
"""

from enum import Enum


class TripStatus(str, Enum):
    """Trip lifecycle states."""
    DRAFT = "draft"
    PUBLISHED = "published"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PayoutStatus(str, Enum):
    """Driver/park revenue payout state for a trip."""
    NOT_SCHEDULED = "NotScheduled"
    SCHEDULED = "Scheduled"
    PAID = "Paid"


class PaymentStatus(str, Enum):
    """Payment state of a booking."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REFUNDED = "refunded"


class BookingStatus(str, Enum):
    """Booking state for the seat hold engine."""
    PENDING = "pending"        # Seat held, awaiting payment
    CONFIRMED = "confirmed"    # Paid
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class RecurrenceType(str, Enum):
    """Repetition rule for a recurring trip series."""
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    CUSTOM = "custom"


class ApplyScope(str, Enum):
    """Which occurrences of a series an update applies to."""
    OCCURRENCE = "occurrence"
    FUTURE = "future"
    SERIES = "series"


class ParcelStatus(str, Enum):
    """Parcel delivery state."""
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"


# Trips that accept seat holds
BOOKABLE_TRIP_STATUSES = frozenset({TripStatus.PUBLISHED, TripStatus.LIVE})

# Parcels whose fee counts towards trip revenue
BILLABLE_PARCEL_STATUSES = frozenset({
    ParcelStatus.ASSIGNED,
    ParcelStatus.IN_TRANSIT,
    ParcelStatus.DELIVERED,
})
