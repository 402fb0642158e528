"""
In-memory store for the motor park trips core.

A ``ParkStore`` is created once by the composition root and handed to every
service. Nothing here survives a restart.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Tuple

from .models.audit import AuditLogEntryModel
from .models.booking import BookingModel
from .models.finance import AdjustmentModel
from .models.parcel import ParcelModel
from .models.trip import TripModel


def new_id(prefix: str) -> str:
    """Generate an id such as ``trip_3f2a9c1d4e5b``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass
class ParkStore:
    """Process-resident state shared by the services."""
    trips: Dict[str, TripModel] = field(default_factory=dict)
    bookings: Dict[str, BookingModel] = field(default_factory=dict)
    parcels: Dict[str, ParcelModel] = field(default_factory=dict)
    adjustments: List[AdjustmentModel] = field(default_factory=list)
    audit_logs: List[AuditLogEntryModel] = field(default_factory=list)
    # booking_id -> (why a pending hold was removed, when), oldest first
    released_holds: Dict[str, Tuple[str, datetime]] = field(default_factory=dict)
    # trip_id -> bitmap of taken seats, bit (n - 1) set when seat n is taken
    seat_bitmaps: Dict[str, int] = field(default_factory=dict)

    def bookings_for_trip(self, trip_id: str) -> List[BookingModel]:
        return [b for b in self.bookings.values() if b.trip_id == trip_id]

    def clear(self) -> None:
        """Drop all state."""
        self.trips.clear()
        self.bookings.clear()
        self.parcels.clear()
        self.adjustments.clear()
        self.audit_logs.clear()
        self.released_holds.clear()
        self.seat_bitmaps.clear()
