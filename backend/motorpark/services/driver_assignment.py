"""
Driver assignment with same-day conflict checking.

A driver may only be committed to one published or live trip per day.
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..errors import DriverConflictError, NotFoundError, OperationResult, ParkOperationError
from ..models.enums import BOOKABLE_TRIP_STATUSES
from ..models.trip import TripModel
from ..store import ParkStore
from .audit_log import AuditLog
from .lock_manager import TripLockManager

logger = logging.getLogger(__name__)


def find_driver_conflict(
    store: ParkStore,
    driver_id: str,
    trip_date: date,
    exclude_trip_id: Optional[str] = None,
) -> Optional[TripModel]:
    """
    Find another published or live trip the driver already has on ``trip_date``.

    Returns:
        TripModel: The first conflicting trip, or None
    """
    for trip in store.trips.values():
        if (
            trip.driver_id == driver_id
            and trip.date == trip_date
            and trip.trip_id != exclude_trip_id
            and trip.status in BOOKABLE_TRIP_STATUSES
        ):
            return trip
    return None


class DriverAssignmentService:
    """Assigns drivers to trips, rejecting same-day double bookings."""

    def __init__(
        self,
        store: ParkStore,
        lock_manager: TripLockManager,
        audit: AuditLog,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.lock_manager = lock_manager
        self.audit = audit
        self.clock = clock

    async def assign_driver(
        self,
        trip_id: str,
        driver_id: str,
        driver_phone: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> OperationResult[TripModel]:
        """
        Assign a driver to a trip.

        Args:
            trip_id: Trip to staff
            driver_id: Driver to assign
            driver_phone: Optional contact number stored on the trip
            actor: Who is making the assignment

        Returns:
            OperationResult[TripModel]: The updated trip, or a
            ``DriverConflictError`` carrying the conflicting trip id
        """
        try:
            if trip_id not in self.store.trips:
                raise NotFoundError(f"Trip {trip_id} not found")

            async with self.lock_manager.lock_context(trip_id):
                trip = self.store.trips.get(trip_id)
                if trip is None:
                    raise NotFoundError(f"Trip {trip_id} not found")

                conflict = find_driver_conflict(self.store, driver_id, trip.date, exclude_trip_id=trip_id)
                if conflict is not None:
                    raise DriverConflictError(
                        f"Driver {driver_id} already assigned to trip {conflict.trip_id} on {trip.date}",
                        conflict_trip_id=conflict.trip_id,
                    )

                previous_driver = trip.driver_id
                trip.driver_id = driver_id
                if driver_phone is not None:
                    trip.driver_phone = driver_phone
                trip.updated_at = self.clock()

                self.audit.record(
                    "driver_assigned",
                    "Trip",
                    trip_id,
                    {"driver_id": driver_id, "previous_driver_id": previous_driver},
                    actor=actor,
                )

            logger.info(f"Assigned driver {driver_id} to trip {trip_id}")
            return OperationResult.ok(trip)

        except ParkOperationError as e:
            logger.warning(f"Driver assignment rejected for trip {trip_id}: {e.message}")
            return OperationResult.fail(e)
