"""
Trip registry: creation, updates, publishing and lookup of trips.

The registry owns trip records. It reads a trip's seat count and bookings to
validate updates but never changes ``confirmed_bookings_count``; only the seat
hold engine writes that field.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Union

from ..errors import (
    CapacityError,
    DriverConflictError,
    ImmutableFieldError,
    InvalidStateError,
    NotFoundError,
    OperationResult,
    ParkOperationError,
    ValidationError,
    parse_input,
)
from ..models.enums import ApplyScope, BookingStatus, PayoutStatus, TripStatus
from ..models.trip import RecurrencePatternModel, TripCreateModel, TripModel, TripUpdateModel
from ..store import ParkStore, new_id
from ..utils.config import ParkConfig
from ..utils.money import to_money
from .audit_log import AuditLog
from .calendar_expander import expand_occurrences, preview_occurrences
from .driver_assignment import find_driver_conflict
from .lock_manager import TripLockManager

logger = logging.getLogger(__name__)

CREATABLE_STATUSES = (TripStatus.DRAFT, TripStatus.PUBLISHED)


class TripRegistry:
    """
    Registry of scheduled trips for every park.

    Features:
    - Single trips and recurring series created all-or-nothing
    - Updates scoped to one occurrence, future occurrences, or a whole series
    - Seat ceiling, seat shrink and price immutability checks before mutation
    - Draft to published transition
    """

    def __init__(
        self,
        store: ParkStore,
        lock_manager: TripLockManager,
        audit: AuditLog,
        config: ParkConfig,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the trip registry.

        Args:
            store: Shared in-memory store
            lock_manager: Per-trip lock manager
            audit: Audit log every mutation is recorded to
            config: Seat ceiling and recurrence limits
            clock: Source of timestamps
        """
        self.store = store
        self.lock_manager = lock_manager
        self.audit = audit
        self.config = config
        self.clock = clock

        logger.info("TripRegistry initialized")

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_trip(
        self,
        spec: Union[TripCreateModel, Dict[str, Any]],
        park_id: str,
        actor: Optional[str] = None,
    ) -> OperationResult[List[TripModel]]:
        """
        Create a single trip or a recurring series.

        Args:
            spec: Trip details; ``is_recurring`` with a ``recurrence_pattern``
                creates one trip per generated date
            park_id: Owning park
            actor: Who is creating the trip

        Returns:
            OperationResult[List[TripModel]]: Every created trip. Nothing is
            created when validation fails.
        """
        try:
            spec = parse_input(TripCreateModel, spec)
            dates = self._validate_creation(spec)

            series_id = new_id("series") if spec.is_recurring else None
            now = self.clock()
            trips = [self._build_trip(spec, park_id, trip_date, series_id, now) for trip_date in dates]

            # Series dates are distinct, so only existing trips can clash
            if spec.driver_id and spec.status == TripStatus.PUBLISHED:
                self._check_driver_free(spec.driver_id, dates)

            for trip in trips:
                self.store.trips[trip.trip_id] = trip
                self.audit.record(
                    "trip_created",
                    "Trip",
                    trip.trip_id,
                    {
                        "park_id": park_id,
                        "route_id": trip.route_id,
                        "date": trip.date.isoformat(),
                        "series_id": series_id,
                    },
                    actor=actor,
                )

            if series_id:
                logger.info(f"Created series {series_id} with {len(trips)} trips for park {park_id}")
            else:
                logger.info(f"Created trip {trips[0].trip_id} for park {park_id} on {trips[0].date}")

            return OperationResult.ok(trips)

        except ParkOperationError as e:
            logger.warning(f"Trip creation rejected for park {park_id}: {e.message}")
            return OperationResult.fail(e)

    def _validate_creation(self, spec: TripCreateModel) -> List[date]:
        if spec.seat_count > self.config.max_seat_count:
            raise ValidationError(
                f"Seat count {spec.seat_count} exceeds the maximum of {self.config.max_seat_count}"
            )

        if spec.status not in CREATABLE_STATUSES:
            raise ValidationError(f"Trips cannot be created with status {spec.status.value}")

        if not spec.is_recurring:
            return [spec.date]

        if spec.recurrence_pattern is None:
            raise ValidationError("Recurrence pattern is required for recurring trips")

        dates = expand_occurrences(
            spec.date,
            spec.recurrence_pattern,
            horizon_days=self.config.recurrence_horizon_days,
            max_occurrences=self.config.max_recurrence_occurrences,
        )
        if not dates:
            raise ValidationError("Recurrence pattern does not produce any trip dates")
        return dates

    def _check_driver_free(self, driver_id: str, dates: List[date]) -> None:
        for trip_date in dates:
            conflict = find_driver_conflict(self.store, driver_id, trip_date)
            if conflict is not None:
                raise DriverConflictError(
                    f"Driver {driver_id} already assigned to trip {conflict.trip_id} on {trip_date}",
                    conflict_trip_id=conflict.trip_id,
                )

    def _build_trip(
        self,
        spec: TripCreateModel,
        park_id: str,
        trip_date: date,
        series_id: Optional[str],
        now: datetime,
    ) -> TripModel:
        return TripModel(
            trip_id=new_id("trip"),
            park_id=park_id,
            route_id=spec.route_id,
            date=trip_date,
            unit_time=spec.unit_time,
            seat_count=spec.seat_count,
            confirmed_bookings_count=0,
            max_parcels_per_vehicle=spec.max_parcels_per_vehicle,
            driver_id=spec.driver_id,
            driver_phone=spec.driver_phone,
            price=to_money(spec.price),
            status=spec.status,
            payout_status=PayoutStatus.NOT_SCHEDULED,
            is_recurring=spec.is_recurring,
            recurrence_pattern=spec.recurrence_pattern if spec.is_recurring else None,
            parent_trip_id=series_id,
            created_at=now,
            updated_at=now,
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_trip(
        self,
        trip_id: str,
        updates: Union[TripUpdateModel, Dict[str, Any]],
        apply_scope: Union[ApplyScope, str] = ApplyScope.OCCURRENCE,
        actor: Optional[str] = None,
    ) -> OperationResult[List[TripModel]]:
        """
        Update a trip, its future occurrences, or its whole series.

        Args:
            trip_id: Trip the update starts from
            updates: Fields to change; unset fields are left alone
            apply_scope: ``occurrence``, ``future`` or ``series``
            actor: Who is making the change

        Returns:
            OperationResult[List[TripModel]]: Every updated trip. No trip is
            changed when any target fails validation.
        """
        try:
            updates = parse_input(TripUpdateModel, updates)
            try:
                apply_scope = ApplyScope(apply_scope)
            except ValueError:
                raise ValidationError(f"Unknown apply scope: {apply_scope}")

            changes = updates.model_dump(exclude_unset=True, exclude_none=True)
            if not changes:
                raise ValidationError("No valid modifications provided")
            if "price" in changes:
                changes["price"] = to_money(changes["price"])

            trip = self.store.trips.get(trip_id)
            if trip is None:
                raise NotFoundError(f"Trip {trip_id} not found")

            targets = self._scope_targets(trip, apply_scope)

            async with self.lock_manager.lock_many(t.trip_id for t in targets):
                for target in targets:
                    self._validate_update(target, changes)

                now = self.clock()
                for target in targets:
                    for field_name, value in changes.items():
                        setattr(target, field_name, value)
                    target.updated_at = now
                    self.audit.record(
                        "trip_updated",
                        "Trip",
                        target.trip_id,
                        {"changes": {k: str(v) for k, v in changes.items()}, "scope": apply_scope.value},
                        actor=actor,
                    )

            logger.info(
                f"Updated {len(targets)} trip(s) from {trip_id} ({apply_scope.value}): {sorted(changes)}"
            )
            return OperationResult.ok(targets)

        except ParkOperationError as e:
            logger.warning(f"Trip update rejected for {trip_id}: {e.message}")
            return OperationResult.fail(e)

    def _scope_targets(self, trip: TripModel, scope: ApplyScope) -> List[TripModel]:
        if scope == ApplyScope.OCCURRENCE or not trip.parent_trip_id:
            return [trip]

        series = self.get_series(trip.parent_trip_id)
        if scope == ApplyScope.FUTURE:
            return [t for t in series if t.date >= trip.date]
        return series

    def _validate_update(self, trip: TripModel, changes: Dict[str, Any]) -> None:
        seat_count = changes.get("seat_count")
        if seat_count is not None:
            if seat_count > self.config.max_seat_count:
                raise ValidationError(
                    f"Seat count {seat_count} exceeds the maximum of {self.config.max_seat_count}"
                )
            if seat_count < trip.confirmed_bookings_count:
                raise CapacityError(
                    f"Trip {trip.trip_id} already has {trip.confirmed_bookings_count} seats taken; "
                    f"cannot reduce to {seat_count}"
                )
            highest_taken = self.store.seat_bitmaps.get(trip.trip_id, 0).bit_length()
            if seat_count < highest_taken:
                raise CapacityError(
                    f"Seat {highest_taken} on trip {trip.trip_id} is taken; cannot reduce to {seat_count}"
                )

        price = changes.get("price")
        if price is not None and price != trip.price and self._has_confirmed_bookings(trip.trip_id):
            raise ImmutableFieldError(
                f"Trip {trip.trip_id} has confirmed bookings; price cannot change",
                field_name="price",
            )

    def _has_confirmed_bookings(self, trip_id: str) -> bool:
        return any(
            b.booking_status == BookingStatus.CONFIRMED
            for b in self.store.bookings_for_trip(trip_id)
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def publish_trip(self, trip_id: str, actor: Optional[str] = None) -> OperationResult[TripModel]:
        """
        Move a trip from draft to published.

        Returns:
            OperationResult[TripModel]: The published trip, ``InvalidStateError``
            when the trip is not a draft
        """
        try:
            if trip_id not in self.store.trips:
                raise NotFoundError(f"Trip {trip_id} not found")

            async with self.lock_manager.lock_context(trip_id):
                trip = self.store.trips.get(trip_id)
                if trip is None:
                    raise NotFoundError(f"Trip {trip_id} not found")

                if trip.status == TripStatus.PUBLISHED:
                    raise InvalidStateError(f"Trip {trip_id} is already published")
                if trip.status != TripStatus.DRAFT:
                    raise InvalidStateError(f"Trip {trip_id} is {trip.status.value}; only drafts can be published")

                if trip.driver_id:
                    conflict = find_driver_conflict(self.store, trip.driver_id, trip.date, exclude_trip_id=trip_id)
                    if conflict is not None:
                        raise DriverConflictError(
                            f"Driver {trip.driver_id} already assigned to trip {conflict.trip_id} on {trip.date}",
                            conflict_trip_id=conflict.trip_id,
                        )

                trip.status = TripStatus.PUBLISHED
                trip.updated_at = self.clock()
                self.audit.record("trip_published", "Trip", trip_id, {"date": trip.date.isoformat()}, actor=actor)

            logger.info(f"Published trip {trip_id}")
            return OperationResult.ok(trip)

        except ParkOperationError as e:
            logger.warning(f"Publish rejected for {trip_id}: {e.message}")
            return OperationResult.fail(e)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_trips(self, park_id: Optional[str] = None, trip_date: Optional[date] = None) -> List[TripModel]:
        """Trips matching every given filter, ordered by date and departure time."""
        trips = [
            t for t in self.store.trips.values()
            if (park_id is None or t.park_id == park_id)
            and (trip_date is None or t.date == trip_date)
        ]
        return sorted(trips, key=lambda t: (t.date, t.unit_time))

    def get_trip(self, trip_id: str) -> Optional[TripModel]:
        return self.store.trips.get(trip_id)

    def get_series(self, parent_trip_id: str) -> List[TripModel]:
        """Every occurrence of a recurring series, ordered by date."""
        series = [t for t in self.store.trips.values() if t.parent_trip_id == parent_trip_id]
        return sorted(series, key=lambda t: (t.date, t.unit_time))

    def preview_recurrence(
        self,
        start_date: date,
        pattern: Union[RecurrencePatternModel, Dict[str, Any]],
    ) -> List[date]:
        """Upcoming dates a pattern would produce after ``start_date``."""
        pattern = parse_input(RecurrencePatternModel, pattern)
        return preview_occurrences(
            start_date,
            pattern,
            limit=self.config.preview_limit,
            horizon_days=self.config.preview_horizon_days,
        )
