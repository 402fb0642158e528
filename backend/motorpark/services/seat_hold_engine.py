"""
Seat hold engine: time-boxed seat reservations and booking confirmation.

This module implements the booking state machine for trips:
- Bitmap-based seat tracking per trip, lowest free seat assigned first
- Per-trip locking so reserve, release and confirm never interleave
- A cancellable deferred release per hold, scheduled through ``HoldScheduler``
- Explicit expiry check at confirmation time, so a late payment loses to an
  expired hold even when the release timer has not fired yet
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from ..errors import (
    CapacityError,
    HoldExpiredError,
    InvalidStateError,
    LockTimeoutError,
    NotFoundError,
    OperationResult,
    ParkOperationError,
    TripNotBookableError,
    ValidationError,
    parse_input,
)
from ..models.booking import BookingModel, PassengerDetailsModel, SeatHoldModel
from ..models.enums import BOOKABLE_TRIP_STATUSES, BookingStatus, PaymentStatus
from ..models.trip import TripModel
from ..store import ParkStore, new_id
from ..utils.config import ParkConfig
from .audit_log import AuditLog
from .hold_scheduler import HoldScheduler
from .lock_manager import TripLockManager

logger = logging.getLogger(__name__)

RELEASE_EXPIRED = "hold_expired"
RELEASE_MANUAL = "released"
INACTIVE_BOOKING_STATUSES = (BookingStatus.CANCELLED, BookingStatus.REFUNDED)


class SeatHoldEngine:
    """
    Seat hold engine using per-trip seat bitmaps and locks.

    The engine owns booking records and is the only writer of a trip's
    ``confirmed_bookings_count``. A hold ends in exactly one of two ways:
    confirmation, or release (timer, sweep, or caller). Whichever runs first
    under the trip lock wins; the other finds the booking no longer pending
    and does nothing.
    """

    def __init__(
        self,
        store: ParkStore,
        lock_manager: TripLockManager,
        scheduler: HoldScheduler,
        audit: AuditLog,
        config: ParkConfig,
    ):
        """
        Initialize the seat hold engine.

        Args:
            store: Shared in-memory store
            lock_manager: Per-trip lock manager
            scheduler: Deferred release scheduler; also the engine's clock
            audit: Audit log every mutation is recorded to
            config: Default hold duration
        """
        self.store = store
        self.lock_manager = lock_manager
        self.scheduler = scheduler
        self.audit = audit
        self.config = config

        logger.info(
            f"SeatHoldEngine initialized (hold duration {config.hold_duration_minutes} min)"
        )

    # ------------------------------------------------------------------
    # Seat bitmap
    # ------------------------------------------------------------------

    def is_seat_taken(self, trip_id: str, seat_number: int) -> bool:
        bitmap = self.store.seat_bitmaps.get(trip_id, 0)
        return bool(bitmap >> (seat_number - 1) & 1)

    def _mark_seat(self, trip_id: str, seat_number: int, taken: bool) -> None:
        bitmap = self.store.seat_bitmaps.get(trip_id, 0)
        bit = 1 << (seat_number - 1)
        self.store.seat_bitmaps[trip_id] = bitmap | bit if taken else bitmap & ~bit

    def _lowest_free_seat(self, trip: TripModel) -> Optional[int]:
        for seat_number in range(1, trip.seat_count + 1):
            if not self.is_seat_taken(trip.trip_id, seat_number):
                return seat_number
        return None

    # ------------------------------------------------------------------
    # Reserve
    # ------------------------------------------------------------------

    async def reserve_seat(
        self,
        trip_id: str,
        passenger: Union[PassengerDetailsModel, Dict[str, Any]],
        hold_duration_minutes: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> OperationResult[SeatHoldModel]:
        """
        Hold a seat on a trip pending payment.

        The seat is taken immediately: the trip's count goes up before payment
        so no one else can claim it while the hold lasts.

        Args:
            trip_id: Trip to book
            passenger: Passenger and next-of-kin details
            hold_duration_minutes: Hold length (default from config)
            actor: Who is making the reservation

        Returns:
            OperationResult[SeatHoldModel]: The pending booking and its hold token
        """
        try:
            passenger = parse_input(PassengerDetailsModel, passenger)
            duration = self.config.hold_duration_minutes if hold_duration_minutes is None else hold_duration_minutes
            if duration <= 0:
                raise ValidationError("Hold duration must be positive")
            if duration > self.config.max_hold_duration_minutes:
                raise ValidationError(
                    f"Hold duration {duration} exceeds the maximum of {self.config.max_hold_duration_minutes} minutes"
                )

            if trip_id not in self.store.trips:
                raise NotFoundError(f"Trip {trip_id} not found")

            async with self.lock_manager.lock_context(trip_id):
                trip = self.store.trips.get(trip_id)
                if trip is None:
                    raise NotFoundError(f"Trip {trip_id} not found")

                if trip.status not in BOOKABLE_TRIP_STATUSES:
                    raise TripNotBookableError(
                        f"Trip {trip_id} is {trip.status.value}; only published or live trips take bookings"
                    )

                if trip.confirmed_bookings_count >= trip.seat_count:
                    raise CapacityError(f"No seats available on trip {trip_id}")

                seat_number = self._lowest_free_seat(trip)
                if seat_number is None:
                    raise CapacityError(f"No seats available on trip {trip_id}")

                now = self.scheduler.now()
                expires_at = now + timedelta(minutes=duration)
                hold_token = uuid.uuid4().hex

                booking = BookingModel(
                    booking_id=new_id("booking"),
                    trip_id=trip_id,
                    **passenger.model_dump(),
                    seat_number=seat_number,
                    amount_paid=trip.price,
                    payment_status=PaymentStatus.PENDING,
                    booking_status=BookingStatus.PENDING,
                    hold_expires_at=expires_at,
                    hold_token=hold_token,
                    created_at=now,
                    updated_at=now,
                )

                self.store.bookings[booking.booking_id] = booking
                self._mark_seat(trip_id, seat_number, True)
                trip.confirmed_bookings_count += 1
                trip.updated_at = now

                booking_id = booking.booking_id
                self.scheduler.schedule(
                    booking_id,
                    duration * 60,
                    lambda: self._on_hold_expired(booking_id),
                )

                self.audit.record(
                    "seat_reserved",
                    "Booking",
                    booking_id,
                    {
                        "trip_id": trip_id,
                        "seat_number": seat_number,
                        "hold_expires_at": expires_at.isoformat(),
                    },
                    actor=actor,
                )

            logger.info(
                f"Reserved seat {seat_number} on trip {trip_id} as {booking_id} "
                f"(expires at {expires_at})"
            )
            return OperationResult.ok(SeatHoldModel(booking=booking, hold_token=hold_token, expires_at=expires_at))

        except ParkOperationError as e:
            logger.warning(f"Seat reservation rejected for trip {trip_id}: {e.message}")
            return OperationResult.fail(e)

    # ------------------------------------------------------------------
    # Confirm
    # ------------------------------------------------------------------

    async def confirm_payment(
        self,
        booking_id: str,
        actor: Optional[str] = None,
    ) -> OperationResult[BookingModel]:
        """
        Confirm payment for a held seat.

        The hold expiry is compared with the clock here rather than trusting
        the release timer to have fired. An expired hold is released on the
        spot and the confirmation fails.

        Returns:
            OperationResult[BookingModel]: The confirmed booking, or
            ``HoldExpiredError`` when the hold lapsed first
        """
        try:
            booking = self._get_existing_booking(booking_id)

            async with self.lock_manager.lock_context(booking.trip_id):
                booking = self._get_existing_booking(booking_id)

                if booking.booking_status != BookingStatus.PENDING:
                    raise InvalidStateError(
                        f"Booking {booking_id} is {booking.booking_status.value}; only pending bookings can be confirmed"
                    )

                now = self.scheduler.now()
                if booking.is_hold_expired(now):
                    self._release_locked(booking, RELEASE_EXPIRED, actor)
                    raise HoldExpiredError(f"Hold for booking {booking_id} expired at {booking.hold_expires_at}")

                self.scheduler.cancel(booking_id)
                booking.payment_status = PaymentStatus.CONFIRMED
                booking.booking_status = BookingStatus.CONFIRMED
                booking.hold_expires_at = None
                booking.updated_at = now

                self.audit.record(
                    "payment_confirmed",
                    "Booking",
                    booking_id,
                    {"trip_id": booking.trip_id, "amount_paid": str(booking.amount_paid)},
                    actor=actor,
                )

            logger.info(f"Confirmed booking {booking_id} (seat {booking.seat_number} on trip {booking.trip_id})")
            return OperationResult.ok(booking)

        except ParkOperationError as e:
            logger.warning(f"Payment confirmation rejected for {booking_id}: {e.message}")
            return OperationResult.fail(e)

    def _get_existing_booking(self, booking_id: str) -> BookingModel:
        booking = self.store.bookings.get(booking_id)
        if booking is not None:
            return booking

        released = self.store.released_holds.get(booking_id)
        reason = released[0] if released else None
        if reason == RELEASE_EXPIRED:
            raise HoldExpiredError(f"Hold for booking {booking_id} expired and the seat was released")
        if reason == RELEASE_MANUAL:
            raise InvalidStateError(f"Hold for booking {booking_id} was released")
        raise NotFoundError(f"Booking {booking_id} not found")

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def _release_locked(self, booking: BookingModel, reason: str, actor: Optional[str] = None) -> None:
        """Remove a pending booking and free its seat. Caller holds the trip lock."""
        self.scheduler.cancel(booking.booking_id)
        self.store.bookings.pop(booking.booking_id, None)
        self._prune_released_holds()
        self.store.released_holds[booking.booking_id] = (reason, self.scheduler.now())
        self._mark_seat(booking.trip_id, booking.seat_number, False)

        trip = self.store.trips.get(booking.trip_id)
        if trip is not None:
            trip.confirmed_bookings_count = max(0, trip.confirmed_bookings_count - 1)
            trip.updated_at = self.scheduler.now()

        self.audit.record(
            "hold_released",
            "Booking",
            booking.booking_id,
            {"trip_id": booking.trip_id, "seat_number": booking.seat_number, "reason": reason},
            actor=actor,
        )
        logger.info(
            f"Released seat {booking.seat_number} on trip {booking.trip_id} "
            f"from booking {booking.booking_id} ({reason})"
        )

    def _prune_released_holds(self) -> None:
        """Forget released holds older than the retention window."""
        cutoff = self.scheduler.now() - timedelta(minutes=self.config.released_hold_retention_minutes)
        released = self.store.released_holds
        # Entries are kept in release order
        while released:
            booking_id = next(iter(released))
            if released[booking_id][1] >= cutoff:
                break
            del released[booking_id]

    async def _on_hold_expired(self, booking_id: str) -> None:
        """Release callback fired by the scheduler when a hold runs out."""
        booking = self.store.bookings.get(booking_id)
        if booking is None or booking.booking_status != BookingStatus.PENDING:
            return

        try:
            async with self.lock_manager.lock_context(booking.trip_id):
                booking = self.store.bookings.get(booking_id)
                if booking is None or booking.booking_status != BookingStatus.PENDING:
                    return
                self._release_locked(booking, RELEASE_EXPIRED)
        except LockTimeoutError:
            # Try again later; confirmation still rejects the expired hold meanwhile
            logger.warning(f"Could not lock trip to release {booking_id}; retrying")
            self.scheduler.schedule(
                booking_id,
                self.config.lock_timeout_seconds,
                lambda: self._on_hold_expired(booking_id),
            )

    async def release_hold(self, booking_id: str, actor: Optional[str] = None) -> OperationResult[str]:
        """
        Release a pending hold before it expires.

        Returns:
            OperationResult[str]: The released booking id
        """
        try:
            booking = self._get_existing_booking(booking_id)
            async with self.lock_manager.lock_context(booking.trip_id):
                booking = self._get_existing_booking(booking_id)
                if booking.booking_status != BookingStatus.PENDING:
                    raise InvalidStateError(
                        f"Booking {booking_id} is {booking.booking_status.value}; only pending holds can be released"
                    )
                self._release_locked(booking, RELEASE_MANUAL, actor)
            return OperationResult.ok(booking_id)

        except ParkOperationError as e:
            logger.warning(f"Hold release rejected for {booking_id}: {e.message}")
            return OperationResult.fail(e)

    async def release_expired_holds(self, trip_id: Optional[str] = None) -> List[str]:
        """
        Release every pending hold whose expiry has passed.

        Covers holds whose timers were lost or have not fired yet.

        Args:
            trip_id: Restrict the sweep to one trip

        Returns:
            List[str]: Booking ids that were released
        """
        now = self.scheduler.now()
        expired_by_trip: Dict[str, List[str]] = {}
        for booking in self.store.bookings.values():
            if trip_id is not None and booking.trip_id != trip_id:
                continue
            if booking.is_hold_expired(now):
                expired_by_trip.setdefault(booking.trip_id, []).append(booking.booking_id)

        released: List[str] = []
        for expired_trip_id, booking_ids in expired_by_trip.items():
            async with self.lock_manager.lock_context(expired_trip_id):
                for booking_id in booking_ids:
                    booking = self.store.bookings.get(booking_id)
                    if booking is not None and booking.is_hold_expired(now):
                        self._release_locked(booking, RELEASE_EXPIRED)
                        released.append(booking_id)

        if released:
            logger.info(f"Released {len(released)} expired holds")
        return released

    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------

    async def check_in(
        self,
        trip_id: str,
        booking_id: str,
        actor: Optional[str] = None,
    ) -> OperationResult[BookingModel]:
        """
        Mark a passenger as checked in for a trip.

        Returns:
            OperationResult[BookingModel]: The checked-in booking, or
            ``InvalidStateError`` for cancelled or refunded bookings
        """
        try:
            if trip_id not in self.store.trips:
                raise NotFoundError(f"Trip {trip_id} not found")

            booking = self.store.bookings.get(booking_id)
            if booking is None or booking.trip_id != trip_id:
                raise NotFoundError(f"Booking {booking_id} not found on trip {trip_id}")

            if booking.booking_status in INACTIVE_BOOKING_STATUSES:
                raise InvalidStateError(f"Booking {booking_id} is {booking.booking_status.value}")

            booking.checked_in = True
            booking.updated_at = self.scheduler.now()
            self.audit.record("checked_in", "Booking", booking_id, {"trip_id": trip_id}, actor=actor)

            logger.info(f"Checked in booking {booking_id} on trip {trip_id}")
            return OperationResult.ok(booking)

        except ParkOperationError as e:
            logger.warning(f"Check-in rejected for {booking_id}: {e.message}")
            return OperationResult.fail(e)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> Optional[BookingModel]:
        return self.store.bookings.get(booking_id)

    def get_bookings(self, trip_id: Optional[str] = None) -> List[BookingModel]:
        """Bookings for one trip (or all), ordered by seat number."""
        if trip_id is None:
            bookings = list(self.store.bookings.values())
        else:
            bookings = self.store.bookings_for_trip(trip_id)
        return sorted(bookings, key=lambda b: (b.trip_id, b.seat_number))

    def get_seat_statistics(self, trip_id: str) -> Dict[str, Any]:
        """
        Seat usage for a trip.

        Returns:
            Dict[str, Any]: Total, available, held and confirmed seats plus
            utilization percentage; ``{"error": ...}`` for unknown trips
        """
        trip = self.store.trips.get(trip_id)
        if trip is None:
            return {"error": "Trip not found"}

        now = self.scheduler.now()
        bookings = self.store.bookings_for_trip(trip_id)
        held = sum(1 for b in bookings if b.booking_status == BookingStatus.PENDING)
        expired_holds = sum(1 for b in bookings if b.is_hold_expired(now))
        confirmed = sum(1 for b in bookings if b.booking_status == BookingStatus.CONFIRMED)
        taken = trip.confirmed_bookings_count

        return {
            "total_seats": trip.seat_count,
            "available_seats": trip.seat_count - taken,
            "taken_seats": taken,
            "active_holds": held - expired_holds,
            "expired_holds": expired_holds,
            "confirmed_bookings": confirmed,
            "utilization_percentage": round((taken / trip.seat_count) * 100, 2) if trip.seat_count > 0 else 0,
        }
