"""
Finance calculator: per-trip revenue split between driver and park.

Passenger revenue splits 80/20 driver/park, parcel revenue 50/50 (shares are
configurable). Manual adjustments are signed: a positive amount moves money
to the driver, a negative one to the park.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Union

from ..errors import NotFoundError, OperationResult, ParkOperationError, ValidationError, parse_input
from ..models.enums import BILLABLE_PARCEL_STATUSES, BookingStatus
from ..models.finance import AdjustmentModel, TripFinanceModel
from ..store import ParkStore, new_id
from ..utils.config import ParkConfig
from ..utils.money import split, to_money, total
from .audit_log import AuditLog

logger = logging.getLogger(__name__)


class FinanceCalculator:
    """Computes trip finance on demand and records manual adjustments."""

    def __init__(
        self,
        store: ParkStore,
        audit: AuditLog,
        config: ParkConfig,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.audit = audit
        self.config = config
        self.clock = clock

    def get_adjustments(self, trip_id: str) -> List[AdjustmentModel]:
        return [a for a in self.store.adjustments if a.trip_id == trip_id]

    def get_trip_finance(self, trip_id: str) -> OperationResult[TripFinanceModel]:
        """
        Compute the revenue split for a trip.

        Only confirmed bookings count as passenger revenue; parcels count once
        they are assigned, in transit or delivered.

        Returns:
            OperationResult[TripFinanceModel]: The split, or ``NotFoundError``
        """
        trip = self.store.trips.get(trip_id)
        if trip is None:
            logger.warning(f"Finance requested for unknown trip {trip_id}")
            return OperationResult.fail(NotFoundError(f"Trip {trip_id} not found"))

        passenger_revenue = total(
            b.amount_paid
            for b in self.store.bookings_for_trip(trip_id)
            if b.booking_status == BookingStatus.CONFIRMED
        )
        parcel_revenue = total(
            p.fee
            for p in self.store.parcels.values()
            if p.assigned_trip_id == trip_id and p.status in BILLABLE_PARCEL_STATUSES
        )

        driver_passenger = split(passenger_revenue, self.config.passenger_driver_share)
        park_passenger = passenger_revenue - driver_passenger
        driver_parcel = split(parcel_revenue, self.config.parcel_driver_share)
        park_parcel = parcel_revenue - driver_parcel

        adjustments = self.get_adjustments(trip_id)
        adjustment_total = total(a.amount for a in adjustments)

        finance = TripFinanceModel(
            trip_id=trip_id,
            passenger_revenue=passenger_revenue,
            parcel_revenue=parcel_revenue,
            total_revenue=to_money(passenger_revenue + parcel_revenue),
            driver_passenger_split=driver_passenger,
            park_passenger_split=park_passenger,
            driver_parcel_split=driver_parcel,
            park_parcel_split=park_parcel,
            adjustment_total=adjustment_total,
            driver_total=to_money(driver_passenger + driver_parcel + adjustment_total),
            park_total=to_money(park_passenger + park_parcel - adjustment_total),
            adjustments=adjustments,
            payout_status=trip.payout_status,
        )
        return OperationResult.ok(finance)

    def add_adjustment(
        self,
        trip_id: str,
        amount: Union[Decimal, int, float, str],
        reason: str,
        actor: Optional[str] = None,
    ) -> OperationResult[AdjustmentModel]:
        """
        Record a signed manual adjustment against a trip.

        Args:
            trip_id: Trip the adjustment applies to
            amount: Positive favours the driver, negative the park
            reason: Free-text justification (required)
            actor: Who made the adjustment

        Returns:
            OperationResult[AdjustmentModel]: The stored adjustment
        """
        try:
            if trip_id not in self.store.trips:
                raise NotFoundError(f"Trip {trip_id} not found")
            if not reason or not reason.strip():
                raise ValidationError("Adjustment reason is required")

            adjustment = parse_input(
                AdjustmentModel,
                {
                    "adjustment_id": new_id("adj"),
                    "trip_id": trip_id,
                    "amount": to_money(amount),
                    "reason": reason.strip(),
                    "created_by": actor or self.audit.default_actor,
                    "created_at": self.clock(),
                },
            )
            self.store.adjustments.append(adjustment)
            self.audit.record(
                "adjustment_added",
                "Trip",
                trip_id,
                {"adjustment_id": adjustment.adjustment_id, "amount": str(adjustment.amount), "reason": adjustment.reason},
                actor=actor,
            )

            logger.info(f"Added adjustment {adjustment.amount} to trip {trip_id}")
            return OperationResult.ok(adjustment)

        except ParkOperationError as e:
            logger.warning(f"Adjustment rejected for trip {trip_id}: {e.message}")
            return OperationResult.fail(e)
