"""
Parcel registration and assignment to trips.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Union

from ..errors import (
    CapacityError,
    InvalidStateError,
    NotFoundError,
    OperationResult,
    ParkOperationError,
    ValidationError,
    parse_input,
)
from ..models.enums import ParcelStatus
from ..models.parcel import ParcelModel
from ..store import ParkStore, new_id
from ..utils.money import to_money
from .audit_log import AuditLog
from .lock_manager import TripLockManager

logger = logging.getLogger(__name__)


def mask_phone(phone: str, visible: int = 4) -> str:
    """Mask all but the last ``visible`` digits of a phone number."""
    digits = phone.strip()
    if len(digits) <= visible:
        return "*" * len(digits)
    return "*" * (len(digits) - visible) + digits[-visible:]


class ParcelManager:
    """
    Tracks parcels and loads them onto trips.

    Features:
    - Receiver phone masked at registration
    - All-or-nothing assignment bounded by the trip's parcel capacity
    - Capacity override for supervisors
    """

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

    def register_parcel(
        self,
        sender_name: str,
        sender_phone: str,
        receiver_name: str,
        receiver_phone: str,
        fee: Union[Decimal, int, float, str],
        actor: Optional[str] = None,
    ) -> OperationResult[ParcelModel]:
        """Register an unassigned parcel."""
        try:
            fee = to_money(fee)
            if fee < 0:
                raise ValidationError("Parcel fee cannot be negative")
            if not sender_name.strip() or not receiver_name.strip():
                raise ValidationError("Sender and receiver names are required")

            now = self.clock()
            parcel = parse_input(
                ParcelModel,
                {
                    "parcel_id": new_id("parcel"),
                    "sender_name": sender_name.strip(),
                    "sender_phone": sender_phone,
                    "receiver_name": receiver_name.strip(),
                    "receiver_phone_masked": mask_phone(receiver_phone),
                    "fee": fee,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            self.store.parcels[parcel.parcel_id] = parcel
            self.audit.record("parcel_registered", "Parcel", parcel.parcel_id, {"fee": str(fee)}, actor=actor)

            logger.info(f"Registered parcel {parcel.parcel_id} (fee {fee})")
            return OperationResult.ok(parcel)

        except ParkOperationError as e:
            logger.warning(f"Parcel registration rejected: {e.message}")
            return OperationResult.fail(e)

    async def assign_parcels(
        self,
        trip_id: str,
        parcel_ids: List[str],
        override: bool = False,
        actor: Optional[str] = None,
    ) -> OperationResult[List[ParcelModel]]:
        """
        Load parcels onto a trip.

        Args:
            trip_id: Trip carrying the parcels
            parcel_ids: Parcels to assign
            override: Allow exceeding ``max_parcels_per_vehicle``
            actor: Who is assigning

        Returns:
            OperationResult[List[ParcelModel]]: The assigned parcels; nothing
            changes when any id is unknown or capacity would be exceeded
        """
        try:
            if not parcel_ids:
                raise ValidationError("No parcels to assign")
            if trip_id not in self.store.trips:
                raise NotFoundError(f"Trip {trip_id} not found")

            async with self.lock_manager.lock_context(trip_id):
                trip = self.store.trips.get(trip_id)
                if trip is None:
                    raise NotFoundError(f"Trip {trip_id} not found")

                unique_ids = list(dict.fromkeys(parcel_ids))
                missing = [pid for pid in unique_ids if pid not in self.store.parcels]
                if missing:
                    raise NotFoundError(f"Parcels not found: {', '.join(missing)}")

                parcels = [self.store.parcels[pid] for pid in unique_ids]
                delivered = [p.parcel_id for p in parcels if p.status == ParcelStatus.DELIVERED]
                if delivered:
                    raise InvalidStateError(f"Parcels already delivered: {', '.join(delivered)}")

                already_on_trip = sum(
                    1 for p in self.store.parcels.values()
                    if p.assigned_trip_id == trip_id and p.parcel_id not in unique_ids
                )
                load = already_on_trip + len(parcels)
                if load > trip.max_parcels_per_vehicle and not override:
                    raise CapacityError(
                        f"Trip {trip_id} carries at most {trip.max_parcels_per_vehicle} parcels, "
                        f"assignment would load {load}"
                    )

                now = self.clock()
                for parcel in parcels:
                    parcel.assigned_trip_id = trip_id
                    if parcel.status == ParcelStatus.UNASSIGNED:
                        parcel.status = ParcelStatus.ASSIGNED
                    parcel.updated_at = now

                self.audit.record(
                    "parcels_assigned",
                    "Trip",
                    trip_id,
                    {"parcel_ids": unique_ids, "override": override},
                    actor=actor,
                )

            if load > trip.max_parcels_per_vehicle:
                logger.warning(f"Trip {trip_id} loaded over parcel capacity ({load}) by override")
            logger.info(f"Assigned {len(parcels)} parcels to trip {trip_id}")
            return OperationResult.ok(parcels)

        except ParkOperationError as e:
            logger.warning(f"Parcel assignment rejected for trip {trip_id}: {e.message}")
            return OperationResult.fail(e)

    def update_parcel_status(
        self,
        parcel_id: str,
        status: Union[ParcelStatus, str],
        actor: Optional[str] = None,
    ) -> OperationResult[ParcelModel]:
        """Move a parcel to a new status; unassigned parcels cannot be shipped."""
        try:
            parcel = self.store.parcels.get(parcel_id)
            if parcel is None:
                raise NotFoundError(f"Parcel {parcel_id} not found")

            try:
                status = ParcelStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown parcel status {status!r}")

            if status != ParcelStatus.UNASSIGNED and parcel.assigned_trip_id is None:
                raise InvalidStateError(f"Parcel {parcel_id} is not assigned to a trip")

            previous = parcel.status
            parcel.status = status
            if status == ParcelStatus.UNASSIGNED:
                parcel.assigned_trip_id = None
            parcel.updated_at = self.clock()

            self.audit.record(
                "parcel_status_updated",
                "Parcel",
                parcel_id,
                {"from": previous.value, "to": status.value},
                actor=actor,
            )
            logger.info(f"Parcel {parcel_id}: {previous.value} -> {status.value}")
            return OperationResult.ok(parcel)

        except ParkOperationError as e:
            logger.warning(f"Parcel status update rejected for {parcel_id}: {e.message}")
            return OperationResult.fail(e)

    def get_parcels(self, trip_id: Optional[str] = None) -> List[ParcelModel]:
        """Parcels on a trip, or unassigned parcels when no trip is given."""
        parcels = [p for p in self.store.parcels.values() if p.assigned_trip_id == trip_id]
        return sorted(parcels, key=lambda p: p.created_at)
