"""
Composition root for the motor park trips core.

``create_park_operations()`` wires one store, scheduler, lock manager and
audit log into every service. All services read time from the scheduler so a
``ManualHoldScheduler`` drives the whole core from a virtual clock.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .services.audit_log import AuditLog
from .services.driver_assignment import DriverAssignmentService
from .services.finance_calculator import FinanceCalculator
from .services.hold_scheduler import AsyncioHoldScheduler, HoldScheduler
from .services.lock_manager import TripLockManager
from .services.parcel_manager import ParcelManager
from .services.seat_hold_engine import SeatHoldEngine
from .services.trip_registry import TripRegistry
from .store import ParkStore
from .utils.config import ParkConfig, get_config

logger = logging.getLogger(__name__)


@dataclass
class ParkOperations:
    """Every service of the trips core, sharing one store."""
    config: ParkConfig
    store: ParkStore
    scheduler: HoldScheduler
    locks: TripLockManager
    audit: AuditLog
    trips: TripRegistry
    seats: SeatHoldEngine
    drivers: DriverAssignmentService
    parcels: ParcelManager
    finance: FinanceCalculator

    def shutdown(self) -> None:
        """Cancel pending hold releases."""
        pending = len(self.scheduler.pending_keys())
        self.scheduler.shutdown()
        logger.info(f"Trips core shut down ({pending} pending hold releases dropped)")


def create_park_operations(
    config: Optional[ParkConfig] = None,
    scheduler: Optional[HoldScheduler] = None,
    store: Optional[ParkStore] = None,
) -> ParkOperations:
    """
    Build the trips core.

    Args:
        config: Settings (default: ``get_config()``)
        scheduler: Hold release scheduler (default: ``AsyncioHoldScheduler``)
        store: Existing store to operate on (default: a fresh one)

    Returns:
        ParkOperations: Wired services
    """
    config = config or get_config()
    scheduler = scheduler or AsyncioHoldScheduler()
    store = store if store is not None else ParkStore()
    clock = scheduler.now

    locks = TripLockManager(timeout_seconds=config.lock_timeout_seconds)
    audit = AuditLog(store, clock=clock, default_actor=config.default_actor)

    return ParkOperations(
        config=config,
        store=store,
        scheduler=scheduler,
        locks=locks,
        audit=audit,
        trips=TripRegistry(store, locks, audit, config, clock=clock),
        seats=SeatHoldEngine(store, locks, scheduler, audit, config),
        drivers=DriverAssignmentService(store, locks, audit, clock=clock),
        parcels=ParcelManager(store, locks, audit, clock=clock),
        finance=FinanceCalculator(store, audit, config, clock=clock),
    )
