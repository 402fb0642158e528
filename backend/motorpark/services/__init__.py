"""
Business logic services for the motor park trips core.

This module contains the service classes for trip scheduling, seat holds,
driver assignment, parcels, finance and auditing.
"""

from .audit_log import AuditLog
from .calendar_expander import expand_occurrences, preview_occurrences
from .driver_assignment import DriverAssignmentService, find_driver_conflict
from .finance_calculator import FinanceCalculator
from .hold_scheduler import AsyncioHoldScheduler, HoldScheduler, ManualHoldScheduler
from .lock_manager import LockContentionMetrics, LockInfo, TripLockManager
from .parcel_manager import ParcelManager
from .seat_hold_engine import SeatHoldEngine
from .trip_registry import TripRegistry

__all__ = [
    'AuditLog',
    'expand_occurrences',
    'preview_occurrences',
    'DriverAssignmentService',
    'find_driver_conflict',
    'FinanceCalculator',
    'HoldScheduler',
    'AsyncioHoldScheduler',
    'ManualHoldScheduler',
    'TripLockManager',
    'LockInfo',
    'LockContentionMetrics',
    'ParcelManager',
    'SeatHoldEngine',
    'TripRegistry',
]
