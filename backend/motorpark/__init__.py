"""
Motor park trips core

Scheduling, seat holds and settlement for a motor park transport operator:
1. Trips, single or recurring, with scoped updates
2. Time-boxed seat holds confirmed by payment
3. Driver assignment without same-day conflicts
4. Parcels and per-trip revenue split between driver and park

Every mutation is written to an append-only audit log.
"""

__version__ = "0.1.0"
