"""
Tests for the append-only audit log.
"""

import pytest

from factories import create_trip, passenger


class TestAuditLog:
    """Test audit recording and lookup."""

    def test_record_defaults_actor(self, ops, scheduler):
        entry = ops.audit.record("trip_created", "Trip", "trip_1", {"route_id": "r"})

        assert entry.performed_by == "admin"
        assert entry.performed_at == scheduler.now()
        assert entry.audit_id.startswith("audit_")

    def test_payload_is_copied(self, ops):
        payload = {"seat_number": 1}
        entry = ops.audit.record("seat_reserved", "Booking", "booking_1", payload)
        payload["seat_number"] = 2

        assert entry.payload == {"seat_number": 1}

    @pytest.mark.asyncio
    async def test_filters_and_newest_first(self, ops, scheduler):
        trip = await create_trip(ops)
        await scheduler.advance(minutes=1)
        await ops.trips.update_trip(trip.trip_id, {"unit_time": "08:00"}, actor="clerk_1")
        hold = (await ops.seats.reserve_seat(trip.trip_id, passenger())).data

        trip_logs = ops.audit.get_logs(entity_type="Trip", entity_id=trip.trip_id)
        assert [e.action for e in trip_logs] == ["trip_updated", "trip_created"]
        assert trip_logs[0].performed_by == "clerk_1"

        booking_logs = ops.audit.get_logs(entity_type="Booking")
        assert [e.entity_id for e in booking_logs] == [hold.booking.booking_id]

        assert len(ops.audit.get_logs()) == 3

    @pytest.mark.asyncio
    async def test_every_mutation_is_logged(self, ops):
        trip = await create_trip(ops, status="draft")
        await ops.trips.publish_trip(trip.trip_id)
        await ops.drivers.assign_driver(trip.trip_id, "driver_musa")
        hold = (await ops.seats.reserve_seat(trip.trip_id, passenger())).data
        await ops.seats.confirm_payment(hold.booking.booking_id)
        await ops.seats.check_in(trip.trip_id, hold.booking.booking_id)

        actions = {e.action for e in ops.audit.get_logs()}
        assert actions == {
            "trip_created",
            "trip_published",
            "driver_assigned",
            "seat_reserved",
            "payment_confirmed",
            "checked_in",
        }

    @pytest.mark.asyncio
    async def test_rejected_operations_are_not_logged(self, ops):
        trip = await create_trip(ops, seat_count=1)
        await ops.seats.reserve_seat(trip.trip_id, passenger("A"))
        before = len(ops.audit.get_logs())

        await ops.seats.reserve_seat(trip.trip_id, passenger("B"))

        assert len(ops.audit.get_logs()) == before
