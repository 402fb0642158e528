"""
Tests for trip creation, scoped updates and publishing.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from motorpark.models import ApplyScope, PayoutStatus, TripStatus

from factories import PARK_ID, TRIP_DATE, create_trip, passenger, trip_spec


def weekly_series(**overrides):
    """Mondays for four weeks."""
    spec = trip_spec(
        status="draft",
        is_recurring=True,
        recurrence_pattern={"type": "custom", "days_of_week": [1], "end_date": date(2026, 3, 23)},
    )
    spec.update(overrides)
    return spec


class TestCreateTrip:
    """Test single and recurring trip creation."""

    @pytest.mark.asyncio
    async def test_single_trip(self, ops):
        result = await ops.trips.create_trip(trip_spec(), park_id=PARK_ID)

        assert result.success
        assert len(result.data) == 1
        trip = result.data[0]
        assert trip.confirmed_bookings_count == 0
        assert trip.payout_status == PayoutStatus.NOT_SCHEDULED
        assert trip.price == Decimal("5000.00")
        assert trip.parent_trip_id is None
        assert ops.trips.get_trip(trip.trip_id) is trip

    @pytest.mark.asyncio
    async def test_recurring_series_shares_series_id(self, ops):
        """Each generated date gets its own trip in one series."""
        result = await ops.trips.create_trip(weekly_series(), park_id=PARK_ID)

        assert result.success
        trips = result.data
        assert [t.date for t in trips] == [date(2026, 3, 2), date(2026, 3, 9), date(2026, 3, 16), date(2026, 3, 23)]
        series_ids = {t.parent_trip_id for t in trips}
        assert len(series_ids) == 1 and None not in series_ids
        assert all(t.confirmed_bookings_count == 0 for t in trips)
        assert ops.trips.get_series(trips[0].parent_trip_id) == trips

    @pytest.mark.asyncio
    async def test_seat_ceiling(self, ops):
        result = await ops.trips.create_trip(trip_spec(seat_count=51), park_id=PARK_ID)

        assert result.reason == "validation_error"
        assert ops.store.trips == {}

    @pytest.mark.asyncio
    async def test_recurring_without_pattern(self, ops):
        result = await ops.trips.create_trip(trip_spec(is_recurring=True), park_id=PARK_ID)
        assert result.reason == "validation_error"

    @pytest.mark.asyncio
    async def test_pattern_without_dates(self, ops):
        spec = weekly_series(recurrence_pattern={"type": "custom", "days_of_week": []})
        result = await ops.trips.create_trip(spec, park_id=PARK_ID)

        assert result.reason == "validation_error"
        assert ops.store.trips == {}

    @pytest.mark.asyncio
    async def test_cannot_create_live_trip(self, ops):
        result = await ops.trips.create_trip(trip_spec(status="live"), park_id=PARK_ID)
        assert result.reason == "validation_error"

    @pytest.mark.asyncio
    async def test_malformed_input(self, ops):
        result = await ops.trips.create_trip({"route_id": "r"}, park_id=PARK_ID)
        assert result.reason == "validation_error"

    @pytest.mark.asyncio
    async def test_creation_is_audited(self, ops):
        trip = await create_trip(ops)
        logs = ops.audit.get_logs("Trip", trip.trip_id)

        assert [entry.action for entry in logs] == ["trip_created"]
        assert logs[0].performed_by == "admin"


class TestUpdateTrip:
    """Test scoped updates and their guards."""

    @pytest.mark.asyncio
    async def test_update_single_occurrence(self, ops):
        trips = (await ops.trips.create_trip(weekly_series(), park_id=PARK_ID)).data

        result = await ops.trips.update_trip(trips[1].trip_id, {"unit_time": "09:00"})

        assert result.success
        assert [t.unit_time for t in trips] == ["07:30", "09:00", "07:30", "07:30"]

    @pytest.mark.asyncio
    async def test_update_future_occurrences(self, ops):
        trips = (await ops.trips.create_trip(weekly_series(), park_id=PARK_ID)).data

        result = await ops.trips.update_trip(trips[2].trip_id, {"price": "5500"}, apply_scope="future")

        assert result.success
        assert len(result.data) == 2
        assert [t.price for t in trips] == [Decimal("5000.00")] * 2 + [Decimal("5500.00")] * 2

    @pytest.mark.asyncio
    async def test_update_whole_series(self, ops):
        trips = (await ops.trips.create_trip(weekly_series(), park_id=PARK_ID)).data

        result = await ops.trips.update_trip(trips[3].trip_id, {"seat_count": 18}, apply_scope=ApplyScope.SERIES)

        assert result.success
        assert all(t.seat_count == 18 for t in trips)

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, ops):
        trip = await create_trip(ops)
        result = await ops.trips.update_trip(trip.trip_id, {})
        assert result.reason == "validation_error"

    @pytest.mark.asyncio
    async def test_unknown_trip(self, ops):
        result = await ops.trips.update_trip("trip_missing", {"unit_time": "09:00"})
        assert result.reason == "not_found"

    @pytest.mark.asyncio
    async def test_seat_ceiling_on_update(self, ops):
        trip = await create_trip(ops)
        result = await ops.trips.update_trip(trip.trip_id, {"seat_count": 60})

        assert result.reason == "validation_error"
        assert trip.seat_count == 14

    @pytest.mark.asyncio
    async def test_cannot_shrink_below_taken_seats(self, ops):
        """Three seats held: capacity cannot drop to two."""
        trip = await create_trip(ops, seat_count=4)
        for i in range(3):
            assert (await ops.seats.reserve_seat(trip.trip_id, passenger(f"P{i}"))).success

        result = await ops.trips.update_trip(trip.trip_id, {"seat_count": 2})
        assert result.reason == "capacity_error"
        assert trip.seat_count == 4

        assert (await ops.trips.update_trip(trip.trip_id, {"seat_count": 3})).success

    @pytest.mark.asyncio
    async def test_cannot_shrink_past_highest_taken_seat(self, ops):
        """Seat 3 stays taken after seat 1 is released."""
        trip = await create_trip(ops, seat_count=4)
        holds = [(await ops.seats.reserve_seat(trip.trip_id, passenger(f"P{i}"))).data for i in range(3)]
        await ops.seats.release_hold(holds[0].booking.booking_id)
        await ops.seats.release_hold(holds[1].booking.booking_id)

        result = await ops.trips.update_trip(trip.trip_id, {"seat_count": 2})
        assert result.reason == "capacity_error"

    @pytest.mark.asyncio
    async def test_price_immutable_after_confirmation(self, ops):
        trip = await create_trip(ops)
        hold = (await ops.seats.reserve_seat(trip.trip_id, passenger())).data
        await ops.seats.confirm_payment(hold.booking.booking_id)

        result = await ops.trips.update_trip(trip.trip_id, {"price": "6000"})

        assert result.reason == "immutable_field"
        assert result.error.field_name == "price"
        assert trip.price == Decimal("5000.00")
        assert (await ops.trips.update_trip(trip.trip_id, {"price": "5000"})).success

    @pytest.mark.asyncio
    async def test_price_change_allowed_with_only_holds(self, ops):
        trip = await create_trip(ops)
        await ops.seats.reserve_seat(trip.trip_id, passenger())

        result = await ops.trips.update_trip(trip.trip_id, {"price": "6000"})
        assert result.success

    @pytest.mark.asyncio
    async def test_series_update_is_all_or_nothing(self, ops):
        """One confirmed occurrence blocks a price change for the whole series."""
        trips = (await ops.trips.create_trip(weekly_series(status="published"), park_id=PARK_ID)).data
        hold = (await ops.seats.reserve_seat(trips[3].trip_id, passenger())).data
        await ops.seats.confirm_payment(hold.booking.booking_id)

        result = await ops.trips.update_trip(trips[0].trip_id, {"price": "7000"}, apply_scope="series")

        assert result.reason == "immutable_field"
        assert all(t.price == Decimal("5000.00") for t in trips)


class TestPublishAndQuery:
    """Test publishing and trip lookup."""

    @pytest.mark.asyncio
    async def test_publish_draft(self, ops):
        trip = await create_trip(ops, status="draft")

        result = await ops.trips.publish_trip(trip.trip_id)

        assert result.success
        assert trip.status == TripStatus.PUBLISHED
        again = await ops.trips.publish_trip(trip.trip_id)
        assert again.reason == "invalid_state"

    @pytest.mark.asyncio
    async def test_publish_unknown_trip(self, ops):
        assert (await ops.trips.publish_trip("trip_missing")).reason == "not_found"
        assert ops.locks.get_metrics()["tracked_locks"] == 0

    @pytest.mark.asyncio
    async def test_get_trips_filters_and_order(self, ops):
        late = await create_trip(ops, unit_time="15:00")
        early = await create_trip(ops, unit_time="06:00")
        tomorrow = await create_trip(ops, date=TRIP_DATE + timedelta(days=1))
        other = (await ops.trips.create_trip(trip_spec(), park_id="park_jibowu")).data[0]

        assert ops.trips.get_trips(park_id=PARK_ID) == [early, late, tomorrow]
        assert ops.trips.get_trips(park_id=PARK_ID, trip_date=TRIP_DATE) == [early, late]
        assert len(ops.trips.get_trips()) == 4
        assert ops.trips.get_trips(park_id="park_jibowu") == [other]

    def test_preview_recurrence(self, ops):
        dates = ops.trips.preview_recurrence(TRIP_DATE, {"type": "weekdays"})

        assert len(dates) == 7
        assert dates[0] == date(2026, 3, 3)
        assert date(2026, 3, 7) not in dates


class TestCreateTripDateBounds:
    """Series near the end of the calendar are created without errors."""

    @pytest.mark.asyncio
    async def test_series_ending_at_last_representable_date(self, ops):
        spec = trip_spec(
            date=date(9999, 12, 1),
            is_recurring=True,
            recurrence_pattern={"type": "daily"},
        )

        result = await ops.trips.create_trip(spec, park_id=PARK_ID)

        assert result.success
        assert len(result.data) == 31
        assert result.data[-1].date == date.max

    @pytest.mark.asyncio
    async def test_empty_custom_pattern_with_distant_end(self, ops):
        spec = trip_spec(
            is_recurring=True,
            recurrence_pattern={"type": "custom", "days_of_week": [], "end_date": date(9000, 1, 1)},
        )

        result = await ops.trips.create_trip(spec, park_id=PARK_ID)

        assert result.reason == "validation_error"
