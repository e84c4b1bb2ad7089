"""
Tests for ReservationStore: creation, updates, listing and actions.
"""
from datetime import datetime, timedelta, timezone

import pytest

from restaurant_app.core.context import RequestContext
from restaurant_app.core.exceptions import InvalidRange, NotCancellable, NotFound, ValidationError
from restaurant_app.models import ReservationStatus
from restaurant_app.services.reservations.store import (
    ReservationFilter,
    ReservationStore,
    parse_filter_date,
)


@pytest.fixture
def store(session, notifier):
    return ReservationStore(session, notifier)


class TestCreate:
    """Tests for ReservationStore.create."""

    async def test_create_defaults_to_pending(self, store, reservation_values, ctx):
        reservation = await store.create(reservation_values(), ctx)

        assert reservation.id is not None
        assert reservation.status == ReservationStatus.PENDING
        assert reservation.created_at == ctx.now
        assert reservation.updated_at == ctx.now

    async def test_client_cannot_choose_status(self, store, reservation_values, ctx):
        reservation = await store.create(reservation_values(status="confirmed"), ctx)
        assert reservation.status == ReservationStatus.PENDING

    async def test_past_date_rejected(self, store, reservation_values, ctx):
        with pytest.raises(ValidationError) as exc_info:
            await store.create(
                reservation_values(reservation_date=(ctx.now - timedelta(days=1)).replace(hour=19)),
                ctx,
            )
        assert "Reservation date must be in the future" in exc_info.value.errors

    @pytest.mark.parametrize("hour", [11, 16, 22])
    async def test_outside_business_hours_rejected(self, store, reservation_values, ctx, hour):
        date = (ctx.now + timedelta(days=2)).replace(hour=hour)
        with pytest.raises(ValidationError) as exc_info:
            await store.create(reservation_values(reservation_date=date), ctx)
        assert exc_info.value.details == {
            "reservation_date": ["must be between 17:00 and 22:00"]
        }

    async def test_missing_fields_reported_together(self, store, ctx):
        with pytest.raises(ValidationError) as exc_info:
            await store.create({}, ctx)
        assert set(exc_info.value.details) == {
            "customer_name", "customer_email", "customer_phone", "party_size", "reservation_date",
        }

    async def test_overlong_phone_rejected_before_insert(self, store, reservation_values, ctx):
        with pytest.raises(ValidationError) as exc_info:
            await store.create(reservation_values(customer_phone="5" * 40), ctx)
        assert exc_info.value.details == {
            "customer_phone": ["is too long (maximum is 30 characters)"]
        }
        assert (await store.list(ReservationFilter(), ctx)).total_count == 0

    async def test_iso_string_date_accepted(self, store, reservation_values, ctx):
        reservation = await store.create(
            reservation_values(reservation_date="2025-07-22T19:30:00"), ctx
        )
        assert reservation.reservation_date == datetime(2025, 7, 22, 19, 30, tzinfo=timezone.utc)

    async def test_create_then_get_round_trip(self, store, reservation_values, ctx):
        values = reservation_values()
        created = await store.create(values, ctx)
        store.session.expunge_all()

        fetched = await store.get(created.id)

        for field_name, value in values.items():
            assert getattr(fetched, field_name) == value

    async def test_confirmation_sent(self, store, notifier, reservation_values, ctx):
        reservation = await store.create(reservation_values(), ctx)

        assert notifier.emails[0]["to"] == "jane@example.com"
        assert f"#{reservation.id}" in notifier.emails[0]["text"]
        assert "July 22, 2025 at 07:00 PM" in notifier.emails[0]["text"]
        assert notifier.sms[0]["to"] == "555-123-4567"

    async def test_failed_notification_does_not_fail_create(self, store, notifier, reservation_values, ctx):
        notifier.fail = True
        reservation = await store.create(reservation_values(), ctx)
        assert reservation.id is not None

    async def test_raising_notification_does_not_fail_create(self, store, notifier, reservation_values, ctx):
        notifier.error = RuntimeError("smtp down")
        reservation = await store.create(reservation_values(), ctx)
        assert (await store.get(reservation.id)).customer_name == "Jane Smith"

    async def test_works_without_notification_service(self, session, reservation_values, ctx):
        reservation = await ReservationStore(session).create(reservation_values(), ctx)
        assert reservation.id is not None

    @pytest.mark.parametrize("fail,sent", [(False, True), (True, False)])
    async def test_book_reports_confirmation_outcome(
        self, store, notifier, reservation_values, ctx, fail, sent
    ):
        notifier.fail = fail
        reservation, confirmation_sent = await store.book(reservation_values(), ctx)
        assert reservation.id is not None
        assert confirmation_sent is sent


class TestUpdateDelete:
    """Tests for ReservationStore.update and delete."""

    async def test_update_changes_only_given_fields(self, store, reservation_values, ctx):
        reservation = await store.create(reservation_values(), ctx)
        later = RequestContext(actor="host", now=ctx.now + timedelta(hours=1))

        updated = await store.update(reservation.id, {"party_size": 6}, later)

        assert updated.party_size == 6
        assert updated.customer_name == "Jane Smith"
        assert updated.updated_at == later.now
        assert updated.created_at == ctx.now

    async def test_update_past_date_rejected(self, store, reservation_values, ctx):
        reservation = await store.create(reservation_values(), ctx)
        with pytest.raises(ValidationError):
            await store.update(
                reservation.id,
                {"reservation_date": (ctx.now - timedelta(days=1)).replace(hour=19)},
                ctx,
            )

    async def test_update_ignores_status(self, store, reservation_values, ctx):
        reservation = await store.create(reservation_values(), ctx)
        updated = await store.update(reservation.id, {"status": "completed"}, ctx)
        assert updated.status == ReservationStatus.PENDING

    async def test_update_unknown_id(self, store, ctx):
        with pytest.raises(NotFound):
            await store.update(404, {"party_size": 2}, ctx)

    async def test_delete(self, store, reservation_values, ctx):
        reservation = await store.create(reservation_values(), ctx)
        await store.delete(reservation.id, ctx)
        with pytest.raises(NotFound):
            await store.get(reservation.id)

    async def test_delete_unknown_id(self, store, ctx):
        with pytest.raises(NotFound):
            await store.delete(404, ctx)


class TestList:
    """Tests for ReservationStore.list."""

    async def test_sorted_by_date(self, store, insert_reservation, ctx):
        later = await insert_reservation(reservation_date=ctx.now + timedelta(days=3))
        sooner = await insert_reservation(reservation_date=ctx.now + timedelta(days=1))

        page = await store.list(ReservationFilter(), ctx)

        assert [r.id for r in page.items] == [sooner.id, later.id]
        assert page.total_count == 2

    async def test_status_filter(self, store, insert_reservation, ctx):
        await insert_reservation()
        confirmed = await insert_reservation(status=ReservationStatus.CONFIRMED)

        page = await store.list(ReservationFilter(status="confirmed"), ctx)
        assert [r.id for r in page.items] == [confirmed.id]

    async def test_unknown_status_filter_is_ignored(self, store, insert_reservation, ctx):
        await insert_reservation()
        page = await store.list(ReservationFilter(status="seated"), ctx)
        assert page.total_count == 1

    async def test_date_filter_covers_whole_day(self, store, insert_reservation, ctx):
        day = datetime(2025, 7, 25, tzinfo=timezone.utc)
        early = await insert_reservation(reservation_date=day)
        late = await insert_reservation(reservation_date=day.replace(hour=23, minute=59, second=59))
        await insert_reservation(reservation_date=day + timedelta(days=1))

        page = await store.list(ReservationFilter(date="2025-07-25"), ctx)
        assert {r.id for r in page.items} == {early.id, late.id}

    async def test_date_range_is_inclusive(self, store, insert_reservation, ctx):
        await insert_reservation(reservation_date=datetime(2025, 7, 21, 19, tzinfo=timezone.utc))
        await insert_reservation(reservation_date=datetime(2025, 7, 23, 21, tzinfo=timezone.utc))
        await insert_reservation(reservation_date=datetime(2025, 7, 24, 19, tzinfo=timezone.utc))

        page = await store.list(
            ReservationFilter(start_date="2025-07-21", end_date="2025-07-23"), ctx
        )
        assert page.total_count == 2

    async def test_reversed_range(self, store, ctx):
        with pytest.raises(InvalidRange):
            await store.list(ReservationFilter(start_date="2025-06-10", end_date="2025-06-01"), ctx)

    async def test_range_needs_both_ends(self, store, insert_reservation, ctx):
        await insert_reservation()
        page = await store.list(ReservationFilter(start_date="2030-01-01"), ctx)
        assert page.total_count == 1

    async def test_malformed_date_ignored(self, store, insert_reservation, ctx, caplog):
        await insert_reservation()
        page = await store.list(ReservationFilter(date="not-a-date"), ctx)
        assert page.total_count == 1
        assert "Ignoring malformed date filter" in caplog.text

    async def test_customer_email_filter(self, store, insert_reservation, ctx):
        await insert_reservation()
        mine = await insert_reservation(customer_email="me@example.com")
        page = await store.list(ReservationFilter(customer_email="me@example.com"), ctx)
        assert [r.id for r in page.items] == [mine.id]

    async def test_per_page_clamped_to_100(self, store, insert_reservation, ctx):
        for i in range(105):
            await insert_reservation(reservation_date=ctx.now + timedelta(hours=i + 1))

        page = await store.list(ReservationFilter(per_page=200), ctx)

        assert page.per_page == 100
        assert len(page.items) == 100
        assert page.total_count == 105

    async def test_second_page(self, store, insert_reservation, ctx):
        for i in range(5):
            await insert_reservation(reservation_date=ctx.now + timedelta(hours=i + 1))

        page = await store.list(ReservationFilter(page=2, per_page=2), ctx)
        assert len(page.items) == 2
        assert page.page == 2
        assert page.total_count == 5

    async def test_page_below_one_clamps(self, store, insert_reservation, ctx):
        await insert_reservation()
        page = await store.list(ReservationFilter(page=-3, per_page=0), ctx)
        assert page.page == 1
        assert page.per_page == 1
        assert len(page.items) == 1

    async def test_page_beyond_any_offset_is_empty(self, store, insert_reservation, ctx):
        await insert_reservation()

        page = await store.list(ReservationFilter(page=10**20), ctx)

        assert page.items == []
        assert page.total_count == 1
        assert (page.page - 1) * page.per_page <= 2**63 - 1


class TestActions:
    """End-to-end confirm/cancel flows through the store."""

    async def test_book_confirm_then_cancel(self, store, ctx):
        tomorrow_evening = (ctx.now + timedelta(days=1)).replace(hour=19, minute=0)
        reservation = await store.create(
            {
                "customer_name": "Sam Lee",
                "customer_email": "sam@example.com",
                "customer_phone": "555-222-3333",
                "party_size": 4,
                "reservation_date": tomorrow_evening,
            },
            ctx,
        )
        assert reservation.status == ReservationStatus.PENDING

        confirmed = await store.confirm_action(reservation.id, ctx)
        assert confirmed.status == ReservationStatus.CONFIRMED

        three_hours_before = RequestContext(actor="guest", now=tomorrow_evening - timedelta(hours=3))
        cancelled = await store.cancel_action(reservation.id, three_hours_before)
        assert cancelled.status == ReservationStatus.CANCELLED

    async def test_cancel_within_cutoff(self, store, reservation_values):
        evening = RequestContext(now=datetime(2025, 7, 20, 18, 0, tzinfo=timezone.utc))
        reservation = await store.create(
            reservation_values(reservation_date=evening.now + timedelta(minutes=30)), evening
        )

        with pytest.raises(NotCancellable):
            await store.cancel_action(reservation.id, evening)

    async def test_complete_past(self, store, insert_reservation, ctx):
        await insert_reservation(
            status=ReservationStatus.CONFIRMED, reservation_date=ctx.now - timedelta(hours=2)
        )
        assert await store.complete_past(ctx) == 1
        assert await store.complete_past(ctx) == 0


class TestParseFilterDate:
    """Tests for lenient filter date parsing."""

    def test_iso(self):
        assert parse_filter_date("2025-06-10").isoformat() == "2025-06-10"

    def test_human_format(self):
        assert parse_filter_date("June 10, 2025").isoformat() == "2025-06-10"

    @pytest.mark.parametrize("value", [None, "", "   ", "gibberish"])
    def test_absent_or_bad(self, value):
        assert parse_filter_date(value) is None
