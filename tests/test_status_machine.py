"""
Tests for reservation status transitions.
"""
from datetime import timedelta

import pytest

from restaurant_app.core.context import RequestContext
from restaurant_app.core.exceptions import InvalidTransition, NotCancellable, NotFound
from restaurant_app.models import ReservationStatus
from restaurant_app.services.reservations.status_machine import ReservationStatusMachine, can_transition


class TestTransitionTable:
    """Tests for the static transition rules."""

    @pytest.mark.parametrize("current,target,allowed", [
        ("pending", "confirmed", True),
        ("pending", "cancelled", True),
        ("pending", "completed", False),
        ("confirmed", "confirmed", True),
        ("confirmed", "completed", True),
        ("cancelled", "confirmed", False),
        ("completed", "cancelled", False),
    ])
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed


class TestConfirm:
    """Tests for ReservationStatusMachine.confirm."""

    async def test_pending_becomes_confirmed(self, session, insert_reservation, ctx):
        reservation = await insert_reservation()
        later = RequestContext(actor="host", now=ctx.now + timedelta(minutes=5))

        confirmed = await ReservationStatusMachine(session).confirm(reservation.id, later)

        assert confirmed.status == ReservationStatus.CONFIRMED
        assert confirmed.updated_at == later.now

    async def test_confirm_is_idempotent(self, session, insert_reservation, ctx):
        reservation = await insert_reservation(status=ReservationStatus.CONFIRMED)
        confirmed = await ReservationStatusMachine(session).confirm(reservation.id, ctx)
        assert confirmed.status == ReservationStatus.CONFIRMED

    @pytest.mark.parametrize("status", [ReservationStatus.CANCELLED, ReservationStatus.COMPLETED])
    async def test_terminal_reservation_cannot_be_confirmed(self, session, insert_reservation, ctx, status):
        reservation = await insert_reservation(status=status)

        with pytest.raises(InvalidTransition) as exc_info:
            await ReservationStatusMachine(session).confirm(reservation.id, ctx)

        assert exc_info.value.current == status.value
        await session.refresh(reservation)
        assert reservation.status == status

    async def test_unknown_id(self, session, ctx):
        with pytest.raises(NotFound):
            await ReservationStatusMachine(session).confirm(999, ctx)


class TestCancel:
    """Tests for ReservationStatusMachine.cancel."""

    @pytest.mark.parametrize("status", [ReservationStatus.PENDING, ReservationStatus.CONFIRMED])
    async def test_cancel_outside_cutoff(self, session, insert_reservation, ctx, status):
        reservation = await insert_reservation(
            status=status, reservation_date=ctx.now + timedelta(hours=3)
        )
        cancelled = await ReservationStatusMachine(session).cancel(reservation.id, ctx)
        assert cancelled.status == ReservationStatus.CANCELLED

    async def test_cancel_inside_cutoff(self, session, insert_reservation, ctx):
        reservation = await insert_reservation(reservation_date=ctx.now + timedelta(minutes=30))

        with pytest.raises(NotCancellable) as exc_info:
            await ReservationStatusMachine(session).cancel(reservation.id, ctx)

        assert exc_info.value.message == "Reservations can only be cancelled more than 2 hours in advance"
        await session.refresh(reservation)
        assert reservation.status == ReservationStatus.PENDING

    async def test_cancel_twice(self, session, insert_reservation, ctx):
        reservation = await insert_reservation(reservation_date=ctx.now + timedelta(days=2))
        machine = ReservationStatusMachine(session)
        await machine.cancel(reservation.id, ctx)

        with pytest.raises(NotCancellable) as exc_info:
            await machine.cancel(reservation.id, ctx)

        assert exc_info.value.message == "Reservation is already cancelled"

    async def test_unknown_id(self, session, ctx):
        with pytest.raises(NotFound):
            await ReservationStatusMachine(session).cancel(999, ctx)


class TestCompletePast:
    """Tests for ReservationStatusMachine.complete_past."""

    async def test_only_past_confirmed_are_completed(self, session, insert_reservation, ctx):
        past_confirmed = await insert_reservation(
            status=ReservationStatus.CONFIRMED, reservation_date=ctx.now - timedelta(hours=1)
        )
        past_pending = await insert_reservation(reservation_date=ctx.now - timedelta(hours=1))
        future_confirmed = await insert_reservation(
            status=ReservationStatus.CONFIRMED, reservation_date=ctx.now + timedelta(hours=1)
        )

        assert await ReservationStatusMachine(session).complete_past(ctx) == 1

        for reservation in (past_confirmed, past_pending, future_confirmed):
            await session.refresh(reservation)
        assert past_confirmed.status == ReservationStatus.COMPLETED
        assert past_pending.status == ReservationStatus.PENDING
        assert future_confirmed.status == ReservationStatus.CONFIRMED
