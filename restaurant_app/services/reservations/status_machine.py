"""
Reservation Status Machine

    pending ──► confirmed ──► completed
       │            │
       └────────────┴──► cancelled

cancelled and completed are terminal. Confirming an already confirmed
reservation is a no-op transition.

Each transition is a single guarded UPDATE ... RETURNING statement: the
guard (allowed source statuses, cancellation cutoff) and the write happen
in one round trip, so two concurrent requests on the same reservation
cannot both act on a stale read.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_app.core.context import RequestContext
from restaurant_app.core.exceptions import InvalidTransition, NotCancellable, NotFound
from restaurant_app.models import Reservation, ReservationStatus
from restaurant_app.services.reservations.policy import DEFAULT_RULES, BusinessRules

logger = logging.getLogger(__name__)


TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
        ReservationStatus.COMPLETED,
    }),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return ReservationStatus(target) in TRANSITIONS.get(ReservationStatus(current), frozenset())


def sources_for(target: ReservationStatus) -> list[ReservationStatus]:
    """Statuses from which target can be reached, in declaration order."""
    return [source for source, targets in TRANSITIONS.items() if target in targets]


class ReservationStatusMachine:
    """Applies status transitions to stored reservations."""

    def __init__(self, session: AsyncSession, rules: BusinessRules = DEFAULT_RULES):
        self.session = session
        self.rules = rules

    async def _transition(
        self,
        reservation_id: int,
        target: ReservationStatus,
        guards: Iterable,
        ctx: RequestContext,
    ) -> Optional[Reservation]:
        stmt = (
            update(Reservation)
            .where(Reservation.id == reservation_id, *guards)
            .values(status=target, updated_at=ctx.now)
            .returning(Reservation)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        reservation = result.scalar_one_or_none()
        await self.session.commit()
        return reservation

    async def _current_status(self, reservation_id: int) -> ReservationStatus:
        status = await self.session.scalar(
            select(Reservation.status).where(Reservation.id == reservation_id)
        )
        if status is None:
            raise NotFound("Reservation", reservation_id)
        return status

    async def confirm(self, reservation_id: int, ctx: RequestContext) -> Reservation:
        """Move a pending (or already confirmed) reservation to confirmed."""
        reservation = await self._transition(
            reservation_id,
            ReservationStatus.CONFIRMED,
            [Reservation.status.in_(sources_for(ReservationStatus.CONFIRMED))],
            ctx,
        )
        if reservation is None:
            current = await self._current_status(reservation_id)
            logger.info(
                f"Rejected confirm of reservation #{reservation_id} "
                f"(status={current.value}, actor={ctx.actor_label})"
            )
            raise InvalidTransition(current.value, ReservationStatus.CONFIRMED.value)

        logger.info(f"Reservation #{reservation_id} confirmed by {ctx.actor_label}")
        return reservation

    async def cancel(self, reservation_id: int, ctx: RequestContext) -> Reservation:
        """
        Cancel a reservation that is still open and outside the cutoff.

        Raises NotCancellable when the reservation is terminal or starts
        within the cancellation cutoff.
        """
        cutoff = ctx.now + self.rules.cancellation_cutoff
        reservation = await self._transition(
            reservation_id,
            ReservationStatus.CANCELLED,
            [
                Reservation.status.in_(sources_for(ReservationStatus.CANCELLED)),
                Reservation.reservation_date > cutoff,
            ],
            ctx,
        )
        if reservation is None:
            current = await self._current_status(reservation_id)
            logger.info(
                f"Rejected cancel of reservation #{reservation_id} "
                f"(status={current.value}, actor={ctx.actor_label})"
            )
            if not can_transition(current, ReservationStatus.CANCELLED):
                raise NotCancellable(f"Reservation is already {current.value}")
            hours = int(self.rules.cancellation_cutoff.total_seconds() // 3600)
            raise NotCancellable(
                f"Reservations can only be cancelled more than {hours} hours in advance"
            )

        logger.info(f"Reservation #{reservation_id} cancelled by {ctx.actor_label}")
        return reservation

    async def complete_past(self, ctx: RequestContext) -> int:
        """Mark every confirmed reservation that has already started as completed."""
        stmt = (
            update(Reservation)
            .where(
                Reservation.status.in_(sources_for(ReservationStatus.COMPLETED)),
                Reservation.reservation_date < ctx.now,
            )
            .values(status=ReservationStatus.COMPLETED, updated_at=ctx.now)
            .returning(Reservation.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        completed_ids = list(result.scalars().all())
        await self.session.commit()

        if completed_ids:
            logger.info(f"Completed {len(completed_ids)} past reservation(s): {completed_ids}")
        return len(completed_ids)
