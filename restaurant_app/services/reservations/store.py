"""
Reservation Store

CRUD and querying for reservations on top of an AsyncSession.

- create() validates every field, persists the booking as pending and then
  makes a best-effort attempt to send the customer a confirmation.
- update() re-validates only the fields being changed and writes them in a
  single UPDATE ... RETURNING.
- list() filters by status, day, date range and customer email, sorted by
  reservation date and paginated.
- Status changes go through ReservationStatusMachine.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from typing import Any, Mapping, Optional, Union

from dateutil import parser as date_parser
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_app.core.config import Settings, get_settings
from restaurant_app.core.context import RequestContext
from restaurant_app.core.exceptions import InvalidRange, NotFound, ValidationError
from restaurant_app.models import Reservation, ReservationStatus
from restaurant_app.services.notifications.base import (
    BaseNotificationService,
    ReservationNotice,
)
from restaurant_app.services.pagination import page_request
from restaurant_app.services.reservations.policy import (
    BusinessRules,
    format_reservation_date,
    normalize_reservation_date,
    validate_reservation,
)
from restaurant_app.services.reservations.status_machine import ReservationStatusMachine

logger = logging.getLogger(__name__)


# Fields a client may set on create and change on update. status is only
# changed through the confirm/cancel actions.
EDITABLE_FIELDS = (
    "customer_name",
    "customer_email",
    "customer_phone",
    "party_size",
    "reservation_date",
    "special_requests",
)

FilterDate = Union[str, date, None]


@dataclass
class ReservationFilter:
    """Query parameters accepted by ReservationStore.list()."""
    status: Optional[str] = None
    date: FilterDate = None
    start_date: FilterDate = None
    end_date: FilterDate = None
    customer_email: Optional[str] = None
    page: Optional[int] = None
    per_page: Optional[int] = None


@dataclass
class ReservationPage:
    items: list[Reservation] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    per_page: int = 20


def reservation_defaults(now: datetime) -> dict[str, Any]:
    """Values every new reservation starts with."""
    return {
        "status": ReservationStatus.PENDING,
        "created_at": now,
        "updated_at": now,
    }


def parse_filter_date(value: FilterDate, param: str = "date") -> Optional[date]:
    """
    Parse a date filter leniently.

    ISO dates are tried first, then dateutil's parser. Unparseable values
    are logged and treated as absent.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        logger.warning(f"Ignoring malformed {param} filter: {text!r}")
        return None


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """First and last instant of a local calendar day."""
    return (
        datetime.combine(day, time.min, tzinfo=tz),
        datetime.combine(day, time.max, tzinfo=tz),
    )


def _clean_input(values: Mapping[str, Any], tz: tzinfo) -> dict[str, Any]:
    data = {key: values[key] for key in EDITABLE_FIELDS if key in values}
    if "reservation_date" in data:
        data["reservation_date"] = normalize_reservation_date(data["reservation_date"], tz)
    for key in ("customer_name", "customer_email", "customer_phone"):
        if isinstance(data.get(key), str):
            data[key] = data[key].strip()
    if "special_requests" in data and not (data["special_requests"] or "").strip():
        data["special_requests"] = None
    return data


class ReservationStore:
    """Persistence and business operations for reservations."""

    def __init__(
        self,
        session: AsyncSession,
        notifications: Optional[BaseNotificationService] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.notifications = notifications
        self.settings = settings or get_settings()
        self.rules = BusinessRules.from_settings(self.settings)
        self.status_machine = ReservationStatusMachine(session, self.rules)

    # =========================================================================
    # CRUD
    # =========================================================================

    async def get(self, reservation_id: int) -> Reservation:
        reservation = await self.session.get(Reservation, reservation_id)
        if reservation is None:
            raise NotFound("Reservation", reservation_id)
        return reservation

    async def create(self, values: Mapping[str, Any], ctx: RequestContext) -> Reservation:
        """
        Validate and persist a new pending reservation.

        Raises:
            ValidationError: if any field rule fails
        """
        reservation, _ = await self.book(values, ctx)
        return reservation

    async def book(
        self,
        values: Mapping[str, Any],
        ctx: RequestContext,
    ) -> tuple[Reservation, bool]:
        """Create a reservation and report whether its confirmation went out."""
        data = {**reservation_defaults(ctx.now), **_clean_input(values, self.rules.timezone)}

        result = validate_reservation(data, ctx.now, self.rules)
        if not result.ok:
            logger.info(f"Rejected reservation from {ctx.actor_label}: {result.full_messages}")
            raise ValidationError(result)

        reservation = Reservation(**data)
        self.session.add(reservation)
        await self.session.commit()

        logger.info(
            f"Reservation #{reservation.id} created for {reservation.customer_name} "
            f"(party of {reservation.party_size}, actor={ctx.actor_label})"
        )

        return reservation, await self._send_confirmation(reservation)

    async def update(
        self,
        reservation_id: int,
        patch: Mapping[str, Any],
        ctx: RequestContext,
    ) -> Reservation:
        """
        Apply a partial update.

        Raises:
            NotFound: if the reservation does not exist
            ValidationError: if a changed field breaks a rule
        """
        existing = await self.get(reservation_id)

        changes = _clean_input(patch, self.rules.timezone)
        result = validate_reservation(changes, ctx.now, self.rules, partial=True)
        if not result.ok:
            raise ValidationError(result)

        if not changes:
            return existing

        stmt = (
            update(Reservation)
            .where(Reservation.id == reservation_id)
            .values(**changes, updated_at=ctx.now)
            .returning(Reservation)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        updated = (await self.session.execute(stmt)).scalar_one_or_none()
        await self.session.commit()

        if updated is None:
            # Deleted between the lookup and the write
            raise NotFound("Reservation", reservation_id)

        logger.info(
            f"Reservation #{reservation_id} updated by {ctx.actor_label}: {sorted(changes)}"
        )
        return updated

    async def delete(self, reservation_id: int, ctx: RequestContext) -> None:
        stmt = (
            delete(Reservation)
            .where(Reservation.id == reservation_id)
            .returning(Reservation.id)
            .execution_options(synchronize_session="fetch")
        )
        deleted = (await self.session.execute(stmt)).scalar_one_or_none()
        await self.session.commit()

        if deleted is None:
            raise NotFound("Reservation", reservation_id)
        logger.info(f"Reservation #{reservation_id} deleted by {ctx.actor_label}")

    # =========================================================================
    # QUERYING
    # =========================================================================

    def _filter_conditions(self, filters: ReservationFilter) -> list:
        tz = self.rules.timezone
        conditions = []

        if filters.status in ReservationStatus.values():
            conditions.append(Reservation.status == ReservationStatus(filters.status))

        day = parse_filter_date(filters.date, "date")
        if day is not None:
            start, end = day_bounds(day, tz)
            conditions.append(Reservation.reservation_date.between(start, end))

        start_day = parse_filter_date(filters.start_date, "start_date")
        end_day = parse_filter_date(filters.end_date, "end_date")
        if start_day is not None and end_day is not None:
            if start_day > end_day:
                raise InvalidRange()
            conditions.append(
                Reservation.reservation_date.between(
                    day_bounds(start_day, tz)[0],
                    day_bounds(end_day, tz)[1],
                )
            )

        if filters.customer_email:
            conditions.append(Reservation.customer_email == filters.customer_email)

        return conditions

    async def list(self, filters: ReservationFilter, ctx: RequestContext) -> ReservationPage:
        """
        Return one page of reservations matching the filters.

        total_count covers every matching row, not just the returned page.

        Raises:
            InvalidRange: if start_date falls after end_date
        """
        conditions = self._filter_conditions(filters)
        paging = page_request(
            filters.page,
            filters.per_page,
            self.settings.default_per_page,
            self.settings.max_per_page,
        )

        total_count = await self.session.scalar(
            select(func.count()).select_from(Reservation).where(*conditions)
        )
        rows = await self.session.scalars(
            select(Reservation)
            .where(*conditions)
            .order_by(Reservation.reservation_date, Reservation.id)
            .offset(paging.offset)
            .limit(paging.per_page)
        )

        logger.debug(
            f"Listed reservations for {ctx.actor_label}: "
            f"{total_count} match, page {paging.page}"
        )
        return ReservationPage(
            items=list(rows.all()),
            total_count=total_count or 0,
            page=paging.page,
            per_page=paging.per_page,
        )

    # =========================================================================
    # STATUS ACTIONS
    # =========================================================================

    async def confirm_action(self, reservation_id: int, ctx: RequestContext) -> Reservation:
        return await self.status_machine.confirm(reservation_id, ctx)

    async def cancel_action(self, reservation_id: int, ctx: RequestContext) -> Reservation:
        return await self.status_machine.cancel(reservation_id, ctx)

    async def complete_past(self, ctx: RequestContext) -> int:
        return await self.status_machine.complete_past(ctx)

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def _send_confirmation(self, reservation: Reservation) -> bool:
        """Send the booking confirmation. Failures are logged, never raised."""
        if self.notifications is None:
            return False

        notice = ReservationNotice(
            reservation_id=reservation.id,
            customer_name=reservation.customer_name,
            customer_email=reservation.customer_email,
            customer_phone=reservation.customer_phone,
            party_size=reservation.party_size,
            formatted_date=format_reservation_date(
                reservation.reservation_date, self.rules.timezone
            ),
            special_requests=reservation.special_requests,
        )

        try:
            result = await self.notifications.send_reservation_confirmation(notice)
        except Exception:
            logger.exception(f"Confirmation for reservation #{reservation.id} raised")
            return False

        if result.success:
            logger.info(
                f"Confirmation sent for reservation #{reservation.id} via {result.provider}"
            )
        else:
            logger.warning(
                f"Confirmation for reservation #{reservation.id} failed: {result.error_message}"
            )
        return result.success
