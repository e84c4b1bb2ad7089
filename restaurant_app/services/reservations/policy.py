"""
Reservation Policy

Pure business rules for reservations. Nothing in this module touches the
database, the clock or the network: callers pass "now" and the rules in,
and every validator returns a ValidationResult instead of raising.

Rules:
    - A reservation must start strictly in the future.
    - It must start inside business hours, [opening_hour, closing_hour)
      in the restaurant's local time zone (5 PM - 10 PM by default).
    - A customer may cancel only a pending reservation that is more than
      the cancellation cutoff (2 hours by default) away.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Mapping, Optional

from restaurant_app.core.validation import ValidationResult
from restaurant_app.models import ReservationStatus

OPENING_HOUR = 17  # 5 PM
CLOSING_HOUR = 22  # 10 PM
CANCELLATION_CUTOFF = timedelta(hours=2)
MAX_PARTY_SIZE = 12

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
PHONE_MAX_LENGTH = 30

EMAIL_REGEXP = re.compile(
    r"\A[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*\Z"
)

BLANK = "can't be blank"


@dataclass(frozen=True)
class BusinessRules:
    """The tunable numbers behind the policy."""
    opening_hour: int = OPENING_HOUR
    closing_hour: int = CLOSING_HOUR
    cancellation_cutoff: timedelta = CANCELLATION_CUTOFF
    max_party_size: int = MAX_PARTY_SIZE
    timezone: tzinfo = field(default=timezone.utc)

    @classmethod
    def from_settings(cls, settings) -> "BusinessRules":
        return cls(
            opening_hour=settings.opening_hour,
            closing_hour=settings.closing_hour,
            cancellation_cutoff=timedelta(hours=settings.cancellation_cutoff_hours),
            max_party_size=settings.max_party_size,
            timezone=settings.timezone,
        )


DEFAULT_RULES = BusinessRules()


# =============================================================================
# TIME HELPERS
# =============================================================================

def localize(value: datetime, tz: tzinfo) -> datetime:
    """Interpret naive datetimes in the restaurant zone; convert aware ones to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def format_reservation_date(value: datetime, tz: tzinfo = timezone.utc) -> str:
    """e.g. 'July 23, 2025 at 07:00 PM'"""
    return localize(value, tz).strftime("%B %d, %Y at %I:%M %p")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# =============================================================================
# DATE RULES
# =============================================================================

def validate_future_date(
    date: datetime,
    now: datetime,
    rules: BusinessRules = DEFAULT_RULES,
) -> ValidationResult:
    """Fails unless the reservation starts strictly after now."""
    if localize(date, rules.timezone) <= localize(now, rules.timezone):
        return ValidationResult.failure("reservation_date", "must be in the future")
    return ValidationResult.success()


def validate_business_hours(
    date: datetime,
    rules: BusinessRules = DEFAULT_RULES,
) -> ValidationResult:
    """Fails if the local start hour is before opening or at/after closing."""
    hour = localize(date, rules.timezone).hour
    if hour < rules.opening_hour or hour >= rules.closing_hour:
        return ValidationResult.failure(
            "reservation_date",
            f"must be between {rules.opening_hour}:00 and {rules.closing_hour}:00",
        )
    return ValidationResult.success()


def is_outside_cancellation_cutoff(
    reservation_date: datetime,
    now: datetime,
    rules: BusinessRules = DEFAULT_RULES,
) -> bool:
    return localize(reservation_date, rules.timezone) > (
        localize(now, rules.timezone) + rules.cancellation_cutoff
    )


def can_be_cancelled(
    status: str,
    reservation_date: datetime,
    now: datetime,
    rules: BusinessRules = DEFAULT_RULES,
) -> bool:
    """
    Whether the customer may still cancel this booking themselves.

    Only pending reservations qualify, and only while the reservation is
    more than the cancellation cutoff away.
    """
    return (
        status == ReservationStatus.PENDING
        and is_outside_cancellation_cutoff(reservation_date, now, rules)
    )


def validate_reservation_date(
    value: Any,
    now: datetime,
    rules: BusinessRules = DEFAULT_RULES,
) -> ValidationResult:
    if _is_blank(value):
        return ValidationResult.failure("reservation_date", BLANK)
    if not isinstance(value, datetime):
        return ValidationResult.failure("reservation_date", "is not a valid date and time")
    return ValidationResult.combine([
        validate_future_date(value, now, rules),
        validate_business_hours(value, rules),
    ])


# =============================================================================
# FIELD RULES
# =============================================================================

def validate_customer_name(value: Any) -> ValidationResult:
    if _is_blank(value):
        return ValidationResult.failure("customer_name", BLANK)
    length = len(str(value))
    if length < NAME_MIN_LENGTH:
        return ValidationResult.failure(
            "customer_name", f"is too short (minimum is {NAME_MIN_LENGTH} characters)"
        )
    if length > NAME_MAX_LENGTH:
        return ValidationResult.failure(
            "customer_name", f"is too long (maximum is {NAME_MAX_LENGTH} characters)"
        )
    return ValidationResult.success()


def validate_customer_email(value: Any) -> ValidationResult:
    if _is_blank(value):
        return ValidationResult.failure("customer_email", BLANK)
    if isinstance(value, str) and len(value) > EMAIL_MAX_LENGTH:
        return ValidationResult.failure(
            "customer_email", f"is too long (maximum is {EMAIL_MAX_LENGTH} characters)"
        )
    if not isinstance(value, str) or not EMAIL_REGEXP.match(value):
        return ValidationResult.failure("customer_email", "is invalid")
    return ValidationResult.success()


def validate_customer_phone(value: Any) -> ValidationResult:
    if _is_blank(value):
        return ValidationResult.failure("customer_phone", BLANK)
    if len(str(value)) > PHONE_MAX_LENGTH:
        return ValidationResult.failure(
            "customer_phone", f"is too long (maximum is {PHONE_MAX_LENGTH} characters)"
        )
    return ValidationResult.success()


def validate_party_size(value: Any, rules: BusinessRules = DEFAULT_RULES) -> ValidationResult:
    if _is_blank(value):
        return ValidationResult.failure("party_size", BLANK)
    if isinstance(value, bool) or not isinstance(value, int):
        return ValidationResult.failure("party_size", "is not a number")
    if value <= 0:
        return ValidationResult.failure("party_size", "must be greater than 0")
    if value > rules.max_party_size:
        return ValidationResult.failure(
            "party_size", f"must be less than or equal to {rules.max_party_size}"
        )
    return ValidationResult.success()


def validate_status(value: Any) -> ValidationResult:
    if _is_blank(value):
        return ValidationResult.failure("status", BLANK)
    if value not in ReservationStatus.values():
        return ValidationResult.failure("status", "is not included in the list")
    return ValidationResult.success()


def validate_reservation(
    values: Mapping[str, Any],
    now: datetime,
    rules: BusinessRules = DEFAULT_RULES,
    partial: bool = False,
) -> ValidationResult:
    """
    Run every field rule in sequence and collect all failures.

    With partial=True only the fields present in values are checked, which
    is how updates re-validate just what changed.
    """
    checks: dict[str, Callable[[Any], ValidationResult]] = {
        "customer_name": validate_customer_name,
        "customer_email": validate_customer_email,
        "customer_phone": validate_customer_phone,
        "party_size": lambda v: validate_party_size(v, rules),
        "reservation_date": lambda v: validate_reservation_date(v, now, rules),
        "status": validate_status,
    }

    results = []
    for field_name, check in checks.items():
        if partial and field_name not in values:
            continue
        results.append(check(values.get(field_name)))
    return ValidationResult.combine(results)


def normalize_reservation_date(value: Any, tz: tzinfo) -> Optional[Any]:
    """
    Coerce ISO strings to datetimes and attach the restaurant zone.

    Anything unparseable is returned unchanged so validation can report it.
    """
    if isinstance(value, str) and value.strip():
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return value
    if isinstance(value, datetime):
        return localize(value, tz)
    return value
