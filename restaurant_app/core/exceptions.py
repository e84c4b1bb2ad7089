"""
Domain Exceptions

Raised by the service layer and translated into JSON error envelopes by the
exception handlers registered in restaurant_app.main.
"""

from typing import Optional

from restaurant_app.core.validation import ValidationResult


class RestaurantAppError(Exception):
    """Base class for errors reported back to API clients."""

    status_code: int = 400
    error: str = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.error
        super().__init__(self.message)

    @property
    def errors(self) -> list[str]:
        return [self.message]

    @property
    def details(self) -> dict[str, list[str]]:
        return {}


class ValidationError(RestaurantAppError):
    """One or more fields failed validation."""

    status_code = 422
    error = "Validation failed"

    def __init__(self, result: ValidationResult, message: Optional[str] = None):
        self.result = result
        super().__init__(message or "; ".join(result.full_messages) or self.error)

    @property
    def errors(self) -> list[str]:
        return self.result.full_messages

    @property
    def details(self) -> dict[str, list[str]]:
        return self.result.by_field()


class NotFound(RestaurantAppError):
    """No record exists for the requested id."""

    status_code = 404
    error = "Record not found"

    def __init__(self, resource: str, record_id: object):
        self.resource = resource
        self.record_id = record_id
        super().__init__(f"Couldn't find {resource} with id={record_id}")


class NotCancellable(RestaurantAppError):
    """The reservation is inside the cancellation cutoff or already closed."""

    status_code = 422
    error = "This reservation cannot be cancelled"


class InvalidTransition(RestaurantAppError):
    """The requested status change is not allowed from the current status."""

    status_code = 422
    error = "Invalid status transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move reservation from {current} to {target}")


class InvalidRange(RestaurantAppError):
    """A date range filter whose start is after its end."""

    status_code = 400
    error = "Start date must be before end date"
