"""
Structured Validation Results

Validators across the application return a ValidationResult instead of
raising, so several checks can run in sequence and every failing field is
reported back to the client at once.
"""

from dataclasses import dataclass, field
from typing import Iterable


@dataclass(frozen=True)
class FieldError:
    """A single failed rule for one field."""
    field: str
    message: str

    @property
    def full_message(self) -> str:
        """Human readable message prefixed with the field label."""
        label = self.field.replace("_", " ").capitalize()
        return f"{label} {self.message}"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one or more validators."""
    errors: tuple[FieldError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def failure(cls, field_name: str, message: str) -> "ValidationResult":
        return cls(errors=(FieldError(field_name, message),))

    @classmethod
    def combine(cls, results: Iterable["ValidationResult"]) -> "ValidationResult":
        """Merge results in order, keeping every error."""
        errors: list[FieldError] = []
        for result in results:
            errors.extend(result.errors)
        return cls(errors=tuple(errors))

    @property
    def full_messages(self) -> list[str]:
        return [e.full_message for e in self.errors]

    def by_field(self) -> dict[str, list[str]]:
        """Group messages per field, preserving order."""
        grouped: dict[str, list[str]] = {}
        for error in self.errors:
            grouped.setdefault(error.field, []).append(error.message)
        return grouped
