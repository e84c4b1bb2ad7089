"""
Reservation services: policy rules, status machine and store.
"""

from restaurant_app.services.reservations.policy import BusinessRules, can_be_cancelled
from restaurant_app.services.reservations.status_machine import ReservationStatusMachine
from restaurant_app.services.reservations.store import (
    ReservationFilter,
    ReservationPage,
    ReservationStore,
)

__all__ = [
    "BusinessRules",
    "can_be_cancelled",
    "ReservationStatusMachine",
    "ReservationFilter",
    "ReservationPage",
    "ReservationStore",
]
