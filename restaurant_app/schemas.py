"""
Pydantic Schemas for Request/Response Validation

Request schemas keep every field optional: presence and business rules are
checked by the service layer so that all failures come back together as
Rails-style full messages ("Customer email can't be blank").
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from restaurant_app.models import MENU_CATEGORIES, MenuItem, Reservation, ReservationStatus
from restaurant_app.services.reservations.policy import (
    BusinessRules,
    can_be_cancelled,
    format_reservation_date,
    localize,
)


# =============================================================================
# RESERVATION REQUEST SCHEMAS
# =============================================================================

class ReservationCreate(BaseModel):
    """Request schema for booking a table."""
    customer_name: Optional[str] = Field(None, examples=["Jane Smith"])
    customer_email: Optional[str] = Field(None, examples=["jane@example.com"])
    customer_phone: Optional[str] = Field(None, examples=["555-123-4567"])
    party_size: Optional[int] = Field(None, examples=[4])
    reservation_date: Optional[datetime] = Field(None, examples=["2025-07-23T19:00:00"])
    special_requests: Optional[str] = Field(None, examples=["Window seat please"])


class ReservationUpdate(ReservationCreate):
    """Partial update; only the fields sent are changed."""
    pass


# =============================================================================
# RESERVATION RESPONSE SCHEMAS
# =============================================================================

class ReservationResponse(BaseModel):
    """A reservation with its computed display fields."""
    id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    party_size: int
    reservation_date: datetime
    special_requests: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime
    formatted_date: str
    can_be_cancelled: bool
    is_pending: bool
    is_confirmed: bool

    @classmethod
    def from_reservation(
        cls,
        reservation: Reservation,
        now: datetime,
        rules: BusinessRules,
    ) -> "ReservationResponse":
        status = ReservationStatus(reservation.status)
        return cls(
            id=reservation.id,
            customer_name=reservation.customer_name,
            customer_email=reservation.customer_email,
            customer_phone=reservation.customer_phone,
            party_size=reservation.party_size,
            reservation_date=localize(reservation.reservation_date, rules.timezone),
            special_requests=reservation.special_requests,
            status=status.value,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
            formatted_date=format_reservation_date(reservation.reservation_date, rules.timezone),
            can_be_cancelled=can_be_cancelled(status, reservation.reservation_date, now, rules),
            is_pending=status == ReservationStatus.PENDING,
            is_confirmed=status == ReservationStatus.CONFIRMED,
        )


class ReservationEnvelope(BaseModel):
    data: ReservationResponse
    message: Optional[str] = None


class ReservationListMeta(BaseModel):
    total_count: int
    page: int
    per_page: int
    statuses: list[str] = Field(default_factory=ReservationStatus.values)


class ReservationListResponse(BaseModel):
    """Response for listing reservations."""
    data: list[ReservationResponse]
    meta: ReservationListMeta


# =============================================================================
# MENU ITEM SCHEMAS
# =============================================================================

class MenuItemCreate(BaseModel):
    """Request schema for adding a dish to the menu."""
    name: Optional[str] = Field(None, examples=["Caesar Salad"])
    description: Optional[str] = Field(None, examples=["Crisp romaine, parmesan, croutons"])
    price: Optional[Decimal] = Field(None, examples=["12.50"])
    category: Optional[str] = Field(None, examples=["Appetizers"])
    available: Optional[bool] = Field(None, examples=[True])


class MenuItemUpdate(MenuItemCreate):
    """Partial update; only the fields sent are changed."""
    pass


class MenuItemResponse(BaseModel):
    """A menu item as shown to clients."""
    id: int
    name: str
    description: str
    price: float
    formatted_price: str
    category: str
    available: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_menu_item(cls, item: MenuItem) -> "MenuItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=float(item.price),
            formatted_price=f"${Decimal(item.price):.2f}",
            category=item.category,
            available=item.available,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class MenuItemEnvelope(BaseModel):
    data: MenuItemResponse
    message: Optional[str] = None


class MenuItemListMeta(BaseModel):
    total_count: int
    page: int
    per_page: int
    categories: list[str] = Field(default_factory=lambda: list(MENU_CATEGORIES))


class MenuItemListResponse(BaseModel):
    """Response for listing menu items."""
    data: list[MenuItemResponse]
    meta: MenuItemListMeta


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    message: Optional[str] = None
    errors: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    notification_service: str
    timestamp: datetime
