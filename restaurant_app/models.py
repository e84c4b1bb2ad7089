"""
SQLAlchemy Database Models

Two tables:
- reservations: table bookings with a controlled status lifecycle
- menu_items: the restaurant's menu
"""

import enum

from sqlalchemy import Boolean, Column, Enum, Integer, Numeric, String, Text

from restaurant_app.database import Base, UTCDateTime


class ReservationStatus(str, enum.Enum):
    """Reservation status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


# Categories offered in the menu editor dropdown
MENU_CATEGORIES = ["Appetizers", "Main Courses", "Desserts", "Beverages"]


class Reservation(Base):
    """
    A table booking.

    Timestamps are set by the service layer from the request clock rather
    than by the database, so validation and persistence agree on "now".
    """
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(30), nullable=False)

    # =========================================================================
    # BOOKING DETAILS
    # =========================================================================
    party_size = Column(Integer, nullable=False)
    reservation_date = Column(UTCDateTime(), nullable=False, index=True)
    special_requests = Column(Text, nullable=True)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(
        Enum(
            ReservationStatus,
            name="reservation_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=ReservationStatus.PENDING,
        nullable=False,
        index=True
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(UTCDateTime(), nullable=False)
    updated_at = Column(UTCDateTime(), nullable=False)

    def __repr__(self):
        return f"<Reservation #{self.id} - {self.customer_name} - {self.status.value}>"


class MenuItem(Base):
    """A dish or drink on the menu."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    available = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime(), nullable=False)
    updated_at = Column(UTCDateTime(), nullable=False)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.category}>"
