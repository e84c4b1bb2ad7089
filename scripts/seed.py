"""
Seed Script

Resets the menu and reservation tables and loads sample data.
Run from project root: python scripts/seed.py
"""

import asyncio
import os
import sys
from datetime import datetime, time, timedelta
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete

from restaurant_app.core.config import get_settings, setup_logging
from restaurant_app.core.context import RequestContext
from restaurant_app.database import dispose_engine, get_session_maker, init_db
from restaurant_app.models import MenuItem, Reservation
from restaurant_app.services.menu import MenuItemStore
from restaurant_app.services.reservations import ReservationStore

MENU = [
    ("Bruschetta Trio", "Three varieties of our signature bruschetta with fresh tomatoes, herbs, and cheese", "12.99", "Appetizers", True),
    ("Calamari Fritti", "Crispy fried squid rings served with marinara sauce and lemon", "14.99", "Appetizers", True),
    ("Caesar Salad", "Crisp romaine lettuce with parmesan cheese, croutons, and our house Caesar dressing", "11.99", "Appetizers", True),
    ("Spaghetti Carbonara", "Classic Roman pasta with eggs, cheese, pancetta, and black pepper", "18.99", "Main Courses", True),
    ("Grilled Salmon", "Fresh Atlantic salmon with seasonal vegetables and lemon butter sauce", "24.99", "Main Courses", True),
    ("Chicken Parmigiana", "Breaded chicken breast topped with marinara sauce and melted mozzarella", "21.99", "Main Courses", True),
    ("Tiramisu", "Classic Italian dessert with coffee-soaked ladyfingers and mascarpone cream", "8.99", "Desserts", True),
    ("Chocolate Lava Cake", "Warm chocolate cake with a molten center, served with vanilla ice cream", "9.99", "Desserts", False),
    ("House Wine", "Selection of red and white wines from local vineyards", "7.99", "Beverages", True),
    ("Craft Beer", "Rotating selection of local craft beers on tap", "5.99", "Beverages", True),
]

# (name, email, phone, party, days ahead, local start time, requests, confirm?)
RESERVATIONS = [
    ("John Smith", "john@example.com", "(555) 123-4567", 4, 2, time(19, 0), "Window table please", False),
    ("Sarah Johnson", "sarah@example.com", "(555) 987-6543", 2, 3, time(20, 30), "Anniversary dinner", True),
    ("Mike Wilson", "mike@example.com", "(555) 456-7890", 6, 1, time(18, 0), "Birthday celebration", False),
]


async def seed() -> None:
    settings = get_settings()
    await init_db()
    ctx = RequestContext(actor="seed")
    today = ctx.now.astimezone(settings.timezone).date()

    async with get_session_maker()() as session:
        await session.execute(delete(Reservation))
        await session.execute(delete(MenuItem))
        await session.commit()

        menu = MenuItemStore(session, settings)
        for name, description, price, category, available in MENU:
            await menu.create(
                {
                    "name": name,
                    "description": description,
                    "price": Decimal(price),
                    "category": category,
                    "available": available,
                },
                ctx,
            )
        print(f"Created {len(MENU)} menu items")

        # No notification service: seeding should not email anyone
        reservations = ReservationStore(session, settings=settings)
        for name, email, phone, party, days, start, requests, confirm in RESERVATIONS:
            reservation = await reservations.create(
                {
                    "customer_name": name,
                    "customer_email": email,
                    "customer_phone": phone,
                    "party_size": party,
                    "reservation_date": datetime.combine(
                        today + timedelta(days=days), start, tzinfo=settings.timezone
                    ),
                    "special_requests": requests,
                },
                ctx,
            )
            if confirm:
                await reservations.confirm_action(reservation.id, ctx)
        print(f"Created {len(RESERVATIONS)} reservations")

    await dispose_engine()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
