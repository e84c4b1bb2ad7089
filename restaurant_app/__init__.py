"""
                RestaurantApp Backend

Menu and table reservation API for a single restaurant: menu item CRUD,
reservation booking with business-hour validation, and a controlled
reservation lifecycle (pending, confirmed, cancelled, completed).

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
