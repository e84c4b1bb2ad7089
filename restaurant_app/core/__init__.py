"""
Core module initialization.
Exports configuration and request context utilities.
"""

from restaurant_app.core.config import get_settings, Settings, EnvironmentMode
from restaurant_app.core.context import RequestContext

__all__ = ["get_settings", "Settings", "EnvironmentMode", "RequestContext"]
