"""
Notification Service Factory

Returns Mock or Real notification service based on ENV_MODE.
"""

import logging
from functools import lru_cache

from restaurant_app.core.config import get_settings
from restaurant_app.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    ReservationNotice,
)
from restaurant_app.services.notifications.mock import MockNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService(
            restaurant_name=settings.restaurant_name,
            sms_enabled=settings.reservation_sms_enabled,
            failure_rate=settings.notification_failure_rate,
            restaurant_phone=settings.restaurant_phone,
        )

    # Imported lazily so development installs do not need the provider SDKs loaded
    from restaurant_app.services.notifications.real import RealNotificationService

    logger.info(f"Notification Service: Using RealNotificationService ({settings.env_mode.value} mode)")
    return RealNotificationService(settings)


def reset_notification_service() -> None:
    """Clear the cached service instance."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "MockNotificationService",
    "NotificationResult",
    "ReservationNotice",
]
