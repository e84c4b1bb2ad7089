"""
Mock Notification Service

Development stand-in for SendGrid/Twilio. Nothing leaves the process:
every message is logged and kept in `sent`, and a configurable share of
sends fails on purpose so the best-effort handling can be exercised.
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from restaurant_app.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """In-memory notification service for development."""

    def __init__(
        self,
        restaurant_name: str = "RestaurantApp",
        sms_enabled: bool = False,
        failure_rate: float = 0.05,
        restaurant_phone: Optional[str] = None,
        latency: tuple[float, float] = (0.1, 0.3),
    ):
        super().__init__(restaurant_name, sms_enabled, restaurant_phone)
        self.failure_rate = failure_rate
        self.latency = latency
        self.sent: list[dict] = []
        logger.info(
            f"MockNotificationService initialized "
            f"(failure_rate={failure_rate:.0%}, sms={'on' if sms_enabled else 'off'})"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _dispatch(self, channel: str, to: str, **payload) -> NotificationResult:
        low, high = self.latency
        if high > 0:
            await asyncio.sleep(random.uniform(low, high))

        if random.random() < self.failure_rate:
            logger.warning(f"Mock {channel} to {to} failed (simulated)")
            label = "SMS" if channel == "sms" else channel
            return NotificationResult(
                success=False,
                error_message=f"Simulated {label} failure",
                provider="mock",
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append({"channel": channel, "to": to, "id": message_id, **payload})
        logger.info(f"Mock {channel} delivered to {to} (ID: {message_id})")
        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return await self._dispatch("sms", to_phone, body=message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        return await self._dispatch("email", to_email, subject=subject, body=body_text)

    async def health_check(self) -> bool:
        return True
