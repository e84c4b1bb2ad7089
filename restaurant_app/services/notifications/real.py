"""
Real Notification Service

Production confirmations:
- Email through SendGrid (always)
- SMS through Twilio (only with RESERVATION_SMS_ENABLED)

Both SDKs block on network I/O, so each call is pushed to a worker thread.
"""

import asyncio
import logging
from typing import Callable, Optional

from python_http_client.exceptions import HTTPError as SendGridHTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from restaurant_app.core.config import Settings
from restaurant_app.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)

SENDGRID_ACCEPTED = (200, 201, 202)


async def _deliver(
    provider: str,
    errors: tuple[type[Exception], ...],
    send: Callable,
    *args,
    **kwargs,
):
    """
    Run a blocking provider call off the event loop.

    Returns (response, None) on success and (None, NotificationResult) when
    the provider raised one of the expected error types.
    """
    try:
        return await asyncio.to_thread(send, *args, **kwargs), None
    except errors as e:
        logger.error(f"{provider} delivery failed: {e}")
        return None, NotificationResult(success=False, error_message=str(e), provider=provider)


class RealNotificationService(BaseNotificationService):
    """Sends reservation confirmations through SendGrid and Twilio."""

    def __init__(self, settings: Settings):
        super().__init__(
            settings.restaurant_name,
            settings.reservation_sms_enabled,
            settings.restaurant_phone,
        )
        self.from_email = settings.sendgrid_from_email
        self.from_phone = settings.twilio_phone_number

        self.sendgrid_client: Optional[SendGridAPIClient] = None
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
        else:
            logger.warning("SENDGRID_API_KEY missing, confirmation emails will not be sent")

        self.twilio_client: Optional[TwilioClient] = None
        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        elif self.sms_enabled:
            logger.warning("SMS confirmations enabled but Twilio credentials are missing")

        logger.info(
            f"RealNotificationService ready (email={'on' if self.sendgrid_client else 'off'}, "
            f"sms={'on' if self.sms_enabled and self.twilio_client else 'off'})"
        )

    @property
    def provider_name(self) -> str:
        return "real"

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        if self.twilio_client is None:
            return NotificationResult(success=False, error_message="Twilio not configured", provider="twilio")

        sent, failure = await _deliver(
            "twilio",
            (TwilioException,),
            self.twilio_client.messages.create,
            body=message,
            from_=self.from_phone,
            to=to_phone,
        )
        if failure:
            return failure

        logger.info(f"Confirmation SMS queued for {to_phone} (sid={sent.sid})")
        return NotificationResult(success=True, message_id=sent.sid, provider="twilio")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        if self.sendgrid_client is None:
            return NotificationResult(success=False, error_message="SendGrid not configured", provider="sendgrid")

        mail = Mail(
            from_email=self.from_email,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        response, failure = await _deliver("sendgrid", (SendGridHTTPError,), self.sendgrid_client.send, mail)
        if failure:
            return failure

        accepted = response.status_code in SENDGRID_ACCEPTED
        logger.info(f"Confirmation email to {to_email}: HTTP {response.status_code}")
        return NotificationResult(
            success=accepted,
            message_id=response.headers.get("X-Message-Id"),
            error_message=None if accepted else f"SendGrid returned {response.status_code}",
            provider="sendgrid",
        )

    async def health_check(self) -> bool:
        """Email is the required channel; SMS is optional."""
        return self.sendgrid_client is not None
