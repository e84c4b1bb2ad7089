"""
Notification Service Abstract Base Class

Defines interface for sending SMS and Email notifications.
Supports both Mock (development) and Real (production) implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


@dataclass
class ReservationNotice:
    """What a customer needs to know about their booking."""
    reservation_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    party_size: int
    formatted_date: str
    special_requests: Optional[str] = None


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    def __init__(
        self,
        restaurant_name: str,
        sms_enabled: bool = False,
        restaurant_phone: Optional[str] = None,
    ):
        self.restaurant_name = restaurant_name
        self.sms_enabled = sms_enabled
        self.restaurant_phone = restaurant_phone

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    def build_confirmation_text(self, notice: ReservationNotice) -> str:
        guests = "guest" if notice.party_size == 1 else "guests"
        lines = [
            f"Hi {notice.customer_name}! We received your reservation #{notice.reservation_id}.",
            f"When: {notice.formatted_date}",
            f"Party: {notice.party_size} {guests}",
        ]
        if notice.special_requests:
            lines.append(f"Requests: {notice.special_requests}")
        if self.restaurant_phone:
            lines.append(f"Questions? Call us at {self.restaurant_phone}.")
        lines.append(f"Thank you for booking with {self.restaurant_name}!")
        return "\n".join(lines)

    def build_confirmation_html(self, notice: ReservationNotice) -> str:
        requests_html = (
            f"<p>Special requests: {notice.special_requests}</p>"
            if notice.special_requests else ""
        )
        phone_html = (
            f"<p>Questions? Call us at {self.restaurant_phone}.</p>"
            if self.restaurant_phone else ""
        )
        return f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #8b4513;">Reservation Received</h1>
                <p>Hi {notice.customer_name},</p>
                <p>Your reservation <strong>#{notice.reservation_id}</strong> is booked and pending confirmation.</p>
                <div style="background: #f8f9fa; padding: 15px; border-radius: 8px; margin: 20px 0;">
                    <p><strong>{notice.formatted_date}</strong></p>
                    <p>Party of {notice.party_size}</p>
                    {requests_html}
                </div>
                {phone_html}
                <p>Thank you for booking with {self.restaurant_name}!</p>
            </div>
            """

    async def send_reservation_confirmation(self, notice: ReservationNotice) -> NotificationResult:
        """
        Send the booking confirmation by email, and by SMS when enabled.

        Succeeds if at least one channel delivered.
        """
        text = self.build_confirmation_text(notice)

        email_result = await self.send_email(
            to_email=notice.customer_email,
            subject=f"Reservation Confirmation - {self.restaurant_name}",
            body_html=self.build_confirmation_html(notice),
            body_text=text,
        )

        sms_result = None
        if self.sms_enabled and notice.customer_phone:
            sms_result = await self.send_sms(notice.customer_phone, text)

        success = email_result.success or bool(sms_result and sms_result.success)
        error_message = None
        if not success:
            errors = [email_result.error_message]
            if sms_result:
                errors.append(sms_result.error_message)
            error_message = "; ".join(e for e in errors if e) or "Notification failed"

        return NotificationResult(
            success=success,
            message_id=email_result.message_id,
            error_message=error_message,
            provider=self.provider_name,
        )
