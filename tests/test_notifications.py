"""
Tests for the notification services.
"""
from restaurant_app.core.config import get_settings
from restaurant_app.services.notifications import (
    MockNotificationService,
    ReservationNotice,
    get_notification_service,
    reset_notification_service,
)


def make_notice(**overrides):
    values = {
        "reservation_id": 7,
        "customer_name": "Jane Smith",
        "customer_email": "jane@example.com",
        "customer_phone": "555-123-4567",
        "party_size": 1,
        "formatted_date": "July 22, 2025 at 07:00 PM",
    }
    values.update(overrides)
    return ReservationNotice(**values)


class TestMockNotificationService:
    """Tests for the development notification service."""

    async def test_confirmation_email_only(self):
        service = MockNotificationService(failure_rate=0.0, latency=(0, 0))
        result = await service.send_reservation_confirmation(make_notice())

        assert result.success
        assert result.provider == "mock"
        assert [m["channel"] for m in service.sent] == ["email"]

    async def test_confirmation_with_sms(self):
        service = MockNotificationService(sms_enabled=True, failure_rate=0.0, latency=(0, 0))
        await service.send_reservation_confirmation(make_notice())
        assert [m["channel"] for m in service.sent] == ["email", "sms"]
        assert "Party: 1 guest" in service.sent[1]["body"]

    async def test_always_failing(self):
        service = MockNotificationService(sms_enabled=True, failure_rate=1.0, latency=(0, 0))
        result = await service.send_reservation_confirmation(make_notice())

        assert not result.success
        assert result.error_message == "Simulated email failure; Simulated SMS failure"
        assert service.sent == []


class TestConfirmationText:
    """Tests for the message body."""

    def test_special_requests_included(self):
        service = MockNotificationService(restaurant_name="Chez Test", latency=(0, 0))
        text = service.build_confirmation_text(make_notice(party_size=4, special_requests="Booth"))

        assert "reservation #7" in text
        assert "Party: 4 guests" in text
        assert "Requests: Booth" in text
        assert text.endswith("Thank you for booking with Chez Test!")

    def test_restaurant_phone_included(self):
        service = MockNotificationService(restaurant_phone="+1-555-000-1111", latency=(0, 0))
        notice = make_notice()

        assert "Questions? Call us at +1-555-000-1111." in service.build_confirmation_text(notice)
        assert "+1-555-000-1111" in service.build_confirmation_html(notice)

    def test_no_phone_line_without_phone(self):
        service = MockNotificationService(latency=(0, 0))
        assert "Call us" not in service.build_confirmation_text(make_notice())


class TestFactory:
    """Tests for get_notification_service."""

    def test_development_uses_mock(self):
        reset_notification_service()
        try:
            service = get_notification_service()
            assert service.provider_name == "mock"
            assert service.failure_rate == get_settings().notification_failure_rate
            assert get_notification_service() is service
            assert service.restaurant_phone == get_settings().restaurant_phone
        finally:
            reset_notification_service()
