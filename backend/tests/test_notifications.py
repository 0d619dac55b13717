"""Tests for OTP email rendering and the SMTP / console senders."""

import aiosmtplib
import pytest

from clicktales.common.exceptions import NotificationDeliveryError
from clicktales.domains.auth import notifications
from clicktales.domains.auth.models import OtpPurpose
from clicktales.domains.auth.notifications import (
    ConsoleNotificationSender,
    SmtpNotificationSender,
    build_notification_sender,
    render_otp_email,
)

from conftest import make_settings


class TestRenderOtpEmail:
    @pytest.mark.parametrize("purpose", list(OtpPurpose))
    def test_every_purpose_has_a_template(self, purpose):
        subject, text_body, html_body = render_otp_email("482913", purpose)
        assert subject
        assert "482913" in text_body
        assert "482913" in html_body

    def test_expiry_notice(self):
        _, text_body, _ = render_otp_email("482913", OtpPurpose.LOGIN, expire_minutes=10)
        assert "10 minutes" in text_body

    def test_signup_subject(self):
        subject, _, _ = render_otp_email("482913", OtpPurpose.SIGNUP)
        assert subject == "Verify your ClickTales account"


class TestSmtpSender:
    def sender(self) -> SmtpNotificationSender:
        return SmtpNotificationSender(host="smtp.test", from_email="noreply@clicktales.com")

    def test_build_message(self):
        message = self.sender().build_message("a@x.com", "482913", OtpPurpose.PASSWORD_RESET)
        assert message["To"] == "a@x.com"
        assert message["Subject"] == "Password Reset Code"
        assert "noreply@clicktales.com" in message["From"]

    @pytest.mark.asyncio
    async def test_send_uses_aiosmtplib(self, monkeypatch):
        calls = []

        async def fake_send(message, **kwargs):
            calls.append((message, kwargs))

        monkeypatch.setattr(notifications.aiosmtplib, "send", fake_send)
        await self.sender().send("a@x.com", "482913", OtpPurpose.LOGIN)

        assert len(calls) == 1
        assert calls[0][1]["hostname"] == "smtp.test"

    @pytest.mark.asyncio
    async def test_smtp_failure_becomes_delivery_error(self, monkeypatch):
        async def failing_send(message, **kwargs):
            raise aiosmtplib.SMTPConnectError("connection refused")

        monkeypatch.setattr(notifications.aiosmtplib, "send", failing_send)
        with pytest.raises(NotificationDeliveryError) as exc_info:
            await self.sender().send("a@x.com", "482913", OtpPurpose.LOGIN)
        assert exc_info.value.recipient == "a@x.com"
        assert exc_info.value.status_code == 500


class TestBuildSender:
    def test_console_backend(self, tmp_path):
        sender = build_notification_sender(make_settings(tmp_path, email_backend="console"))
        assert isinstance(sender, ConsoleNotificationSender)

    def test_smtp_backend(self, tmp_path):
        sender = build_notification_sender(make_settings(tmp_path, email_backend="smtp", smtp_host="mail.test"))
        assert isinstance(sender, SmtpNotificationSender)
        assert sender.host == "mail.test"

    @pytest.mark.asyncio
    async def test_console_sender_logs_code(self, caplog):
        caplog.set_level("INFO", logger="clicktales.domains.auth.notifications")
        await ConsoleNotificationSender().send("a@x.com", "482913", OtpPurpose.LOGIN)
        assert "482913" in caplog.text
