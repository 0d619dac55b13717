"""
Notification senders - deliver one-time codes to the user's inbox
"""

from dataclasses import dataclass
from email.message import EmailMessage
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable
import logging

import aiosmtplib

from clicktales.common.config import Settings
from clicktales.common.exceptions import NotificationDeliveryError
from clicktales.domains.auth.models import OtpPurpose

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationSender(Protocol):
    """Delivers a code for a purpose; raises NotificationDeliveryError on failure."""

    async def send(self, destination: str, code: str, purpose: OtpPurpose) -> None:
        ...


@dataclass(frozen=True)
class OtpEmail:
    subject: str
    heading: str
    intro: str
    footer: str


_EXPIRY_NOTICE = "This code will expire in {minutes} minutes."
_IGNORE_NOTICE = "If you didn't request this, please ignore this email."

OTP_EMAILS: Dict[OtpPurpose, OtpEmail] = {
    OtpPurpose.SIGNUP: OtpEmail(
        subject="Verify your ClickTales account",
        heading="Welcome to ClickTales",
        intro="Thanks for signing up! Enter this code to verify your email address:",
        footer=f"{_EXPIRY_NOTICE} {_IGNORE_NOTICE}",
    ),
    OtpPurpose.LOGIN: OtpEmail(
        subject="Your ClickTales Login Code",
        heading="Your Login Verification Code",
        intro="You've requested to log in to your ClickTales account. Use the verification code below:",
        footer=f"{_EXPIRY_NOTICE} {_IGNORE_NOTICE}",
    ),
    OtpPurpose.ENABLE_2FA: OtpEmail(
        subject="Enable Two-Factor Authentication",
        heading="Enable Two-Factor Authentication",
        intro="You're enabling two-factor authentication for your ClickTales account. Enter this verification code:",
        footer=_EXPIRY_NOTICE,
    ),
    OtpPurpose.DISABLE_2FA: OtpEmail(
        subject="Disable Two-Factor Authentication",
        heading="Disable Two-Factor Authentication",
        intro="You're disabling two-factor authentication for your ClickTales account. Enter this verification code to confirm:",
        footer=_EXPIRY_NOTICE,
    ),
    OtpPurpose.PASSWORD_RESET: OtpEmail(
        subject="Password Reset Code",
        heading="Password Reset Code",
        intro="You've requested to reset your ClickTales password. Use this verification code:",
        footer=f"{_EXPIRY_NOTICE} {_IGNORE_NOTICE}",
    ),
}


def render_otp_email(code: str, purpose: OtpPurpose, expire_minutes: int = 10) -> Tuple[str, str, str]:
    """Return (subject, text_body, html_body) for a code"""
    template = OTP_EMAILS[purpose]
    footer = template.footer.format(minutes=expire_minutes)

    text_body = f"{template.intro}\n\n    {code}\n\n{footer}\n"
    html_body = f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 30px; text-align: center; color: white;">
          <h1 style="margin: 0; font-size: 28px;">ClickTales</h1>
          <p style="margin: 10px 0 0; opacity: 0.9;">{template.heading}</p>
        </div>
        <div style="padding: 40px 30px; background: #f9f9f9;">
          <p style="font-size: 16px; color: #333; margin-bottom: 30px;">{template.intro}</p>
          <div style="text-align: center; margin: 30px 0;">
            <div style="font-size: 32px; font-weight: bold; color: #667eea; letter-spacing: 8px;">{code}</div>
          </div>
          <p style="font-size: 14px; color: #666; margin-top: 30px;">{footer}</p>
        </div>
      </div>
    """
    return template.subject, text_body, html_body


class SmtpNotificationSender:
    """Async SMTP delivery via aiosmtplib."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
        from_email: str = "noreply@clicktales.com",
        from_name: str = "ClickTales",
        expire_minutes: int = 10,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.from_email = from_email
        self.from_name = from_name
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpNotificationSender":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout,
            from_email=settings.from_email,
            from_name=settings.from_name,
            expire_minutes=settings.otp_expire_minutes,
        )

    def build_message(self, destination: str, code: str, purpose: OtpPurpose) -> EmailMessage:
        subject, text_body, html_body = render_otp_email(code, purpose, self.expire_minutes)
        message = EmailMessage()
        message["From"] = f'"{self.from_name}" <{self.from_email}>'
        message["To"] = destination
        message["Subject"] = subject
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    async def send(self, destination: str, code: str, purpose: OtpPurpose) -> None:
        message = self.build_message(destination, code, purpose)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send {purpose.value} email to {destination}: {e}")
            raise NotificationDeliveryError(destination, str(e)) from e
        logger.info(f"{purpose.value} code emailed to {destination}")


class ConsoleNotificationSender:
    """Development sender: writes the code to the log instead of emailing it."""

    async def send(self, destination: str, code: str, purpose: OtpPurpose) -> None:
        logger.info(
            "\n".join([
                "═" * 50,
                f"OTP {purpose.value}",
                f"To:   {destination}",
                f"Code: {code}",
                "═" * 50,
            ])
        )


def build_notification_sender(settings: Settings) -> NotificationSender:
    if settings.email_backend == "console":
        return ConsoleNotificationSender()
    return SmtpNotificationSender.from_settings(settings)
