"""
Auth flows built on the credential and OTP services:

- signup verification: Unverified user + SIGNUP code -> Active user with tokens
- two-factor gate: password-then-code step-up login, 2FA enable/disable
- standalone OTP request/verify and password reset
"""
from dataclasses import dataclass
from typing import Optional
import logging

from clicktales.common.exceptions import (
    ConflictError,
    NotificationDeliveryError,
    ValidationError,
)
from clicktales.domains.auth.models import OtpPurpose
from clicktales.domains.auth.otp_service import OtpService, OtpVerification
from clicktales.domains.user.models import User
from clicktales.domains.user.service import AuthResult, CredentialService

logger = logging.getLogger(__name__)


def _require_valid(verification: OtpVerification) -> None:
    if not verification.valid:
        raise ValidationError(verification.reason or "Invalid OTP")


@dataclass(frozen=True)
class SignupTicket:
    """Handle returned while a signup waits for its code; carries no tokens."""

    user_id: str
    email: str
    otp_sent: bool


@dataclass(frozen=True)
class LoginOutcome:
    """Either tokens, or a request to resubmit with a code."""

    requires_otp: bool
    result: Optional[AuthResult] = None


class SignupVerificationFlow:
    """Unverified -> Active. Unverified users that never verify are left in place."""

    def __init__(self, credentials: CredentialService, otp: OtpService):
        self.credentials = credentials
        self.otp = otp

    async def request_signup_otp(
        self,
        email: str,
        username: str,
        password: str,
        phone_number: Optional[str] = None,
    ) -> SignupTicket:
        user = await self.credentials.create_unverified(email, username, password, phone_number)
        sent = await self._issue_and_send(user)
        logger.info(f"Signup started for user {user.id} (code sent: {sent})")
        return SignupTicket(user_id=user.id, email=user.email, otp_sent=sent)

    async def resend_signup_otp(self, user_id: str) -> SignupTicket:
        user = await self.credentials.get_user(user_id)
        if user.is_active or user.is_verified:
            raise ConflictError("Account is already verified")
        sent = await self._issue_and_send(user)
        return SignupTicket(user_id=user.id, email=user.email, otp_sent=sent)

    async def verify_signup_otp(self, user_id: str, code: str) -> AuthResult:
        verification = await self.otp.verify(user_id, code, OtpPurpose.SIGNUP)
        _require_valid(verification)

        user = await self.credentials.get_user(user_id)
        user = await self.credentials.activate(user)
        return await self.credentials.complete_login(user)

    async def _issue_and_send(self, user: User) -> bool:
        code = await self.otp.create(user.id, OtpPurpose.SIGNUP)
        try:
            await self.otp.send_email(user.email, code, OtpPurpose.SIGNUP)
        except NotificationDeliveryError:
            # The user exists and the code is stored; a resend supersedes it
            return False
        return True


class TwoFactorGate:
    def __init__(self, credentials: CredentialService, otp: OtpService):
        self.credentials = credentials
        self.otp = otp

    async def login_with_otp(self, email: str, password: str, code: Optional[str] = None) -> LoginOutcome:
        user = await self.credentials.check_password(email, password)

        if user.two_factor_enabled:
            if not code:
                logger.info(f"Login for user {user.id} needs a second factor")
                return LoginOutcome(requires_otp=True)
            verification = await self.otp.verify(user.id, code, OtpPurpose.LOGIN)
            _require_valid(verification)

        result = await self.credentials.complete_login(user)
        return LoginOutcome(requires_otp=False, result=result)

    async def enable_2fa(self, user_id: str, code: str) -> User:
        verification = await self.otp.verify(user_id, code, OtpPurpose.ENABLE_2FA)
        _require_valid(verification)
        return await self.credentials.enable_2fa(user_id)

    async def disable_2fa(self, user_id: str, code: str) -> User:
        verification = await self.otp.verify(user_id, code, OtpPurpose.DISABLE_2FA)
        _require_valid(verification)
        return await self.credentials.disable_2fa(user_id)


class OtpFlow:
    """Standalone request/verify by email, and password reset."""

    def __init__(self, credentials: CredentialService, otp: OtpService):
        self.credentials = credentials
        self.otp = otp

    async def request_otp(self, email: str, purpose: OtpPurpose) -> None:
        user = await self.credentials.get_user_by_email(email)
        code = await self.otp.create(user.id, purpose)
        await self.otp.send_email(user.email, code, purpose)

    async def verify_otp(self, email: str, code: str, purpose: OtpPurpose) -> None:
        user = await self.credentials.get_user_by_email(email)
        verification = await self.otp.verify(user.id, code, purpose)
        _require_valid(verification)

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        user = await self.credentials.get_user_by_email(email)
        verification = await self.otp.verify(user.id, code, OtpPurpose.PASSWORD_RESET)
        _require_valid(verification)
        await self.credentials.set_password(user, new_password)
        logger.info(f"Password reset for user {user.id}")
