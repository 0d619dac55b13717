"""
OTP service - issue and consume one-time codes.

Guarantees:
- at most one unused record per (user, purpose); issuing a new code supersedes the old one
- a record is consumed on the first verification that matches it, successful or not
- expiry is checked lazily at verification time
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging
import secrets

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clicktales.common.base import as_utc, utcnow
from clicktales.common.exceptions import InternalError, NotificationDeliveryError
from clicktales.domains.auth.models import OtpPurpose, OtpRecord
from clicktales.domains.auth.notifications import NotificationSender
from clicktales.domains.auth.repository import OtpRepository

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999
DEFAULT_EXPIRE_MINUTES = 10
MAX_CREATE_ATTEMPTS = 3

INVALID_CODE = "Invalid OTP code"
EXPIRED_CODE = "OTP code has expired"


@dataclass(frozen=True)
class OtpVerification:
    """Outcome of a verification attempt; a wrong code is a value, not an exception."""

    valid: bool
    reason: Optional[str] = None


class OtpService:
    def __init__(
        self,
        session: AsyncSession,
        sender: NotificationSender,
        expire_minutes: int = DEFAULT_EXPIRE_MINUTES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.repository = OtpRepository(session)
        self.sender = sender
        self.ttl = timedelta(minutes=expire_minutes)
        self.clock = clock

    @staticmethod
    def generate_code() -> str:
        """Uniform over [100000, 999999] from the OS CSPRNG"""
        return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))

    async def create(self, user_id: str, purpose: OtpPurpose) -> str:
        """
        Supersede any outstanding code for (user, purpose) and store a new one.

        The delete and insert share a savepoint; the partial unique index turns
        a concurrent create for the same pair into an IntegrityError, which is
        retried against the now-committed competitor.
        """
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            code = self.generate_code()
            try:
                async with self.session.begin_nested():
                    superseded = await self.repository.delete_unused(user_id, purpose)
                    await self.repository.add(
                        OtpRecord(
                            user_id=user_id,
                            code=code,
                            type=purpose,
                            expires_at=self.clock() + self.ttl,
                            used=False,
                        )
                    )
            except IntegrityError:
                logger.warning(
                    f"Concurrent {purpose.value} OTP issue for user {user_id} "
                    f"(attempt {attempt}/{MAX_CREATE_ATTEMPTS})"
                )
                continue

            await self.session.commit()
            if superseded > 0:
                logger.info(f"Superseded {superseded} outstanding {purpose.value} OTP(s) for user {user_id}")
            logger.info(f"Issued {purpose.value} OTP for user {user_id}")
            return code

        raise InternalError("Could not issue a verification code, please retry")

    async def verify(self, user_id: str, code: str, purpose: OtpPurpose) -> OtpVerification:
        record = await self.repository.find_unused(user_id, code, purpose)
        if record is None:
            return OtpVerification(valid=False, reason=INVALID_CODE)

        # Consume before judging expiry so the record can never be replayed
        consumed = await self.repository.consume(record.id)
        await self.session.commit()
        if not consumed:
            return OtpVerification(valid=False, reason=INVALID_CODE)

        if self.clock() > as_utc(record.expires_at):
            logger.info(f"Expired {purpose.value} OTP presented for user {user_id}")
            return OtpVerification(valid=False, reason=EXPIRED_CODE)

        logger.info(f"Verified {purpose.value} OTP for user {user_id}")
        return OtpVerification(valid=True)

    async def send_email(self, destination: str, code: str, purpose: OtpPurpose) -> None:
        """
        Hand the code to the notification sender. A delivery failure leaves the
        stored record in place; requesting a new code supersedes it.
        """
        try:
            await self.sender.send(destination, code, purpose)
        except NotificationDeliveryError as e:
            logger.error(f"{purpose.value} OTP delivery to {destination} failed: {e.reason}")
            raise

    async def cleanup_expired(self) -> int:
        """Best-effort garbage collection of expired records"""
        removed = await self.repository.delete_expired(self.clock())
        await self.session.commit()
        if removed:
            logger.info(f"Removed {removed} expired OTP record(s)")
        return removed
