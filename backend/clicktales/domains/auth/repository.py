"""OTP ledger repository."""

from datetime import datetime
from typing import Optional
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from clicktales.domains.auth.models import OtpPurpose, OtpRecord


class OtpRepository:
    """Repository for OTP records, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_unused(self, user_id: str, code: str, purpose: OtpPurpose) -> Optional[OtpRecord]:
        """Exact match on (user, code, purpose) among unused records."""
        stmt = select(OtpRecord).where(
            OtpRecord.user_id == user_id,
            OtpRecord.code == code,
            OtpRecord.type == purpose,
            OtpRecord.used.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active(self, user_id: str, purpose: OtpPurpose) -> Optional[OtpRecord]:
        """The single outstanding record for (user, purpose), if any."""
        stmt = select(OtpRecord).where(
            OtpRecord.user_id == user_id,
            OtpRecord.type == purpose,
            OtpRecord.used.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_unused(self, user_id: str, purpose: OtpPurpose) -> int:
        stmt = delete(OtpRecord).where(
            OtpRecord.user_id == user_id,
            OtpRecord.type == purpose,
            OtpRecord.used.is_(False),
        ).execution_options(synchronize_session="fetch")
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def add(self, record: OtpRecord) -> OtpRecord:
        self.session.add(record)
        await self.session.flush()
        return record

    async def consume(self, record_id: str) -> bool:
        """Flip used=false -> used=true; False when another caller got there first."""
        stmt = (
            update(OtpRecord)
            .where(OtpRecord.id == record_id, OtpRecord.used.is_(False))
            .values(used=True)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) == 1

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(OtpRecord).where(OtpRecord.expires_at < now).execution_options(
            synchronize_session=False
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
