"""Tests for OtpCleanupScheduler."""

from datetime import timedelta

import pytest

from clicktales.common.base import utcnow
from clicktales.domains.auth.models import OtpPurpose, OtpRecord
from clicktales.schedulers import OtpCleanupScheduler

from conftest import STRONG_PASSWORD


class TestOtpCleanupScheduler:
    """Cleanup job wiring and behaviour."""

    @pytest.mark.asyncio
    async def test_initialize_registers_job(self, db, sender):
        sched = OtpCleanupScheduler(db, sender, interval_minutes=15)
        sched.initialize()

        status = sched.get_status()
        assert status["is_running"] is False
        assert [job["id"] for job in status["jobs"]] == ["otp_cleanup"]

    @pytest.mark.asyncio
    async def test_run_cleanup_removes_expired(self, db, sender, credentials, session):
        result = await credentials.register("a@x.com", "alice", "Alice", STRONG_PASSWORD)
        session.add(
            OtpRecord(
                user_id=result.user.id,
                code="482913",
                type=OtpPurpose.LOGIN,
                expires_at=utcnow() - timedelta(minutes=1),
                used=False,
            )
        )
        await session.commit()

        removed = await OtpCleanupScheduler(db, sender).run_cleanup()
        assert removed == 1

    @pytest.mark.asyncio
    async def test_run_cleanup_skips_when_database_down(self, db, sender):
        sched = OtpCleanupScheduler(db, sender)
        db.available = False
        assert await sched.run_cleanup() == 0
        db.available = True
