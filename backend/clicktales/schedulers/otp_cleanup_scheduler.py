"""OtpCleanupScheduler: periodic removal of expired OTP records.

Expiry is enforced at verification time, so this job only keeps the
ledger from growing; a failed run is logged and retried on the next tick.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from clicktales.common.database import DatabaseManager
from clicktales.domains.auth.notifications import NotificationSender
from clicktales.domains.auth.otp_service import OtpService

logger = logging.getLogger(__name__)


class OtpCleanupScheduler:
    """Expired OTP garbage collection."""

    def __init__(self, db: DatabaseManager, sender: NotificationSender, interval_minutes: int = 60):
        self.db = db
        self.sender = sender
        self.interval_minutes = interval_minutes
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._last_result: dict = {}

    def initialize(self):
        if self.scheduler is not None:
            return

        self.scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 300,
            },
        )

        self.scheduler.add_job(
            self.run_cleanup,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="otp_cleanup",
            name=f"Expired OTP cleanup (every {self.interval_minutes}m)",
            replace_existing=True,
        )

        logger.info("OTP cleanup scheduler initialized")

    def start(self):
        if self.scheduler is None:
            self.initialize()

        if not self._is_running:
            self.scheduler.start()
            self._is_running = True
            logger.info("OTP cleanup scheduler started")

    def stop(self):
        if self.scheduler and self._is_running:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("OTP cleanup scheduler stopped")

    async def run_cleanup(self) -> int:
        if not self.db.available:
            logger.warning("Database not available, skipping OTP cleanup")
            return 0

        try:
            async with self.db.session() as session:
                removed = await OtpService(session, self.sender).cleanup_expired()
        except Exception as e:
            logger.error(f"OTP cleanup failed: {e}", exc_info=True)
            self._last_result = {
                "status": "error",
                "error": str(e),
                "run_at": datetime.now(timezone.utc).isoformat(),
            }
            return 0

        self._last_result = {
            "status": "success",
            "removed": removed,
            "run_at": datetime.now(timezone.utc).isoformat(),
        }
        return removed

    def get_status(self) -> dict:
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs.append({
                    "id": job.id,
                    "name": job.name,
                    "next_run": next_run.isoformat() if next_run else None,
                })

        return {
            "is_running": self._is_running,
            "jobs": jobs,
            "last_result": self._last_result,
        }
