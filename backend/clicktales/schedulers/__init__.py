"""Schedulers package for background tasks"""

from .otp_cleanup_scheduler import OtpCleanupScheduler

__all__ = [
    'OtpCleanupScheduler',
]
