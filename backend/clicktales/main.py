"""
ClickTales auth service - application entry point
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from clicktales.common.config import Settings, settings as default_settings
from clicktales.common.database import DatabaseManager
from clicktales.common.exceptions import register_exception_handlers
from clicktales.common.logging_config import setup_logging
from clicktales.common.rate_limit import RateLimiter
from clicktales.domains.auth.jwt import TokenService
from clicktales.domains.auth.notifications import NotificationSender, build_notification_sender
from clicktales.domains.user.auth import PasswordService
from clicktales.schedulers import OtpCleanupScheduler

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    notification_sender: Optional[NotificationSender] = None,
    password_service: Optional[PasswordService] = None,
) -> FastAPI:
    """Build the application; collaborators are created in the lifespan and kept on app.state"""
    app_settings = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(
            log_level=app_settings.log_level,
            log_dir=app_settings.log_dir,
            log_file_prefix="clicktales",
        )
        logger.info(f"🚀 {app_settings.app_name} starting ({app_settings.environment})...")

        # No secret, no service
        token_service = TokenService.from_settings(app_settings)

        db = DatabaseManager(app_settings)
        await db.initialize()
        if app_settings.database_auto_create:
            await db.create_tables()
        logger.info("✅ Database initialization completed")

        sender = notification_sender or build_notification_sender(app_settings)

        app.state.settings = app_settings
        app.state.db = db
        app.state.token_service = token_service
        app.state.password_service = password_service or PasswordService.from_settings(app_settings)
        app.state.notification_sender = sender
        app.state.auth_limiter = RateLimiter(
            app_settings.auth_rate_limit_attempts,
            app_settings.auth_rate_limit_window_seconds,
        )

        cleanup_sched = None
        if app_settings.otp_cleanup_enabled:
            cleanup_sched = OtpCleanupScheduler(db, sender, app_settings.otp_cleanup_interval_minutes)
            cleanup_sched.start()
            logger.info("✅ OTP cleanup scheduler started")

        yield

        logger.info("Application shutting down...")
        if cleanup_sched is not None:
            cleanup_sched.stop()
        await db.dispose()

    app = FastAPI(
        title=app_settings.app_name,
        description="ClickTales photobooth authentication service",
        version=app_settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, debug=app_settings.debug)

    @app.get("/")
    async def root():
        """Service info"""
        return {
            "name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/health")
    async def health_check():
        db: Optional[DatabaseManager] = getattr(app.state, "db", None)
        available = db is not None and db.available
        return {
            "status": "healthy" if available else "degraded",
            "environment": app_settings.environment,
            "databases": {
                app_settings.database_type: {
                    "available": available,
                    "status": "✓ connected" if available else "✗ disconnected",
                },
            },
        }

    from clicktales.domains.auth.api import router as auth_router
    from clicktales.domains.user.api import router as user_router

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(user_router, prefix="/api/auth", tags=["user"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("="*60)
    logger.info("🎯 Starting ClickTales auth server")
    logger.info("="*60)
    logger.info("📍 API Server: http://localhost:8888")
    logger.info("📚 API Docs: http://localhost:8888/docs")
    logger.info("💚 Health Check: http://localhost:8888/health")
    logger.info("="*60)

    uvicorn.run(
        "clicktales.main:app",
        host="0.0.0.0",
        port=8888,
        reload=not default_settings.is_production,
        log_level="info"
    )
