"""
Configuration - loaded from environment variables and .env
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "ClickTales"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = "./logs"

    # Database
    database_type: str = "sqlite"
    sqlite_path: str = "./data/clicktales.db"
    database_auto_create: bool = True

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "clicktales"
    postgres_password: str = "clicktales_dev_pass"
    postgres_db: str = "clicktales"

    # JWT
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_expire_hours: int = 24
    refresh_token_expire_days: int = 7

    # OTP
    otp_expire_minutes: int = 10
    otp_cleanup_enabled: bool = True
    otp_cleanup_interval_minutes: int = 60

    # Password hashing (argon2id)
    password_hash_time_cost: int = 3
    password_hash_memory_cost: int = 65536
    password_hash_parallelism: int = 4

    # Email
    email_backend: str = "smtp"  # smtp | console
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    smtp_timeout: float = 10.0
    from_email: str = "noreply@clicktales.com"
    from_name: str = "ClickTales"

    # Auth rate limiting
    auth_rate_limit_attempts: int = 5
    auth_rate_limit_window_seconds: int = 900

    # CORS
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL for the configured backend"""
        if self.database_type == "sqlite":
            return f"sqlite+aiosqlite:///{self.sqlite_path}"
        return self.postgres_url

    @property
    def postgres_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


# Global settings instance
settings = Settings()
