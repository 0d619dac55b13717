"""OTP ledger: outstanding one-time codes per user and purpose."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from clicktales.common.base import Base, UUIDMixin


class OtpPurpose(str, Enum):
    SIGNUP = "SIGNUP"
    LOGIN = "LOGIN"
    ENABLE_2FA = "ENABLE_2FA"
    DISABLE_2FA = "DISABLE_2FA"
    PASSWORD_RESET = "PASSWORD_RESET"


class OtpRecord(Base, UUIDMixin):
    __tablename__ = "otp_records"
    __table_args__ = (
        # At most one unused code per (user, purpose)
        Index(
            "uq_otp_records_active",
            "user_id",
            "type",
            unique=True,
            postgresql_where=text("used = false"),
            sqlite_where=text("used = 0"),
        ),
        Index("ix_otp_records_expires_at", "expires_at"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    type: Mapped[OtpPurpose] = mapped_column(
        SAEnum(OtpPurpose, name="otp_purpose", native_enum=False, length=20),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<OtpRecord id={self.id} user_id={self.user_id} type={self.type.value} used={self.used}>"
