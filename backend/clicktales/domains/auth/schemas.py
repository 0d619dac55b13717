"""Auth domain Pydantic schemas."""

from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from clicktales.common.schemas import CamelModel
from clicktales.domains.auth.models import OtpPurpose
from clicktales.domains.user.schemas import USERNAME_PATTERN, UserPublic, check_password_strength

OTP_CODE_PATTERN = r"^\d{6}$"

# Purposes a client may ask for by email; SIGNUP has its own endpoints
RequestablePurpose = Literal["LOGIN", "ENABLE_2FA", "DISABLE_2FA", "PASSWORD_RESET"]


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthPayload(CamelModel):
    """Tokens plus the user they were issued for."""

    user: UserPublic
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class SignupOtpRequest(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)
    phone_number: Optional[str] = Field(None, max_length=32)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return check_password_strength(v)


class SignupTicketResponse(CamelModel):
    user_id: str
    email: str
    otp_sent: bool


class VerifySignupOtpRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    otp_code: str = Field(..., pattern=OTP_CODE_PATTERN)


class ResendSignupOtpRequest(CamelModel):
    user_id: str = Field(..., min_length=1)


class OtpRequest(CamelModel):
    email: EmailStr
    type: RequestablePurpose

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @property
    def purpose(self) -> OtpPurpose:
        return OtpPurpose(self.type)


class OtpVerifyRequest(OtpRequest):
    code: str = Field(..., pattern=OTP_CODE_PATTERN)


class LoginWithOtpRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    otp_code: Optional[str] = Field(None, pattern=OTP_CODE_PATTERN)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("otp_code", mode="before")
    @classmethod
    def blank_code_is_absent(cls, v):
        # An empty code means "not supplied yet"
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TwoFactorToggleRequest(CamelModel):
    otp_code: str = Field(..., pattern=OTP_CODE_PATTERN)


class TwoFactorStatus(CamelModel):
    two_factor_enabled: bool


class ResetPasswordRequest(CamelModel):
    email: EmailStr
    code: str = Field(..., pattern=OTP_CODE_PATTERN)
    new_password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return check_password_strength(v)
