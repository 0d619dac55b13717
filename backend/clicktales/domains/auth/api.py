"""
Auth API - registration, login, tokens, OTP and 2FA endpoints
"""
from fastapi import APIRouter, Depends, status

from clicktales.common.rate_limit import auth_rate_limit
from clicktales.common.schemas import ApiResponse
from clicktales.domains.auth.deps import (
    authenticate,
    get_credential_service,
    get_otp_flow,
    get_signup_flow,
    get_two_factor_gate,
)
from clicktales.domains.auth.jwt import TokenPair
from clicktales.domains.auth.schemas import (
    AuthPayload,
    LoginWithOtpRequest,
    OtpRequest,
    OtpVerifyRequest,
    RefreshRequest,
    ResendSignupOtpRequest,
    ResetPasswordRequest,
    SignupOtpRequest,
    SignupTicketResponse,
    TokenPairResponse,
    TwoFactorStatus,
    TwoFactorToggleRequest,
    VerifySignupOtpRequest,
)
from clicktales.domains.auth.service import OtpFlow, SignupTicket, SignupVerificationFlow, TwoFactorGate
from clicktales.domains.user.schemas import AuthIdentity, LoginRequest, RegisterRequest, UserPublic
from clicktales.domains.user.service import AuthResult, CredentialService

router = APIRouter()

rate_limited = [Depends(auth_rate_limit())]


def _auth_payload(result: AuthResult) -> dict:
    return AuthPayload(
        user=UserPublic.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    ).model_dump(mode="json", by_alias=True)


def _token_payload(tokens: TokenPair) -> dict:
    return TokenPairResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    ).model_dump(mode="json", by_alias=True)


def _ticket_payload(ticket: SignupTicket) -> dict:
    return SignupTicketResponse(
        user_id=ticket.user_id,
        email=ticket.email,
        otp_sent=ticket.otp_sent,
    ).model_dump(mode="json", by_alias=True)


# =============================================================================
# Password login
# =============================================================================

@router.post(
    "/register",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    dependencies=rate_limited,
)
async def register(
    data: RegisterRequest,
    credentials: CredentialService = Depends(get_credential_service),
):
    """Register an active account and return tokens immediately"""
    result = await credentials.register(data.email, data.username, data.name, data.password)
    return ApiResponse(message="User registered successfully", data=_auth_payload(result))


@router.post("/login", response_model=ApiResponse, response_model_exclude_none=True, dependencies=rate_limited)
async def login(
    data: LoginRequest,
    credentials: CredentialService = Depends(get_credential_service),
):
    result = await credentials.login(data.email, data.password)
    return ApiResponse(message="Login successful", data=_auth_payload(result))


@router.post("/refresh", response_model=ApiResponse, response_model_exclude_none=True)
async def refresh(
    data: RefreshRequest,
    credentials: CredentialService = Depends(get_credential_service),
):
    tokens = await credentials.refresh(data.refresh_token)
    return ApiResponse(message="Token refreshed successfully", data=_token_payload(tokens))


# =============================================================================
# Signup verification
# =============================================================================

@router.post(
    "/request-signup-otp",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    dependencies=rate_limited,
)
async def request_signup_otp(
    data: SignupOtpRequest,
    flow: SignupVerificationFlow = Depends(get_signup_flow),
):
    """Create an unverified account and email it a SIGNUP code; no tokens yet"""
    ticket = await flow.request_signup_otp(data.email, data.username, data.password, data.phone_number)
    message = (
        "Verification code sent to your email"
        if ticket.otp_sent
        else "Account created but the verification email could not be sent; request a new code"
    )
    return ApiResponse(message=message, data=_ticket_payload(ticket))


@router.post("/resend-signup-otp", response_model=ApiResponse, response_model_exclude_none=True, dependencies=rate_limited)
async def resend_signup_otp(
    data: ResendSignupOtpRequest,
    flow: SignupVerificationFlow = Depends(get_signup_flow),
):
    ticket = await flow.resend_signup_otp(data.user_id)
    message = "Verification code sent to your email" if ticket.otp_sent else "Failed to send verification email"
    return ApiResponse(success=ticket.otp_sent, message=message, data=_ticket_payload(ticket))


@router.post("/verify-signup-otp", response_model=ApiResponse, response_model_exclude_none=True, dependencies=rate_limited)
async def verify_signup_otp(
    data: VerifySignupOtpRequest,
    flow: SignupVerificationFlow = Depends(get_signup_flow),
):
    result = await flow.verify_signup_otp(data.user_id, data.otp_code)
    return ApiResponse(message="Account verified successfully", data=_auth_payload(result))


# =============================================================================
# Standalone OTP
# =============================================================================

@router.post("/request-otp", response_model=ApiResponse, response_model_exclude_none=True, dependencies=rate_limited)
async def request_otp(
    data: OtpRequest,
    flow: OtpFlow = Depends(get_otp_flow),
):
    await flow.request_otp(data.email, data.purpose)
    return ApiResponse(message="OTP sent to your email")


@router.post("/verify-otp", response_model=ApiResponse, response_model_exclude_none=True, dependencies=rate_limited)
async def verify_otp(
    data: OtpVerifyRequest,
    flow: OtpFlow = Depends(get_otp_flow),
):
    await flow.verify_otp(data.email, data.code, data.purpose)
    return ApiResponse(message="OTP verified successfully")


@router.post("/login-with-otp", response_model=ApiResponse, response_model_exclude_none=True, dependencies=rate_limited)
async def login_with_otp(
    data: LoginWithOtpRequest,
    gate: TwoFactorGate = Depends(get_two_factor_gate),
):
    """Password first; accounts with 2FA get a requiresOtp signal until a code is supplied"""
    outcome = await gate.login_with_otp(data.email, data.password, data.otp_code)
    if outcome.requires_otp:
        return ApiResponse(success=False, message="OTP code required", requires_otp=True)
    return ApiResponse(message="Login successful", data=_auth_payload(outcome.result))


@router.post("/reset-password", response_model=ApiResponse, response_model_exclude_none=True, dependencies=rate_limited)
async def reset_password(
    data: ResetPasswordRequest,
    flow: OtpFlow = Depends(get_otp_flow),
):
    await flow.reset_password(data.email, data.code, data.new_password)
    return ApiResponse(message="Password reset successfully")


# =============================================================================
# Two-factor management (authenticated)
# =============================================================================

@router.post("/enable-2fa", response_model=ApiResponse, response_model_exclude_none=True)
async def enable_2fa(
    data: TwoFactorToggleRequest,
    identity: AuthIdentity = Depends(authenticate),
    gate: TwoFactorGate = Depends(get_two_factor_gate),
):
    await gate.enable_2fa(identity.id, data.otp_code)
    return ApiResponse(message="Two-factor authentication enabled successfully")


@router.post("/disable-2fa", response_model=ApiResponse, response_model_exclude_none=True)
async def disable_2fa(
    data: TwoFactorToggleRequest,
    identity: AuthIdentity = Depends(authenticate),
    gate: TwoFactorGate = Depends(get_two_factor_gate),
):
    await gate.disable_2fa(identity.id, data.otp_code)
    return ApiResponse(message="Two-factor authentication disabled successfully")


@router.get("/2fa-status", response_model=ApiResponse, response_model_exclude_none=True)
async def two_factor_status(
    identity: AuthIdentity = Depends(authenticate),
    credentials: CredentialService = Depends(get_credential_service),
):
    user = await credentials.get_user(identity.id)
    status_payload = TwoFactorStatus(two_factor_enabled=user.two_factor_enabled)
    return ApiResponse(data=status_payload.model_dump(by_alias=True))
