"""
Auth Dependencies - request authentication and service wiring

Long-lived collaborators (token service, password hasher, notification sender,
settings) are built once in the application lifespan and kept on ``app.state``;
per-request services are assembled here around the request's session.
"""
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Callable, Optional
import logging

from clicktales.common.config import Settings
from clicktales.common.database import get_session
from clicktales.common.exceptions import ForbiddenError, UnauthorizedError
from clicktales.domains.auth.jwt import ACCESS_TOKEN, TokenService
from clicktales.domains.auth.notifications import NotificationSender
from clicktales.domains.auth.otp_service import OtpService
from clicktales.domains.auth.service import OtpFlow, SignupVerificationFlow, TwoFactorGate
from clicktales.domains.user.auth import PasswordService
from clicktales.domains.user.models import UserRole
from clicktales.domains.user.repository import UserRepository
from clicktales.domains.user.schemas import AuthIdentity
from clicktales.domains.user.service import CredentialService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# App-scoped collaborators
# =============================================================================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_service(request: Request) -> PasswordService:
    return request.app.state.password_service


def get_notification_sender(request: Request) -> NotificationSender:
    return request.app.state.notification_sender


# =============================================================================
# Request-scoped services
# =============================================================================

def get_credential_service(
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
    passwords: PasswordService = Depends(get_password_service),
) -> CredentialService:
    return CredentialService(session, tokens, passwords)


def get_otp_service(
    session: AsyncSession = Depends(get_session),
    sender: NotificationSender = Depends(get_notification_sender),
    settings: Settings = Depends(get_settings),
) -> OtpService:
    return OtpService(session, sender, expire_minutes=settings.otp_expire_minutes)


def get_signup_flow(
    credentials: CredentialService = Depends(get_credential_service),
    otp: OtpService = Depends(get_otp_service),
) -> SignupVerificationFlow:
    return SignupVerificationFlow(credentials, otp)


def get_two_factor_gate(
    credentials: CredentialService = Depends(get_credential_service),
    otp: OtpService = Depends(get_otp_service),
) -> TwoFactorGate:
    return TwoFactorGate(credentials, otp)


def get_otp_flow(
    credentials: CredentialService = Depends(get_credential_service),
    otp: OtpService = Depends(get_otp_service),
) -> OtpFlow:
    return OtpFlow(credentials, otp)


# =============================================================================
# Request authentication
# =============================================================================

async def resolve_identity(
    token: str,
    tokens: TokenService,
    users: UserRepository,
) -> AuthIdentity:
    """Bearer token -> identity of a current, active user"""
    claims = tokens.verify(token, expected_type=ACCESS_TOKEN)

    user = await users.get_by_id(claims.id)
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found")
    if user.token_version != claims.version:
        raise UnauthorizedError("Token has been revoked")

    return AuthIdentity(
        id=user.id,
        email=user.email,
        username=user.username,
        name=user.name,
        role=UserRole(user.role),
    )


async def authenticate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
) -> AuthIdentity:
    """Require a valid bearer token; the identity is also set on request.state.user"""
    if credentials is None:
        raise UnauthorizedError("No token provided")

    identity = await resolve_identity(credentials.credentials, tokens, UserRepository(session))
    request.state.user = identity
    return identity


def authorize(*roles: UserRole) -> Callable:
    """Dependency factory: authenticated identity whose role is one of ``roles``"""
    allowed = {UserRole(role) for role in roles}

    async def dependency(identity: AuthIdentity = Depends(authenticate)) -> AuthIdentity:
        if identity.role not in allowed:
            logger.warning(f"User {identity.id} ({identity.role.value}) denied; needs one of {sorted(r.value for r in allowed)}")
            raise ForbiddenError()
        return identity

    return dependency


async def optional_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[AuthIdentity]:
    """Like authenticate, but an absent or bad token leaves the request anonymous"""
    request.state.user = None
    if credentials is None:
        return None

    try:
        identity = await resolve_identity(credentials.credentials, tokens, UserRepository(session))
    except UnauthorizedError as e:
        logger.warning(f"Invalid token in optional auth: {e.message}")
        return None

    request.state.user = identity
    return identity
