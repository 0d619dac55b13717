"""
JWT token service - issue, verify and refresh bearer tokens
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from jose import jwt, JWTError, ExpiredSignatureError
import logging

from clicktales.common.config import Settings
from clicktales.common.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)
from clicktales.domains.user.models import User, UserRole
from clicktales.domains.user.repository import UserRepository

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    id: str
    email: str
    username: str
    role: UserRole
    token_type: str
    version: int
    expires_at: datetime


class TokenService:
    """Stateless token minting; the signing secret is a startup precondition."""

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=24),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise RuntimeError("JWT_SECRET environment variable is required")
        self._secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(hours=settings.access_token_expire_hours),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    def issue(self, user: User) -> TokenPair:
        """Mint an access/refresh pair carrying {id, email, username, role}"""
        return TokenPair(
            access_token=self._encode(user, ACCESS_TOKEN, self.access_ttl),
            refresh_token=self._encode(user, REFRESH_TOKEN, self.refresh_ttl),
        )

    def verify(self, token: str, expected_type: Optional[str] = None) -> TokenClaims:
        """
        Check signature and expiry.

        Raises:
            TokenExpiredError: signature valid but past ``exp``
            TokenInvalidError: malformed, tampered, wrong type or missing claims
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            logger.warning("JWT verification failed: expired")
            raise TokenExpiredError()
        except JWTError as e:
            logger.warning(f"JWT verification failed: invalid ({e})")
            raise TokenInvalidError()

        claims = self._claims_from_payload(payload)
        if expected_type is not None and claims.token_type != expected_type:
            logger.warning(
                f"JWT verification failed: expected {expected_type} token, got {claims.token_type}"
            )
            raise TokenInvalidError()
        return claims

    async def refresh(self, refresh_token: str, users: UserRepository) -> TokenPair:
        """
        Exchange a refresh token for a fresh pair, honouring the *current*
        user record (role changes, deactivation, revocation via token_version).
        The presented refresh token stays valid until it expires or is revoked.
        """
        try:
            claims = self.verify(refresh_token, expected_type=REFRESH_TOKEN)
        except UnauthorizedError:
            raise UnauthorizedError("Invalid refresh token")

        user = await users.get_by_id(claims.id)
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found or inactive")
        if user.token_version != claims.version:
            logger.info(f"Refresh rejected for user {user.id}: token revoked")
            raise UnauthorizedError("Invalid refresh token")

        return self.issue(user)

    def _encode(self, user: User, token_type: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode: Dict[str, Any] = {
            "id": user.id,
            "email": user.email,
            "username": user.username,
            "role": UserRole(user.role).value,
            "type": token_type,
            "ver": user.token_version or 0,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(to_encode, self._secret, algorithm=self.algorithm)

    @staticmethod
    def _claims_from_payload(payload: Dict[str, Any]) -> TokenClaims:
        try:
            return TokenClaims(
                id=str(payload["id"]),
                email=payload["email"],
                username=payload["username"],
                role=UserRole(payload["role"]),
                token_type=payload.get("type", ACCESS_TOKEN),
                version=int(payload.get("ver", 0)),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"JWT verification failed: invalid claims ({e})")
            raise TokenInvalidError()
