"""Credential service: registration, login, password and 2FA flag management."""

from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clicktales.common.base import utcnow
from clicktales.common.exceptions import ConflictError, NotFoundError, UnauthorizedError
from clicktales.domains.auth.jwt import TokenPair, TokenService
from clicktales.domains.user.auth import PasswordService
from clicktales.domains.user.models import User, UserRole
from clicktales.domains.user.repository import UserRepository
from clicktales.domains.user.schemas import ProfileUpdate

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
USER_EXISTS = "User already exists with this email or username"


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: TokenPair


class CredentialService:
    """Service for user credentials; one instance per request session."""

    def __init__(self, session: AsyncSession, tokens: TokenService, passwords: PasswordService):
        self.session = session
        self.users = UserRepository(session)
        self.tokens = tokens
        self.passwords = passwords

    async def register(self, email: str, username: str, name: str, password: str) -> AuthResult:
        """Create an active user and log them straight in."""
        user = await self._create_user(
            email=email,
            username=username,
            name=name,
            password=password,
            is_active=True,
        )
        await self.session.commit()
        logger.info(f"Registered user {user.id} ({user.username})")
        return AuthResult(user=user, tokens=self.tokens.issue(user))

    async def create_unverified(
        self,
        email: str,
        username: str,
        password: str,
        phone_number: Optional[str] = None,
    ) -> User:
        """Create a user that cannot log in until its signup code is verified."""
        user = await self._create_user(
            email=email,
            username=username,
            name=username,
            password=password,
            is_active=False,
            phone_number=phone_number,
        )
        await self.session.commit()
        return user

    async def activate(self, user: User) -> User:
        user.is_active = True
        user.is_verified = True
        user = await self.users.update(user)
        await self.session.commit()
        logger.info(f"Activated user {user.id}")
        return user

    async def check_password(self, email: str, password: str) -> User:
        """
        Resolve an email/password pair to an active user.

        Unknown email, inactive account and wrong password all raise the same error.
        """
        user = await self.users.get_by_email(email)
        hashed = user.password_hash if user is not None else None
        password_ok = await self.passwords.verify(password, hashed)
        if user is None or not user.is_active or not password_ok:
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return user

    async def complete_login(self, user: User) -> AuthResult:
        user.last_login_at = utcnow()
        user = await self.users.update(user)
        await self.session.commit()
        logger.info(f"User {user.id} logged in")
        return AuthResult(user=user, tokens=self.tokens.issue(user))

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self.check_password(email, password)
        return await self.complete_login(user)

    async def refresh(self, refresh_token: str) -> TokenPair:
        return await self.tokens.refresh(refresh_token, self.users)

    async def get_user(self, user_id: str) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_user_by_email(self, email: str) -> User:
        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: str, data: ProfileUpdate) -> User:
        user = await self.get_user(user_id)

        if data.username is not None and data.username != user.username:
            existing = await self.users.get_by_username(data.username)
            if existing is not None and existing.id != user_id:
                raise ConflictError("Username already taken")
            user.username = data.username

        if data.name is not None:
            user.name = data.name.strip()

        if data.avatar is not None:
            user.avatar = data.avatar

        try:
            async with self.session.begin_nested():
                user = await self.users.update(user)
        except IntegrityError:
            raise ConflictError("Username already taken")
        await self.session.commit()
        return user

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = await self.get_user(user_id)
        if not await self.passwords.verify(current_password, user.password_hash):
            raise UnauthorizedError("Current password is incorrect")
        await self.set_password(user, new_password)
        logger.info(f"Password changed for user {user_id}")

    async def set_password(self, user: User, new_password: str) -> None:
        """Store a new hash and revoke every token issued before now."""
        user.password_hash = await self.passwords.hash(new_password)
        user.token_version = (user.token_version or 0) + 1
        await self.users.update(user)
        await self.session.commit()

    async def logout(self, user_id: str) -> None:
        user = await self.get_user(user_id)
        user.token_version = (user.token_version or 0) + 1
        await self.users.update(user)
        await self.session.commit()
        logger.info(f"User {user_id} logged out; outstanding tokens revoked")

    async def enable_2fa(self, user_id: str) -> User:
        user = await self.get_user(user_id)
        user.two_factor_enabled = True
        user = await self.users.update(user)
        await self.session.commit()
        logger.info(f"2FA enabled for user {user_id}")
        return user

    async def disable_2fa(self, user_id: str) -> User:
        user = await self.get_user(user_id)
        user.two_factor_enabled = False
        user.two_factor_secret = None
        user.backup_codes = None
        user = await self.users.update(user)
        await self.session.commit()
        logger.info(f"2FA disabled for user {user_id}")
        return user

    async def _create_user(
        self,
        email: str,
        username: str,
        name: str,
        password: str,
        is_active: bool,
        phone_number: Optional[str] = None,
    ) -> User:
        if await self.users.exists_with_email_or_username(email, username):
            raise ConflictError(USER_EXISTS)

        password_hash = await self.passwords.hash(password)
        try:
            async with self.session.begin_nested():
                user = await self.users.create(
                    User(
                        email=email,
                        username=username,
                        name=name,
                        password_hash=password_hash,
                        phone_number=phone_number,
                        role=UserRole.USER,
                        is_active=is_active,
                        is_verified=False,
                        two_factor_enabled=False,
                        token_version=0,
                    )
                )
        except IntegrityError:
            # Lost a race with a concurrent registration
            raise ConflictError(USER_EXISTS)
        return user
