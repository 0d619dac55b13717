"""Tests for TokenService: issue, verify, refresh."""

from datetime import timedelta

import pytest

from clicktales.common.exceptions import TokenExpiredError, TokenInvalidError, UnauthorizedError
from clicktales.domains.auth.jwt import ACCESS_TOKEN, REFRESH_TOKEN, TokenService
from clicktales.domains.user.models import User, UserRole
from clicktales.domains.user.repository import UserRepository

from conftest import STRONG_PASSWORD, TEST_SECRET


def make_user(**overrides) -> User:
    values = dict(
        id="u1",
        email="a@x.com",
        username="alice",
        name="Alice",
        role=UserRole.USER,
        token_version=0,
        is_active=True,
    )
    values.update(overrides)
    return User(**values)


def tamper_signature(token: str) -> str:
    header, payload, signature = token.split(".")
    middle = len(signature) // 2
    replacement = "A" if signature[middle] != "A" else "B"
    return ".".join([header, payload, signature[:middle] + replacement + signature[middle + 1:]])


class TestTokenServiceConstruction:
    """The signing secret is a startup precondition."""

    def test_missing_secret_is_fatal(self):
        with pytest.raises(RuntimeError, match="JWT_SECRET"):
            TokenService(None)

    def test_empty_secret_is_fatal(self):
        with pytest.raises(RuntimeError):
            TokenService("")

    def test_from_settings_uses_configured_lifetimes(self, settings):
        service = TokenService.from_settings(settings)
        assert service.access_ttl == timedelta(hours=24)
        assert service.refresh_ttl == timedelta(days=7)


class TestIssueAndVerify:
    """Round trip and integrity."""

    def test_round_trip_preserves_identity(self, tokens):
        pair = tokens.issue(make_user())
        claims = tokens.verify(pair.access_token)
        assert claims.id == "u1"
        assert claims.email == "a@x.com"
        assert claims.username == "alice"
        assert claims.role == UserRole.USER
        assert claims.token_type == ACCESS_TOKEN

    def test_refresh_token_is_typed(self, tokens):
        pair = tokens.issue(make_user())
        assert tokens.verify(pair.refresh_token).token_type == REFRESH_TOKEN

    def test_access_lifetime_is_shorter_than_refresh(self, tokens):
        pair = tokens.issue(make_user())
        access = tokens.verify(pair.access_token)
        refresh = tokens.verify(pair.refresh_token)
        assert access.expires_at < refresh.expires_at

    def test_tampered_signature_fails(self, tokens):
        pair = tokens.issue(make_user())
        with pytest.raises(TokenInvalidError):
            tokens.verify(tamper_signature(pair.access_token))

    def test_other_secret_fails(self, tokens):
        pair = TokenService("another-secret").issue(make_user())
        with pytest.raises(TokenInvalidError):
            tokens.verify(pair.access_token)

    def test_garbage_fails(self, tokens):
        with pytest.raises(TokenInvalidError):
            tokens.verify("not-a-token")

    def test_expired_is_distinguished(self):
        service = TokenService(TEST_SECRET, access_ttl=timedelta(seconds=-5))
        pair = service.issue(make_user())
        with pytest.raises(TokenExpiredError):
            service.verify(pair.access_token)

    def test_expired_and_invalid_are_both_unauthorized(self):
        assert issubclass(TokenExpiredError, UnauthorizedError)
        assert issubclass(TokenInvalidError, UnauthorizedError)

    def test_wrong_type_rejected(self, tokens):
        pair = tokens.issue(make_user())
        with pytest.raises(TokenInvalidError):
            tokens.verify(pair.refresh_token, expected_type=ACCESS_TOKEN)


class TestRefresh:
    """Refresh honours the current user record."""

    @pytest.mark.asyncio
    async def test_refresh_issues_new_pair(self, credentials, tokens, session):
        result = await credentials.register("a@x.com", "alice", "Alice", STRONG_PASSWORD)
        pair = await tokens.refresh(result.tokens.refresh_token, UserRepository(session))
        assert tokens.verify(pair.access_token).id == result.user.id

    @pytest.mark.asyncio
    async def test_refresh_picks_up_role_change(self, credentials, tokens, session):
        result = await credentials.register("a@x.com", "alice", "Alice", STRONG_PASSWORD)
        result.user.role = UserRole.ADMIN
        await session.commit()

        pair = await tokens.refresh(result.tokens.refresh_token, UserRepository(session))
        assert tokens.verify(pair.access_token).role == UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_refresh_rejects_inactive_user(self, credentials, tokens, session):
        result = await credentials.register("a@x.com", "alice", "Alice", STRONG_PASSWORD)
        result.user.is_active = False
        await session.commit()

        with pytest.raises(UnauthorizedError):
            await tokens.refresh(result.tokens.refresh_token, UserRepository(session))

    @pytest.mark.asyncio
    async def test_refresh_rejects_access_token(self, credentials, tokens, session):
        result = await credentials.register("a@x.com", "alice", "Alice", STRONG_PASSWORD)
        with pytest.raises(UnauthorizedError):
            await tokens.refresh(result.tokens.access_token, UserRepository(session))

    @pytest.mark.asyncio
    async def test_refresh_rejects_revoked_token(self, credentials, tokens, session):
        result = await credentials.register("a@x.com", "alice", "Alice", STRONG_PASSWORD)
        await credentials.logout(result.user.id)

        with pytest.raises(UnauthorizedError):
            await tokens.refresh(result.tokens.refresh_token, UserRepository(session))

    @pytest.mark.asyncio
    async def test_refresh_rejects_unknown_user(self, tokens, session):
        pair = tokens.issue(make_user(id="missing"))
        with pytest.raises(UnauthorizedError):
            await tokens.refresh(pair.refresh_token, UserRepository(session))
