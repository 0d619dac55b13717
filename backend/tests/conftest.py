"""Shared fixtures: temp-file SQLite, recording sender, controllable clock."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from clicktales.common.config import Settings
from clicktales.common.database import DatabaseManager
from clicktales.common.exceptions import NotificationDeliveryError
from clicktales.domains.auth.jwt import TokenService
from clicktales.domains.auth.models import OtpPurpose
from clicktales.domains.auth.otp_service import OtpService
from clicktales.domains.user.auth import PasswordService
from clicktales.domains.user.service import CredentialService
from clicktales.main import create_app

TEST_SECRET = "test-secret-key"
STRONG_PASSWORD = "Secret123"


class RecordingSender:
    """Keeps every code it is asked to deliver; can be switched to fail."""

    def __init__(self):
        self.sent: List[Tuple[str, str, OtpPurpose]] = []
        self.fail = False

    async def send(self, destination: str, code: str, purpose: OtpPurpose) -> None:
        if self.fail:
            raise NotificationDeliveryError(destination, "smtp unavailable")
        self.sent.append((destination, code, purpose))

    def last_code(self, destination: Optional[str] = None, purpose: Optional[OtpPurpose] = None) -> str:
        for sent_to, code, sent_purpose in reversed(self.sent):
            if destination is not None and sent_to != destination:
                continue
            if purpose is not None and sent_purpose != purpose:
                continue
            return code
        raise AssertionError(f"no code sent to {destination} for {purpose}")


class FakeClock:
    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        database_type="sqlite",
        sqlite_path=str(tmp_path / "clicktales_test.db"),
        jwt_secret=TEST_SECRET,
        log_dir=None,
        log_level="WARNING",
        email_backend="console",
        otp_cleanup_enabled=False,
        auth_rate_limit_attempts=1000,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def passwords() -> PasswordService:
    return PasswordService(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET)


@pytest_asyncio.fixture
async def db(settings):
    manager = DatabaseManager(settings)
    await manager.initialize()
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture
async def session(db):
    async with db.session_factory() as s:
        yield s


@pytest.fixture
def credentials(session, tokens, passwords) -> CredentialService:
    return CredentialService(session, tokens, passwords)


@pytest.fixture
def otp(session, sender, clock) -> OtpService:
    return OtpService(session, sender, clock=clock)


@pytest.fixture
def client(settings, sender, passwords):
    app = create_app(settings, notification_sender=sender, password_service=passwords)
    with TestClient(app) as c:
        yield c


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
