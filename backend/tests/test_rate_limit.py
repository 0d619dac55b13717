"""Tests for the sliding-window auth rate limiter."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from clicktales.common.rate_limit import RateLimiter
from clicktales.main import create_app

from conftest import make_settings


class TestRateLimiter:
    """Window arithmetic."""

    def test_blocks_after_max_attempts(self):
        limiter = RateLimiter(max_attempts=3, window_seconds=60)
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert [limiter.allow("k", now) for _ in range(4)] == [True, True, True, False]

    def test_window_slides(self):
        limiter = RateLimiter(max_attempts=1, window_seconds=60)
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert limiter.allow("k", now) is True
        assert limiter.allow("k", now + timedelta(seconds=30)) is False
        assert limiter.allow("k", now + timedelta(seconds=61)) is True

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_attempts=1, window_seconds=60)
        assert limiter.allow("a") is True
        assert limiter.allow("b") is True
        assert limiter.allow("a") is False

    def test_idle_keys_are_evicted(self):
        limiter = RateLimiter(max_attempts=1, window_seconds=60)
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for i in range(100):
            limiter.allow(f"10.0.0.{i}:/login", now)
        assert len(limiter) == 100

        later = now + timedelta(seconds=61)
        assert limiter.allow("10.0.1.1:/login", later) is True
        assert len(limiter) == 1
        assert limiter.allow("10.0.0.1:/login", later) is True

    def test_reset(self):
        limiter = RateLimiter(max_attempts=1, window_seconds=60)
        limiter.allow("a")
        limiter.reset("a")
        assert limiter.allow("a") is True


class TestAuthEndpointsRateLimited:
    @pytest.fixture
    def limited_client(self, tmp_path, sender, passwords):
        settings = make_settings(tmp_path, auth_rate_limit_attempts=2)
        app = create_app(settings, notification_sender=sender, password_service=passwords)
        with TestClient(app) as c:
            yield c

    def test_login_returns_429(self, limited_client):
        payload = {"email": "a@x.com", "password": "Secret123"}
        assert limited_client.post("/api/auth/login", json=payload).status_code == 401
        assert limited_client.post("/api/auth/login", json=payload).status_code == 401

        resp = limited_client.post("/api/auth/login", json=payload)
        assert resp.status_code == 429
        assert resp.json()["success"] is False

    def test_limit_is_per_endpoint(self, limited_client):
        payload = {"email": "a@x.com", "password": "Secret123"}
        for _ in range(3):
            limited_client.post("/api/auth/login", json=payload)

        resp = limited_client.post("/api/auth/request-otp", json={"email": "a@x.com", "type": "LOGIN"})
        assert resp.status_code == 404
