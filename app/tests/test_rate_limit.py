"""
Tests for rate limiting on the booking endpoints
Per-client fixed window (100 requests per 10 minutes by default)
"""

import pytest

from app.core import rate_limit
from app.core.config import settings


class TestRateLimiting:

    def test_rate_limit_config(self):
        assert settings.RATE_LIMIT == 100
        assert settings.RATE_LIMIT_WINDOW == 600  # 10 minutes

    @pytest.mark.asyncio
    async def test_requests_over_limit_rejected(self, test_client, valid_quote_data, monkeypatch):
        monkeypatch.setattr(rate_limit.settings, "RATE_LIMIT", 3)

        for _ in range(3):
            response = await test_client.post("/quotes/", json=valid_quote_data)
            assert response.status_code == 200

        response = await test_client.post("/quotes/", json=valid_quote_data)
        assert response.status_code == 429
        assert response.json()["detail"] == "Rate limit exceeded"

    @pytest.mark.asyncio
    async def test_rate_limit_per_user(
        self, test_client, valid_quote_data, monkeypatch, create_user_factory, auth_headers
    ):
        monkeypatch.setattr(rate_limit.settings, "RATE_LIMIT", 1)
        user1 = await create_user_factory("one@example.com")
        user2 = await create_user_factory("two@example.com")

        response = await test_client.post("/quotes/", json=valid_quote_data, headers=auth_headers(user1))
        assert response.status_code == 200
        response = await test_client.post("/quotes/", json=valid_quote_data, headers=auth_headers(user2))
        assert response.status_code == 200
        response = await test_client.post("/quotes/", json=valid_quote_data, headers=auth_headers(user1))
        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_monitoring_endpoints_not_limited(self, test_client, monkeypatch):
        monkeypatch.setattr(rate_limit.settings, "RATE_LIMIT", 1)

        for endpoint in ["/health", "/readiness", "/metrics", "/health"]:
            response = await test_client.get(endpoint)
            assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_window_counter_expires(self, test_client, storage, valid_quote_data, monkeypatch):
        monkeypatch.setattr(rate_limit.settings, "RATE_LIMIT", 1)

        assert (await test_client.post("/quotes/", json=valid_quote_data)).status_code == 200
        for key in storage.cache.keys("rl:"):
            await storage.cache.delete(key)
        assert (await test_client.post("/quotes/", json=valid_quote_data)).status_code == 200


class TestRateLimitConfiguration:

    def test_rate_limit_sensible_defaults(self):
        assert settings.RATE_LIMIT >= 50
        assert settings.RATE_LIMIT <= 1000

        assert settings.RATE_LIMIT_WINDOW >= 60  # at least 1 minute
        assert settings.RATE_LIMIT_WINDOW <= 3600  # at most 1 hour
