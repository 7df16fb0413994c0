"""Tests for the relay's expiring token cache."""

from unittest.mock import patch

import pytest

from app.schemas.slack import SlackTokenPayload
from app.services.token_relay_service import TokenRelayService
from app.utils.ttl_cache import TTLCache


@pytest.fixture
def payload():
    return SlackTokenPayload.model_validate({"ok": True, "access_token": "xoxb-tok", "team": {"id": "T1"}})


class TestTokenRelayService:
    def test_user_key_takes_precedence(self):
        assert TokenRelayService.cache_key("abc", "u1") == "user:u1"
        assert TokenRelayService.cache_key("abc") == "code:abc"

    def test_take_by_user_and_code(self, payload):
        relay = TokenRelayService(ttl_seconds=60, maxsize=8)
        relay.put("abc", payload, "u1")

        assert relay.take("abc", "u1") == payload
        assert relay.take("abc", "u1") is None

    def test_take_by_code_only(self, payload):
        relay = TokenRelayService(ttl_seconds=60, maxsize=8)
        relay.put("abc", payload)

        assert relay.take("abc") == payload

    def test_no_partial_key_fallback(self, payload):
        relay = TokenRelayService(ttl_seconds=60, maxsize=8)
        relay.put("abc", payload, "u1")

        assert relay.take("abc") is None
        assert relay.take("abc", "u2") is None
        assert relay.take("other-code", "u1") is None
        assert relay.take("abc", "u1") == payload

    def test_expired_entries_are_not_returned(self, payload):
        relay = TokenRelayService(ttl_seconds=60, maxsize=8)
        with patch("app.utils.ttl_cache.time") as mock_time:
            mock_time.monotonic.return_value = 1000.0
            relay.put("abc", payload, "u1")

            mock_time.monotonic.return_value = 1061.0
            assert relay.take("abc", "u1") is None


class TestTTLCache:
    def test_evicts_oldest_at_capacity(self):
        cache = TTLCache(ttl_seconds=60, maxsize=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert "a" not in cache
        assert cache.get("b") == 2
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_pop(self):
        cache = TTLCache(ttl_seconds=60)
        cache.set("a", 1)
        assert cache.pop("a") == 1
        assert cache.pop("a", "gone") == "gone"

    def test_contains_sees_stored_none(self):
        cache = TTLCache(ttl_seconds=60)
        cache.set("a", None)

        assert "a" in cache
        assert "b" not in cache
