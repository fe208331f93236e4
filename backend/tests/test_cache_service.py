"""Tests for cache service."""

from unittest.mock import MagicMock, patch

import redis

from adopte.integrations.cache import LocalCacheService, RedisCacheService, create_cache_service


class TestLocalCacheService:
    def test_get_missing_returns_none(self):
        assert LocalCacheService().get("any_key") is None

    def test_set_and_get(self):
        cache = LocalCacheService()
        cache.set("key", "value", 60)
        assert cache.get("key") == "value"

    def test_entry_expires(self):
        cache = LocalCacheService()
        with patch("adopte.integrations.cache.time.monotonic", return_value=1000.0):
            cache.set("key", "value", 10)
        with patch("adopte.integrations.cache.time.monotonic", return_value=1011.0):
            assert cache.get("key") is None

    def test_expired_entries_swept_on_write(self, monkeypatch):
        monkeypatch.setattr(LocalCacheService, "SWEEP_THRESHOLD", 3)
        cache = LocalCacheService()
        with patch("adopte.integrations.cache.time.monotonic", return_value=1000.0):
            for key in ("revoked:a", "revoked:b", "revoked:c"):
                cache.set(key, "1", 10)
        with patch("adopte.integrations.cache.time.monotonic", return_value=1011.0):
            cache.set("revoked:d", "1", 10)
            assert set(cache._data) == {"revoked:d"}
            assert cache.get("revoked:d") == "1"

    def test_live_entries_survive_sweep(self, monkeypatch):
        monkeypatch.setattr(LocalCacheService, "SWEEP_THRESHOLD", 2)
        cache = LocalCacheService()
        for key in ("a", "b", "c", "d"):
            cache.set(key, key, 60)
        assert [cache.get(key) for key in ("a", "b", "c", "d")] == ["a", "b", "c", "d"]

    def test_non_positive_ttl_is_ignored(self):
        cache = LocalCacheService()
        cache.set("key", "value", 0)
        assert cache.get("key") is None

    def test_delete(self):
        cache = LocalCacheService()
        cache.set("key", "value", 60)
        cache.delete("key")
        cache.delete("never-set")
        assert cache.get("key") is None

    def test_json_round_trip(self):
        cache = LocalCacheService()
        cache.set_json("key", {"name": "Élodie"}, 60)
        assert cache.get_json("key") == {"name": "Élodie"}

    def test_get_json_invalid_payload(self):
        cache = LocalCacheService()
        cache.set("key", "not json", 60)
        assert cache.get_json("key") is None


class TestRedisCacheService:
    def test_errors_are_logged_not_raised(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.setex.side_effect = redis.ConnectionError("down")
        with patch("adopte.integrations.cache.redis.from_url", return_value=client):
            cache = RedisCacheService("redis://localhost:6379/0")
        assert cache.get("key") is None
        cache.set("key", "value", 60)

    def test_set_uses_ttl(self):
        client = MagicMock()
        with patch("adopte.integrations.cache.redis.from_url", return_value=client):
            cache = RedisCacheService("redis://localhost:6379/0")
        cache.set("key", "value", 30)
        client.setex.assert_called_once_with("key", 30, "value")


class TestCreateCacheService:
    def test_empty_url_uses_local_cache(self):
        assert isinstance(create_cache_service(""), LocalCacheService)

    def test_unreachable_redis_falls_back(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("adopte.integrations.cache.redis.from_url", return_value=client):
            assert isinstance(create_cache_service("redis://nowhere:6379/0"), LocalCacheService)
