"""
Tests for key expiration:
- set_with_expire(): Values that disappear after a number of seconds
- expire() / persist() / ttl(): Managing deadlines on existing keys
- Lazy removal on access and active removal via cleanup_expired()

Run with: python -m pytest tests/test_ttl.py -v

Note: Some tests use time.sleep() and may be slow.
Run with -m "not slow" to skip slow tests.
"""

import time
import pytest
from embedded_redis.cache.store import RedisStore


class TestSetWithExpire:
    """Test set_with_expire()."""

    def test_zero_ttl_is_never_visible(self, store: RedisStore):
        store.set_with_expire("key", b"value", 0)
        assert store.get("key") is None
        assert store.exists(["key"]) == 0
        assert store.keys("*") == []

    def test_zero_ttl_ignores_wall_clock(self, store: RedisStore, monkeypatch):
        store.set_with_expire("key", b"value", 0)
        # Wall clock stepping back an hour must not revive the key
        wall = time.time() - 3600
        monkeypatch.setattr(time, "time", lambda: wall)
        assert store.get("key") is None

    def test_positive_ttl_is_visible(self, store: RedisStore):
        store.set_with_expire("key", b"value", 60)
        assert store.get("key") == b"value"

    def test_negative_ttl_rejected(self, store: RedisStore):
        with pytest.raises(ValueError):
            store.set_with_expire("key", b"value", -1)
        assert store.get("key") is None

    def test_replaces_previous_value(self, store: RedisStore):
        store.hset("key", "f", b"x")
        store.set_with_expire("key", b"value", 60)
        assert store.get("key") == b"value"

    def test_set_clears_expiration(self, store: RedisStore):
        store.set_with_expire("key", b"v1", 60)
        store.set("key", b"v2")
        assert store.ttl("key") == -1

    @pytest.mark.slow
    def test_key_expires_after_ttl(self, store: RedisStore):
        store.set_with_expire("key", b"value", 1)
        assert store.get("key") == b"value"

        time.sleep(1.1)

        assert store.get("key") is None

    @pytest.mark.slow
    def test_set_after_setex_survives(self, store: RedisStore):
        store.set_with_expire("key", b"v1", 1)
        store.set("key", b"v2")

        time.sleep(1.1)

        assert store.get("key") == b"v2"


class TestTTL:
    """Test ttl()."""

    def test_ttl_missing_key(self, store: RedisStore):
        assert store.ttl("missing") == -2

    def test_ttl_without_expiration(self, store: RedisStore):
        store.set("key", b"v")
        assert store.ttl("key") == -1

    def test_ttl_reports_remaining_seconds(self, store: RedisStore):
        store.set_with_expire("key", b"v", 10)
        assert store.ttl("key") == 10

    def test_ttl_expired_key(self, store: RedisStore):
        store.set_with_expire("key", b"v", 0)
        assert store.ttl("key") == -2


class TestExpireAndPersist:
    """Test expire() and persist()."""

    def test_expire_missing_key(self, store: RedisStore):
        assert store.expire("missing", 10) is False

    def test_expire_sets_deadline(self, store: RedisStore):
        store.set("key", b"v")
        assert store.expire("key", 100) is True
        assert 0 < store.ttl("key") <= 100

    def test_expire_works_on_hashes(self, store: RedisStore):
        store.hset("h", "f", b"x")
        assert store.expire("h", 100) is True
        assert store.ttl("h") == 100

    def test_expire_non_positive_deletes(self, store: RedisStore):
        store.set("key", b"v")
        assert store.expire("key", 0) is True
        assert store.get("key") is None
        assert store.get_stats()["total_keys"] == 0

    def test_persist_removes_deadline(self, store: RedisStore):
        store.set_with_expire("key", b"v", 100)
        assert store.persist("key") is True
        assert store.ttl("key") == -1

    def test_persist_without_deadline(self, store: RedisStore):
        store.set("key", b"v")
        assert store.persist("key") is False
        assert store.persist("missing") is False

    @pytest.mark.slow
    def test_expired_hash_is_absent(self, store: RedisStore):
        store.hset("h", "f", b"x")
        store.expire("h", 1)

        time.sleep(1.1)

        assert store.hget("h", "f") is None
        assert store.hgetall("h") == {}
        # The key can be recreated as another type once expired
        store.rpush("h", [b"a"])
        assert store.lrange("h", 0, -1) == [b"a"]


class TestExpiredKeysAreAbsent:
    """An expired key behaves exactly like a missing one."""

    def test_delete_expired_key(self, store: RedisStore):
        store.set_with_expire("key", b"v", 0)
        assert store.delete(["key"]) == 0

    def test_keys_skips_expired(self, store: RedisStore):
        store.set_with_expire("gone", b"v", 0)
        store.set("kept", b"v")
        assert store.keys("*") == ["kept"]

    def test_dbsize_skips_expired(self, store: RedisStore):
        store.set_with_expire("gone", b"v", 0)
        store.set("kept", b"v")
        assert store.dbsize() == 1

    def test_expired_key_can_change_type(self, store: RedisStore):
        store.set_with_expire("key", b"v", 0)
        store.hset("key", "f", b"x")
        assert store.hget("key", "f") == b"x"


class TestCleanup:
    """Test lazy and active cleanup of expired keys."""

    def test_get_removes_expired_key(self, store: RedisStore):
        store.set_with_expire("key", b"v", 0)
        assert store.get_stats()["total_keys"] == 1

        assert store.get("key") is None

        assert store.get_stats()["total_keys"] == 0
        assert "key" not in store._data

    def test_cleanup_expired_removes_keys(self, store: RedisStore):
        store.set_with_expire("key1", b"v", 0)
        store.set_with_expire("key2", b"v", 0)
        store.set_with_expire("key3", b"v", 60)
        store.set("key4", b"v")

        removed = store.cleanup_expired()

        assert removed == 2
        assert store.get_stats()["total_keys"] == 2
        assert store.get("key3") == b"v"
        assert store.get("key4") == b"v"

    def test_cleanup_expired_empty_store(self, store: RedisStore):
        assert store.cleanup_expired() == 0
