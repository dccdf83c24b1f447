"""MemoryCache 的单元测试."""

import re

from shoplink.cache import MemoryCache, hash_key


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestMemoryCache:
    """MemoryCache 的测试."""

    def test_set_get(self):
        cache = MemoryCache()
        assert cache.set("a", {"x": 1}, 60)
        assert cache.get("a") == {"x": 1}
        assert cache.get("b") is None
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    def test_per_key_ttl(self):
        """条目按各自的 TTL 过期."""
        timer = FakeTimer()
        cache = MemoryCache(timer=timer)
        cache.set("short", 1, 10)
        cache.set("long", 2, 100)

        timer.now = 11
        assert cache.get("short") is None
        assert cache.get("long") == 2

        timer.now = 101
        assert cache.get("long") is None
        assert cache.stats()["size"] == 0

    def test_non_positive_ttl_not_stored(self):
        cache = MemoryCache()
        assert cache.set("a", 1, 0) is False
        assert cache.set("b", 1, -5) is False
        assert cache.get("a") is None
        assert cache.stats()["size"] == 0

    def test_maxsize(self):
        cache = MemoryCache(maxsize=2)
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)
        cache.set("c", 3, 60)
        assert cache.stats()["size"] == 2
        assert cache.get("c") == 3

    def test_delete_and_clear(self):
        cache = MemoryCache()
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)

        assert cache.delete("a")
        assert not cache.delete("a")
        cache.clear()
        assert cache.get("b") is None


class TestHashKey:
    """hash_key 的测试."""

    def test_format(self):
        key = hash_key("resolve", "https://e.tb.cn/h.abcdef")
        assert re.fullmatch(r"resolve:[0-9a-f]{16}", key)
        assert key == hash_key("resolve", "https://e.tb.cn/h.abcdef")
        assert key != hash_key("resolve", "https://e.tb.cn/h.other")
