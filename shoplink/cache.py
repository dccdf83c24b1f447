"""进程内缓存.

每个键可有各自的 TTL, 容量满时淘汰最久未使用的条目.
批量解析在线程池中运行, 读写都加锁.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Any, NamedTuple

from cachetools import TLRUCache

from shoplink.config import CACHE_MAX_SIZE

logger = logging.getLogger(__name__)


class _Entry(NamedTuple):
    value: Any
    ttl: float


def _expires_at(_key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class MemoryCache:
    """get / set(key, value, ttl) 接口的内存缓存."""

    def __init__(self, maxsize: int = CACHE_MAX_SIZE, timer=time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self.misses += 1
                logger.debug("缓存未命中: %s", key)
                return None
            self.hits += 1
            logger.debug("缓存命中: %s", key)
            return entry.value

    def set(self, key: str, value: Any, ttl: float) -> bool:
        if ttl <= 0:
            return False
        with self._lock:
            self._cache[key] = _Entry(value, ttl)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            self._cache.expire()
            return {
                "size": len(self._cache),
                "maxsize": int(self._cache.maxsize),
                "hits": self.hits,
                "misses": self.misses,
            }


def hash_key(prefix: str, text: str) -> str:
    """由任意字符串生成定长缓存键."""
    digest = hashlib.md5(text.encode("utf-8")).hexdigest()[:16]
    return f"{prefix}:{digest}"
