"""解析记录 (固定容量, 超出时丢弃最旧的记录)."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass

from shoplink.config import PARSE_HISTORY_SIZE


@dataclass
class ParseRecord:
    url: str
    product_id: str
    success: bool
    duration_ms: float
    error_type: str | None = None


class ParseHistory:
    """最近 maxlen 次解析的记录与统计."""

    def __init__(self, maxlen: int = PARSE_HISTORY_SIZE):
        self._records: deque[ParseRecord] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def record(self, record: ParseRecord) -> None:
        with self._lock:
            self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def recent(self) -> list[ParseRecord]:
        with self._lock:
            return list(self._records)

    def stats(self) -> dict:
        """总数、成功数、失败数、成功率 (%) 与平均耗时 (ms)."""
        records = self.recent()
        total = len(records)
        success = sum(1 for r in records if r.success)
        avg = sum(r.duration_ms for r in records) / total if total else 0.0
        return {
            "total": total,
            "success": success,
            "failed": total - success,
            "success_rate": round(success / total * 100, 1) if total else 0.0,
            "avg_duration_ms": round(avg, 1),
        }
