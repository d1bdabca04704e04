from __future__ import annotations

import json
import threading
import time
from collections import Counter
from typing import Any, Dict, Optional


class Observability:
    def __init__(self, log_interval_sec: int = 30) -> None:
        self._lock = threading.Lock()
        self._counters: Counter[str] = Counter()
        self._gauges: Dict[str, float] = {}
        self._phase: Optional[str] = None
        self._started = time.time()
        self._last_log = time.time()
        self._log_interval_sec = max(1, int(log_interval_sec))

    def inc(self, name: str, count: int = 1) -> None:
        if not name:
            return
        with self._lock:
            self._counters[name] += count

    def set_gauge(self, name: str, value: float) -> None:
        if not name:
            return
        with self._lock:
            self._gauges[name] = value

    def set_phase(self, phase: str) -> None:
        with self._lock:
            self._phase = phase

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def record_listing_page(self, count: int) -> None:
        self.inc("list.pages_total")
        self.inc("list.objects_total", count)

    def record_fetch(self, available: bool) -> None:
        self.inc("fetch.done_total")
        if not available:
            self.inc("fetch.unavailable_total")

    def record_compare(self, outcome: str, bytes_read: int = 0) -> None:
        self.inc("compare.done_total")
        if outcome:
            self.inc(f"compare.{outcome}_total")
        if bytes_read:
            self.inc("compare.bytes_total", bytes_read)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "phase": self._phase,
                "elapsed_sec": round(time.time() - self._started, 1),
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
            }

    def maybe_log(self, logger, force: bool = False) -> None:
        now = time.time()
        with self._lock:
            if not force and now - self._last_log < self._log_interval_sec:
                return
            self._last_log = now
        payload = self.snapshot()
        payload["event"] = "progress"
        logger.info(json.dumps(payload, separators=(",", ":")))
