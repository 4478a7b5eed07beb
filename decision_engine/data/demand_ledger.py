from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import Callable

DAY_SEC = 24 * 3600.0


class DemandLedger:
    """Timestamped purchase batches per stream, summed over a trailing window.

    Events are kept for ``retention_sec`` (at least a day) so daily counts stay
    available alongside the shorter pricing window.
    """

    def __init__(
        self,
        window_sec: float = 6 * 3600.0,
        *,
        retention_sec: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.window_sec = max(0.0, float(window_sec))
        self.retention_sec = max(self.window_sec, DAY_SEC if retention_sec is None else float(retention_sec))
        self.clock = clock
        self._events: dict[str, deque[tuple[float, int]]] = defaultdict(deque)
        self._lock = threading.Lock()

    def record(self, stream: str, ts: float | None = None, count: int = 1) -> None:
        count = int(count)
        if count <= 0:
            return
        ts = self.clock() if ts is None else float(ts)
        with self._lock:
            self._events[stream].append((ts, count))

    def counts(self, now: float | None = None, window_sec: float | None = None) -> dict[str, int]:
        now = self.clock() if now is None else float(now)
        window = self.window_sec if window_sec is None else max(0.0, float(window_sec))
        cutoff = now - window
        expired = now - self.retention_sec
        out: dict[str, int] = {}
        with self._lock:
            for stream, q in self._events.items():
                while q and q[0][0] < expired:
                    q.popleft()
                out[stream] = sum(n for ts, n in q if cutoff <= ts <= now)
        return out
