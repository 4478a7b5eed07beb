from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any

_log = logging.getLogger("decision-engine.telemetry")


class RuntimeEventLogger:
    """Append-only structured event log (one JSON object per line)."""

    def __init__(self, data_dir: str, filename: str = "engine_events.jsonl"):
        self.path = Path(data_dir) / filename
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def emit(self, event: str, **fields: Any) -> None:
        payload = {
            "ts": time.time(),
            "event": event,
            **fields,
        }
        row = json.dumps(payload, separators=(",", ":"), ensure_ascii=True, default=str)
        try:
            with self._lock:
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(row + "\n")
        except OSError as exc:
            _log.warning("event dropped event=%s err=%s", event, exc)

    def tail(self, limit: int = 50) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with self._lock:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        limit = int(limit)
        if limit <= 0:
            return []
        return [json.loads(line) for line in lines[-limit:] if line.strip()]


class NullEventLogger:
    """Drop-in event sink for components built without a data dir."""

    def emit(self, event: str, **fields: Any) -> None:
        return None
