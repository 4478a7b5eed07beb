from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any

from decision_engine.domain.errors import PersistenceFailure
from decision_engine.infra.telemetry import NullEventLogger


class SnapshotStore:
    """Per-component JSON snapshot file with best-effort, ordered writes.

    ``write`` raises ``PersistenceFailure``. ``save`` never raises: failures are
    logged and emitted as ``snapshot.error`` events. With ``background=True``
    writes run on a single worker thread, so they stay in submission order and
    the caller never waits on disk.
    """

    def __init__(
        self,
        data_dir: str,
        filename: str,
        *,
        background: bool = False,
        log: logging.Logger | None = None,
        events=None,
    ):
        self.path = Path(data_dir) / filename
        self.background = background
        self.log = log or logging.getLogger("decision-engine.snapshot")
        self.events = events or NullEventLogger()
        self._executor: ThreadPoolExecutor | None = None
        self._pending: list[Future] = []
        self._lock = threading.Lock()
        self.failures = 0

    def write(self, payload: dict[str, Any] | list[Any]) -> None:
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, ensure_ascii=True, separators=(",", ":")))
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(str(self.path), exc) from exc

    def _write_logged(self, payload: dict[str, Any] | list[Any]) -> bool:
        try:
            self.write(payload)
            return True
        except PersistenceFailure as exc:
            self.failures += 1
            self.log.warning("snapshot write failed file=%s err=%s", self.path.name, exc.cause)
            self.events.emit("snapshot.error", file=self.path.name, error=str(exc.cause))
            return False

    def save(self, payload: dict[str, Any] | list[Any]) -> None:
        if not self.background:
            self._write_logged(payload)
            return
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"snapshot-{self.path.stem}")
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(self._executor.submit(self._write_logged, payload))

    def flush(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def reject(self, exc: Exception) -> None:
        """Record a snapshot that parsed but could not be restored; callers keep their defaults."""
        self.failures += 1
        self.log.warning("snapshot restore failed file=%s err=%r", self.path.name, exc)
        self.events.emit("snapshot.error", file=self.path.name, error=repr(exc), op="restore")

    def load(self) -> dict[str, Any] | list[Any] | None:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            self.failures += 1
            self.log.warning("snapshot read failed file=%s err=%s", self.path.name, exc)
            self.events.emit("snapshot.error", file=self.path.name, error=str(exc), op="read")
            return None
