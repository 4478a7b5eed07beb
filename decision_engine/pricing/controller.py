from __future__ import annotations

import logging
import random
import threading
import time
from collections import deque
from typing import Any, Callable

from decision_engine.data.snapshot_store import SnapshotStore
from decision_engine.domain.models import PricePoint, StreamRule
from decision_engine.infra.telemetry import NullEventLogger
from decision_engine.pricing.streams import default_streams

HIGH = "high"
LOW = "low"
NORMAL = "normal"


def classify(rule: StreamRule, count: float) -> str:
    if count > rule.high_threshold:
        return HIGH
    if count < rule.low_threshold:
        return LOW
    return NORMAL


def _step_signal(rule: StreamRule, level: str) -> str:
    label = rule.high_signal if level == HIGH else rule.low_signal
    if label:
        return label
    factor = rule.high_factor if level == HIGH else rule.low_factor
    pct = round(abs(factor - 1.0) * 100)
    verb = "increase" if factor > 1.0 else "decrease"
    return f"{verb}_{pct}pct_{level}_demand"


class AdaptivePricingController:
    """Debounced control loop nudging bounded values toward recent demand.

    Every stream value stays inside ``[base * (1 + min_pct), base * (1 + max_pct)]``.
    History is capped at ``history_cap``; ``status`` serves a shorter slice.
    """

    def __init__(
        self,
        streams: tuple[StreamRule, ...] | None = None,
        *,
        min_interval: float = 600.0,
        epsilon: float = 0.08,
        explore_step: float = 0.02,
        history_cap: int = 200,
        status_recent: int = 50,
        rng: random.Random | None = None,
        store: SnapshotStore | None = None,
        clock: Callable[[], float] = time.time,
        log: logging.Logger | None = None,
        events=None,
    ):
        self.rules = {r.name: r for r in (streams or default_streams())}
        self.min_interval = max(0.0, float(min_interval))
        self.epsilon = max(0.0, min(1.0, float(epsilon)))
        self.explore_step = float(explore_step)
        self.history_cap = max(1, int(history_cap))
        self.status_recent = max(1, min(int(status_recent), self.history_cap))
        self.rng = rng or random.Random()
        self.store = store
        self.clock = clock
        self.log = log or logging.getLogger("decision-engine.pricing")
        self.events = events or NullEventLogger()
        self.values: dict[str, float] = {name: r.base_value for name, r in self.rules.items()}
        self.last_adjust_at: float | None = None
        self.history: deque[PricePoint] = deque(maxlen=self.history_cap)
        self._lock = threading.Lock()

    def value(self, stream: str) -> float:
        with self._lock:
            return self.values[stream]

    def tick(
        self,
        now: float | None = None,
        demand: dict[str, float] | None = None,
        *,
        force: bool = False,
    ) -> PricePoint | None:
        """Run one adjustment; returns None when debounced."""
        now = self.clock() if now is None else float(now)
        demand = dict(demand or {})
        with self._lock:
            debounced = self.last_adjust_at is not None and (now - self.last_adjust_at) < self.min_interval
            if debounced and not force:
                return None

            proposed = dict(self.values)
            signals: dict[str, str] = {}
            for name, rule in self.rules.items():
                level = classify(rule, float(demand.get(name, 0) or 0))
                if level == HIGH:
                    proposed[name] *= rule.high_factor
                    signals[name] = _step_signal(rule, level)
                elif level == LOW:
                    proposed[name] *= rule.low_factor
                    signals[name] = _step_signal(rule, level)

            explorable = [n for n, r in self.rules.items() if r.explorable]
            if explorable and self.rng.random() < self.epsilon:
                direction = -1.0 if self.rng.random() < 0.5 else 1.0
                target = self.rng.choice(explorable)
                proposed[target] *= 1.0 + direction * self.explore_step
                signals["explore"] = f"{target}_{'up' if direction > 0 else 'down'}"

            for name, rule in self.rules.items():
                self.values[name] = rule.clamp(round(proposed[name], rule.decimals))

            point = PricePoint(timestamp=now, values=dict(self.values), signals=signals)
            self.history.append(point)
            self.last_adjust_at = now
            self._persist()

        self.log.info("pricing tick values=%s signals=%s", point.values, signals or "-")
        self.events.emit("pricing.tick", values=point.values, signals=signals, forced=bool(force))
        return point

    def status(self, full: bool = False) -> dict[str, Any]:
        with self._lock:
            limit = self.history_cap if full else self.status_recent
            hist = list(self.history)[-limit:]
            return {
                "values": dict(self.values),
                "lastAdjust": self.last_adjust_at,
                "history": [p.to_dict() for p in hist],
            }

    def snapshot(self) -> dict[str, Any]:
        return {
            "values": dict(self.values),
            "last_adjust_at": self.last_adjust_at,
            "history": [p.to_dict() for p in self.history],
        }

    def load(self) -> "AdaptivePricingController":
        raw = self.store.load() if self.store is not None else None
        if not isinstance(raw, dict):
            return self
        try:
            values = {}
            for name, v in (raw.get("values") or {}).items():
                rule = self.rules.get(name)
                if rule is not None:
                    # bases may have changed since the snapshot was written
                    values[name] = rule.clamp(float(v))
            last = raw.get("last_adjust_at")
            last_adjust_at = float(last) if last is not None else None
            history = [PricePoint.from_dict(row) for row in raw.get("history") or []]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            self.store.reject(exc)
            return self
        with self._lock:
            self.values.update(values)
            self.last_adjust_at = last_adjust_at
            self.history.clear()
            self.history.extend(history)
        self.log.info("pricing state restored values=%s history=%s", self.values, len(self.history))
        return self

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.snapshot())
