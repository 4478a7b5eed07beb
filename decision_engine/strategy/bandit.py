from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Iterable
from dataclasses import asdict
from typing import Any, Callable

from decision_engine.data.snapshot_store import SnapshotStore
from decision_engine.domain.models import ArmKey, ArmStat, Candidate, DecisionContext, RankedAction
from decision_engine.infra.telemetry import NullEventLogger
from decision_engine.strategy.regime import DEFAULT_REGIME, default_regime

SNAPSHOT_VERSION = 1


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(x)))


class ContextualBanditEngine:
    """UCB1 ranking over (action, regime) arms with time-decayed statistics.

    Counts are effective counts: on every update the arm's history is scaled by
    ``exp(-decay_rate * seconds_since_last_update)`` before the new observation
    is added with weight 1. One re-entrant lock guards the whole state; reads
    take it too so a half-updated arm is never scored.
    """

    def __init__(
        self,
        *,
        ucb_c: float = 1.4,
        decay_rate: float = 0.0001,
        max_arms: int = 10000,
        prune_every: int = 500,
        epsilon: float = 1e-9,
        regime_fn: Callable[[DecisionContext | None], str] = default_regime,
        store: SnapshotStore | None = None,
        clock: Callable[[], float] = time.time,
        log: logging.Logger | None = None,
        events=None,
    ):
        self.ucb_c = float(ucb_c)
        self.decay_rate = max(0.0, float(decay_rate))
        self.max_arms = max(1, int(max_arms))
        self.prune_every = max(1, int(prune_every))
        self.epsilon = float(epsilon)
        self.regime_fn = regime_fn
        self.store = store
        self.clock = clock
        self.log = log or logging.getLogger("decision-engine.bandit")
        self.events = events or NullEventLogger()
        self.arms: dict[ArmKey, ArmStat] = {}
        self.total_plays = 0.0
        self._updates = 0
        self._lock = threading.RLock()

    def _regime(self, context: DecisionContext | None) -> str:
        return self.regime_fn(context) or DEFAULT_REGIME

    def register_arm(self, action: str) -> None:
        with self._lock:
            self.arms.setdefault(ArmKey(action, DEFAULT_REGIME), ArmStat())

    def record_outcome(
        self,
        action: str,
        reward: float,
        success: bool,
        context: DecisionContext | None = None,
    ) -> ArmStat:
        reward = float(reward)
        key = ArmKey(action, self._regime(context))
        with self._lock:
            now = self.clock()
            stat = self.arms.get(key)
            if stat is None:
                stat = ArmStat()
                self.arms[key] = stat
            if self.decay_rate > 0 and stat.n > 0:
                factor = math.exp(-self.decay_rate * max(0.0, now - stat.last_update_at))
                stat.n *= factor
                stat.successes *= factor
                stat.sum_reward *= factor
                stat.sum_reward_sq *= factor
            stat.n += 1.0
            if success:
                stat.successes += 1.0
            stat.successes = min(stat.successes, stat.n)
            stat.sum_reward += reward
            stat.sum_reward_sq += reward * reward
            stat.last_update_at = now
            self.total_plays += 1.0
            self._updates += 1
            if self._updates % self.prune_every == 0:
                self._prune()
            self._persist()
            return ArmStat(**asdict(stat))

    def _prune(self) -> int:
        excess = len(self.arms) - self.max_arms
        if excess <= 0:
            return 0
        stale = sorted(self.arms.items(), key=lambda kv: kv[1].last_update_at)[:excess]
        for key, _ in stale:
            del self.arms[key]
        self.log.info("bandit prune removed=%s kept=%s", excess, len(self.arms))
        self.events.emit("bandit.prune", removed=excess, kept=len(self.arms))
        return excess

    def stats(self, action: str, regime: str = DEFAULT_REGIME) -> ArmStat | None:
        with self._lock:
            stat = self.arms.get(ArmKey(action, regime))
            return ArmStat(**asdict(stat)) if stat is not None else None

    def regimes_for(self, action: str) -> list[str]:
        with self._lock:
            return [k.regime for k in self.arms if k.action == action]

    def _explored(self, stat: ArmStat | None) -> bool:
        return stat is not None and stat.n >= self.epsilon

    def expected_value(self, stat: ArmStat | None) -> float:
        if not self._explored(stat):
            return 0.0
        return stat.sum_reward / stat.n

    def success_rate(self, stat: ArmStat | None) -> float:
        if not self._explored(stat):
            return 0.0
        return stat.successes / stat.n

    def ucb_value(self, stat: ArmStat | None) -> float:
        if not self._explored(stat):
            return math.inf
        mean = stat.sum_reward / stat.n
        total = max(1.0, self.total_plays)
        return mean + self.ucb_c * math.sqrt(math.log(total) / stat.n)

    @staticmethod
    def context_multiplier(context: DecisionContext | None) -> float:
        """Positive scale from volatility, momentum and risk heat."""
        if context is None:
            return 1.0
        vol = 1.0
        if context.volatility is not None:
            vol = 1.0 + min(1.0, max(0.0, float(context.volatility)) / 0.02)
        momentum = 1.0 + _clamp(context.momentum_score or 0.0, -0.5, 0.5)
        risk = 1.0 - _clamp(context.risk_heat or 0.0, 0.0, 0.4)
        return vol * momentum * risk

    def score(self, action: str, context: DecisionContext | None = None, baseline: float = 0.0) -> float:
        key = ArmKey(action, self._regime(context))
        with self._lock:
            stat = self.arms.get(key)
            if not self._explored(stat):
                return math.inf
            ucb = self.ucb_value(stat)
        return float(baseline) + ucb * self.context_multiplier(context)

    def rank(
        self,
        candidates: Iterable[Candidate | str],
        context: DecisionContext | None = None,
    ) -> list[RankedAction]:
        scored = []
        with self._lock:
            for c in candidates:
                cand = c if isinstance(c, Candidate) else Candidate(action=str(c))
                scored.append(RankedAction(action=cand.action, score=self.score(cand.action, context, cand.baseline), candidate=cand))
        # sorted() is stable: equal scores keep insertion order
        return sorted(scored, key=lambda r: r.score, reverse=True)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "total_plays": self.total_plays,
                "arms": [
                    {"action": k.action, "regime": k.regime, **asdict(s)}
                    for k, s in self.arms.items()
                ],
                "params": {
                    "ucb_c": self.ucb_c,
                    "decay_rate": self.decay_rate,
                    "max_arms": self.max_arms,
                },
            }

    def load(self) -> "ContextualBanditEngine":
        raw = self.store.load() if self.store is not None else None
        if isinstance(raw, dict):
            try:
                self.restore(raw)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                self.store.reject(exc)
                return self
            self.log.info("bandit state restored arms=%s plays=%.0f", len(self.arms), self.total_plays)
        return self

    def restore(self, raw: dict[str, Any]) -> None:
        """Replace state from a snapshot; raises on a malformed row and leaves state untouched."""
        arms: dict[ArmKey, ArmStat] = {}
        for row in raw.get("arms") or []:
            n = max(0.0, float(row.get("n", 0.0) or 0.0))
            arms[ArmKey(str(row["action"]), str(row.get("regime") or DEFAULT_REGIME))] = ArmStat(
                n=n,
                successes=min(n, max(0.0, float(row.get("successes", 0.0) or 0.0))),
                sum_reward=float(row.get("sum_reward", 0.0) or 0.0),
                sum_reward_sq=float(row.get("sum_reward_sq", 0.0) or 0.0),
                last_update_at=float(row.get("last_update_at", 0.0) or 0.0),
            )
        total_plays = float(raw.get("total_plays", 0.0) or 0.0)
        params = raw.get("params")
        if not isinstance(params, dict):
            params = {}
        with self._lock:
            self.arms = arms
            self.total_plays = total_plays
            if isinstance(params.get("ucb_c"), (int, float)):
                self.ucb_c = float(params["ucb_c"])
            if isinstance(params.get("decay_rate"), (int, float)):
                self.decay_rate = max(0.0, float(params["decay_rate"]))
            if isinstance(params.get("max_arms"), (int, float)):
                self.max_arms = max(1, int(params["max_arms"]))

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.snapshot())
