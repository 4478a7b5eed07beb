from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable

from decision_engine.data.snapshot_store import SnapshotStore
from decision_engine.domain.models import DrawResult, RewardTier, TierSet
from decision_engine.fairness.authority import FairnessSeedAuthority
from decision_engine.fairness.random_source import SeededRandom
from decision_engine.infra.telemetry import NullEventLogger
from decision_engine.rewards.catalog import default_tier_sets
from decision_engine.rewards.sampler import WeightedOutcomeSampler


class FairDrawService:
    """Wagering draws driven by the active fairness seed.

    Each draw uses ``HMAC(secret, client_seed:nonce)`` with a per-seed nonce, and
    reports only the seed hash, so the result can be replayed once the seed is
    revealed.
    """

    def __init__(
        self,
        authority: FairnessSeedAuthority,
        *,
        sampler: WeightedOutcomeSampler | None = None,
        tier_sets: dict[str, TierSet] | None = None,
        adaptive_sets: tuple[str, ...] = ("basic", "premium"),
        engagement_window_sec: float = 3600.0,
        store: SnapshotStore | None = None,
        clock: Callable[[], float] = time.time,
        log: logging.Logger | None = None,
        events=None,
    ):
        self.authority = authority
        self.sampler = sampler or WeightedOutcomeSampler()
        self.tier_sets = dict(tier_sets or default_tier_sets())
        self.adaptive_sets = tuple(adaptive_sets)
        self.engagement_window_sec = float(engagement_window_sec)
        self.store = store
        self.clock = clock
        self.log = log or logging.getLogger("decision-engine.rewards")
        self.events = events or NullEventLogger()
        self._nonces: dict[str, int] = {}
        self._recent: deque[tuple[float, str]] = deque()
        self._lock = threading.Lock()

    def load(self) -> "FairDrawService":
        raw = self.store.load() if self.store is not None else None
        if not isinstance(raw, dict):
            return self
        try:
            restored: dict[str, TierSet] = {}
            for name, row in (raw.get("tier_sets") or {}).items():
                tiers = tuple(RewardTier(value=float(v), weight=float(w)) for v, w in row.get("tiers", []))
                if not tiers:
                    continue
                ref = float(row.get("reference_total", 0.0) or sum(t.weight for t in tiers))
                restored[name] = TierSet(name=name, tiers=tiers, reference_total=ref)
            nonces = {str(k): int(v) for k, v in (raw.get("nonces") or {}).items()}
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            self.store.reject(exc)
            return self
        with self._lock:
            self.tier_sets.update(restored)
            self._nonces = nonces
        return self

    def draw(self, set_name: str, client_seed: str = "") -> DrawResult:
        with self.authority.pinned() as seed, self._lock:
            tier_set = self.tier_sets[set_name]
            nonce = self._nonces.get(seed.id, 0) + 1
            rng = SeededRandom(seed.secret, client_seed, nonce)
            value = self.sampler.draw(tier_set, rng)
            self._nonces[seed.id] = nonce
            now = self.clock()
            self._recent.append((now, set_name))
            self._persist()
        return DrawResult(
            value=value,
            tier_set=set_name,
            seed_id=seed.id,
            seed_hash=seed.commit_hash,
            client_seed=client_seed,
            nonce=nonce,
            roll=rng.last,
            ts=now,
        )

    def recent_counts(self, now: float | None = None) -> dict[str, int]:
        now = self.clock() if now is None else float(now)
        cutoff = now - self.engagement_window_sec
        with self._lock:
            while self._recent and self._recent[0][0] < cutoff:
                self._recent.popleft()
            out = {name: 0 for name in self.tier_sets}
            for _, name in self._recent:
                out[name] = out.get(name, 0) + 1
        return out

    def adapt(self, now: float | None = None) -> list[str]:
        """Reweight under-engaged adaptive sets; returns the names touched."""
        counts = self.recent_counts(now)
        if sum(counts.get(name, 0) for name in self.adaptive_sets) <= 0:
            return []
        touched = []
        with self._lock:
            for name in self.adaptive_sets:
                current = self.tier_sets.get(name)
                if current is None:
                    continue
                updated = self.sampler.reweight(current, counts.get(name, 0))
                if updated is not current:
                    self.tier_sets[name] = updated
                    touched.append(name)
            if touched:
                self._persist()
        if touched:
            self.log.info("reward tiers reweighted sets=%s", ",".join(touched))
            self.events.emit("rewards.reweight", sets=touched)
        return touched

    def snapshot(self) -> dict[str, Any]:
        return {
            "tier_sets": {
                name: {
                    "tiers": [[t.value, t.weight] for t in ts.tiers],
                    "reference_total": ts.reference_total,
                }
                for name, ts in self.tier_sets.items()
            },
            "nonces": dict(self._nonces),
        }

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.snapshot())
