from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Seed:
    id: str
    secret: str
    commit_hash: str
    created_at: float
    revealed_at: float | None = None
    active: bool = True

    def commitment(self) -> "SeedCommitment":
        return SeedCommitment(id=self.id, commit_hash=self.commit_hash, created_at=self.created_at)

    def public(self) -> dict[str, Any]:
        out = {
            "id": self.id,
            "hash": self.commit_hash,
            "created": self.created_at,
            "revealedAt": self.revealed_at,
            "active": self.active,
        }
        if self.revealed_at is not None and not self.active:
            out["seed"] = self.secret
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "seed": self.secret,
            "hash": self.commit_hash,
            "created": self.created_at,
            "revealedAt": self.revealed_at,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "Seed":
        revealed = row.get("revealedAt")
        return cls(
            id=str(row["id"]),
            secret=str(row["seed"]),
            commit_hash=str(row["hash"]),
            created_at=float(row.get("created", 0.0) or 0.0),
            revealed_at=float(revealed) if revealed is not None else None,
            active=bool(row.get("active", False)),
        )


@dataclass(frozen=True)
class SeedCommitment:
    id: str
    commit_hash: str
    created_at: float


@dataclass(frozen=True)
class RevealedSeed:
    id: str
    secret: str
    commit_hash: str
    created_at: float
    revealed_at: float


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    reason: str
    seed_id: str = ""
    expected_hash: str = ""
    actual_hash: str = ""


@dataclass(frozen=True)
class RewardTier:
    value: float
    weight: float


@dataclass(frozen=True)
class TierSet:
    name: str
    tiers: tuple[RewardTier, ...]
    reference_total: float

    @property
    def total_weight(self) -> float:
        return sum(t.weight for t in self.tiers)

    @classmethod
    def build(cls, name: str, pairs) -> "TierSet":
        tiers = tuple(RewardTier(value=float(v), weight=float(w)) for v, w in pairs)
        return cls(name=name, tiers=tiers, reference_total=sum(t.weight for t in tiers))


@dataclass(frozen=True)
class DrawResult:
    value: float
    tier_set: str
    seed_id: str
    seed_hash: str
    client_seed: str
    nonce: int
    roll: float
    ts: float


@dataclass(frozen=True)
class ArmKey:
    action: str
    regime: str = "default"


@dataclass
class ArmStat:
    n: float = 0.0
    successes: float = 0.0
    sum_reward: float = 0.0
    sum_reward_sq: float = 0.0
    last_update_at: float = 0.0


@dataclass(frozen=True)
class DecisionContext:
    regime_hint: str | None = None
    volatility: float | None = None
    momentum_score: float = 0.0
    risk_heat: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "DecisionContext":
        raw = dict(raw or {})
        vol = raw.get("volatility")
        hint = raw.get("regimeHint", raw.get("regime_hint"))
        return cls(
            regime_hint=str(hint) if hint else None,
            volatility=float(vol) if vol is not None else None,
            momentum_score=float(raw.get("momentumScore", raw.get("momentum_score", 0.0)) or 0.0),
            risk_heat=float(raw.get("riskHeat", raw.get("risk_heat", 0.0)) or 0.0),
        )


@dataclass(frozen=True)
class Candidate:
    action: str
    profit: float = 0.0
    size: float = 0.0

    @property
    def baseline(self) -> float:
        return float(self.profit) * float(self.size)


@dataclass(frozen=True)
class RankedAction:
    action: str
    score: float
    candidate: Candidate


@dataclass(frozen=True)
class StreamRule:
    name: str
    base_value: float
    min_pct: float = -0.4
    max_pct: float = 0.5
    high_threshold: float = 0.0
    low_threshold: float = 0.0
    high_factor: float = 1.0
    low_factor: float = 1.0
    decimals: int = 8
    explorable: bool = False
    high_signal: str = ""
    low_signal: str = ""

    @property
    def floor(self) -> float:
        return self.base_value * (1.0 + self.min_pct)

    @property
    def ceiling(self) -> float:
        return self.base_value * (1.0 + self.max_pct)

    def clamp(self, value: float) -> float:
        return min(self.ceiling, max(self.floor, float(value)))


@dataclass(frozen=True)
class PricePoint:
    timestamp: float
    values: dict[str, float]
    signals: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"ts": self.timestamp, "values": dict(self.values), "signals": dict(self.signals)}

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "PricePoint":
        return cls(
            timestamp=float(row.get("ts", 0.0) or 0.0),
            values={str(k): float(v) for k, v in (row.get("values") or {}).items()},
            signals={str(k): str(v) for k, v in (row.get("signals") or {}).items()},
        )
