from __future__ import annotations

from collections.abc import Sequence

from decision_engine.domain.errors import InvalidWeights
from decision_engine.domain.models import RewardTier, TierSet


def _validated_total(tiers: Sequence[RewardTier]) -> float:
    if not tiers:
        raise InvalidWeights("tier list is empty")
    total = 0.0
    for t in tiers:
        w = float(t.weight)
        if w < 0 or w != w:
            raise InvalidWeights(f"negative or NaN weight for tier value={t.value}")
        total += w
    if total <= 0:
        raise InvalidWeights(f"total weight must be > 0 (got {total})")
    return total


class WeightedOutcomeSampler:
    """Discrete draws over weighted tiers plus total-preserving re-weighting."""

    def __init__(
        self,
        *,
        boost: float = 1.05,
        max_step: float = 5.0,
        min_draws: int = 2,
    ):
        self.boost = float(boost)
        self.max_step = float(max_step)
        self.min_draws = int(min_draws)

    def draw(self, tiers: Sequence[RewardTier] | TierSet, rng) -> float:
        if isinstance(tiers, TierSet):
            tiers = tiers.tiers
        total = _validated_total(tiers)
        r = float(rng.random()) * total
        cum = 0.0
        for t in tiers:
            cum += float(t.weight)
            if r < cum:
                return t.value
        # r landed on the float edge of the last bound
        return next(t.value for t in reversed(tiers) if t.weight > 0)

    def reweight(self, tier_set: TierSet, recent_draws: int) -> TierSet:
        """Boost mid tiers of an under-engaged set, keeping its reference total.

        Mid tiers have a positive value below the top tier's value. Each boosted
        weight grows by ``boost`` but by no more than ``max_step``, then the whole
        set is scaled back to ``reference_total``.
        """
        if int(recent_draws) >= self.min_draws:
            return tier_set
        _validated_total(tier_set.tiers)
        top = max(t.value for t in tier_set.tiers)
        boosted = []
        for t in tier_set.tiers:
            w = float(t.weight)
            if 0 < t.value < top:
                w = min(w * self.boost, w + self.max_step)
            boosted.append(RewardTier(value=t.value, weight=w))
        scale = tier_set.reference_total / sum(t.weight for t in boosted)
        tiers = tuple(RewardTier(value=t.value, weight=t.weight * scale) for t in boosted)
        return TierSet(name=tier_set.name, tiers=tiers, reference_total=tier_set.reference_total)
