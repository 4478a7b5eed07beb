from __future__ import annotations

from decision_engine.domain.models import TierSet

# value = credits for mystery boxes, payout multiplier for the wheel
MYSTERY_BASIC = ((2000, 50), (4000, 30), (8000, 15), (20000, 5))
MYSTERY_PREMIUM = ((6000, 45), (12000, 30), (30000, 20), (80000, 5))
WHEEL_SEGMENTS = ((0, 40), (1.5, 25), (2, 15), (3, 8), (5, 5), (10, 2), (25, 1))


def default_tier_sets() -> dict[str, TierSet]:
    return {
        "basic": TierSet.build("basic", MYSTERY_BASIC),
        "premium": TierSet.build("premium", MYSTERY_PREMIUM),
        "wheel": TierSet.build("wheel", WHEEL_SEGMENTS),
    }
