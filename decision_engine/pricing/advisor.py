from __future__ import annotations

from typing import Any

from decision_engine.pricing.controller import AdaptivePricingController
from decision_engine.pricing.streams import CREDIT_PACK, FEATURED, SPONSORED


def suggest_actions(controller: AdaptivePricingController, counts_24h: dict[str, int]) -> dict[str, Any]:
    """Operator hints from daily demand; nothing here changes a value."""
    feat = int(counts_24h.get(FEATURED, 0) or 0)
    spon = int(counts_24h.get(SPONSORED, 0) or 0)
    packs = int(counts_24h.get(CREDIT_PACK, 0) or 0)
    mystery = int(counts_24h.get("mystery", 0) or 0)
    values = controller.status()["values"]

    ideas = []
    if feat == 0:
        ideas.append("Run intro discount for first featured purchaser")
    if spon < 2:
        ideas.append("Offer free 1h sponsored trial")
    if packs > 30:
        ideas.append("Add larger credit pack tier")
    if mystery < 5:
        ideas.append("Adjust mystery box weights to raise engagement")
    if values.get(CREDIT_PACK, 1.0) > 1.5:
        ideas.append("Reduce credit multiplier to protect economy")
    featured_rule = controller.rules.get(FEATURED)
    if featured_rule is not None and values.get(FEATURED, featured_rule.base_value) < featured_rule.base_value * 0.7:
        ideas.append("Featured rate very low vs base, consider gradual normalization")
    return {
        "stats": {FEATURED: feat, SPONSORED: spon, CREDIT_PACK: packs, "mystery": mystery},
        "values": values,
        "ideas": ideas,
    }
