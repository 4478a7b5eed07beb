from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

from decision_engine.domain.models import DecisionContext

DEFAULT_REGIME = "default"


def default_regime(context: DecisionContext | None) -> str:
    if context is None or not context.regime_hint:
        return DEFAULT_REGIME
    return context.regime_hint


def volatility_band(vol: float | None) -> str:
    v = float(vol or 0.0)
    if v < 0.004:
        return "vlow"
    if v < 0.01:
        return "low"
    if v < 0.02:
        return "mid"
    return "high"


def volatility_regime(
    macro: Callable[[], str] | str = "neutral_calm",
    *,
    clock: Callable[[], float] = time.time,
) -> Callable[[DecisionContext | None], str]:
    """Regime label "{macro}_{volBand}_h{utcHour}"; an explicit hint wins."""

    def _regime(context: DecisionContext | None) -> str:
        if context is not None and context.regime_hint:
            return context.regime_hint
        m = macro() if callable(macro) else macro
        hour = datetime.fromtimestamp(clock(), tz=timezone.utc).hour
        vol = context.volatility if context is not None else None
        return f"{m or 'neutral_calm'}_{volatility_band(vol)}_h{hour}"

    return _regime
