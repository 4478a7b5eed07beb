from .bandit import ContextualBanditEngine
from .regime import default_regime, volatility_band, volatility_regime

__all__ = ["ContextualBanditEngine", "default_regime", "volatility_band", "volatility_regime"]
