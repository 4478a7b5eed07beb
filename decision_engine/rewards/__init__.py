from .catalog import default_tier_sets
from .sampler import WeightedOutcomeSampler
from .service import FairDrawService

__all__ = ["FairDrawService", "WeightedOutcomeSampler", "default_tier_sets"]
