from .advisor import suggest_actions
from .controller import AdaptivePricingController, classify
from .streams import CREDIT_PACK, FEATURED, SPONSORED, default_streams

__all__ = [
    "AdaptivePricingController",
    "CREDIT_PACK",
    "FEATURED",
    "SPONSORED",
    "classify",
    "default_streams",
    "suggest_actions",
]
