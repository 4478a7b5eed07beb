from .errors import DecisionEngineError, InvalidWeights, PersistenceFailure
from .models import (
    ArmKey,
    ArmStat,
    Candidate,
    DecisionContext,
    DrawResult,
    PricePoint,
    RankedAction,
    RevealedSeed,
    RewardTier,
    Seed,
    SeedCommitment,
    StreamRule,
    TierSet,
    VerificationResult,
)

__all__ = [
    "ArmKey",
    "ArmStat",
    "Candidate",
    "DecisionContext",
    "DecisionEngineError",
    "DrawResult",
    "InvalidWeights",
    "PersistenceFailure",
    "PricePoint",
    "RankedAction",
    "RevealedSeed",
    "RewardTier",
    "Seed",
    "SeedCommitment",
    "StreamRule",
    "TierSet",
    "VerificationResult",
]
