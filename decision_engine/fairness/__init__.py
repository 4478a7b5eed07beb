from .authority import FairnessSeedAuthority, commit_hash
from .random_source import SeededRandom, fair_roll

__all__ = ["FairnessSeedAuthority", "SeededRandom", "commit_hash", "fair_roll"]
