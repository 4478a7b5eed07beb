from __future__ import annotations


class DecisionEngineError(Exception):
    """Base error for the decision engine."""


class InvalidWeights(DecisionEngineError, ValueError):
    """Tier weights cannot form a distribution (empty, negative, or zero total)."""


class PersistenceFailure(DecisionEngineError):
    """Snapshot read/write failed. In-memory state stays authoritative."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"snapshot io failed path={path} err={cause}")
        self.path = path
        self.cause = cause
