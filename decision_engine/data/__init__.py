from .demand_ledger import DemandLedger
from .snapshot_store import SnapshotStore

__all__ = ["DemandLedger", "SnapshotStore"]
