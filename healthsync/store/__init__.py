"""Relational record store for synced health data.

Modules:
    upserts: INSERT ... ON CONFLICT query builder (dedup vs. replace semantics)
    geo    : Route bounding-box computation
    records: Workouts, routes, metric samples, activity summaries, owners
    anchors: Per (owner, data type) sync cursor persistence
"""

from healthsync.services.database import StorageUnavailableError
from healthsync.store.anchors import AnchorTracker, AnchorWrite, StoredAnchor
from healthsync.store.records import InsertOutcome, RecordStore

__all__ = [
    "AnchorTracker",
    "AnchorWrite",
    "InsertOutcome",
    "RecordStore",
    "StorageUnavailableError",
    "StoredAnchor",
]
