"""Service layer package."""

from claimsync.services.aggregator import RecordAggregator
from claimsync.services.sync_initiator import SyncInitiator
from claimsync.services.sync_receiver import SyncReceiver

__all__ = [
    "RecordAggregator",
    "SyncInitiator",
    "SyncReceiver",
]
