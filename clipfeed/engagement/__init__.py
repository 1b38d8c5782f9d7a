from clipfeed.engagement.cascade import CascadeDeletionEngine, CascadeResult
from clipfeed.engagement.counters import CounterReconciler
from clipfeed.engagement.feed import FeedAssembler
from clipfeed.engagement.relationships import EdgeKind, RelationshipGuard

__all__ = [
    "CascadeDeletionEngine",
    "CascadeResult",
    "CounterReconciler",
    "EdgeKind",
    "FeedAssembler",
    "RelationshipGuard",
]
