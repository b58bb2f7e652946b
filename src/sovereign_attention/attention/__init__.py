"""
Attention tracking: per-content metrics and their in-memory aggregation.
"""

from sovereign_attention.attention.metrics import (
    Metrics,
    utcnow,
    to_epoch,
    from_epoch,
    parse_timestamp,
)
from sovereign_attention.attention.aggregator import AttentionStatistics, MetricsAggregator

__all__ = [
    'Metrics',
    'MetricsAggregator',
    'AttentionStatistics',
    'utcnow',
    'to_epoch',
    'from_epoch',
    'parse_timestamp',
]
