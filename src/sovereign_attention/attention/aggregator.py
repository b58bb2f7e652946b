"""
Metrics Aggregator

In-memory attention tracking keyed by content identifier. The aggregator does
no I/O and no locking of its own; the processor serialises access to it.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sovereign_attention.attention.metrics import MAX_COUNTER, Metrics, utcnow
from sovereign_attention.core.exceptions import ValidationError, ErrorCode


logger = logging.getLogger(__name__)


@dataclass
class AttentionStatistics:
    """
    Aggregate view over every tracked record.

    Attributes:
        tracked: Number of tracked content identifiers
        total_interactions: Sum of interactions across records
        total_duration: Sum of durations across records (ms)
        average_duration: total_duration / total_interactions, None when empty
        distribution: Share of total duration per content id, in percent
        most_interacted: Top records by interaction count
        most_recent: Top records by last interaction
        uptime: Seconds since the aggregator was created
    """
    tracked: int = 0
    total_interactions: int = 0
    total_duration: int = 0
    average_duration: Optional[float] = None
    distribution: Dict[str, float] = field(default_factory=dict)
    most_interacted: List[Metrics] = field(default_factory=list)
    most_recent: List[Metrics] = field(default_factory=list)
    uptime: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            'tracked': self.tracked,
            'total_interactions': self.total_interactions,
            'total_duration': self.total_duration,
            'average_duration': self.average_duration,
            'distribution': dict(self.distribution),
            'most_interacted': [m.to_dict() for m in self.most_interacted],
            'most_recent': [m.to_dict() for m in self.most_recent],
            'uptime': self.uptime,
        }


class MetricsAggregator:
    """
    Tracks attention metrics per content identifier.

    Every read returns copies, so callers never observe later updates through
    a record they already hold.
    """

    def __init__(self):
        self._metrics: Dict[str, Metrics] = {}
        self._started = time.monotonic()

    def track(self, content_id: str, duration: int, now: Optional[datetime] = None) -> Metrics:
        """
        Record one interaction with a content unit.

        Creates the record on first sight; afterwards adds the duration,
        increments the interaction count and refreshes last_interaction.

        Args:
            content_id: Content identifier
            duration: View duration in milliseconds
            now: Event time (defaults to the current UTC time)

        Returns:
            Snapshot of the refreshed record

        Raises:
            ValidationError: If the id is empty, the duration is out of range, or
                the accumulated duration would leave the SQLite INTEGER range
        """
        if not content_id:
            raise ValidationError(
                "Content id is required",
                error_code=ErrorCode.VALIDATION_MISSING_FIELD,
                field_name="content_id",
                field_value=content_id
            )
        if not 0 <= duration <= MAX_COUNTER:
            raise ValidationError(
                f"Duration must be in 0..{MAX_COUNTER}, got {duration}",
                error_code=ErrorCode.VALIDATION_RANGE_ERROR,
                field_name="duration",
                field_value=duration
            )

        now = now or utcnow()
        record = self._metrics.get(content_id)
        if record is not None and record.total_duration > MAX_COUNTER - duration:
            raise ValidationError(
                f"Total duration of {content_id} would exceed {MAX_COUNTER}ms",
                error_code=ErrorCode.VALIDATION_RANGE_ERROR,
                field_name="duration",
                field_value=duration
            )

        if record is None:
            record = Metrics(
                content_id=content_id,
                total_duration=duration,
                interactions=1,
                last_interaction=now,
                created_at=now,
            )
            self._metrics[content_id] = record
        else:
            record.total_duration += duration
            record.interactions += 1
            record.last_interaction = now

        logger.debug(f"Tracked {content_id}: +{duration}ms, {record.interactions} interactions")
        return record.copy()

    def get(self, content_id: str) -> Optional[Metrics]:
        record = self._metrics.get(content_id)
        return record.copy() if record is not None else None

    def all(self) -> List[Metrics]:
        """Snapshot of every record (no order guarantee)."""
        return [record.copy() for record in self._metrics.values()]

    def total_duration(self) -> int:
        return sum(record.total_duration for record in self._metrics.values())

    def total_interactions(self) -> int:
        return sum(record.interactions for record in self._metrics.values())

    def average_duration(self) -> Optional[float]:
        """Total duration divided by total interactions; None when nothing is tracked."""
        interactions = self.total_interactions()
        if not self._metrics or interactions == 0:
            return None
        return self.total_duration() / interactions

    def top_by_interactions(self, n: int) -> List[Metrics]:
        """Records with the most interactions, descending, at most n."""
        records = sorted(self.all(), key=lambda m: m.interactions, reverse=True)
        return records[:max(n, 0)]

    def top_by_recency(self, n: int) -> List[Metrics]:
        """Most recently interacted records, descending, at most n."""
        records = sorted(self.all(), key=lambda m: m.last_interaction, reverse=True)
        return records[:max(n, 0)]

    def distribution(self) -> Dict[str, float]:
        """Each record's share of total duration as a percentage; empty when the total is zero."""
        total = self.total_duration()
        if total == 0:
            return {}
        return {
            content_id: record.total_duration / total * 100.0
            for content_id, record in self._metrics.items()
        }

    def uptime(self) -> float:
        """Seconds since the aggregator was created."""
        return time.monotonic() - self._started

    def restore(self, records: Iterable[Metrics]) -> int:
        """
        Load records from durable storage, replacing any held under the same id.

        Returns:
            Number of records restored
        """
        count = 0
        for record in records:
            self._metrics[record.content_id] = record.copy()
            count += 1
        if count:
            logger.debug(f"Restored {count} metrics records")
        return count

    def prune(self, cutoff: datetime) -> int:
        """
        Evict records whose last interaction predates the cutoff.

        Returns:
            Number of evicted records
        """
        stale = [cid for cid, record in self._metrics.items() if record.last_interaction < cutoff]
        for content_id in stale:
            del self._metrics[content_id]
        return len(stale)

    def statistics(self, top: int = 10) -> AttentionStatistics:
        """Build an AttentionStatistics snapshot."""
        return AttentionStatistics(
            tracked=len(self._metrics),
            total_interactions=self.total_interactions(),
            total_duration=self.total_duration(),
            average_duration=self.average_duration(),
            distribution=self.distribution(),
            most_interacted=self.top_by_interactions(top),
            most_recent=self.top_by_recency(top),
            uptime=self.uptime(),
        )

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, content_id: object) -> bool:
        return content_id in self._metrics
