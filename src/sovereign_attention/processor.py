"""
Local Processor

Composes the rule engine, the metrics aggregator and the data store into the
single API used by the command line shell and embedding applications.

Content flows through the rule engine first; surviving content is tracked by
the aggregator and the refreshed metrics record is persisted before the call
returns. No lock is held across storage I/O.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

from sovereign_attention.attention import AttentionStatistics, Metrics, MetricsAggregator, utcnow
from sovereign_attention.content import Content
from sovereign_attention.core.config.models import AppConfig
from sovereign_attention.core.exceptions import ErrorCode, ErrorContext, StorageError, ValidationError
from sovereign_attention.rules import Rule, RuleEngine
from sovereign_attention.store import DataStore


class LocalProcessor:
    """
    Pipeline coordinator for rule filtering and attention tracking.

    Usable as an async context manager::

        async with LocalProcessor(config) as processor:
            result = await processor.process_content(content)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[DataStore] = None,
        engine: Optional[RuleEngine] = None,
        aggregator: Optional[MetricsAggregator] = None
    ):
        """
        Initialize the processor.

        Args:
            config: Application configuration (defaults are used if None)
            store: Data store (built from config.storage if None)
            engine: Rule engine (a fresh engine if None)
            aggregator: Metrics aggregator (a fresh aggregator if None)
        """
        self.config = config or AppConfig()
        self.store = store or DataStore(
            self.config.storage.db_path,
            export_indent=self.config.storage.export_indent
        )
        self.engine = engine or RuleEngine()
        self.aggregator = aggregator or MetricsAggregator()

        self._metrics_lock = asyncio.Lock()
        self._open_lock = asyncio.Lock()
        self._opened = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # Lifecycle

    async def open(self) -> None:
        """
        Initialize the store and hydrate in-memory state.

        Persisted rules are loaded oldest first so evaluation order follows
        the order in which they were written; persisted metrics seed the
        aggregator so tracking continues across runs.
        """
        async with self._open_lock:
            if self._opened:
                return

            await self.store.initialize()

            if self.config.rules.load_on_start:
                await self._load_rules()

            if self.config.attention.hydrate_on_start:
                records = await self.store.get_all_metrics()
                async with self._metrics_lock:
                    restored = self.aggregator.restore(records)
                self.logger.debug(f"Hydrated {restored} metrics records from {self.store.db_path}")

            self._opened = True

    async def _load_rules(self) -> None:
        rules = await self.store.get_all_rules()
        for rule in reversed(rules):
            try:
                await self.engine.add_rule(rule)
            except ValidationError as e:
                raise StorageError(
                    f"Stored rule '{rule.id}' cannot be activated: {e.message}",
                    error_code=ErrorCode.STORAGE_CORRUPT_DATA,
                    db_path=str(self.store.db_path),
                    context=ErrorContext(operation="load_rules", rule_id=rule.id),
                    cause=e
                )
        self.logger.debug(f"Loaded {len(rules)} rules from {self.store.db_path}")

    async def close(self) -> None:
        """Close the underlying store."""
        async with self._open_lock:
            await self.store.close()
            self._opened = False

    async def __aenter__(self) -> 'LocalProcessor':
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_open(self) -> None:
        if not self._opened:
            await self.open()

    # Content pipeline

    async def process_content(self, content: Content) -> Optional[Content]:
        """
        Filter a content unit and track attention for it if it survives.

        Args:
            content: Content to process

        Returns:
            The possibly transformed content, or None when a rule filtered it

        Raises:
            ValidationError: If the content carries a negative duration
            StorageError: If the refreshed metrics cannot be persisted; the
                in-memory increment is kept
        """
        await self._ensure_open()

        result = await self.engine.process(content)
        if result is None:
            self.logger.debug(f"Content {content.id} filtered out")
            return None

        async with self._metrics_lock:
            snapshot = self.aggregator.track(result.id, result.view_duration)

        await self.store.save_metrics(result.id, snapshot)
        return result

    # Rules

    async def add_rule(self, rule: Rule) -> None:
        """
        Activate and persist a rule.

        Raises:
            ValidationError: If the rule's pattern does not compile; nothing
                is persisted
        """
        await self._ensure_open()
        await self.engine.add_rule(rule)
        await self.store.save_rule(rule)

        cached = len(self.engine.patterns)
        if cached > self.config.rules.regex_cache_size:
            self.logger.warning(
                f"{cached} regex patterns cached, above the configured "
                f"regex_cache_size of {self.config.rules.regex_cache_size}"
            )

    async def remove_rule(self, rule_id: str) -> Optional[Rule]:
        """
        Deactivate a rule and delete it from the store.

        Returns:
            The removed rule (from the engine, or the store if it was not
            active), or None if no such rule exists
        """
        await self._ensure_open()
        removed = await self.engine.remove_rule(rule_id)
        if removed is None:
            removed = await self.store.get_rule(rule_id)

        deleted = await self.store.delete_rule(rule_id)
        if deleted:
            self.logger.info(f"Deleted rule {rule_id}")
        return removed

    async def get_rules(self) -> List[Rule]:
        """Persisted rules, most recently written first."""
        await self._ensure_open()
        return await self.store.get_all_rules()

    # Metrics

    async def get_metrics(self, content_id: str) -> Optional[Metrics]:
        await self._ensure_open()
        return await self.store.get_metrics(content_id)

    async def get_all_metrics(self) -> List[Metrics]:
        await self._ensure_open()
        return await self.store.get_all_metrics()

    async def get_statistics(self, top: Optional[int] = None) -> AttentionStatistics:
        """Aggregate statistics from the live aggregator."""
        await self._ensure_open()
        top = top if top is not None else self.config.attention.default_top
        async with self._metrics_lock:
            return self.aggregator.statistics(top)

    async def cleanup(self, days_to_keep: Optional[int] = None) -> int:
        """
        Delete stale metrics from the store and the live aggregator.

        Args:
            days_to_keep: Retention window in days (config default if None)

        Returns:
            Number of records deleted from the store
        """
        await self._ensure_open()
        if days_to_keep is None:
            days_to_keep = self.config.storage.cleanup_days

        now = utcnow()
        deleted = await self.store.cleanup(days_to_keep, now=now)

        cutoff = DataStore.cleanup_cutoff(days_to_keep, now)
        async with self._metrics_lock:
            pruned = self.aggregator.prune(cutoff)
        self.logger.debug(f"Pruned {pruned} records from the live aggregator")
        return deleted

    async def export_metrics(self, path: Union[str, Path]) -> int:
        """Export persisted metrics to a JSON file; returns the record count."""
        await self._ensure_open()
        return await self.store.export_metrics(path)

    async def import_metrics(self, path: Union[str, Path]) -> List[Metrics]:
        """Import metrics from a JSON file into the store and the live aggregator."""
        await self._ensure_open()
        records = await self.store.import_metrics(path)
        async with self._metrics_lock:
            self.aggregator.restore(records)
        return records
