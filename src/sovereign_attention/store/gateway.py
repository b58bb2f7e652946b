"""
Data Store

Async SQLite persistence for attention metrics and rules, with bulk JSON
export and import of metrics. Every sqlite or file failure surfaces as a
StorageError carrying the original exception as its cause.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, List, Optional, Union

import aiosqlite

from sovereign_attention.attention.metrics import Metrics, from_epoch, to_epoch, utcnow
from sovereign_attention.core.exceptions import (
    ErrorCode,
    ErrorContext,
    StorageError,
    ValidationError,
)
from sovereign_attention.rules.base import Rule
from sovereign_attention.rules.factory import RuleFactory
from sovereign_attention.store.schema import SCHEMA_SQL, SECONDS_PER_DAY


logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class DataStore:
    """
    Durable store for metrics and rules.

    The connection is opened lazily by the first operation (or explicitly by
    ``initialize``) and the schema is created idempotently on open.
    """

    def __init__(self, db_path: Union[str, Path], export_indent: int = 2):
        """
        Initialize the store.

        Args:
            db_path: SQLite database file, or ':memory:'
            export_indent: JSON indentation used by export_metrics
        """
        self.db_path = db_path if str(db_path) == MEMORY_DB else Path(db_path)
        self.export_indent = export_indent or None
        self._conn: Optional[aiosqlite.Connection] = None
        self._initialized = False
        # Serialises statements on the shared connection
        self._lock = asyncio.Lock()
        self._connect_lock = asyncio.Lock()

    # Connection management

    async def initialize(self) -> None:
        """
        Open the database and create tables and indexes if missing.

        Creates the database file and its parent directory when absent; safe
        to call on every startup.

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        await self._get_connection()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create the database connection; concurrent first calls share one."""
        if self._conn is not None:
            return self._conn

        async with self._connect_lock:
            if self._conn is None:
                self._conn = await self._connect()
        return self._conn

    async def _connect(self) -> aiosqlite.Connection:
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self.db_path))
        except (aiosqlite.Error, OSError) as e:
            raise self._error(
                f"Cannot open database {self.db_path}: {e}",
                ErrorCode.STORAGE_UNAVAILABLE, "initialize", e
            )

        try:
            conn.row_factory = aiosqlite.Row
            if not self._initialized:
                await conn.executescript(SCHEMA_SQL)
                await conn.commit()
                self._initialized = True
        except aiosqlite.Error as e:
            await conn.close()
            raise self._error(
                f"Cannot initialize database schema: {e}",
                ErrorCode.STORAGE_UNAVAILABLE, "initialize", e
            )

        logger.debug(f"Data store initialized at {self.db_path}")
        return conn

    async def close(self) -> None:
        """Close database connection."""
        async with self._connect_lock:
            if self._conn is None:
                return
            await self._conn.close()
            self._conn = None
            # A fresh connection to ':memory:' is an empty database
            if not isinstance(self.db_path, Path):
                self._initialized = False

    async def __aenter__(self) -> 'DataStore':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """
        Context manager for atomic write operations.

        The store lock is held from the first statement until commit or
        rollback, so a rollback only discards this transaction's statements.
        """
        conn = await self._get_connection()
        async with self._lock:
            try:
                yield conn
                await conn.commit()
            except (aiosqlite.Error, OverflowError) as e:
                await conn.rollback()
                raise self._error(
                    f"{operation} failed: {e}", ErrorCode.STORAGE_WRITE_FAILED, operation, e
                )
            except Exception:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Context manager translating read failures."""
        conn = await self._get_connection()
        async with self._lock:
            try:
                yield conn
            except aiosqlite.Error as e:
                raise self._error(
                    f"{operation} failed: {e}", ErrorCode.STORAGE_READ_FAILED, operation, e
                )

    def _error(self, message: str, code: ErrorCode, operation: str,
               cause: Optional[Exception] = None, **context) -> StorageError:
        return StorageError(
            message,
            error_code=code,
            db_path=str(self.db_path),
            context=ErrorContext(operation=operation, **context),
            cause=cause
        )

    # Metrics

    async def save_metrics(self, content_id: str, metrics: Metrics) -> None:
        """Insert or replace the metrics record for a content id."""
        async with self._transaction("save_metrics") as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO metrics
                (content_id, total_duration, interactions, last_interaction, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    content_id,
                    metrics.total_duration,
                    metrics.interactions,
                    to_epoch(metrics.last_interaction),
                    to_epoch(metrics.created_at),
                ),
            )

    async def get_metrics(self, content_id: str) -> Optional[Metrics]:
        """Get the metrics record for a content id, or None."""
        async with self._reading("get_metrics") as conn:
            async with conn.execute(
                "SELECT * FROM metrics WHERE content_id = ?", (content_id,)
            ) as cursor:
                row = await cursor.fetchone()

        return self._row_to_metrics(row) if row else None

    async def get_all_metrics(self) -> List[Metrics]:
        """Get every metrics record, most recent interaction first."""
        async with self._reading("get_all_metrics") as conn:
            async with conn.execute(
                "SELECT * FROM metrics ORDER BY last_interaction DESC"
            ) as cursor:
                rows = await cursor.fetchall()

        return [self._row_to_metrics(row) for row in rows]

    @staticmethod
    def _row_to_metrics(row: aiosqlite.Row) -> Metrics:
        return Metrics(
            content_id=row["content_id"],
            total_duration=row["total_duration"],
            interactions=row["interactions"],
            last_interaction=from_epoch(row["last_interaction"]),
            created_at=from_epoch(row["created_at"]),
        )

    # Rules

    async def save_rule(self, rule: Rule) -> None:
        """
        Insert or replace a rule.

        Both created_at and updated_at are set to the current time on every
        upsert, so a replaced rule loses its original creation time.
        """
        now = to_epoch(utcnow())
        async with self._transaction("save_rule") as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO rules
                (id, condition, action, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    rule.id,
                    RuleFactory.condition_to_json(rule.condition),
                    RuleFactory.action_to_json(rule.action),
                    now,
                    now,
                ),
            )

    async def get_rule(self, rule_id: str) -> Optional[Rule]:
        """Get a rule by id, or None."""
        async with self._reading("get_rule") as conn:
            async with conn.execute("SELECT * FROM rules WHERE id = ?", (rule_id,)) as cursor:
                row = await cursor.fetchone()

        return self._row_to_rule(row) if row else None

    async def get_all_rules(self) -> List[Rule]:
        """Get every rule, most recently written first."""
        async with self._reading("get_all_rules") as conn:
            async with conn.execute(
                "SELECT * FROM rules ORDER BY updated_at DESC, rowid DESC"
            ) as cursor:
                rows = await cursor.fetchall()

        return [self._row_to_rule(row) for row in rows]

    async def delete_rule(self, rule_id: str) -> bool:
        """Delete a rule; returns True if a row was removed."""
        async with self._transaction("delete_rule") as conn:
            cursor = await conn.execute("DELETE FROM rules WHERE id = ?", (rule_id,))
            return cursor.rowcount > 0

    def _row_to_rule(self, row: aiosqlite.Row) -> Rule:
        try:
            return Rule(
                id=row["id"],
                condition=RuleFactory.condition_from_json(row["condition"]),
                action=RuleFactory.action_from_json(row["action"]),
            )
        except ValidationError as e:
            raise self._error(
                f"Stored rule '{row['id']}' is malformed: {e.message}",
                ErrorCode.STORAGE_CORRUPT_DATA, "decode_rule", e,
                rule_id=row["id"]
            )

    # Maintenance

    async def cleanup(self, days_to_keep: int, now: Optional[datetime] = None) -> int:
        """
        Delete metrics whose last interaction predates the retention window.

        Args:
            days_to_keep: Retention window in days
            now: Reference time (defaults to the current UTC time)

        Returns:
            Number of deleted records

        Raises:
            ValidationError: If days_to_keep is negative
        """
        if days_to_keep < 0:
            raise ValidationError(
                f"days_to_keep must be non-negative, got {days_to_keep}",
                error_code=ErrorCode.VALIDATION_RANGE_ERROR,
                field_name="days_to_keep",
                field_value=days_to_keep
            )

        cutoff = self.cleanup_cutoff(days_to_keep, now)
        async with self._transaction("cleanup") as conn:
            cursor = await conn.execute(
                "DELETE FROM metrics WHERE last_interaction < ?", (to_epoch(cutoff),)
            )
            deleted = cursor.rowcount

        logger.info(f"Cleanup removed {deleted} metrics records older than {days_to_keep} days")
        return deleted

    @staticmethod
    def cleanup_cutoff(days_to_keep: int, now: Optional[datetime] = None) -> datetime:
        """Oldest last_interaction kept by ``cleanup``."""
        reference = to_epoch(now or utcnow())
        return from_epoch(reference - days_to_keep * SECONDS_PER_DAY)

    # Export / import

    async def export_metrics(self, path: Union[str, Path]) -> int:
        """
        Write every metrics record to a JSON array.

        Returns:
            Number of exported records
        """
        path = Path(path)
        metrics = await self.get_all_metrics()
        document = json.dumps([m.to_dict() for m in metrics], indent=self.export_indent)

        try:
            await asyncio.to_thread(path.write_text, document, encoding='utf-8')
        except OSError as e:
            raise self._error(
                f"Cannot write export file {path}: {e}",
                ErrorCode.STORAGE_FILE_ERROR, "export_metrics", e,
                file_path=str(path)
            )

        logger.info(f"Exported {len(metrics)} metrics records to {path}")
        return len(metrics)

    async def import_metrics(self, path: Union[str, Path]) -> List[Metrics]:
        """
        Upsert every record of a JSON export file.

        Existing records not present in the file are left untouched. The file
        is validated completely before anything is written.

        Returns:
            The imported records

        Raises:
            StorageError: If the file cannot be read or is malformed
        """
        path = Path(path)
        try:
            document = await asyncio.to_thread(path.read_text, encoding='utf-8')
        except OSError as e:
            raise self._error(
                f"Cannot read import file {path}: {e}",
                ErrorCode.STORAGE_FILE_ERROR, "import_metrics", e,
                file_path=str(path)
            )

        try:
            data = json.loads(document)
        except json.JSONDecodeError as e:
            raise self._error(
                f"Import file {path} is not valid JSON: {e}",
                ErrorCode.STORAGE_CORRUPT_DATA, "import_metrics", e,
                file_path=str(path)
            )

        if not isinstance(data, list):
            raise self._error(
                f"Import file {path} must contain a JSON array of metrics records",
                ErrorCode.STORAGE_CORRUPT_DATA, "import_metrics",
                file_path=str(path)
            )

        records = []
        for index, item in enumerate(data):
            try:
                records.append(Metrics.from_dict(item))
            except ValidationError as e:
                raise self._error(
                    f"Import file {path}, record {index}: {e.message}",
                    ErrorCode.STORAGE_CORRUPT_DATA, "import_metrics", e,
                    file_path=str(path)
                )

        async with self._transaction("import_metrics") as conn:
            await conn.executemany(
                """
                INSERT OR REPLACE INTO metrics
                (content_id, total_duration, interactions, last_interaction, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        m.content_id,
                        m.total_duration,
                        m.interactions,
                        to_epoch(m.last_interaction),
                        to_epoch(m.created_at),
                    )
                    for m in records
                ],
            )

        logger.info(f"Imported {len(records)} metrics records from {path}")
        return records
