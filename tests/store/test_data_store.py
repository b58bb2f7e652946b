"""
Tests for DataStore: schema setup, metrics and rules persistence, cleanup,
export and import.
"""

import asyncio
import json
import sqlite3
from datetime import timedelta
from unittest.mock import patch

import aiosqlite
import pytest

from sovereign_attention.attention import Metrics
from sovereign_attention.core.exceptions import ErrorCode, StorageError, ValidationError
from sovereign_attention.rules import (
    FilterAction,
    FlagAction,
    KeywordCondition,
    MachineLearningCondition,
    ModifyAction,
    RegexCondition,
    Rule,
)
from sovereign_attention.store import DataStore


class TestInitialize:

    @pytest.mark.asyncio
    async def test_creates_database_and_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "metrics.db"
        store = DataStore(path)

        await store.initialize()
        try:
            assert path.exists()
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, db_path, sample_metrics):
        async with DataStore(db_path) as store:
            await store.save_metrics("fresh", sample_metrics[0])

        async with DataStore(db_path) as store:
            await store.initialize()
            assert await store.get_metrics("fresh") is not None

    @pytest.mark.asyncio
    async def test_in_memory_database(self, sample_metrics):
        async with DataStore(":memory:") as store:
            await store.save_metrics("fresh", sample_metrics[0])
            assert len(await store.get_all_metrics()) == 1

    @pytest.mark.asyncio
    async def test_unopenable_path_raises_storage_error(self, tmp_path):
        directory = tmp_path / "actually-a-directory"
        directory.mkdir()
        store = DataStore(directory)

        with pytest.raises(StorageError) as exc_info:
            await store.initialize()

        assert exc_info.value.error_code == ErrorCode.STORAGE_UNAVAILABLE
        assert exc_info.value.cause is not None


class TestMetricsPersistence:

    @pytest.mark.asyncio
    async def test_save_and_get(self, data_store, sample_metrics):
        await data_store.save_metrics("fresh", sample_metrics[0])

        loaded = await data_store.get_metrics("fresh")

        assert loaded == sample_metrics[0]

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, data_store):
        assert await data_store.get_metrics("missing") is None

    @pytest.mark.asyncio
    async def test_save_replaces_existing(self, data_store, sample_metrics):
        record = sample_metrics[0]
        await data_store.save_metrics("fresh", record)
        updated = record.copy()
        updated.interactions = 10
        await data_store.save_metrics("fresh", updated)

        loaded = await data_store.get_metrics("fresh")

        assert loaded.interactions == 10
        assert len(await data_store.get_all_metrics()) == 1

    @pytest.mark.asyncio
    async def test_timestamps_stored_with_second_granularity(self, data_store, fixed_now):
        precise = fixed_now + timedelta(milliseconds=750)
        await data_store.save_metrics("a", Metrics("a", 1, 1, precise, precise))

        loaded = await data_store.get_metrics("a")

        assert loaded.last_interaction == fixed_now
        assert loaded.created_at == fixed_now

    @pytest.mark.asyncio
    async def test_all_metrics_most_recent_first(self, data_store, sample_metrics):
        for record in reversed(sample_metrics):
            await data_store.save_metrics(record.content_id, record)

        ordered = await data_store.get_all_metrics()

        assert [m.content_id for m in ordered] == ["fresh", "recent", "stale"]

    @pytest.mark.asyncio
    async def test_sqlite_failure_becomes_storage_error(self, data_store, sample_metrics):
        with patch.object(data_store._conn, "execute",
                          side_effect=sqlite3.OperationalError("disk I/O error")):
            with pytest.raises(StorageError) as exc_info:
                await data_store.save_metrics("fresh", sample_metrics[0])

        assert exc_info.value.error_code == ErrorCode.STORAGE_WRITE_FAILED
        assert isinstance(exc_info.value.cause, sqlite3.OperationalError)

    @pytest.mark.asyncio
    async def test_read_failure_becomes_storage_error(self, data_store):
        with patch.object(data_store._conn, "execute",
                          side_effect=sqlite3.OperationalError("database is locked")):
            with pytest.raises(StorageError) as exc_info:
                await data_store.get_all_metrics()

        assert exc_info.value.error_code == ErrorCode.STORAGE_READ_FAILED

    @pytest.mark.asyncio
    async def test_integer_overflow_becomes_storage_error(self, data_store, fixed_now):
        huge = Metrics("huge", 2 ** 64, 1, fixed_now, fixed_now)

        with pytest.raises(StorageError) as exc_info:
            await data_store.save_metrics("huge", huge)

        assert exc_info.value.error_code == ErrorCode.STORAGE_WRITE_FAILED
        assert isinstance(exc_info.value.cause, OverflowError)
        assert await data_store.get_metrics("huge") is None

    @pytest.mark.asyncio
    async def test_failed_write_keeps_concurrent_write(self, data_store, sample_metrics):
        conn = data_store._conn
        execute = conn.execute

        def failing_execute(sql, parameters=None):
            if parameters and parameters[0] == "bad":
                raise sqlite3.OperationalError("disk I/O error")
            return execute(sql, parameters)

        with patch.object(conn, "execute", side_effect=failing_execute):
            results = await asyncio.gather(
                data_store.save_metrics("fresh", sample_metrics[0]),
                data_store.save_metrics("bad", sample_metrics[1]),
                data_store.save_metrics("stale", sample_metrics[2]),
                return_exceptions=True,
            )

        assert results[0] is None and results[2] is None
        assert isinstance(results[1], StorageError)
        stored = await data_store.get_all_metrics()
        assert [m.content_id for m in stored] == ["fresh", "stale"]

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_share_one_connection(self, sample_metrics):
        store = DataStore(":memory:")
        try:
            with patch.object(aiosqlite, "connect", wraps=aiosqlite.connect) as connect:
                await asyncio.gather(*(
                    store.save_metrics(record.content_id, record) for record in sample_metrics
                ))

            assert connect.call_count == 1
            assert len(await store.get_all_metrics()) == 3
        finally:
            await store.close()


class TestRulesPersistence:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rule", [
        Rule("kw", KeywordCondition("sponsored"), FilterAction()),
        Rule("rx", RegexCondition(r"https?://\S+"), FlagAction(["contains-url"])),
        Rule("ml", MachineLearningCondition("spam", 0.75), ModifyAction("[{content}]")),
    ])
    async def test_rule_survives_storage(self, data_store, rule):
        await data_store.save_rule(rule)

        assert await data_store.get_rule(rule.id) == rule

    @pytest.mark.asyncio
    async def test_stored_documents_are_tagged_json(self, data_store):
        await data_store.save_rule(Rule("ml", MachineLearningCondition("m", 0.5), FilterAction()))

        async with data_store._conn.execute(
            "SELECT condition, action FROM rules WHERE id = ?", ("ml",)
        ) as cursor:
            row = await cursor.fetchone()

        assert json.loads(row["condition"]) == {"ml": {"model_id": "m", "threshold": 0.5}}
        assert json.loads(row["action"]) == "Filter"

    @pytest.mark.asyncio
    async def test_get_missing_rule_returns_none(self, data_store):
        assert await data_store.get_rule("missing") is None

    @pytest.mark.asyncio
    async def test_all_rules_latest_write_first(self, data_store):
        for rule_id in ("first", "second", "third"):
            await data_store.save_rule(Rule(rule_id, KeywordCondition(rule_id), FilterAction()))

        ordered = await data_store.get_all_rules()

        assert [rule.id for rule in ordered] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_rewriting_rule_moves_it_first(self, data_store):
        await data_store.save_rule(Rule("a", KeywordCondition("a"), FilterAction()))
        await data_store.save_rule(Rule("b", KeywordCondition("b"), FilterAction()))
        await data_store.save_rule(Rule("a", KeywordCondition("z"), FilterAction()))

        ordered = await data_store.get_all_rules()

        assert [rule.id for rule in ordered] == ["a", "b"]
        assert ordered[0].condition == KeywordCondition("z")

    @pytest.mark.asyncio
    async def test_delete_rule(self, data_store):
        await data_store.save_rule(Rule("a", KeywordCondition("a"), FilterAction()))

        assert await data_store.delete_rule("a") is True
        assert await data_store.delete_rule("a") is False
        assert await data_store.get_rule("a") is None

    @pytest.mark.asyncio
    async def test_malformed_stored_rule_raises_corrupt_data(self, data_store):
        await data_store._conn.execute(
            "INSERT INTO rules (id, condition, action, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            ("broken", '{"Semantic": "x"}', '"Filter"', 0, 0),
        )
        await data_store._conn.commit()

        with pytest.raises(StorageError) as exc_info:
            await data_store.get_all_rules()

        assert exc_info.value.error_code == ErrorCode.STORAGE_CORRUPT_DATA
        assert exc_info.value.context.rule_id == "broken"


class TestCleanup:

    @pytest.mark.asyncio
    async def test_removes_records_outside_window(self, data_store, sample_metrics, fixed_now):
        for record in sample_metrics:
            await data_store.save_metrics(record.content_id, record)

        deleted = await data_store.cleanup(30, now=fixed_now)

        assert deleted == 1
        remaining = {m.content_id for m in await data_store.get_all_metrics()}
        assert remaining == {"fresh", "recent"}

    @pytest.mark.asyncio
    async def test_zero_days_removes_everything_older_than_now(self, data_store, sample_metrics, fixed_now):
        for record in sample_metrics:
            await data_store.save_metrics(record.content_id, record)

        assert await data_store.cleanup(0, now=fixed_now) == 3

    @pytest.mark.asyncio
    async def test_nothing_to_remove(self, data_store, fixed_now):
        assert await data_store.cleanup(30, now=fixed_now) == 0

    @pytest.mark.asyncio
    async def test_negative_days_rejected(self, data_store):
        with pytest.raises(ValidationError) as exc_info:
            await data_store.cleanup(-1)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_RANGE_ERROR

    def test_cutoff(self, fixed_now):
        assert DataStore.cleanup_cutoff(2, fixed_now) == fixed_now - timedelta(days=2)


class TestExportImport:

    @pytest.mark.asyncio
    async def test_export_then_import_into_fresh_store(self, data_store, sample_metrics, tmp_path):
        for record in sample_metrics:
            await data_store.save_metrics(record.content_id, record)
        export_path = tmp_path / "export.json"

        assert await data_store.export_metrics(export_path) == 3

        async with DataStore(tmp_path / "other.db") as other:
            imported = await other.import_metrics(export_path)
            restored = await other.get_all_metrics()

        assert len(imported) == 3
        assert sorted(restored, key=lambda m: m.content_id) == \
            sorted(sample_metrics, key=lambda m: m.content_id)

    @pytest.mark.asyncio
    async def test_export_document_shape(self, data_store, sample_metrics, tmp_path):
        await data_store.save_metrics("fresh", sample_metrics[0])
        export_path = tmp_path / "export.json"

        await data_store.export_metrics(export_path)
        document = json.loads(export_path.read_text(encoding="utf-8"))

        assert document == [sample_metrics[0].to_dict()]

    @pytest.mark.asyncio
    async def test_export_empty_store(self, data_store, tmp_path):
        export_path = tmp_path / "empty.json"

        assert await data_store.export_metrics(export_path) == 0
        assert json.loads(export_path.read_text(encoding="utf-8")) == []

    @pytest.mark.asyncio
    async def test_export_to_missing_directory(self, data_store, tmp_path):
        with pytest.raises(StorageError) as exc_info:
            await data_store.export_metrics(tmp_path / "no" / "such" / "dir" / "out.json")

        assert exc_info.value.error_code == ErrorCode.STORAGE_FILE_ERROR

    @pytest.mark.asyncio
    async def test_import_is_additive(self, data_store, sample_metrics, write_export, fixed_now):
        await data_store.save_metrics("existing", sample_metrics[1])
        path = write_export([{
            'content_id': "imported",
            'total_duration': 42,
            'interactions': 2,
            'last_interaction': int(fixed_now.timestamp()),
            'created_at': "2024-05-01T00:00:00Z",
        }])

        await data_store.import_metrics(path)

        ids = {m.content_id for m in await data_store.get_all_metrics()}
        assert ids == {"existing", "imported"}
        assert (await data_store.get_metrics("imported")).last_interaction == fixed_now

    @pytest.mark.asyncio
    async def test_import_overwrites_same_id(self, data_store, sample_metrics, write_export):
        await data_store.save_metrics("fresh", sample_metrics[0])
        replacement = sample_metrics[0].to_dict()
        replacement['interactions'] = 50

        await data_store.import_metrics(write_export([replacement]))

        assert (await data_store.get_metrics("fresh")).interactions == 50

    @pytest.mark.asyncio
    async def test_import_missing_file(self, data_store, tmp_path):
        with pytest.raises(StorageError) as exc_info:
            await data_store.import_metrics(tmp_path / "missing.json")

        assert exc_info.value.error_code == ErrorCode.STORAGE_FILE_ERROR

    @pytest.mark.asyncio
    async def test_import_invalid_json(self, data_store, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError) as exc_info:
            await data_store.import_metrics(path)

        assert exc_info.value.error_code == ErrorCode.STORAGE_CORRUPT_DATA

    @pytest.mark.asyncio
    async def test_import_rejects_non_array(self, data_store, tmp_path):
        path = tmp_path / "object.json"
        path.write_text('{"content_id": "a"}', encoding="utf-8")

        with pytest.raises(StorageError):
            await data_store.import_metrics(path)

    @pytest.mark.asyncio
    async def test_bad_record_aborts_whole_import(self, data_store, sample_metrics, write_export):
        good = sample_metrics[0].to_dict()
        bad = dict(sample_metrics[1].to_dict(), total_duration=-5)

        with pytest.raises(StorageError) as exc_info:
            await data_store.import_metrics(write_export([good, bad]))

        assert exc_info.value.error_code == ErrorCode.STORAGE_CORRUPT_DATA
        assert await data_store.get_all_metrics() == []

    @pytest.mark.asyncio
    async def test_counter_outside_integer_range_rejected(self, data_store, sample_metrics,
                                                          write_export):
        oversized = dict(sample_metrics[0].to_dict(), total_duration=2 ** 63)

        with pytest.raises(StorageError) as exc_info:
            await data_store.import_metrics(write_export([oversized]))

        assert exc_info.value.error_code == ErrorCode.STORAGE_CORRUPT_DATA
