"""
Test Configuration and Fixtures

Shared fixtures for the test suite: isolated configuration environment,
temporary databases, stores, processors and sample content.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from sovereign_attention.attention import Metrics
from sovereign_attention.content import Content
from sovereign_attention.core.config.models import AppConfig, StorageConfig
from sovereign_attention.processor import LocalProcessor
from sovereign_attention.rules import PatternCache, RuleEngine
from sovereign_attention.store import DataStore


SAP_ENV_VARS = [
    "SAP_DB_PATH",
    "SAP_CLEANUP_DAYS",
    "SAP_LOG_LEVEL",
    "SAP_LOG_FILE",
    "SAP_LOAD_RULES",
    "SAP_HYDRATE_METRICS",
    "XDG_CONFIG_HOME",
]


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep config search paths and SAP_* variables from leaking into tests."""
    home = tmp_path / "home"
    home.mkdir()
    workdir = tmp_path / "work"
    workdir.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)
    for name in SAP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return workdir


# Time Fixtures
@pytest.fixture
def fixed_now() -> datetime:
    """A whole-second UTC reference time."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# Content Fixtures
@pytest.fixture
def sample_content() -> Content:
    return Content(
        id="content-1",
        text="This is a sponsored post",
        view_duration=5000,
        metadata={"source": "feed"},
    )


@pytest.fixture
def make_content():
    """Factory for Content values with sensible defaults."""
    def _make(content_id: str = "content-1", text: str = "hello world",
              view_duration: int = 1000, **kwargs: Any) -> Content:
        return Content(id=content_id, text=text, view_duration=view_duration, **kwargs)
    return _make


@pytest.fixture
def sample_metrics(fixed_now) -> List[Metrics]:
    """Three metrics records with staggered last interactions."""
    return [
        Metrics(
            content_id="fresh",
            total_duration=6000,
            interactions=3,
            last_interaction=fixed_now - timedelta(days=1),
            created_at=fixed_now - timedelta(days=10),
        ),
        Metrics(
            content_id="recent",
            total_duration=3000,
            interactions=1,
            last_interaction=fixed_now - timedelta(days=5),
            created_at=fixed_now - timedelta(days=5),
        ),
        Metrics(
            content_id="stale",
            total_duration=1000,
            interactions=2,
            last_interaction=fixed_now - timedelta(days=90),
            created_at=fixed_now - timedelta(days=120),
        ),
    ]


@pytest.fixture
def write_export(tmp_path):
    """Write a list of metrics dictionaries to a JSON export file."""
    def _write(records: List[Dict[str, Any]], name: str = "export.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(records), encoding="utf-8")
        return path
    return _write


# Storage Fixtures
@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "data" / "metrics.db"


@pytest.fixture
def app_config(db_path) -> AppConfig:
    return AppConfig(storage=StorageConfig(db_path=db_path))


@pytest_asyncio.fixture
async def data_store(db_path):
    """Initialized DataStore on a temporary database."""
    store = DataStore(db_path)
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def processor(app_config):
    """Opened LocalProcessor on a temporary database."""
    local = LocalProcessor(app_config)
    await local.open()
    yield local
    await local.close()


@pytest.fixture
def engine() -> RuleEngine:
    return RuleEngine(PatternCache())


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "integration: marks tests that exercise several components together"
    )
    config.addinivalue_line(
        "markers", "cli: marks command line interface tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
