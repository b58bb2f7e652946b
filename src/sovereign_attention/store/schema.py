"""
Durable schema for metrics and rules.

Timestamps are stored as whole epoch seconds. Conditions and actions are
stored as externally tagged JSON documents.
"""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS metrics (
    content_id TEXT PRIMARY KEY,
    total_duration INTEGER NOT NULL,
    interactions INTEGER NOT NULL,
    last_interaction INTEGER NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS rules (
    id TEXT PRIMARY KEY,
    condition TEXT NOT NULL,
    action TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_metrics_last_interaction
ON metrics(last_interaction);

CREATE INDEX IF NOT EXISTS idx_rules_updated
ON rules(updated_at);
"""

SECONDS_PER_DAY = 24 * 60 * 60
