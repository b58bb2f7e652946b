"""
Durable storage for metrics and rules.
"""

from sovereign_attention.store.gateway import DataStore
from sovereign_attention.store.schema import SCHEMA_SQL

__all__ = [
    'DataStore',
    'SCHEMA_SQL',
]
