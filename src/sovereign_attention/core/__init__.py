"""
Core Sovereign Attention Package

Contains core infrastructure components: error taxonomy, configuration,
concurrency primitives and logging setup.
"""

from sovereign_attention.core.exceptions import (
    SovereignAttentionError,
    ValidationError,
    StorageError,
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    RecoverySuggestion
)

__all__ = [
    # Exception classes
    'SovereignAttentionError',
    'ValidationError',
    'StorageError',
    'ConfigurationError',
    'ErrorCode',
    'ErrorContext',
    'RecoverySuggestion',
]
