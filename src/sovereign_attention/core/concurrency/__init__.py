"""
Concurrency primitives shared by the rule engine and the processor.
"""

from sovereign_attention.core.concurrency.locks import AsyncRWLock

__all__ = [
    "AsyncRWLock",
]
