"""
Compiled Pattern Cache

Regex conditions share compiled matchers keyed by pattern text. Lookups take
the shared side of an AsyncRWLock; compiling and inserting a new pattern takes
the exclusive side.
"""

import logging
import re
from typing import Dict, Any, Optional

from sovereign_attention.core.concurrency import AsyncRWLock
from sovereign_attention.core.exceptions import ValidationError, ErrorCode


logger = logging.getLogger(__name__)


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile a regex pattern, translating compile failures to ValidationError.

    Args:
        pattern: Regular expression source

    Returns:
        Compiled pattern

    Raises:
        ValidationError: If the pattern does not compile
    """
    try:
        return re.compile(pattern)
    except (re.error, TypeError) as e:
        raise ValidationError(
            f"Invalid regex pattern '{pattern}': {e}",
            error_code=ErrorCode.VALIDATION_INVALID_PATTERN,
            field_name="pattern",
            field_value=pattern,
            cause=e
        )


class PatternCache:
    """Cache of compiled regular expressions shared by all regex conditions."""

    def __init__(self):
        self._patterns: Dict[str, re.Pattern] = {}
        self._lock = AsyncRWLock()
        self._hits = 0
        self._misses = 0

    async def get(self, pattern: str) -> Optional[re.Pattern]:
        """Look up a compiled pattern without compiling it."""
        async with self._lock.read():
            compiled = self._patterns.get(pattern)
        if compiled is None:
            self._misses += 1
        else:
            self._hits += 1
        return compiled

    async def compile(self, pattern: str) -> re.Pattern:
        """
        Return the cached matcher for a pattern, compiling and inserting it if absent.

        Raises:
            ValidationError: If the pattern does not compile; nothing is cached
        """
        compiled = await self.get(pattern)
        if compiled is not None:
            return compiled

        compiled = compile_pattern(pattern)
        async with self._lock.write():
            # Another task may have inserted it while we compiled
            compiled = self._patterns.setdefault(pattern, compiled)
        logger.debug(f"Cached regex pattern {pattern!r}")
        return compiled

    async def contains(self, pattern: str) -> bool:
        async with self._lock.read():
            return pattern in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        return {
            'size': len(self._patterns),
            'hits': self._hits,
            'misses': self._misses,
            'hit_ratio': self._hits / total if total > 0 else 0.0,
            'lock': self._lock.get_stats(),
        }
