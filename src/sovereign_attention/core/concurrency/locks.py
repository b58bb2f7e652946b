"""
Async Reader/Writer Lock

Shared/exclusive locking for state that is read far more often than it is
written, such as the compiled pattern cache of the rule engine.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Any


class AsyncRWLock:
    """
    Reader/writer lock for cooperative asyncio tasks.

    Any number of readers may hold the lock at once; a writer holds it alone.
    Waiting writers block new readers so a steady stream of lookups cannot
    starve an insertion.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

        # Statistics
        self._read_acquisitions = 0
        self._write_acquisitions = 0

    async def acquire_read(self) -> None:
        """Acquire the shared side of the lock."""
        async with self._cond:
            while self._writer or self._waiting_writers:
                await self._cond.wait()
            self._readers += 1
            self._read_acquisitions += 1

    async def release_read(self) -> None:
        """Release the shared side of the lock."""
        async with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a matching acquire_read()")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    async def acquire_write(self) -> None:
        """Acquire the exclusive side of the lock."""
        async with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    await self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
            self._write_acquisitions += 1

    async def release_write(self) -> None:
        """Release the exclusive side of the lock."""
        async with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a matching acquire_write()")
            self._writer = False
            self._cond.notify_all()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Context manager holding the shared side."""
        await self.acquire_read()
        try:
            yield
        finally:
            await self.release_read()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Context manager holding the exclusive side."""
        await self.acquire_write()
        try:
            yield
        finally:
            await self.release_write()

    @property
    def readers(self) -> int:
        """Number of tasks currently holding the shared side."""
        return self._readers

    @property
    def writer_active(self) -> bool:
        """Whether a task currently holds the exclusive side."""
        return self._writer

    def get_stats(self) -> Dict[str, Any]:
        """Get lock usage statistics."""
        return {
            'readers': self._readers,
            'writer_active': self._writer,
            'waiting_writers': self._waiting_writers,
            'read_acquisitions': self._read_acquisitions,
            'write_acquisitions': self._write_acquisitions,
        }
