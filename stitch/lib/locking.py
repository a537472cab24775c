"""
Per-stitch locks for concurrent mutations inside one process.

Each stitch ID gets its own asyncio.Lock. Entries are reference counted and
dropped once the last holder or waiter leaves, so the registry only holds
IDs with work in flight. There is no cross-process locking.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    refs: int = 0


_LOCKS: dict[str, _LockEntry] = {}


def _acquire_ref(stitch_id: str) -> _LockEntry:
    entry = _LOCKS.get(stitch_id)
    if entry is None:
        entry = _LockEntry()
        _LOCKS[stitch_id] = entry
    entry.refs += 1
    return entry


def _release_ref(stitch_id: str) -> None:
    entry = _LOCKS.get(stitch_id)
    if entry is None:
        return
    entry.refs -= 1
    if entry.refs <= 0:
        del _LOCKS[stitch_id]


@asynccontextmanager
async def stitch_lock(stitch_id: str, timeout: Optional[float] = None):
    """
    Hold the lock for stitch_id, yield, release on exit.

    Mutations on the same ID serialize; different IDs run concurrently.

    Raises:
        LockTimeout: If timeout seconds pass before the lock is acquired
    """
    entry = _acquire_ref(stitch_id)
    try:
        if timeout is None:
            await entry.lock.acquire()
        else:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout)
            except asyncio.TimeoutError:
                raise LockTimeout(
                    f"Could not acquire lock for {stitch_id} within {timeout}s"
                ) from None

        logger.debug(f"[LOCK] Acquired {stitch_id}")
        try:
            yield
        finally:
            entry.lock.release()
            logger.debug(f"[LOCK] Released {stitch_id}")
    finally:
        _release_ref(stitch_id)


def active_lock_ids() -> list[str]:
    """IDs that currently have a holder or waiter."""
    return sorted(_LOCKS)
