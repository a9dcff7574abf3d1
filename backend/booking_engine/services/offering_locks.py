"""
Per-offering lock registry.

CONCURRENCY STRATEGY: Pessimistic Locking, Two Layers
=====================================================

Problem:
  Two participants pay for the last seat simultaneously. Both read
  occupancy=capacity-1, both write capacity... or worse, capacity+1.

Solution:
  1. In-process: one asyncio.Lock per offering id serializes every operation
     that reads-then-writes that offering's occupancy. Unrelated offerings
     never wait on each other.
  2. In the database: the same operations take SELECT ... FOR UPDATE on the
     offering row, so workers in other processes are serialized too.

  Both layers give up after LOCK_TIMEOUT_SECONDS and raise SystemBusy, so a
  hot offering produces fast "retry" answers instead of hung requests.

  Locks are not reentrant: only top-level ledger / reconciliation operations
  acquire them, never the capacity counter itself.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import SystemBusy
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import record_lock_timeout

logger = get_logger(__name__)

_locks: dict[int, asyncio.Lock] = {}


def get_lock(offering_id: int) -> asyncio.Lock:
    lock = _locks.get(offering_id)
    if lock is None:
        lock = _locks[offering_id] = asyncio.Lock()
    return lock


def clear() -> None:
    """Drop all registered locks (event loop shutdown, tests)."""
    _locks.clear()


@asynccontextmanager
async def offering_lock(offering_id: int, timeout: Optional[float] = None) -> AsyncIterator[None]:
    """Hold the offering's lock for the duration of the block, or raise SystemBusy."""
    if timeout is None:
        timeout = get_settings().LOCK_TIMEOUT_SECONDS

    lock = get_lock(offering_id)
    try:
        await asyncio.wait_for(lock.acquire(), timeout=timeout)
    except asyncio.TimeoutError:
        record_lock_timeout("process")
        logger.warning("offering_lock_timeout", offering_id=offering_id, timeout=timeout)
        raise SystemBusy(offering_id=offering_id, layer="process") from None

    try:
        yield
    finally:
        lock.release()
