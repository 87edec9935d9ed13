"""
In-flight guards for user-triggered planning operations.

Replaces the console's "generating" / "assigning" flags: while an operation
is running for a key (for example provisioning for one cohort/season), a
second request for the same key is rejected instead of running twice.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Hashable, Optional, Set

logger = logging.getLogger(__name__)


class OperationInProgressError(RuntimeError):
    """Raised when the same operation is already running for a key."""


class OperationGuard:
    """Tracks which (operation, scope) keys currently have a run in flight."""

    def __init__(self):
        self._in_flight: Set[Hashable] = set()
        self._lock = asyncio.Lock()

    def is_running(self, key: Hashable) -> bool:
        return key in self._in_flight

    async def acquire(self, key: Hashable, label: Optional[str] = None) -> None:
        """
        Mark key as in flight.

        Raises:
            OperationInProgressError: if a run for key has not finished yet
        """
        async with self._lock:
            if key in self._in_flight:
                raise OperationInProgressError(
                    f"{label or 'This operation'} is already in progress; try again when it finishes"
                )
            self._in_flight.add(key)

    async def release(self, key: Hashable) -> None:
        async with self._lock:
            self._in_flight.discard(key)

    @asynccontextmanager
    async def hold(self, key: Hashable, label: Optional[str] = None):
        """
        Context manager that holds key for the duration of the block.

        Usage:
            async with guard.hold(("wave_planning", cohort_id, season_id), "Wave planning"):
                ...
        """
        await self.acquire(key, label)
        logger.debug(f"Acquired operation guard {key}")
        try:
            yield
        finally:
            await self.release(key)
            logger.debug(f"Released operation guard {key}")


# Global guard instance
_operation_guard: Optional[OperationGuard] = None


def get_operation_guard() -> OperationGuard:
    """
    Get the global operation guard instance.

    Returns:
        OperationGuard instance
    """
    global _operation_guard
    if _operation_guard is None:
        _operation_guard = OperationGuard()
    return _operation_guard
