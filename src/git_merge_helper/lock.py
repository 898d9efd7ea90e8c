"""Process-wide guard allowing one mutating workflow at a time.

A caller that finds the guard taken is rejected, not queued.
"""

from __future__ import annotations

import threading

__all__ = ["OperationLock", "get_operation_lock"]


class OperationLock:
    """Single-slot mutual exclusion with non-blocking acquire."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        """Take the slot if it is free; never waits."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()


_operation_lock = OperationLock()


def get_operation_lock() -> OperationLock:
    """Return the lock shared by every MergeService in this process."""
    return _operation_lock
