"""
Pump Fleet - Run Task Table
===========================

Device id → task running that device's send loop. At most one entry per
device; a restart replaces the entry. Every mutation and snapshot goes
through one asyncio.Lock.
"""

import asyncio
from typing import Callable, Dict, Optional


class RunTaskTable:
    """Serialized mapping of device id to its active run task."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    async def insert(self, device_id: str, task: asyncio.Task) -> None:
        """
        Add a device's first task.

        Raises:
            KeyError: If the device already has an entry
        """
        async with self._lock:
            if device_id in self._tasks:
                raise KeyError(f"{device_id} already has a run task")
            self._tasks[device_id] = task

    async def launch_if_absent(self,
                               device_id: str,
                               launch: Callable[[], asyncio.Task]) -> Optional[asyncio.Task]:
        """
        Create and record a task unless the device already has an entry.

        `launch` is only called while holding the lock, so a concurrent
        restart and a first launch never both end up in the table.

        Returns:
            The new task, or None if an entry already existed
        """
        async with self._lock:
            if device_id in self._tasks:
                return None
            task = launch()
            self._tasks[device_id] = task
            return task

    async def replace(self, device_id: str, task: asyncio.Task) -> Optional[asyncio.Task]:
        """Set a device's task, returning the one it replaced (if any)."""
        async with self._lock:
            previous = self._tasks.get(device_id)
            self._tasks[device_id] = task
            return previous

    async def remove(self, device_id: str, task: Optional[asyncio.Task] = None) -> bool:
        """
        Drop a device's entry.

        If `task` is given, the entry is only dropped while it still refers
        to that task, so a fresh restart is never removed by mistake.
        """
        async with self._lock:
            current = self._tasks.get(device_id)
            if current is None or (task is not None and current is not task):
                return False
            del self._tasks[device_id]
            return True

    async def snapshot(self) -> Dict[str, asyncio.Task]:
        """Copy of the current entries."""
        async with self._lock:
            return dict(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._tasks
