"""
Pump Fleet - Orchestrator
=========================

Registers the fleet, runs one task per device, restarts devices that are
powered back on, and waits until nothing is left to send.

Lifecycle:
----------
start(devices)
    ↓  register sequentially, launch run tasks for powered-on devices,
    ↓  record in RunTaskTable
await_completion()
    ↓  wait on a fresh table snapshot each round; retire finished tasks;
    ↓  drain pending power-state messages before concluding
close()

Power-state messages arrive on an asyncio.Queue. An ON message replaces the
device's table entry with a fresh run task; OFF needs no table work because
the device's run unwinds on its own.

Cancellation:
-------------
cancel_all() signals every device and sets the fleet-wide shutdown event.
Shutdown is terminal: later ON messages no longer restart anything.

Example:
--------
>>> orchestrator = FleetOrchestrator()
>>> await orchestrator.start(devices)
>>> await orchestrator.await_completion()
>>> await orchestrator.close()
"""

import asyncio
from typing import Dict, List, Optional
import logging

from ..device import PowerState, PowerStateChange, PumpDevice
from ..errors import RegistrationError
from .task_table import RunTaskTable

logger = logging.getLogger(__name__)


class FleetOrchestrator:
    """Owns the devices, their run tasks and the power-state message queue."""

    def __init__(self):
        self.table = RunTaskTable()
        self.notifications: asyncio.Queue = asyncio.Queue()
        self.shutdown = asyncio.Event()

        self._devices: Dict[str, PumpDevice] = {}
        self._consumer: Optional[asyncio.Task] = None
        self._failed: List[str] = []

    @property
    def devices(self) -> List[PumpDevice]:
        return list(self._devices.values())

    @property
    def failed_registrations(self) -> List[str]:
        return list(self._failed)

    async def start(self, devices: List[PumpDevice]) -> RunTaskTable:
        """
        Register every device and launch its run task.

        A device that fails registration is logged and skipped; the rest of
        the fleet still starts.

        Returns:
            The run task table
        """
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume_notifications(),
                                                 name="power-state-consumer")

        logger.info(f"Setting up {len(devices)} simulated pump devices")

        for device in devices:
            if self.shutdown.is_set():
                logger.info("Shutdown requested, not starting remaining devices")
                break

            self._devices[device.device_id] = device
            device.notifications = self.notifications

            try:
                await device.register()
            except RegistrationError as e:
                self._failed.append(device.device_id)
                logger.error(f"Registration failed for {device.device_id}: {e.reason}")
                continue

            if self.shutdown.is_set():
                break

            # Toggles may arrive while the device reports its properties
            if device.power_state != PowerState.ON:
                logger.info(f"Device: {device.device_id} powered off during registration, "
                            f"waiting for power on")
                continue

            task = await self.table.launch_if_absent(device.device_id,
                                                     lambda d=device: self._launch(d))
            if task is None:
                logger.info(f"Device: {device.device_id} already restarted, keeping its run")

        return self.table

    def _launch(self, device: PumpDevice) -> asyncio.Task:
        return asyncio.create_task(device.run(), name=f"{device.device_id}-run")

    async def _consume_notifications(self) -> None:
        while True:
            change = await self.notifications.get()
            try:
                await self._apply(change)
            finally:
                self.notifications.task_done()

    async def _apply(self, change: PowerStateChange) -> None:
        if change.power_state != PowerState.ON:
            logger.info(f"Device: {change.device_id} powered off")
            return

        if self.shutdown.is_set():
            logger.info(f"Device: {change.device_id} powered on during shutdown, not restarting")
            return

        device = self._devices.get(change.device_id)
        if device is None:
            logger.warning(f"Power-state change for unknown device {change.device_id}")
            return

        if device.power_state != PowerState.ON:
            logger.info(f"Device: {device.device_id} powered off again before restart")
            return

        previous = await self.table.replace(device.device_id, self._launch(device))
        if previous is not None and not previous.done():
            previous.add_done_callback(lambda t, d=device.device_id: self._report(d, t))
        logger.info(f"Device: {device.device_id} powered on, run restarted "
                    f"({'replaced' if previous is not None else 'new'} task entry)")

    async def await_completion(self) -> None:
        """
        Wait until every device's current run has finished.

        Each round re-reads the table, so runs restarted by a power-ON while
        waiting are waited on too.
        """
        while True:
            await self.notifications.join()

            snapshot = await self.table.snapshot()
            pending = set()
            for device_id, task in snapshot.items():
                if task.done():
                    await self._retire(device_id, task)
                else:
                    pending.add(task)

            if pending:
                await asyncio.wait(pending)
            elif self.notifications.empty():
                break

        logger.info("All device runs finished")

    async def _retire(self, device_id: str, task: asyncio.Task) -> None:
        await self.table.remove(device_id, task)
        self._report(device_id, task)

    def _report(self, device_id: str, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.info(f"Device: {device_id} run task was cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(f"Device: {device_id} run ended with error: {error}")
        else:
            logger.info(f"Device: {device_id} run ended: {task.result().value}")

    def cancel_all(self) -> None:
        """Stop every device; terminal for the fleet."""
        logger.info("Stopped generator. No more events are being sent.")
        self.shutdown.set()
        for device in self._devices.values():
            device.cancel()

    async def close(self) -> None:
        """Stop the message consumer and disconnect every device."""
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        for device in self._devices.values():
            await device.close()

    def get_statistics(self) -> Dict[str, int]:
        stats = {device_id: device.messages_sent for device_id, device in self._devices.items()}
        stats["total_messages_sent"] = sum(stats.values())
        return stats
