"""
Pump Fleet Device - Simulated Pump
==================================

One simulated pump: identity, power state machine, and a cancellable send
loop over its pre-generated telemetry.

Run States:
-----------
UNREGISTERED → REGISTERED → RUNNING → {STOPPED, CANCELLED, FAILED}

Power state (ON/OFF) is tracked separately and driven by the remote
`ToggleMotorPower` command.

Cancellation:
-------------
Each run owns a cancellation scope (an asyncio.Event). A record is sent only
while the scope is still clear and power is ON; the cycle delay that follows
every record wakes as soon as the scope is signaled and unwinds the run.
Turning power OFF signals the current scope and allocates a fresh one for the
next run. Runs resume from the first record that was not sent.

Example:
--------
>>> device = PumpDevice(1, key, scope, endpoint, "DEVICE001", "192.168.1.1",
...                     Location(10.9145, 76.9486), sequence, transport)
>>> await device.register()
>>> await device.run()
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import logging

from ..errors import RegistrationError, TransportError
from ..telemetry import TelemetrySequence
from .transport import CommandResponse, Connection, Transport

logger = logging.getLogger(__name__)

TOGGLE_POWER_COMMAND = "ToggleMotorPower"
CYCLE_TIME_S = 0.5
PROGRESS_EVERY = 50


class PowerState(str, Enum):
    ON = "ON"
    OFF = "OFF"


class RunState(str, Enum):
    UNREGISTERED = "UNREGISTERED"
    REGISTERED = "REGISTERED"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Location:
    lat: float
    lon: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True)
class PowerStateChange:
    """Message sent to the orchestrator after an effective power toggle."""
    device_id: str
    power_state: PowerState


def parse_desired_state(payload: Any) -> bool:
    """
    Interpret a ToggleMotorPower payload.

    None and "null" mean off; booleans, "true"/"false" strings and 0/1 are
    accepted.

    Raises:
        ValueError: For any other payload
    """
    if payload is None:
        return False
    if isinstance(payload, bool):
        return payload
    if isinstance(payload, int) and payload in (0, 1):
        return bool(payload)
    if isinstance(payload, str):
        text = payload.strip().strip('"').lower()
        if text in ("null", ""):
            return False
        if text in ("true", "false"):
            return text == "true"
    raise ValueError(f"Invalid power state payload: {payload!r}")


class PumpDevice:
    """
    Simulated pump device.

    The sent-message counter and power state are only mutated on the event
    loop, between awaits.
    """

    def __init__(self,
                 device_number: int,
                 device_key: str,
                 id_scope: str,
                 endpoint: str,
                 serial_number: str,
                 ip_address: str,
                 location: Location,
                 telemetry: TelemetrySequence,
                 transport: Transport,
                 notifications: Optional[asyncio.Queue] = None,
                 cycle_time: float = CYCLE_TIME_S,
                 progress_every: int = PROGRESS_EVERY):
        """
        Initialize a pump.

        Args:
            device_number: Number used to build the id (DEVICE001, ...)
            device_key: Opaque key from configuration
            id_scope: Provisioning scope
            endpoint: Provisioning endpoint
            serial_number: Reported serial number
            ip_address: Reported IP address
            location: Reported geolocation
            telemetry: Pre-generated telemetry, consumed front to back
            transport: Cloud transport
            notifications: Queue receiving PowerStateChange messages
            cycle_time: Delay between telemetry sends [s]
            progress_every: Log a milestone every N messages
        """
        self.device_id = f"DEVICE{device_number:03d}"
        self.serial_number = serial_number
        self.ip_address = ip_address
        self.location = location
        self.transport = transport
        self.notifications = notifications
        self.cycle_time = cycle_time
        self.progress_every = progress_every

        self._device_key = device_key
        self._id_scope = id_scope
        self._endpoint = endpoint
        self._telemetry = telemetry
        self._connection: Optional[Connection] = None

        self.power_state = PowerState.OFF
        self.run_state = RunState.UNREGISTERED
        self._messages_sent = 0
        self._cursor = 0
        self._scope = asyncio.Event()
        self._run_lock = asyncio.Lock()

    @property
    def messages_sent(self) -> int:
        return self._messages_sent

    @property
    def position(self) -> int:
        """Index of the next record to send."""
        return self._cursor

    @property
    def remaining(self) -> int:
        return len(self._telemetry) - self._cursor

    @property
    def is_registered(self) -> bool:
        return self._connection is not None

    async def register(self) -> None:
        """
        Provision and connect, then report properties and initial power state.

        Raises:
            RegistrationError: If provisioning or connecting fails
        """
        try:
            result = await self.transport.register(self.device_id, self._device_key,
                                                   self._id_scope, self._endpoint)
            self._connection = await self.transport.connect(result.assigned_endpoint,
                                                            result.credentials)
            await self.transport.set_command_handler(self._connection, TOGGLE_POWER_COMMAND,
                                                     self.handle_toggle_power)
        except TransportError as e:
            raise RegistrationError(self.device_id, str(e)) from e

        self.power_state = PowerState.ON
        self.run_state = RunState.REGISTERED

        await self._send_properties_and_initial_state()

    async def _send_properties_and_initial_state(self) -> None:
        properties = {
            "SerialNumber": self.serial_number,
            "IPAddress": self.ip_address,
            "Location": self.location.to_dict(),
        }
        logger.info(f"Sending device properties to {self.device_id}: {properties}")
        try:
            await self.transport.update_reported_properties(self._connection, properties)
            await self._send_event({"PowerState": self.power_state.value})
        except TransportError as e:
            logger.error(f"Error sending device properties to {self.device_id}: {e}")

    async def run(self) -> RunState:
        """
        Send the remaining telemetry, one record per cycle.

        Returns:
            STOPPED when the telemetry is exhausted, CANCELLED when the run's
            scope was signaled or the pump is powered off

        Raises:
            TransportError: If a send fails; the run ends in FAILED
        """
        if self._connection is None:
            raise RuntimeError(f"{self.device_id} must be registered before running")

        scope = self._scope
        async with self._run_lock:
            if self._halted(scope):
                return self._cancelled()

            self.run_state = RunState.RUNNING
            logger.info(f"Device: {self.device_id} starting run at record {self._cursor} "
                        f"of {len(self._telemetry)}")
            try:
                while self._cursor < len(self._telemetry):
                    if self._halted(scope):
                        return self._cancelled()

                    await self._send_event(self._telemetry[self._cursor].to_payload())
                    self._cursor += 1

                    if await self._wait_cycle(scope):
                        return self._cancelled()
            except TransportError as e:
                self.run_state = RunState.FAILED
                logger.error(f"Device: {self.device_id} send failed at record {self._cursor}: {e}")
                raise

            self.run_state = RunState.STOPPED
            logger.info(f"Device: {self.device_id} finished sending {len(self._telemetry)} records")
            return self.run_state

    def _halted(self, scope: asyncio.Event) -> bool:
        """True if the run's scope was signaled or the pump is powered off."""
        return scope.is_set() or self.power_state != PowerState.ON

    def _cancelled(self) -> RunState:
        self.run_state = RunState.CANCELLED
        logger.info(f"Device: {self.device_id} run cancelled at record {self._cursor}")
        return self.run_state

    async def _wait_cycle(self, scope: asyncio.Event) -> bool:
        """Sleep one cycle; True if the scope was signaled meanwhile."""
        try:
            await asyncio.wait_for(scope.wait(), timeout=self.cycle_time)
        except asyncio.TimeoutError:
            return False
        return True

    async def _send_event(self, payload: Dict[str, Any]) -> None:
        await self.transport.send(self._connection, payload)

        self._messages_sent += 1
        count = self._messages_sent
        if count % self.progress_every == 0:
            logger.info(f"Device: {self.device_id} Message count: {count}")

    def cancel(self) -> None:
        """Signal the current run's cancellation scope."""
        self._scope.set()

    def _reset_scope(self) -> None:
        self._scope = asyncio.Event()

    async def handle_toggle_power(self, payload: Any) -> CommandResponse:
        """Handle the remote ToggleMotorPower command."""
        try:
            desired = parse_desired_state(payload)
        except ValueError as e:
            logger.warning(f"Device: {self.device_id} {e}")
            return CommandResponse(status=400, payload={"error": str(e)})

        desired_state = PowerState.ON if desired else PowerState.OFF
        if desired_state == self.power_state:
            logger.info(f"Device: {self.device_id} Commanded by the Cloud to Toggle Power, "
                        f"already in the desired state: {self.power_state.value}")
            return CommandResponse(status=200)

        if self.power_state == PowerState.ON:
            self.cancel()
            self._reset_scope()
            self.power_state = PowerState.OFF
        else:
            self.power_state = PowerState.ON

        if self.notifications is not None:
            self.notifications.put_nowait(PowerStateChange(self.device_id, self.power_state))

        try:
            await self._send_event({"PowerState": self.power_state.value})
        except TransportError as e:
            logger.warning(f"Device: {self.device_id} could not report power state: {e}")

        logger.info(f"Device: {self.device_id} Commanded by the Cloud to Toggle Power to desired "
                    f"state {desired}, Power is now {self.power_state.value}")
        return CommandResponse(status=200)

    async def close(self) -> None:
        if self._connection is not None:
            await self.transport.close(self._connection)
            self._connection = None
