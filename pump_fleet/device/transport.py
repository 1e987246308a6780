"""
Pump Fleet Device - Transport
=============================

Provisioning and telemetry transport used by simulated pumps.

Components:
-----------
1. Transport          - Abstract interface (register, connect, send, ...)
2. LoopbackTransport  - In-memory transport; records traffic and lets the
                        caller deliver remote commands (dry runs, tests)
3. MqttTransport      - MQTT broker transport (aiomqtt)

MQTT Topics:
------------
{scope}/registrations/{device_id}                  registration (retained)
{scope}/devices/{device_id}/telemetry              telemetry events
{scope}/devices/{device_id}/properties/reported    reported properties (retained)
{scope}/devices/{device_id}/commands/{name}        inbound commands
{scope}/devices/{device_id}/commands/{name}/response  acknowledgements
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple
import logging

from aiomqtt import Client, MqttError

from ..errors import RegistrationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_MQTT_PORT = 1883


@dataclass(frozen=True)
class Credentials:
    device_id: str
    key: str
    scope_id: str


@dataclass(frozen=True)
class RegistrationResult:
    assigned_endpoint: str
    credentials: Credentials


@dataclass
class CommandResponse:
    status: int
    payload: Dict[str, Any] = field(default_factory=dict)


CommandHandler = Callable[[Any], Awaitable[CommandResponse]]


@dataclass
class Connection:
    """Handle returned by `Transport.connect`."""
    device_id: str
    endpoint: str
    scope_id: str


class Transport(ABC):
    """Interface between a simulated device and the cloud."""

    @abstractmethod
    async def register(self,
                       device_id: str,
                       key: str,
                       scope_id: str,
                       endpoint: str) -> RegistrationResult:
        """Provision a device; returns where and how to connect."""
        pass

    @abstractmethod
    async def connect(self,
                      endpoint: str,
                      credentials: Credentials) -> Connection:
        pass

    @abstractmethod
    async def send(self, connection: Connection, payload: Dict[str, Any]) -> None:
        """Send one telemetry event. Raises TransportError on failure."""
        pass

    @abstractmethod
    async def update_reported_properties(self,
                                         connection: Connection,
                                         properties: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def set_command_handler(self,
                                  connection: Connection,
                                  command_name: str,
                                  handler: CommandHandler) -> None:
        """Route remote `command_name` invocations to `handler`."""
        pass

    async def close(self, connection: Connection) -> None:
        pass


class LoopbackTransport(Transport):
    """
    In-memory transport.

    Everything sent is kept per device; remote commands are delivered with
    `invoke_command`. Registration and sends can be made to fail per device
    through `reject_registration` and `fail_sends`.

    Example:
    --------
    >>> transport = LoopbackTransport()
    >>> await device.register()
    >>> await transport.invoke_command("DEVICE001", "ToggleMotorPower", False)
    CommandResponse(status=200, payload={})
    """

    def __init__(self, send_delay: float = 0.0):
        self.send_delay = send_delay
        self.reject_registration: Set[str] = set()
        self.fail_sends: Set[str] = set()

        self.messages: Dict[str, List[Dict[str, Any]]] = {}
        self.properties: Dict[str, Dict[str, Any]] = {}
        self._handlers: Dict[Tuple[str, str], CommandHandler] = {}
        self._connected: Set[str] = set()

    async def register(self, device_id, key, scope_id, endpoint):
        await asyncio.sleep(0)
        if device_id in self.reject_registration:
            raise RegistrationError(device_id, "registration rejected")
        return RegistrationResult(
            assigned_endpoint=endpoint or "loopback",
            credentials=Credentials(device_id, key, scope_id),
        )

    async def connect(self, endpoint, credentials):
        self._connected.add(credentials.device_id)
        self.messages.setdefault(credentials.device_id, [])
        return Connection(credentials.device_id, endpoint, credentials.scope_id)

    async def send(self, connection, payload):
        if self.send_delay > 0:
            await asyncio.sleep(self.send_delay)
        else:
            await asyncio.sleep(0)

        device_id = connection.device_id
        if device_id not in self._connected:
            raise TransportError(f"{device_id} is not connected")
        if device_id in self.fail_sends:
            raise TransportError(f"send rejected for {device_id}")
        self.messages[device_id].append(dict(payload))

    async def update_reported_properties(self, connection, properties):
        self.properties.setdefault(connection.device_id, {}).update(properties)

    async def set_command_handler(self, connection, command_name, handler):
        self._handlers[(connection.device_id, command_name)] = handler

    async def close(self, connection):
        self._connected.discard(connection.device_id)

    async def invoke_command(self,
                             device_id: str,
                             command_name: str,
                             payload: Any = None) -> CommandResponse:
        """Deliver a remote command and return the device's acknowledgement."""
        handler = self._handlers.get((device_id, command_name))
        if handler is None:
            raise TransportError(f"No handler for {command_name} on {device_id}")
        return await handler(payload)

    def telemetry(self, device_id: str) -> List[Dict[str, Any]]:
        """Sent events that carry telemetry (power-state events excluded)."""
        return [m for m in self.messages.get(device_id, []) if "PowerState" not in m]

    def power_events(self, device_id: str) -> List[str]:
        return [m["PowerState"] for m in self.messages.get(device_id, []) if "PowerState" in m]


def parse_endpoint(endpoint: str) -> Tuple[str, int]:
    """Split "host[:port]" into host and port."""
    host, _, port = endpoint.strip().rpartition(":")
    if not host:
        return port, DEFAULT_MQTT_PORT
    try:
        return host, int(port)
    except ValueError:
        raise TransportError(f"Invalid endpoint port: {endpoint}")


@dataclass
class MqttConnection(Connection):
    client: Optional[Client] = None
    handlers: Dict[str, CommandHandler] = field(default_factory=dict)
    listener: Optional[asyncio.Task] = None

    def topic(self, suffix: str) -> str:
        return f"{self.scope_id}/devices/{self.device_id}/{suffix}"


class MqttTransport(Transport):
    """
    MQTT transport.

    Devices authenticate with their id as username and their key as password.
    Registration publishes a retained registration record; each connected
    device keeps one client and a listener task for its commands.
    """

    def __init__(self, qos: int = 1):
        self.qos = qos

    async def register(self, device_id, key, scope_id, endpoint):
        host, port = parse_endpoint(endpoint)
        record = {"deviceId": device_id, "endpoint": f"{host}:{port}"}
        try:
            async with Client(hostname=host, port=port, username=device_id,
                              password=key, identifier=f"{device_id}-provisioning") as client:
                await client.publish(f"{scope_id}/registrations/{device_id}",
                                     payload=json.dumps(record), qos=self.qos, retain=True)
        except MqttError as e:
            raise RegistrationError(device_id, f"provisioning failed: {e}") from e

        logger.info(f"Registered {device_id} with {host}:{port}")
        return RegistrationResult(f"{host}:{port}", Credentials(device_id, key, scope_id))

    async def connect(self, endpoint, credentials):
        host, port = parse_endpoint(endpoint)
        client = Client(hostname=host, port=port, username=credentials.device_id,
                        password=credentials.key, identifier=credentials.device_id)
        try:
            await client.__aenter__()
        except MqttError as e:
            raise TransportError(f"connect to {endpoint} failed: {e}") from e

        connection = MqttConnection(credentials.device_id, endpoint, credentials.scope_id,
                                    client=client)
        try:
            await client.subscribe(connection.topic("commands/+"), qos=self.qos)
        except MqttError as e:
            await client.__aexit__(None, None, None)
            raise TransportError(f"command subscription failed: {e}") from e

        connection.listener = asyncio.create_task(self._listen(connection),
                                                  name=f"{credentials.device_id}-commands")
        return connection

    async def _listen(self, connection: MqttConnection) -> None:
        try:
            async for message in connection.client.messages:
                try:
                    await self._dispatch(connection, message)
                except MqttError:
                    raise
                except Exception:
                    logger.exception(f"{connection.device_id}: command on {message.topic.value} failed")
        except MqttError as e:
            logger.error(f"{connection.device_id}: command listener stopped: {e}")

    async def _dispatch(self, connection: MqttConnection, message: Any) -> None:
        command_name = message.topic.value.rsplit("/", 1)[-1]
        handler = connection.handlers.get(command_name)
        if handler is None:
            logger.warning(f"{connection.device_id}: no handler for command {command_name}")
            return

        raw = message.payload.decode("utf-8") if isinstance(message.payload, bytes) else message.payload
        try:
            payload = json.loads(raw) if raw else None
        except (TypeError, ValueError):
            payload = raw

        response = await handler(payload)
        await connection.client.publish(
            connection.topic(f"commands/{command_name}/response"),
            payload=json.dumps({"status": response.status, "payload": response.payload}),
            qos=self.qos,
        )

    async def send(self, connection, payload):
        try:
            await connection.client.publish(connection.topic("telemetry"),
                                            payload=json.dumps(payload), qos=self.qos)
        except MqttError as e:
            raise TransportError(f"send failed for {connection.device_id}: {e}") from e

    async def update_reported_properties(self, connection, properties):
        try:
            await connection.client.publish(connection.topic("properties/reported"),
                                            payload=json.dumps(properties),
                                            qos=self.qos, retain=True)
        except MqttError as e:
            raise TransportError(f"property update failed for {connection.device_id}: {e}") from e

    async def set_command_handler(self, connection, command_name, handler):
        connection.handlers[command_name] = handler

    async def close(self, connection):
        if connection.listener is not None:
            connection.listener.cancel()
            try:
                await connection.listener
            except asyncio.CancelledError:
                pass
        if connection.client is not None:
            try:
                await connection.client.__aexit__(None, None, None)
            except MqttError as e:
                logger.warning(f"{connection.device_id}: disconnect failed: {e}")


def create_transport(kind: str) -> Transport:
    """Build the transport named in configuration."""
    if kind == "loopback":
        return LoopbackTransport()
    if kind == "mqtt":
        return MqttTransport()
    raise ValueError(f"Unknown transport kind: {kind}")
