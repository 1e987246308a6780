"""
Pump Fleet Device Module - Initialization
=========================================

Simulated pump devices and the transport they talk through.

Components:
-----------
1. pump.py       - PumpDevice: registration, send loop, power toggling
2. transport.py  - Transport interface, loopback and MQTT implementations
"""

from .pump import (
    PumpDevice,
    PowerState,
    RunState,
    Location,
    PowerStateChange,
    parse_desired_state,
    TOGGLE_POWER_COMMAND,
)

from .transport import (
    Transport,
    LoopbackTransport,
    MqttTransport,
    Connection,
    Credentials,
    RegistrationResult,
    CommandResponse,
    create_transport,
)

__all__ = [
    # Devices
    "PumpDevice",
    "PowerState",
    "RunState",
    "Location",
    "PowerStateChange",
    "parse_desired_state",
    "TOGGLE_POWER_COMMAND",
    # Transport
    "Transport",
    "LoopbackTransport",
    "MqttTransport",
    "Connection",
    "Credentials",
    "RegistrationResult",
    "CommandResponse",
    "create_transport",
]
