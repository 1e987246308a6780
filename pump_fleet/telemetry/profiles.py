"""
Pump Fleet Telemetry - State Profiles
=====================================

Waveform parameters for each telemetry channel in the "normal" and "failed"
operating states.

Channels:
---------
1. motor_power_kw   - Motor power draw [kW]
2. motor_speed      - Motor speed [RPM]
3. pump_rate        - Pump flow rate [GPM]
4. time_pump_on     - Run time since last start [min], sawtooth
5. casing_friction  - Casing friction coefficient

A failing pump draws less power, slows down, moves less fluid, cycles on and
off more often, and rubs harder against its casing. The failed profiles
also oscillate faster and wider than the normal ones.
"""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from .waveform import sinusoidal, periodic

MOTOR_POWER_KW = "motor_power_kw"
MOTOR_SPEED = "motor_speed"
PUMP_RATE = "pump_rate"
TIME_PUMP_ON = "time_pump_on"
CASING_FRICTION = "casing_friction"

CHANNELS = (MOTOR_POWER_KW, MOTOR_SPEED, PUMP_RATE, TIME_PUMP_ON, CASING_FRICTION)

SAMPLING_RATE = 10000


@dataclass(frozen=True)
class ChannelProfile:
    """Periodic signal parameters for one channel in one state."""
    frequency: float
    amplitude: float
    base_level: float


@dataclass(frozen=True)
class StateProfile:
    """Channel profiles for one operating state."""
    name: str
    motor_power_kw: ChannelProfile
    motor_speed: ChannelProfile
    pump_rate: ChannelProfile
    time_pump_on: ChannelProfile
    casing_friction: ChannelProfile

    def channel(self, name: str) -> ChannelProfile:
        if name not in CHANNELS:
            raise KeyError(f"Unknown channel: {name}")
        return getattr(self, name)


NORMAL_STATE = StateProfile(
    name="normal",
    motor_power_kw=ChannelProfile(frequency=2.0, amplitude=1.2, base_level=46.5),
    motor_speed=ChannelProfile(frequency=3.0, amplitude=15.0, base_level=1750.0),
    pump_rate=ChannelProfile(frequency=2.0, amplitude=2.5, base_level=118.0),
    time_pump_on=ChannelProfile(frequency=20.0, amplitude=60.0, base_level=0.0),
    casing_friction=ChannelProfile(frequency=1.5, amplitude=0.05, base_level=0.62),
)

FAILED_STATE = StateProfile(
    name="failed",
    motor_power_kw=ChannelProfile(frequency=8.0, amplitude=4.5, base_level=31.0),
    motor_speed=ChannelProfile(frequency=11.0, amplitude=120.0, base_level=1420.0),
    pump_rate=ChannelProfile(frequency=9.0, amplitude=9.0, base_level=74.0),
    time_pump_on=ChannelProfile(frequency=70.0, amplitude=25.0, base_level=0.0),
    casing_friction=ChannelProfile(frequency=6.0, amplitude=0.4, base_level=1.94),
)


def generate_channels(profile: StateProfile,
                      length: int,
                      sampling_rate: float = SAMPLING_RATE) -> Dict[str, np.ndarray]:
    """
    Render raw (unrounded) values for every channel of a state.

    Run time is a sawtooth on top of its base level; every other channel is a
    sine around its base level.

    Args:
        profile: State to render
        length: Samples per channel
        sampling_rate: Samples per unit time

    Returns:
        Mapping of channel name to array of `length` values
    """
    channels = {}
    for name in CHANNELS:
        p = profile.channel(name)
        if name == TIME_PUMP_ON:
            values = p.base_level + periodic(length, sampling_rate, p.frequency, p.amplitude)
        else:
            values = sinusoidal(length, sampling_rate, p.frequency, p.amplitude, p.base_level)
        channels[name] = values
    return channels
