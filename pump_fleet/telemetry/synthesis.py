"""
Pump Fleet Telemetry - Synthesis Engine
=======================================

Blends "normal" and "failed" channel values into one ordered telemetry
sequence.

Rounding Policy:
----------------
Every value is rounded before use, normal and failed alike, so the ramp
anchors are already rounded:

    motor_power_kw   2 decimals
    motor_speed      0 decimals
    pump_rate        1 decimal
    time_pump_on     2 decimals
    casing_friction  2 decimals

Failure Modes:
--------------
1. Abrupt (transition_length == 0)
   normal ++ failed

2. Gradual (transition_length == T > 0)
   normal ++ ramp ++ failed

   Linear channels (power, speed, rate, friction):
       step    = (last_normal - first_failed) / T
       ramp[k] = last_normal - (k + 1) × step          k = 0..T-1
       ramp[k] += U(-p, +p) × |ramp[k]|                fresh draw per tick

       p = 2% power, 0.7% speed, 2% rate, 0.2% friction

   Run time:
       two sawtooth halves of ceil(T/2) + 1 samples each, driven by the
       failed-minus-normal frequency delta and normal-minus-failed
       amplitude delta; the first half runs at 1.5× both deltas.
       The run-time ramp is therefore 2 × (ceil(T/2) + 1) samples long.

Records are indexed by the motor power column. Run time is read by position
from its own column, so in the failed segment it lags the other channels by
the extra ramp samples and its tail is never emitted.

Example:
--------
>>> from pump_fleet.telemetry import synthesize, generate_channels, NORMAL_STATE, FAILED_STATE
>>>
>>> normal = generate_channels(NORMAL_STATE, 5000)
>>> failed = generate_channels(FAILED_STATE, 5000)
>>> sequence = synthesize(normal, failed, transition_length=625)
>>> len(sequence)
10625
"""

import math
from typing import Dict, Iterator, Mapping, NamedTuple, Optional, Sequence, Tuple
import logging

import numpy as np

from .profiles import (
    CHANNELS,
    MOTOR_POWER_KW,
    MOTOR_SPEED,
    PUMP_RATE,
    TIME_PUMP_ON,
    CASING_FRICTION,
    NORMAL_STATE,
    FAILED_STATE,
    SAMPLING_RATE,
    StateProfile,
)
from .waveform import periodic

logger = logging.getLogger(__name__)

CHANNEL_DECIMALS = {
    MOTOR_POWER_KW: 2,
    MOTOR_SPEED: 0,
    PUMP_RATE: 1,
    TIME_PUMP_ON: 2,
    CASING_FRICTION: 2,
}

WOBBLE_PERCENTAGE = {
    MOTOR_POWER_KW: 0.02,
    MOTOR_SPEED: 0.007,
    PUMP_RATE: 0.02,
    CASING_FRICTION: 0.002,
}

RUN_TIME_ACCELERATION = 1.5


class TelemetryRecord(NamedTuple):
    """One tick of pump telemetry."""
    motor_power_kw: float
    motor_speed: float
    pump_rate: float
    time_pump_on: float
    casing_friction: float

    def to_payload(self) -> Dict[str, float]:
        return {
            "MotorPowerKw": self.motor_power_kw,
            "MotorSpeed": self.motor_speed,
            "PumpRate": self.pump_rate,
            "TimePumpOn": self.time_pump_on,
            "CasingFriction": self.casing_friction,
        }


def round_channel(name: str, values: Sequence[float]) -> np.ndarray:
    """Round a channel's values to that channel's precision."""
    return np.round(np.asarray(values, dtype=float), CHANNEL_DECIMALS[name])


def round_record(record: TelemetryRecord) -> TelemetryRecord:
    """Round every field of a record to its channel's precision."""
    return TelemetryRecord(*(
        round(value, CHANNEL_DECIMALS[name])
        for name, value in zip(CHANNELS, record)
    ))


def _round_state(channels: Mapping[str, Sequence[float]], label: str) -> Dict[str, np.ndarray]:
    missing = [name for name in CHANNELS if name not in channels]
    if missing:
        raise ValueError(f"{label} channels missing: {missing}")

    rounded = {name: round_channel(name, channels[name]) for name in CHANNELS}

    lengths = {name: len(values) for name, values in rounded.items()}
    if len(set(lengths.values())) != 1:
        raise ValueError(f"{label} channels differ in length: {lengths}")
    return rounded


class TelemetrySequence:
    """
    Ordered, immutable telemetry for one device.

    Holds the per-channel columns (which may differ in length, see module
    docstring) and the record view built from them.
    """

    def __init__(self,
                 columns: Mapping[str, np.ndarray],
                 normal_length: int,
                 ramp_length: int,
                 failed_length: int):
        self._columns = {}
        for name in CHANNELS:
            column = np.array(columns[name], dtype=float)
            column.setflags(write=False)
            self._columns[name] = column

        self.normal_length = normal_length
        self.ramp_length = ramp_length
        self.failed_length = failed_length

        count = len(self._columns[MOTOR_POWER_KW])
        self._records: Tuple[TelemetryRecord, ...] = tuple(
            TelemetryRecord(*(float(self._columns[name][i]) for name in CHANNELS))
            for i in range(count)
        )

    def column(self, name: str) -> np.ndarray:
        """Read-only values of one channel."""
        return self._columns[name]

    @property
    def records(self) -> Tuple[TelemetryRecord, ...]:
        return self._records

    @property
    def failure_start(self) -> Optional[int]:
        """Index of the first non-normal record, or None if the pump never fails."""
        if self.ramp_length == 0 and self.failed_length == 0:
            return None
        return self.normal_length

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TelemetryRecord]:
        return iter(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def __repr__(self) -> str:
        return (f"TelemetrySequence(normal={self.normal_length}, "
                f"ramp={self.ramp_length}, failed={self.failed_length})")


def _linear_ramp(name: str,
                 last_normal: float,
                 first_failed: float,
                 transition_length: int,
                 rng: np.random.Generator) -> np.ndarray:
    step = (last_normal - first_failed) / transition_length
    values = last_normal - step * np.arange(1, transition_length + 1)

    pct = WOBBLE_PERCENTAGE[name]
    wobble = rng.uniform(-pct, pct, size=transition_length) * np.abs(values)
    return round_channel(name, values + wobble)


def _run_time_ramp(transition_length: int,
                   normal_profile: StateProfile,
                   failed_profile: StateProfile) -> np.ndarray:
    half = math.ceil(transition_length / 2) + 1
    frequency_delta = (failed_profile.time_pump_on.frequency
                       - normal_profile.time_pump_on.frequency)
    amplitude_delta = (normal_profile.time_pump_on.amplitude
                       - failed_profile.time_pump_on.amplitude)

    accelerating = periodic(half, SAMPLING_RATE,
                            frequency_delta * RUN_TIME_ACCELERATION,
                            amplitude_delta * RUN_TIME_ACCELERATION)
    settling = periodic(half, SAMPLING_RATE, frequency_delta, amplitude_delta)
    return round_channel(TIME_PUMP_ON, np.concatenate([accelerating, settling]))


def synthesize(normal_channels: Mapping[str, Sequence[float]],
               failed_channels: Mapping[str, Sequence[float]],
               transition_length: int = 0,
               rng: Optional[np.random.Generator] = None,
               normal_profile: StateProfile = NORMAL_STATE,
               failed_profile: StateProfile = FAILED_STATE) -> TelemetrySequence:
    """
    Build a telemetry sequence from normal and failed channel values.

    Args:
        normal_channels: Raw values per channel for the normal state
        failed_channels: Raw values per channel for the failed state
        transition_length: Ticks over which failure develops (0 = abrupt)
        rng: Random generator for the ramp wobble
        normal_profile: Profile the normal values came from (run-time ramp)
        failed_profile: Profile the failed values came from (run-time ramp)

    Returns:
        TelemetrySequence

    Raises:
        ValueError: If transition_length is negative, a channel is missing,
            channels of one state differ in length, or a ramp is requested
            with an empty normal or failed state
    """
    if transition_length < 0:
        raise ValueError(f"transition_length must be non-negative, got {transition_length}")

    normal = _round_state(normal_channels, "normal")
    failed = _round_state(failed_channels, "failed")
    normal_length = len(normal[MOTOR_POWER_KW])
    failed_length = len(failed[MOTOR_POWER_KW])

    if transition_length == 0:
        columns = {name: np.concatenate([normal[name], failed[name]]) for name in CHANNELS}
        return TelemetrySequence(columns, normal_length, 0, failed_length)

    if normal_length == 0 or failed_length == 0:
        raise ValueError("A gradual failure needs non-empty normal and failed values")

    rng = rng if rng is not None else np.random.default_rng()

    ramps = {}
    for name in WOBBLE_PERCENTAGE:
        ramps[name] = _linear_ramp(name, normal[name][-1], failed[name][0],
                                   transition_length, rng)
    ramps[TIME_PUMP_ON] = _run_time_ramp(transition_length, normal_profile, failed_profile)

    columns = {
        name: np.concatenate([normal[name], ramps[name], failed[name]])
        for name in CHANNELS
    }

    logger.debug(f"Synthesized gradual failure: normal={normal_length}, "
                 f"ramp={transition_length}, failed={failed_length}")

    return TelemetrySequence(columns, normal_length, transition_length, failed_length)
