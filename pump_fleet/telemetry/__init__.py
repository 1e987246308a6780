"""
Pump Fleet Telemetry Module - Initialization
============================================

Synthesizes pump sensor telemetry for normal operation and failure.

Components:
-----------
1. waveform.py   - Sampled sine and sawtooth signals
2. profiles.py   - Normal / failed channel profiles
3. synthesis.py  - Rounding, abrupt and gradual failure blending
4. generator.py  - Per-device failure scenarios
5. export.py     - CSV training data export

Pipeline:
---------
State Profile
    ↓
[Waveform Generator] → raw channel values
    ↓
[Synthesis Engine]   → rounded, blended TelemetrySequence
    ↓
Device send loop / CSV export

Usage:
------
from pump_fleet.telemetry import generate_pump_telemetry

sequence = generate_pump_telemetry(10000, fail=True, transition_length=625)
for record in sequence:
    print(record.motor_power_kw, record.motor_speed)
"""

from .waveform import (
    sinusoidal,
    periodic,
)

from .profiles import (
    CHANNELS,
    ChannelProfile,
    StateProfile,
    NORMAL_STATE,
    FAILED_STATE,
    generate_channels,
)

from .synthesis import (
    TelemetryRecord,
    TelemetrySequence,
    synthesize,
    round_channel,
    round_record,
)

from .generator import generate_pump_telemetry

from .export import (
    COLUMNS,
    LABEL_COLUMN,
    sequence_to_frame,
    export_training_data,
    generate_training_data,
)

__all__ = [
    # Waveforms
    "sinusoidal",
    "periodic",
    # Profiles
    "CHANNELS",
    "ChannelProfile",
    "StateProfile",
    "NORMAL_STATE",
    "FAILED_STATE",
    "generate_channels",
    # Synthesis
    "TelemetryRecord",
    "TelemetrySequence",
    "synthesize",
    "round_channel",
    "round_record",
    "generate_pump_telemetry",
    # Export
    "COLUMNS",
    "LABEL_COLUMN",
    "sequence_to_frame",
    "export_training_data",
    "generate_training_data",
]
