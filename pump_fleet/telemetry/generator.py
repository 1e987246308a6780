"""
Pump Fleet Telemetry - Scenario Generator
=========================================

Builds a device's telemetry sequence for a failure scenario.

Scenarios:
----------
1. No failure        - `sample_size` normal records
2. Immediate failure - normal half, then failed half
3. Gradual failure   - normal half, ramp of `transition_length`, failed half

Example:
--------
>>> sequence = generate_pump_telemetry(10000, fail=True, transition_length=625)
>>> len(sequence)
10625
"""

from typing import Optional
import logging

import numpy as np

from .profiles import NORMAL_STATE, FAILED_STATE, generate_channels
from .synthesis import TelemetrySequence, synthesize

logger = logging.getLogger(__name__)


def generate_pump_telemetry(sample_size: int,
                            fail: bool,
                            transition_length: int = 0,
                            rng: Optional[np.random.Generator] = None) -> TelemetrySequence:
    """
    Generate telemetry for one pump.

    Args:
        sample_size: Records before any ramp is added
        fail: Whether the pump fails part way through
        transition_length: Ramp length for a gradual failure (0 = immediate)
        rng: Random generator for the ramp wobble

    Returns:
        TelemetrySequence of `sample_size + transition_length` records when
        failing, `sample_size` otherwise
    """
    if sample_size < 1:
        raise ValueError(f"sample_size must be positive, got {sample_size}")

    if not fail:
        normal = generate_channels(NORMAL_STATE, sample_size)
        failed = generate_channels(FAILED_STATE, 0)
        return synthesize(normal, failed, 0)

    if sample_size < 2:
        raise ValueError("A failing pump needs at least 2 samples")

    normal_length = sample_size // 2
    normal = generate_channels(NORMAL_STATE, normal_length)
    failed = generate_channels(FAILED_STATE, sample_size - normal_length)

    sequence = synthesize(normal, failed, transition_length, rng=rng)
    logger.debug(f"Generated failing pump telemetry: {sequence!r}")
    return sequence
