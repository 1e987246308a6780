"""
Pump Fleet Telemetry - Waveform Generator
=========================================

Pure functions producing sampled periodic signals.

Sinusoidal:
    x[i] = mean + A × sin(2π × f / f_s × i)

Periodic (sawtooth):
    x[i] = (i × f / f_s × A) mod A

    Rises linearly from 0 towards A and wraps, f times per f_s samples.
"""

import numpy as np


def _check_length(length: int) -> None:
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")


def sinusoidal(length: int,
               sampling_rate: float,
               frequency: float,
               amplitude: float,
               mean: float = 0.0) -> np.ndarray:
    """
    Sample a sine wave.

    Args:
        length: Number of samples
        sampling_rate: Samples per unit time
        frequency: Cycles per unit time
        amplitude: Peak deviation from the mean
        mean: Base level the wave oscillates around

    Returns:
        Array of `length` samples
    """
    _check_length(length)
    step = 2 * np.pi * frequency / sampling_rate
    return mean + amplitude * np.sin(step * np.arange(length))


def periodic(length: int,
             sampling_rate: float,
             frequency: float,
             amplitude: float) -> np.ndarray:
    """
    Sample a sawtooth wave in [0, amplitude).

    Args:
        length: Number of samples
        sampling_rate: Samples per unit time
        frequency: Cycles per unit time
        amplitude: Wrap-around value; must be non-zero

    Returns:
        Array of `length` samples
    """
    _check_length(length)
    if amplitude == 0:
        raise ValueError("amplitude must be non-zero")
    step = frequency / sampling_rate * amplitude
    return np.mod(step * np.arange(length), amplitude)
