"""
Pump Fleet Tests - Telemetry Synthesis
======================================

Unit tests for:
- Waveform generation (sine, sawtooth)
- State profiles
- Synthesis engine (rounding, abrupt and gradual failure)
- Scenario generator

Test Coverage:
--------------
1. Segment lengths for abrupt and gradual failure
2. Rounding precision and idempotence
3. Ramp wobble stays within its tolerance band
4. Input validation
"""

import math
import unittest

import numpy as np

from pump_fleet.telemetry import (
    CHANNELS,
    FAILED_STATE,
    NORMAL_STATE,
    generate_channels,
    generate_pump_telemetry,
    periodic,
    round_record,
    sinusoidal,
    synthesize,
)
from pump_fleet.telemetry.synthesis import CHANNEL_DECIMALS, WOBBLE_PERCENTAGE


class TestWaveforms(unittest.TestCase):
    """Test the waveform generator."""

    def test_sinusoidal_oscillates_around_mean(self):
        values = sinusoidal(1000, 1000, 1.0, 2.0, mean=10.0)

        self.assertEqual(len(values), 1000)
        self.assertAlmostEqual(values[0], 10.0)
        self.assertAlmostEqual(values.max(), 12.0, places=3)
        self.assertAlmostEqual(values.min(), 8.0, places=3)
        self.assertAlmostEqual(values.mean(), 10.0, places=6)

    def test_periodic_is_sawtooth_in_range(self):
        values = periodic(100, 10, 1.0, 5.0)

        self.assertEqual(values[0], 0.0)
        self.assertTrue(np.all(values >= 0.0))
        self.assertTrue(np.all(values < 5.0))
        # One cycle every 10 samples: rises, then wraps back to 0
        self.assertTrue(np.all(np.diff(values[:10]) > 0))
        self.assertAlmostEqual(values[10], 0.0, places=9)

    def test_empty_and_invalid_lengths(self):
        self.assertEqual(len(sinusoidal(0, 100, 1, 1)), 0)
        with self.assertRaises(ValueError):
            sinusoidal(-1, 100, 1, 1)
        with self.assertRaises(ValueError):
            periodic(10, 100, 1, 0)


class TestProfiles(unittest.TestCase):
    """Test state profiles and channel rendering."""

    def test_generate_channels_covers_every_channel(self):
        channels = generate_channels(NORMAL_STATE, 50)

        self.assertEqual(set(channels), set(CHANNELS))
        for values in channels.values():
            self.assertEqual(len(values), 50)

    def test_failed_state_degrades(self):
        normal = generate_channels(NORMAL_STATE, 500)
        failed = generate_channels(FAILED_STATE, 500)

        self.assertLess(failed["motor_power_kw"].mean(), normal["motor_power_kw"].mean())
        self.assertLess(failed["motor_speed"].mean(), normal["motor_speed"].mean())
        self.assertLess(failed["pump_rate"].mean(), normal["pump_rate"].mean())
        self.assertGreater(failed["casing_friction"].mean(), normal["casing_friction"].mean())

    def test_unknown_channel(self):
        with self.assertRaises(KeyError):
            NORMAL_STATE.channel("vibration")


class TestSynthesisLengths(unittest.TestCase):
    """Test segment lengths."""

    def setUp(self):
        self.normal = generate_channels(NORMAL_STATE, 100)
        self.failed = generate_channels(FAILED_STATE, 80)

    def test_abrupt_failure_concatenates(self):
        sequence = synthesize(self.normal, self.failed, 0)

        self.assertEqual(len(sequence), 180)
        self.assertEqual(sequence.ramp_length, 0)
        for name in CHANNELS:
            self.assertEqual(len(sequence.column(name)), 180)
        self.assertEqual(sequence.failure_start, 100)

    def test_gradual_failure_lengths(self):
        for transition in (1, 10, 25, 60):
            sequence = synthesize(self.normal, self.failed, transition,
                                  rng=np.random.default_rng(1))
            run_time_ramp = 2 * math.ceil(transition / 2) + 2

            self.assertEqual(len(sequence), 180 + transition)
            self.assertEqual(sequence.ramp_length, transition)
            for name in WOBBLE_PERCENTAGE:
                self.assertEqual(len(sequence.column(name)), 180 + transition)
            self.assertEqual(len(sequence.column("time_pump_on")), 180 + run_time_ramp)

    def test_normal_only_has_no_failure(self):
        sequence = synthesize(self.normal, generate_channels(FAILED_STATE, 0), 0)

        self.assertEqual(len(sequence), 100)
        self.assertIsNone(sequence.failure_start)


class TestSynthesisValues(unittest.TestCase):
    """Test rounding and ramp values."""

    def setUp(self):
        self.normal = generate_channels(NORMAL_STATE, 200)
        self.failed = generate_channels(FAILED_STATE, 200)
        self.transition = 50
        self.sequence = synthesize(self.normal, self.failed, self.transition,
                                   rng=np.random.default_rng(42))

    def test_channels_are_rounded(self):
        for name, decimals in CHANNEL_DECIMALS.items():
            column = self.sequence.column(name)
            np.testing.assert_array_equal(column, np.round(column, decimals))

    def test_rounding_is_idempotent(self):
        for record in self.sequence:
            self.assertEqual(round_record(record), record)

    def test_normal_segment_is_rounded_input(self):
        expected = np.round(self.normal["motor_power_kw"], 2)
        np.testing.assert_array_equal(self.sequence.column("motor_power_kw")[:200], expected)

    def test_ramp_within_wobble_band(self):
        n = self.sequence.normal_length
        t = self.transition

        for name, pct in WOBBLE_PERCENTAGE.items():
            column = self.sequence.column(name)
            last_normal = column[n - 1]
            first_failed = column[n + t]
            step = (last_normal - first_failed) / t
            expected = last_normal - step * np.arange(1, t + 1)

            tolerance = pct * np.abs(expected) + 0.5 * 10.0 ** -CHANNEL_DECIMALS[name] + 1e-9
            deviation = np.abs(column[n:n + t] - expected)
            self.assertTrue(np.all(deviation <= tolerance), f"{name} left its wobble band")

    def test_ramp_uses_fresh_draws(self):
        n = self.sequence.normal_length
        ramp = self.sequence.column("motor_power_kw")[n:n + self.transition]
        self.assertGreater(len(np.unique(np.round(np.diff(ramp), 2))), 1)

    def test_same_seed_same_sequence(self):
        again = synthesize(self.normal, self.failed, self.transition,
                           rng=np.random.default_rng(42))
        self.assertEqual(again.records, self.sequence.records)

    def test_sequence_is_read_only(self):
        with self.assertRaises(ValueError):
            self.sequence.column("motor_speed")[0] = 0.0


class TestSynthesisValidation(unittest.TestCase):
    """Test precondition checks."""

    def setUp(self):
        self.normal = generate_channels(NORMAL_STATE, 20)
        self.failed = generate_channels(FAILED_STATE, 20)

    def test_negative_transition(self):
        with self.assertRaises(ValueError):
            synthesize(self.normal, self.failed, -1)

    def test_missing_channel(self):
        del self.failed["casing_friction"]
        with self.assertRaises(ValueError):
            synthesize(self.normal, self.failed, 0)

    def test_unequal_channel_lengths(self):
        self.normal["pump_rate"] = self.normal["pump_rate"][:10]
        with self.assertRaises(ValueError):
            synthesize(self.normal, self.failed, 0)

    def test_gradual_needs_both_states(self):
        with self.assertRaises(ValueError):
            synthesize(self.normal, generate_channels(FAILED_STATE, 0), 5)


class TestScenarioGenerator(unittest.TestCase):
    """Test generate_pump_telemetry."""

    def test_no_failure(self):
        sequence = generate_pump_telemetry(120, fail=False)
        self.assertEqual(len(sequence), 120)
        self.assertIsNone(sequence.failure_start)

    def test_immediate_failure(self):
        sequence = generate_pump_telemetry(120, fail=True, transition_length=0)
        self.assertEqual(len(sequence), 120)
        self.assertEqual(sequence.failure_start, 60)

    def test_gradual_failure(self):
        sequence = generate_pump_telemetry(120, fail=True, transition_length=30,
                                           rng=np.random.default_rng(3))
        self.assertEqual(len(sequence), 150)
        self.assertEqual(sequence.ramp_length, 30)

    def test_invalid_sample_size(self):
        with self.assertRaises(ValueError):
            generate_pump_telemetry(0, fail=False)
        with self.assertRaises(ValueError):
            generate_pump_telemetry(1, fail=True)


if __name__ == "__main__":
    unittest.main()
