"""
Pump Fleet Tests - Training Data Export & CLI
=============================================

Tests for:
- CSV training data export (pandas)
- Command line entry point (menu prompt, training data operation,
  loopback fleet run)
"""

import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import numpy as np
import pandas as pd

from pump_fleet import cli
from pump_fleet.telemetry import (
    COLUMNS,
    LABEL_COLUMN,
    export_training_data,
    generate_pump_telemetry,
    generate_training_data,
    sequence_to_frame,
)


class TestTrainingDataExport(unittest.TestCase):
    """Test CSV export."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.output_dir = Path(self.tmpdir.name) / "training"

    def test_frame_matches_sequence(self):
        sequence = generate_pump_telemetry(30, fail=True, transition_length=6,
                                           rng=np.random.default_rng(5))
        frame = sequence_to_frame(sequence, include_label=True)

        self.assertEqual(list(frame.columns), COLUMNS + [LABEL_COLUMN])
        self.assertEqual(len(frame), 36)
        self.assertEqual(tuple(frame.iloc[20][COLUMNS]), tuple(sequence[20]))
        self.assertEqual(frame[LABEL_COLUMN].iloc[:15].sum(), 0)
        self.assertEqual(frame[LABEL_COLUMN].iloc[15:].sum(), 21)

    def test_export_with_header(self):
        path = export_training_data(40, True, 10, str(self.output_dir),
                                    rng=np.random.default_rng(1))

        self.assertEqual(path.name, "pump_gradual_failure.csv")
        frame = pd.read_csv(path)
        self.assertEqual(list(frame.columns), COLUMNS)
        self.assertEqual(len(frame), 50)

    def test_export_without_header(self):
        path = export_training_data(40, False, 0, str(self.output_dir), include_header=False)

        self.assertEqual(path.name, "pump_no_failure.csv")
        frame = pd.read_csv(path, header=None)
        self.assertEqual(frame.shape, (40, 5))

    def test_no_failure_labels_are_zero(self):
        path = export_training_data(40, False, 0, str(self.output_dir), include_label=True)
        self.assertEqual(pd.read_csv(path)[LABEL_COLUMN].sum(), 0)

    def test_generate_all_datasets(self):
        paths = generate_training_data(str(self.output_dir), sample_size=30,
                                       gradual_transition_length=8)

        self.assertEqual([p.name for p in paths], [
            "pump_no_failure.csv",
            "pump_immediate_failure.csv",
            "pump_gradual_failure.csv",
        ])
        self.assertEqual([len(pd.read_csv(p)) for p in paths], [30, 30, 38])


class TestCommandLine(unittest.TestCase):
    """Test the CLI entry point."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.root = Path(self.tmpdir.name)

    def write_config(self):
        path = self.root / "fleet.yaml"
        path.write_text(
            "simulation:\n"
            "  sample_size: 10\n"
            "  fail_over_iterations: 4\n"
            "  cycle_time_s: 0.005\n"
            "training_data:\n"
            "  sample_size: 20\n"
            "  gradual_fail_over_iterations: 5\n",
            encoding="utf-8",
        )
        return str(path)

    def test_prompt_repeats_until_valid(self):
        answers = iter(["x", "3", " 2 "])
        out = io.StringIO()

        with redirect_stdout(out):
            choice = cli.prompt_operation(lambda _: next(answers))

        self.assertEqual(choice, "2")
        self.assertEqual(out.getvalue().count("Invalid input entered. Please enter 1 or 2"), 2)

    def test_training_data_operation(self):
        output_dir = self.root / "csv"
        argv = ["--config", self.write_config(), "--operation", "2",
                "--output-dir", str(output_dir), "--no-log-file", "--log-level", "WARNING"]

        with redirect_stdout(io.StringIO()):
            code = cli.main(argv)

        self.assertEqual(code, 0)
        self.assertEqual(len(pd.read_csv(output_dir / "pump_gradual_failure.csv")), 25)
        self.assertEqual(len(pd.read_csv(output_dir / "pump_no_failure.csv")), 20)

    def test_loopback_fleet_operation(self):
        config = cli.build_config(self.write_config(), loopback=True)
        self.assertEqual(config["transport"]["kind"], "loopback")

        argv = ["--config", self.write_config(), "--operation", "1", "--loopback",
                "--no-log-file", "--log-level", "WARNING"]
        with redirect_stdout(io.StringIO()) as out:
            code = cli.main(argv)

        self.assertEqual(code, 0)
        self.assertIn("Done sending generated pump data", out.getvalue())

    def test_log_level_choices(self):
        self.assertEqual(cli.parse_args(["--log-level", "debug"]).log_level, "DEBUG")

        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            cli.parse_args(["--log-level", "verbose"])

    def test_missing_config_file(self):
        argv = ["--config", str(self.root / "missing.yaml"), "--operation", "2",
                "--no-log-file", "--log-level", "CRITICAL"]
        self.assertEqual(cli.main(argv), 2)


if __name__ == "__main__":
    unittest.main()
