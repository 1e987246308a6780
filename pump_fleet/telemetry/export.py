"""
Pump Fleet Telemetry - Training Data Export
===========================================

Writes generated telemetry to CSV files for offline anomaly model training.
Uses the same scenario generator as the live fleet, so offline and live data
share identical numeric semantics.

Files:
------
pump_no_failure.csv          sample_size rows
pump_immediate_failure.csv   sample_size rows
pump_gradual_failure.csv     sample_size + transition rows

Columns: MotorPowerKw, MotorSpeed, PumpRate, TimePumpOn, CasingFriction
         [+ Failing (0/1) when labels are requested]
"""

from pathlib import Path
from typing import List, Optional
import logging

import numpy as np
import pandas as pd

from .generator import generate_pump_telemetry
from .synthesis import TelemetrySequence

logger = logging.getLogger(__name__)

COLUMNS = ["MotorPowerKw", "MotorSpeed", "PumpRate", "TimePumpOn", "CasingFriction"]
LABEL_COLUMN = "Failing"


def scenario_name(fail: bool, transition_length: int) -> str:
    if not fail:
        return "no_failure"
    return "gradual_failure" if transition_length > 0 else "immediate_failure"


def sequence_to_frame(sequence: TelemetrySequence,
                      include_label: bool = False) -> pd.DataFrame:
    """Tabulate a sequence, one row per record."""
    frame = pd.DataFrame(list(sequence.records), columns=COLUMNS)
    if include_label:
        labels = np.zeros(len(frame), dtype=int)
        if sequence.failure_start is not None:
            labels[sequence.failure_start:] = 1
        frame[LABEL_COLUMN] = labels
    return frame


def export_training_data(sample_size: int,
                         fail: bool,
                         transition_length: int,
                         output_dir: str,
                         include_header: bool = True,
                         include_label: bool = False,
                         rng: Optional[np.random.Generator] = None) -> Path:
    """
    Generate one scenario and write it to CSV.

    Args:
        sample_size: Records before any ramp is added
        fail: Whether the pump fails part way through
        transition_length: Ramp length for a gradual failure
        output_dir: Directory for the CSV file (created if missing)
        include_header: Write the column header row
        include_label: Add a 0/1 column marking non-normal rows
        rng: Random generator for the ramp wobble

    Returns:
        Path of the written file
    """
    sequence = generate_pump_telemetry(sample_size, fail, transition_length, rng=rng)
    frame = sequence_to_frame(sequence, include_label=include_label)

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    csv_path = output_path / f"pump_{scenario_name(fail, transition_length)}.csv"

    frame.to_csv(csv_path, index=False, header=include_header)

    logger.info(f"Wrote {len(frame)} rows to {csv_path}")
    return csv_path


def generate_training_data(output_dir: str,
                           sample_size: int = 10000,
                           gradual_transition_length: int = 2500,
                           include_header: bool = True,
                           include_label: bool = False,
                           rng: Optional[np.random.Generator] = None) -> List[Path]:
    """
    Write the no-failure, immediate-failure and gradual-failure datasets.

    Returns:
        Paths of the written files, in that order
    """
    logger.info("Generating data for ML model training. This may take a while...")

    paths = []
    for fail, transition_length in [(False, 0), (True, 0), (True, gradual_transition_length)]:
        logger.info(f"Generating data with {scenario_name(fail, transition_length).replace('_', ' ')}...")
        paths.append(export_training_data(
            sample_size, fail, transition_length, output_dir,
            include_header=include_header,
            include_label=include_label,
            rng=rng,
        ))

    logger.info("Training data generation complete")
    return paths
