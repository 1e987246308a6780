"""
Pump Fleet - Scenario Authoring
===============================

Builds the simulated devices described by configuration.

Scenarios:
----------
gradual    sample_size records, failing over `fail_over_iterations` ticks
none       sample_size + fail_over_iterations normal records
immediate  sample_size + fail_over_iterations records, failing abruptly

With the default configuration every device sends the same number of records
(10625).
"""

from typing import Any, Dict, List, Optional
import logging

import numpy as np

from ..device import Location, PumpDevice, Transport
from ..telemetry import TelemetrySequence, generate_pump_telemetry

logger = logging.getLogger(__name__)


def scenario_telemetry(scenario: str,
                       sample_size: int,
                       fail_over_iterations: int,
                       rng: Optional[np.random.Generator] = None) -> TelemetrySequence:
    """Generate the telemetry for one named scenario."""
    if scenario == "gradual":
        return generate_pump_telemetry(sample_size, True, fail_over_iterations, rng=rng)
    if scenario == "none":
        return generate_pump_telemetry(sample_size + fail_over_iterations, False, rng=rng)
    if scenario == "immediate":
        return generate_pump_telemetry(sample_size + fail_over_iterations, True, 0, rng=rng)
    raise ValueError(f"Unknown scenario: {scenario}")


def build_fleet(config: Dict[str, Any],
                transport: Transport,
                rng: Optional[np.random.Generator] = None) -> List[PumpDevice]:
    """
    Create one PumpDevice per configured device.

    Args:
        config: Validated configuration
        transport: Transport shared by every device
        rng: Random generator for ramp wobble

    Returns:
        Devices in configuration order
    """
    simulation = config["simulation"]
    transport_cfg = config["transport"]
    sample_size = simulation["sample_size"]
    fail_over = simulation["fail_over_iterations"]

    logger.info("Generating random sample data for simulated pump devices. "
                "This may take a while...")

    devices = []
    for spec in config["devices"]:
        scenario = spec.get("scenario", "none")
        telemetry = scenario_telemetry(scenario, sample_size, fail_over, rng=rng)
        location = spec["location"]

        device = PumpDevice(
            device_number=spec["number"],
            device_key=spec.get("key", ""),
            id_scope=transport_cfg.get("id_scope", ""),
            endpoint=transport_cfg.get("endpoint", ""),
            serial_number=spec.get("serial_number", f"DEVICE{spec['number']:03d}"),
            ip_address=spec.get("ip_address", ""),
            location=Location(float(location["lat"]), float(location["lon"])),
            telemetry=telemetry,
            transport=transport,
            cycle_time=simulation["cycle_time_s"],
            progress_every=simulation["progress_every"],
        )
        logger.info(f"{device.device_id}: scenario={scenario}, records={len(telemetry)}")
        devices.append(device)

    return devices
