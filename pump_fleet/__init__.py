"""
Pump Fleet Simulator
====================

Simulates a fleet of industrial pumps: synthesizes sensor telemetry for
normal operation and failure, and runs one send loop per device that reacts
to remote power-toggle commands.

Modules:
--------
- telemetry: Waveforms, state profiles, synthesis engine, CSV export
- device: Simulated pump and cloud transport
- fleet: Orchestrator and run task table
- utils: Configuration & logging utilities
- cli: Interactive entry point

Quick Start:
-----------
import asyncio
from pump_fleet.device import LoopbackTransport
from pump_fleet.fleet import FleetOrchestrator, build_fleet
from pump_fleet.utils import load_default_config

config = load_default_config()
devices = build_fleet(config, LoopbackTransport())

async def main():
    orchestrator = FleetOrchestrator()
    await orchestrator.start(devices)
    await orchestrator.await_completion()
    await orchestrator.close()

asyncio.run(main())

Version: 1.0.0
Author: Pump Fleet Team
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Pump Fleet Team"
__all__ = [
    "cli",
    "device",
    "errors",
    "fleet",
    "telemetry",
    "utils",
]
