"""
Pump Fleet Orchestration Module - Initialization
================================================

Components:
-----------
1. task_table.py    - RunTaskTable (device id → run task, serialized)
2. orchestrator.py  - FleetOrchestrator (start, await_completion, cancel_all)
3. scenario.py      - Device construction from configuration
"""

from .task_table import RunTaskTable
from .orchestrator import FleetOrchestrator
from .scenario import build_fleet, scenario_telemetry

__all__ = [
    "RunTaskTable",
    "FleetOrchestrator",
    "build_fleet",
    "scenario_telemetry",
]
