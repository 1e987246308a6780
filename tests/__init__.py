"""
Pump Fleet Tests Module - Initialization
========================================

Unit and integration tests for the pump fleet simulator.

Test Organization:
------------------
1. test_telemetry.py  - Waveforms, state profiles, synthesis engine
2. test_export.py     - CSV training data export and the CLI
3. test_device.py     - Simulated pump (registration, send loop, power toggle)
4. test_fleet.py      - Run task table and fleet orchestrator
5. test_config.py     - Configuration loading and validation

Device and fleet tests run against LoopbackTransport with short cycle
times, so no broker is needed.

Example Test Run:
-----------------
>>> import unittest
>>> from tests import create_test_suite
>>>
>>> runner = unittest.TextTestRunner(verbosity=2)
>>> result = runner.run(create_test_suite())

Version: 1.0.0
Author: Pump Fleet Team
"""

import unittest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import test modules
from . import test_config
from . import test_device
from . import test_export
from . import test_fleet
from . import test_telemetry

__all__ = [
    "test_config",
    "test_device",
    "test_export",
    "test_fleet",
    "test_telemetry",
]

__version__ = "1.0.0"
__author__ = "Pump Fleet Team"


def create_test_suite():
    """
    Create the full test suite.

    Returns:
        unittest.TestSuite with all tests
    """
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for module in (test_telemetry, test_export, test_device, test_fleet, test_config):
        suite.addTests(loader.loadTestsFromModule(module))

    return suite


def run_tests(verbosity: int = 2):
    """
    Run all tests.

    Args:
        verbosity: Output verbosity level

    Returns:
        unittest.TestResult
    """
    suite = create_test_suite()
    runner = unittest.TextTestRunner(verbosity=verbosity)
    return runner.run(suite)


if __name__ == "__main__":
    result = run_tests()
    sys.exit(0 if result.wasSuccessful() else 1)
