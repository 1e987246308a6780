"""
Pump Fleet - Command Line Interface
===================================

Operations:
-----------
1. Generate and send pump device telemetry (live fleet)
2. Generate anomaly model training data in CSV files

Usage:
------
pump-fleet                          # interactive menu
pump-fleet --operation 1 --loopback # dry run without a broker
pump-fleet --operation 2 --output-dir data/

Press Ctrl+C while the fleet is running to stop every device.
"""

import argparse
import asyncio
import signal
import sys
from typing import Any, Callable, Dict, List, Optional
import logging

from dotenv import load_dotenv

from .device import Transport, create_transport
from .errors import ConfigError
from .fleet import FleetOrchestrator, build_fleet
from .telemetry import generate_training_data
from .utils import (
    get_config_value,
    load_config,
    load_default_config,
    log_statistics,
    merge_configs,
    setup_logging,
    validate_config,
)

logger = logging.getLogger(__name__)

OPERATIONS = ("1", "2")
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

MENU = """Pump Telemetry Generator
=============
** Enter 1 to generate and send pump device telemetry.
** Enter 2 to generate anomaly model training data in CSV files.
=============

Press Ctrl+C to cancel while generator is running.
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Simulated pump fleet telemetry generator")
    p.add_argument("--config", default=None, help="YAML config merged over the packaged defaults")
    p.add_argument("--operation", choices=OPERATIONS, default=None,
                   help="Run an operation without prompting")
    p.add_argument("--loopback", action="store_true",
                   help="Use the in-memory transport (no broker, no credentials)")
    p.add_argument("--output-dir", default=None, help="Directory for training data CSV files")
    p.add_argument("--log-level", default="INFO", type=str.upper, choices=LOG_LEVELS,
                   help="Logging verbosity")
    p.add_argument("--log-dir", default="logs", help="Directory for log files")
    p.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    return p.parse_args(argv)


def prompt_operation(input_fn: Callable[[str], str] = input) -> str:
    """Ask until the operator enters a valid operation number."""
    while True:
        choice = input_fn("Enter the number of the operation you would like to perform > ").strip()
        if choice in OPERATIONS:
            return choice
        print("Invalid input entered. Please enter 1 or 2")


def build_config(config_path: Optional[str], loopback: bool) -> Dict[str, Any]:
    config = load_default_config()
    if config_path:
        config = merge_configs(config, load_config(config_path))
    if loopback:
        config["transport"]["kind"] = "loopback"
    return config


def install_signal_handlers(orchestrator: FleetOrchestrator) -> Callable[[], None]:
    """
    Route SIGINT/SIGTERM to `orchestrator.cancel_all`.

    Returns:
        Function restoring the previous handlers
    """
    loop = asyncio.get_running_loop()
    signals = [signal.SIGINT, signal.SIGTERM]

    try:
        for sig in signals:
            loop.add_signal_handler(sig, orchestrator.cancel_all)
    except (NotImplementedError, RuntimeError):
        previous = {}

        def _handler(*_):
            loop.call_soon_threadsafe(orchestrator.cancel_all)

        for sig in signals:
            previous[sig] = signal.signal(sig, _handler)

        def restore_fallback():
            for sig, handler in previous.items():
                signal.signal(sig, handler)
        return restore_fallback

    def restore():
        for sig in signals:
            loop.remove_signal_handler(sig)
    return restore


async def send_live_telemetry(config: Dict[str, Any],
                              transport: Optional[Transport] = None) -> Dict[str, int]:
    """
    Run the configured fleet until every device is done or cancelled.

    Returns:
        Messages sent per device plus the total
    """
    transport = transport or create_transport(config["transport"].get("kind", "mqtt"))
    devices = build_fleet(config, transport)

    orchestrator = FleetOrchestrator()
    restore_signals = install_signal_handlers(orchestrator)
    try:
        await orchestrator.start(devices)
        await orchestrator.await_completion()
    finally:
        orchestrator.cancel_all()
        await orchestrator.close()
        restore_signals()

    return orchestrator.get_statistics()


def run_training_data(config: Dict[str, Any], output_dir: Optional[str] = None) -> None:
    training = config.get("training_data", {})
    generate_training_data(
        output_dir or training.get("output_dir", "training_data"),
        sample_size=get_config_value(config, "training_data.sample_size", 10000),
        gradual_transition_length=get_config_value(
            config, "training_data.gradual_fail_over_iterations", 2500),
        include_header=training.get("include_header", True),
        include_label=training.get("include_label", False),
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    load_dotenv()
    setup_logging(args.log_dir, level=args.log_level, file_output=not args.no_log_file)

    try:
        config = build_config(args.config, args.loopback)
    except ConfigError as e:
        logger.error(str(e))
        return 2

    print(MENU)
    try:
        operation = args.operation or prompt_operation()
    except (KeyboardInterrupt, EOFError):
        print()
        return 130

    if operation == "1":
        kind = config["transport"].get("kind", "mqtt")
        try:
            validate_config(config, require_credentials=(kind != "loopback"))
        except ConfigError as e:
            logger.error(str(e))
            return 2

        try:
            stats = asyncio.run(send_live_telemetry(config))
        except KeyboardInterrupt:
            logger.info("The device telemetry operation was canceled.")
            return 130
        log_statistics(stats, title="Messages Sent")
        print("\nDone sending generated pump data\n")
    else:
        run_training_data(config, args.output_dir)
        print("\nGeneration complete.\n")

    return 0


if __name__ == "__main__":
    sys.exit(main())
