"""
Pump Fleet - Error Taxonomy
===========================

Configuration errors are fatal before any device starts. Registration errors
are reported per device. Transport errors end the affected device's run only.
Cancellation is never an error and has no exception here.
"""


class PumpFleetError(Exception):
    """Base class for simulator errors."""
    pass


class ConfigError(PumpFleetError):
    """Configuration error."""
    pass


class TransportError(PumpFleetError):
    """Transport rejected or could not deliver a message."""
    pass


class RegistrationError(PumpFleetError):
    """Device could not be provisioned or connected."""

    def __init__(self, device_id: str, reason: str):
        super().__init__(f"{device_id}: {reason}")
        self.device_id = device_id
        self.reason = reason
