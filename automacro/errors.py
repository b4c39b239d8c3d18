"""
Exception taxonomy for the macro pad service.

Only connection-epoch failures (DeviceNotFound, DeviceIOError) are retried,
and only by the supervisor. ConfigurationError is fatal at startup.
"""


class MacroPadError(Exception):
    """Base class for all automacro errors."""


class DeviceNotFound(MacroPadError):
    """No attached device matches the vendor/product id and usage chains."""


class DeviceIOError(MacroPadError):
    """A read or write failed after the device was opened."""


class ConfigurationError(MacroPadError):
    """The configuration file is unreadable or malformed."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
