"""
Loader Exception Hierarchy

Domain errors raised by the parser, the cache writer and the configuration
layer. Line and write errors are absorbed by the file processor; only
configuration errors are allowed to stop the process.
"""


class LoaderError(Exception):
    """Base exception for all loader failures."""


class ConfigurationError(LoaderError):
    """Raised for missing or invalid runtime configuration."""


class RecordError(LoaderError):
    """Raised when a raw log line cannot be turned into a record."""

    def __init__(self, message: str, line: str = "") -> None:
        super().__init__(message)
        self.line = line


class InvalidLineFormat(RecordError):
    """Raised when a line does not split into exactly five tab-separated fields."""


class InvalidCoordinate(RecordError):
    """Raised when the lat or lon field is not a floating-point number."""


class WriteError(LoaderError):
    """Raised when a record cannot be handed to the store."""


class SerializationError(WriteError):
    """Raised when a record cannot be encoded into the UserApps payload."""


class UnknownDeviceType(WriteError):
    """Raised when no store client is configured for a device type."""
