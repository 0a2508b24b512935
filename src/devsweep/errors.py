"""Exception types for devsweep."""

from pathlib import Path


class DevSweepError(Exception):
    """Base class for all devsweep errors."""


class UnsafeDeletionError(DevSweepError):
    """Raised when a removal targets a path outside every safe root."""

    def __init__(self, path: str | Path):
        self.path = str(path)
        super().__init__(f"Refusing to delete path outside safe directories: {self.path}")


class DeletionError(DevSweepError):
    """Raised when a removal fails after all retries."""

    def __init__(self, path: str | Path, cause: BaseException):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Failed to delete {self.path}: {cause}")


class UnsupportedCapabilityError(DevSweepError):
    """Raised when an optional source operation is not supported."""

    def __init__(self, source: str, capability: str):
        self.source = source
        self.capability = capability
        super().__init__(f"Cache source '{source}' does not support {capability}")


class ConfigError(DevSweepError):
    """Raised when configuration is invalid."""
