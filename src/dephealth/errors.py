"""Errors raised at the system boundary (file loading).

The scoring engine itself never raises; these only come from loading
configuration and metric record files.
"""


class DependencyHealthError(Exception):
    """Base class for dephealth errors."""


class ConfigFileError(DependencyHealthError):
    """Raised when a configuration file is missing, malformed or invalid."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class RecordFileError(DependencyHealthError):
    """Raised when a metric records file cannot be read."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)
