"""Exceptions raised by the harness itself, as opposed to tests under it."""


class HarnessError(Exception):
    """Base class for harness errors."""


class ConfigError(HarnessError):
    """Raised when the harness configuration is missing or invalid."""


class DiscoveryError(HarnessError):
    """Raised when a test declaration cannot be turned into a test unit."""


class HarnessFault(HarnessError):
    """Raised when the fault boundary failed to contain a test's termination.

    Fatal for the owning suite only: results not yet reported for that suite
    cannot be trusted.
    """
