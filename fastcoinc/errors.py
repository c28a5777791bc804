"""
Exception hierarchy for the coincidence pipeline.

Each class maps onto one process exit code in ``fastcoinc.cli``.
"""

EXIT_OK = 0
EXIT_ERR = 31
EXIT_READCND = 32
EXIT_RESOURCE = 33
EXIT_OUTFAIL = 34


class CoincidenceError(Exception):
    """Base class for every fatal condition raised by fastcoinc."""
    exit_code = EXIT_ERR


class ConfigError(CoincidenceError, ValueError):
    """Missing, contradictory or out-of-range configuration."""
    exit_code = EXIT_ERR


class IngestionError(CoincidenceError, ValueError):
    """Unreadable, truncated or malformed candidate file."""
    exit_code = EXIT_READCND


class ResourceError(CoincidenceError, MemoryError):
    """Sanity ceiling exceeded or an array could not be allocated."""
    exit_code = EXIT_RESOURCE
