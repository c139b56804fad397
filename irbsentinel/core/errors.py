"""
Error types for IRB Sentinel.

Only two conditions short-circuit a run with an exception:
- ConfigurationError: raised before any reviewer call or artifact write
- StorageError: a primary record (receipt, case, report, finding) could not be written

Reviewer failures and missing evidence are reflected in data, not raised.
"""

from typing import Optional


class SentinelError(Exception):
    """Base class for sentinel failures."""


class ConfigurationError(SentinelError):
    """Missing or invalid configuration (credentials, roster, quorum)."""

    def __init__(self, message: str, key: str = ""):
        super().__init__(message)
        self.key = key


class StorageError(SentinelError):
    """Exception raised when an artifact cannot be persisted."""

    def __init__(self, message: str, path: str = "", cause: Optional[Exception] = None):
        super().__init__(message)
        self.path = path
        self.cause = cause
