"""
Core of IRB Sentinel: configuration, errors, change discovery and the run pipeline.
"""

from .changes import DEFAULT_DIFF_RANGE, changed_files_from_git
from .config import SentinelConfig, get_sentinel_config, reset_sentinel_config
from .errors import ConfigurationError, SentinelError, StorageError
from .sentinel import (
    EXIT_ERROR,
    EXIT_ESCALATED,
    EXIT_OK,
    RunOutcome,
    RunResult,
    SentinelRunner,
    run_sentinel,
)

__all__ = [
    "DEFAULT_DIFF_RANGE",
    "changed_files_from_git",
    "SentinelConfig",
    "get_sentinel_config",
    "reset_sentinel_config",
    "ConfigurationError",
    "SentinelError",
    "StorageError",
    "EXIT_ERROR",
    "EXIT_ESCALATED",
    "EXIT_OK",
    "RunOutcome",
    "RunResult",
    "SentinelRunner",
    "run_sentinel",
]
