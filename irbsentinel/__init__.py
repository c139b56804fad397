"""
IRB Sentinel - change-gating review panel for MeshCORE.

Classifies the risk surfaces of a change, refuses to review gateable
changes without evidence, fans the change out to a panel of independent
LLM reviewers, and records the panel's convergence as auditable artifacts.

Quick Start:
    from irbsentinel import SentinelRunner, get_sentinel_config

    runner = SentinelRunner(get_sentinel_config())
    result = runner.run("Open port 8443", ["config/ingress.yaml"], evidence_id="EV-42")
    print(result.to_dict())
"""

__version__ = "0.2.0"

from .core import (
    EXIT_ERROR,
    EXIT_ESCALATED,
    EXIT_OK,
    ConfigurationError,
    RunOutcome,
    RunResult,
    SentinelConfig,
    SentinelError,
    SentinelRunner,
    StorageError,
    get_sentinel_config,
    run_sentinel,
)
from .surfaces import classify_surfaces
from .evaluation import VerdictParser

__all__ = [
    "__version__",
    "EXIT_ERROR",
    "EXIT_ESCALATED",
    "EXIT_OK",
    "ConfigurationError",
    "RunOutcome",
    "RunResult",
    "SentinelConfig",
    "SentinelError",
    "SentinelRunner",
    "StorageError",
    "get_sentinel_config",
    "run_sentinel",
    "classify_surfaces",
    "VerdictParser",
]
