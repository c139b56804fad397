"""
Consensus for the IRB reviewer panel.

Quorum policies:
- WARMUP: two-thirds supermajority among required reviewers
- GATEABLE: strict unanimity among required reviewers
"""

from .convergence import (
    DEFAULT_CONCERN_PREFIX_LENGTH,
    DEFAULT_REQUIRED_COUNT,
    ConvergenceEvaluator,
    ConvergenceOutcome,
    supermajority_threshold,
)

__all__ = [
    "DEFAULT_CONCERN_PREFIX_LENGTH",
    "DEFAULT_REQUIRED_COUNT",
    "ConvergenceEvaluator",
    "ConvergenceOutcome",
    "supermajority_threshold",
]
