"""
Reviewer response evaluation for IRB Sentinel.

Key components:
- Verdict: Typed reading of one reviewer response
- VerdictParser: Tolerant RISK / CONCERNS / REQUIRED_GATES / RECOMMENDATION extraction
"""

from .verdict import (
    DEFAULT_RECOMMENDATION,
    DEFAULT_RISK,
    Recommendation,
    RiskLevel,
    Verdict,
)
from .verdict_parser import MIN_ITEM_LENGTH, NONE_ACKNOWLEDGEMENTS, VerdictParser

__all__ = [
    "DEFAULT_RECOMMENDATION",
    "DEFAULT_RISK",
    "Recommendation",
    "RiskLevel",
    "Verdict",
    "MIN_ITEM_LENGTH",
    "NONE_ACKNOWLEDGEMENTS",
    "VerdictParser",
]
