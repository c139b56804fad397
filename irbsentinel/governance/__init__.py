"""
Governance gates for IRB Sentinel.

Key components:
- check_evidence: Fail-closed evidence requirement for gateable changes
- GateDecision / GateOutcome: Result of the gate
"""

from .evidence_gate import (
    MISSING_EVIDENCE_NOTE,
    GateDecision,
    GateOutcome,
    annotate_missing_evidence,
    check_evidence,
)

__all__ = [
    "MISSING_EVIDENCE_NOTE",
    "GateDecision",
    "GateOutcome",
    "annotate_missing_evidence",
    "check_evidence",
]
