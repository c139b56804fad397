"""
Evidence Gate for IRB Sentinel.

Fail-closed precondition in front of the reviewer panel. A run that
proceeds to review must carry an evidence id; without one the run ends
in an escalated case and no reviewer is ever called.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from ..surfaces.classifier import SurfaceClassification

logger = logging.getLogger(__name__)

MISSING_EVIDENCE_NOTE = "(missing evidence id)"


class GateOutcome(str, Enum):
    """Result of the evidence gate."""

    NO_OP = "no_op"
    """Nothing gateable and nothing forced: the run ends successfully."""

    FAIL_CLOSED = "fail_closed"
    """Review required but no evidence id: escalate without review."""

    PROCEED = "proceed"
    """Review required and evidence present."""


@dataclass(frozen=True)
class GateDecision:
    outcome: GateOutcome
    evidence_refs: Tuple[str, ...] = ()
    reason: str = ""

    @property
    def proceeds(self) -> bool:
        return self.outcome == GateOutcome.PROCEED


def check_evidence(
    classification: SurfaceClassification,
    evidence_id: Optional[str],
    force: bool = False,
) -> GateDecision:
    """
    Decide whether a run may proceed to the reviewer panel.

    Args:
        classification: Surfaces touched by the change
        evidence_id: Opaque evidence bundle id (may be empty)
        force: Warm-up override; review even when nothing is gateable

    Returns:
        GateDecision. FAIL_CLOSED is terminal, not retryable.
    """
    if not classification.gateable and not force:
        logger.info("[GATE] No gateable surfaces detected")
        return GateDecision(outcome=GateOutcome.NO_OP, reason="no gateable surfaces")

    evidence = (evidence_id or "").strip()
    if not evidence:
        logger.warning(
            f"[GATE] Evidence id missing for surfaces {classification.sorted_surfaces()}; "
            f"failing closed"
        )
        return GateDecision(outcome=GateOutcome.FAIL_CLOSED, reason="missing evidence id")

    return GateDecision(outcome=GateOutcome.PROCEED, evidence_refs=(evidence,))


def annotate_missing_evidence(summary: str) -> str:
    return f"{summary} {MISSING_EVIDENCE_NOTE}"
