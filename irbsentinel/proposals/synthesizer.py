"""
Proposal Synthesizer for IRB Sentinel.

Turns a convergence outcome into at most one improvement proposal:
- Converged: GREEN, no action required
- Not converged: YELLOW, queued for review, built from the panel's actual
  shared concerns, required gates, dissenters and reviewer errors

Guardrails are attached to every proposal verbatim. A proposal can never
authorize the changes the guardrails exclude.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..consensus.convergence import ConvergenceOutcome
from ..decisions.records import ImprovementProposal, NextAction, ProposalRisk

logger = logging.getLogger(__name__)

GUARDRAILS = (
    "No permissions/allowlists changes",
    "No network exposure changes",
    "No destructive ops",
    "No escalation routing changes",
)

TITLE_LIMIT = 100


def _truncate(text: str, limit: int = TITLE_LIMIT) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit - 3].rstrip() + "..."


def proposal_id(now: datetime) -> str:
    """e.g. IRB-PROP-20261018-09-a1b2"""
    now = now.astimezone(timezone.utc)
    return f"IRB-PROP-{now.strftime('%Y%m%d')}-{now.strftime('%H')}-{uuid.uuid4().hex[:4]}"


class ProposalSynthesizer:
    """
    Builds the improvement proposal for one run.
    """

    def synthesize(
        self,
        outcome: ConvergenceOutcome,
        evidence_refs: Sequence[str],
        receipt_ids: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> ImprovementProposal:
        """
        Synthesize the run's proposal.

        Args:
            outcome: Convergence outcome of the run
            evidence_refs: Evidence ids the change was reviewed against
            receipt_ids: Receipts of the reviewer calls
            now: Timestamp used for the proposal id

        Returns:
            ImprovementProposal
        """
        now = now or datetime.now(timezone.utc)
        evidence = self._evidence(evidence_refs, receipt_ids)

        if outcome.converged:
            stance = outcome.plurality_recommendation.value if outcome.plurality_recommendation else "UNKNOWN"
            proposal = ImprovementProposal(
                id=proposal_id(now),
                title=f"Panel converged on {stance}; no follow-up required",
                risk=ProposalRisk.GREEN,
                why_now=(
                    f"{outcome.plurality_count}/{len(outcome.required_reviewer_ids)} "
                    f"required reviewers agreed (mode={outcome.mode.value})."
                ),
                evidence=evidence,
                guardrails=list(GUARDRAILS),
                next_action=NextAction.NO_ACTION_REQUIRED,
            )
        else:
            proposal = ImprovementProposal(
                id=proposal_id(now),
                title=self._title(outcome),
                body=self._body(outcome),
                risk=ProposalRisk.YELLOW,
                why_now=outcome.dissent_explanation(),
                expected_impact={
                    "metric": "convergence.pass_rate",
                    "direction": "up",
                    "confidence": 0.5,
                },
                evidence=evidence,
                guardrails=list(GUARDRAILS),
                next_action=NextAction.QUEUE_FOR_REVIEW,
            )

        logger.info(f"[PROPOSAL] {proposal.id} risk={proposal.risk.value} next={proposal.next_action.value}")
        return proposal

    def _title(self, outcome: ConvergenceOutcome) -> str:
        top = outcome.top_disagreement
        if top:
            return _truncate(f"Resolve shared reviewer concern: {top}")
        if outcome.required_errors:
            return _truncate(
                f"Restore required reviewer(s) before re-review: {', '.join(outcome.required_errors)}"
            )
        if outcome.dissenting_reviewer_ids:
            return _truncate(
                f"Reconcile split recommendations from {', '.join(outcome.dissenting_reviewer_ids)}"
            )
        return _truncate(
            f"Re-run panel: {outcome.plurality_count}/{len(outcome.required_reviewer_ids)} "
            f"agreement below threshold {outcome.threshold}"
        )

    def _body(self, outcome: ConvergenceOutcome) -> List[str]:
        body: List[str] = []
        if outcome.common_disagreements:
            body.append(f"Top disagreement: {outcome.common_disagreements[0]}")
            for concern in outcome.common_disagreements[1:]:
                body.append(f"Also shared: {concern}")
        if outcome.aggregate_gates:
            body.append("Required gates before re-review:")
            body.extend(f"- {gate}" for gate in outcome.aggregate_gates)
        disagreeing = [r for r in outcome.dissenting_reviewer_ids if r not in outcome.required_errors]
        if disagreeing:
            plurality = outcome.plurality_recommendation.value if outcome.plurality_recommendation else "none"
            body.append(f"Dissenting reviewers (plurality {plurality}): {', '.join(disagreeing)}")
        for reviewer_id, detail in outcome.required_errors.items():
            body.append(f"Reviewer error: {reviewer_id}: {detail}")
        return body

    def _evidence(self, evidence_refs: Sequence[str], receipt_ids: Sequence[str]) -> List[Dict[str, str]]:
        evidence = [
            {"ref": f"evidence:{ref}", "note": "Evidence bundle the change was reviewed against."}
            for ref in evidence_refs
        ]
        if receipt_ids:
            evidence.append({
                "ref": f"receipts:{','.join(receipt_ids)}",
                "note": "See receipts for provider reliability.",
            })
        return evidence
