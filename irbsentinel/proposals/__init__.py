"""
Improvement proposals for IRB Sentinel.

Key components:
- ProposalSynthesizer: ConvergenceOutcome -> ImprovementProposal
- GUARDRAILS: Static limits attached to every proposal
"""

from .synthesizer import GUARDRAILS, ProposalSynthesizer, proposal_id

__all__ = ["GUARDRAILS", "ProposalSynthesizer", "proposal_id"]
