"""
Convergence Evaluator for IRB Sentinel.

Applies a quorum policy over the panel's verdicts:
- WARMUP: the plurality recommendation among required reviewers must reach
  a two-thirds supermajority, ceil(2 * required_count / 3)
- GATEABLE: every required reviewer must give the same recommendation

A required reviewer that errored cannot be outvoted: any required ERROR
means no convergence. Reviewers past the required subset are advisory;
their concerns and gates feed aggregation but not the decision.
"""

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..evaluation.verdict import Recommendation, Verdict
from ..schemas.review import ReviewerResult, ReviewMode

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_COUNT = 3
DEFAULT_CONCERN_PREFIX_LENGTH = 60


@dataclass(frozen=True)
class ConvergenceOutcome:
    """
    Result of evaluating one panel run.

    Attributes:
        converged: Whether the quorum policy was satisfied
        mode: Quorum policy applied
        required_reviewer_ids: Reviewers whose verdicts decided the outcome
        dissenting_reviewer_ids: Required reviewers that errored or disagreed
            with the plurality, in roster order
        plurality_recommendation: Most frequent required recommendation
        plurality_count: How many required reviewers gave it
        threshold: Votes needed for convergence under the mode
        required_errors: reviewer_id -> error detail for errored required reviewers
        common_disagreements: Concerns raised by more than one reviewer,
            most frequent first
        aggregate_gates: Union of required gates across all reviewers
    """

    converged: bool
    mode: ReviewMode
    required_reviewer_ids: Tuple[str, ...]
    dissenting_reviewer_ids: Tuple[str, ...] = ()
    plurality_recommendation: Optional[Recommendation] = None
    plurality_count: int = 0
    threshold: int = 0
    required_errors: Dict[str, str] = field(default_factory=dict)
    common_disagreements: Tuple[str, ...] = ()
    aggregate_gates: Tuple[str, ...] = ()

    @property
    def top_disagreement(self) -> Optional[str]:
        return self.common_disagreements[0] if self.common_disagreements else None

    def dissent_explanation(self) -> str:
        """Human-readable reason the panel did not fully agree."""
        parts: List[str] = []
        if self.required_errors:
            errored = ", ".join(f"{rid} ({detail})" for rid, detail in self.required_errors.items())
            parts.append(f"Required reviewer(s) errored: {errored}.")

        disagreeing = [r for r in self.dissenting_reviewer_ids if r not in self.required_errors]
        if disagreeing and self.plurality_recommendation is not None:
            parts.append(
                f"Dissent from plurality {self.plurality_recommendation.value}: "
                f"{', '.join(disagreeing)}."
            )

        if not self.converged:
            parts.insert(0, (
                f"Panel did not converge ({self.plurality_count}/{len(self.required_reviewer_ids)} "
                f"agreeing, {self.threshold} needed, mode={self.mode.value})."
            ))
        return " ".join(parts)


def supermajority_threshold(required_count: int) -> int:
    """Two-thirds supermajority: ceil(2n/3)."""
    return math.ceil(2 * required_count / 3)


class ConvergenceEvaluator:
    """
    Evaluates panel agreement under a quorum policy.

    Usage:
        evaluator = ConvergenceEvaluator(required_count=3)
        outcome = evaluator.evaluate(ReviewMode.GATEABLE, results, verdicts)
    """

    def __init__(
        self,
        required_count: int = DEFAULT_REQUIRED_COUNT,
        concern_prefix_length: int = DEFAULT_CONCERN_PREFIX_LENGTH,
    ):
        """
        Initialize the evaluator.

        Args:
            required_count: Number of reviewers, from the head of the roster,
                that decide convergence
            concern_prefix_length: Prefix length used to group similar concerns
        """
        if required_count < 1:
            raise ValueError(f"required_count must be >= 1, got {required_count}")
        self.required_count = required_count
        self.concern_prefix_length = concern_prefix_length

    def threshold_for(self, mode: ReviewMode) -> int:
        if mode == ReviewMode.WARMUP:
            return supermajority_threshold(self.required_count)
        return self.required_count

    def evaluate(
        self,
        mode: ReviewMode,
        results: Sequence[ReviewerResult],
        verdicts: Sequence[Verdict],
    ) -> ConvergenceOutcome:
        """
        Evaluate convergence for one run.

        Args:
            mode: Quorum policy
            results: Reviewer results in roster order
            verdicts: Parsed verdicts, parallel to results

        Returns:
            ConvergenceOutcome
        """
        if len(results) != len(verdicts):
            raise ValueError(
                f"results and verdicts differ in length ({len(results)} != {len(verdicts)})"
            )

        required = list(zip(results, verdicts))[:self.required_count]
        required_ids = tuple(r.reviewer_id for r, _ in required)
        threshold = self.threshold_for(mode)

        required_errors = {
            r.reviewer_id: (r.error_detail or "error")
            for r, _ in required
            if not r.ok
        }

        stances = Counter(v.recommendation for r, v in required if r.ok)
        plurality: Optional[Recommendation] = None
        plurality_count = 0
        if stances:
            plurality, plurality_count = stances.most_common(1)[0]

        complete = len(required) == self.required_count
        converged = complete and not required_errors and plurality_count >= threshold

        dissenters = tuple(
            r.reviewer_id
            for r, v in required
            if not r.ok or v.recommendation != plurality
        )

        outcome = ConvergenceOutcome(
            converged=converged,
            mode=mode,
            required_reviewer_ids=required_ids,
            dissenting_reviewer_ids=dissenters,
            plurality_recommendation=plurality,
            plurality_count=plurality_count,
            threshold=threshold,
            required_errors=required_errors,
            common_disagreements=self.common_disagreements(verdicts),
            aggregate_gates=self.aggregate_gates(verdicts),
        )

        logger.info(
            f"[CONVERGENCE] mode={mode.value} converged={converged} "
            f"plurality={plurality.value if plurality else None} "
            f"({plurality_count}/{self.required_count}, need {threshold}) "
            f"errors={len(required_errors)}"
        )
        if not complete:
            logger.warning(
                f"[CONVERGENCE] Only {len(required)} of {self.required_count} required reviewers reported"
            )
        return outcome

    def _concern_key(self, concern: str) -> str:
        key = re.sub(r"\s+", " ", concern.casefold()).strip()
        key = key.rstrip(".;:,!")
        return key[:self.concern_prefix_length].rstrip()

    def common_disagreements(self, verdicts: Sequence[Verdict]) -> Tuple[str, ...]:
        """
        Concerns raised by more than one reviewer.

        Each verdict counts a grouped concern at most once. Results are
        ranked by descending frequency, then by first appearance, and use the
        wording of the first reviewer that raised them.
        """
        counts: Counter = Counter()
        first_text: Dict[str, str] = {}
        order: Dict[str, int] = {}

        for verdict in verdicts:
            keys_in_verdict = set()
            for concern in verdict.concerns:
                key = self._concern_key(concern)
                if not key or key in keys_in_verdict:
                    continue
                keys_in_verdict.add(key)
                counts[key] += 1
                if key not in first_text:
                    first_text[key] = concern.strip()
                    order[key] = len(order)

        shared = [key for key, count in counts.items() if count > 1]
        shared.sort(key=lambda k: (-counts[k], order[k]))
        return tuple(first_text[key] for key in shared)

    def aggregate_gates(self, verdicts: Sequence[Verdict]) -> Tuple[str, ...]:
        """Union of required gates, de-duplicated case-insensitively, first-seen order."""
        gates: List[str] = []
        seen = set()
        for verdict in verdicts:
            for gate in verdict.required_gates:
                key = gate.strip().casefold()
                if key and key not in seen:
                    seen.add(key)
                    gates.append(gate.strip())
        return tuple(gates)
