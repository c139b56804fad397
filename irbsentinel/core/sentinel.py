"""
IRB Sentinel run orchestration.

One run, one pass:
    classify -> force-merge -> evidence gate
        -> NO_OP: exit 0, nothing written
        -> FAIL_CLOSED: escalated case, exit 3, no reviewer calls
        -> PROCEED: panel fan-out -> receipts -> parse -> evaluate
                    -> synthesize -> emit -> exit 0 (converged) or 3

Configuration is validated before the panel is contacted. Reviewer errors
are data; only configuration and storage failures raise.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..consensus.convergence import ConvergenceEvaluator, ConvergenceOutcome
from ..decisions.artifact_emitter import ArtifactEmitter, EmitResult
from ..decisions.artifact_store import ArtifactStore, FileArtifactStore
from ..evaluation.verdict_parser import VerdictParser
from ..governance.evidence_gate import GateOutcome, check_evidence
from ..models.model_caller import OpenRouterOracle, ReviewerOracle
from ..models.model_registry import ModelRegistry
from ..models.reviewer_pool import ReviewerPanel
from ..proposals.synthesizer import ProposalSynthesizer
from ..schemas.review import ReviewMode, ReviewRequest
from ..surfaces.classifier import apply_forced_surfaces, classify_surfaces
from .config import SentinelConfig

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Unspecified change"

EXIT_OK = 0
EXIT_ERROR = 2
EXIT_ESCALATED = 3


class RunOutcome(str, Enum):
    NO_OP = "no_op"
    CONVERGED = "converged"
    ESCALATED = "escalated"


@dataclass
class RunResult:
    """
    Result of one sentinel run.

    Attributes:
        outcome: NO_OP, CONVERGED or ESCALATED
        surfaces: Sorted surfaces of the change (forced ones included)
        gateable: Whether the change required review
        mode: Quorum policy applied, None when no review ran
        reason: Short reason for NO_OP and fail-closed runs
        emit: Emitted artifacts, None for NO_OP
        outcome_detail: Convergence outcome when the panel ran
    """

    outcome: RunOutcome
    surfaces: List[str] = field(default_factory=list)
    gateable: bool = False
    mode: Optional[ReviewMode] = None
    reason: str = ""
    emit: Optional[EmitResult] = None
    outcome_detail: Optional[ConvergenceOutcome] = None

    @property
    def exit_code(self) -> int:
        if self.outcome == RunOutcome.ESCALATED:
            return EXIT_ESCALATED
        return EXIT_OK

    @property
    def escalated(self) -> bool:
        return self.outcome == RunOutcome.ESCALATED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "outcome": self.outcome.value,
            "surfaces": list(self.surfaces),
            "gateable": self.gateable,
            "mode": self.mode.value if self.mode else None,
        }
        if self.reason:
            data["reason"] = self.reason
        if self.emit is not None:
            data.update(self.emit.to_dict())
        if self.outcome_detail is not None:
            data["dissenters"] = list(self.outcome_detail.dissenting_reviewer_ids)
            data["commonDisagreements"] = list(self.outcome_detail.common_disagreements)
        return data


class SentinelRunner:
    """
    Runs the IRB sentinel pipeline for one change set.

    Oracle, registry and store default to the OpenRouter transport, the
    OpenRouter model list and a file store under config.artifact_dir.

    Usage:
        runner = SentinelRunner(get_sentinel_config())
        result = runner.run("Rotate API keys", ["config/keys.yaml"], evidence_id="EV-1")
        sys.exit(result.exit_code)
    """

    def __init__(
        self,
        config: SentinelConfig,
        oracle: Optional[ReviewerOracle] = None,
        store: Optional[ArtifactStore] = None,
        registry: Optional[ModelRegistry] = None,
    ):
        self.config = config
        self._oracle = oracle
        self._registry = registry
        self.store = store or FileArtifactStore(
            Path(config.artifact_dir),
            commit_enabled=config.commit_enabled,
        )
        self.parser = VerdictParser()
        self.synthesizer = ProposalSynthesizer()
        self.emitter = ArtifactEmitter(self.store)

    def _build_panel(self) -> ReviewerPanel:
        oracle = self._oracle
        if oracle is None:
            oracle = OpenRouterOracle(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                temperature=self.config.temperature,
            )
        registry = self._registry
        if registry is None and self.config.validate_models:
            registry = ModelRegistry(self.config.base_url, api_key=self.config.api_key)
        return ReviewerPanel(
            oracle,
            timeout=self.config.timeout_seconds,
            max_tokens=self.config.max_tokens,
            registry=registry,
        )

    def run(
        self,
        summary: str,
        changed_files: Sequence[str],
        evidence_id: str = "",
        force: bool = False,
        forced_surfaces: Sequence[str] = (),
        job_id: str = "",
        commit_range: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RunResult:
        """
        Run the sentinel.

        Args:
            summary: Human-written summary of the change
            changed_files: Paths touched by the change
            evidence_id: Evidence bundle id (empty fails closed)
            force: Warm-up run; review even if nothing is gateable and
                apply the supermajority policy
            forced_surfaces: Extra surface tags; any tag makes the run gateable
            job_id: CI job identifier recorded in the backlog
            commit_range: Diff range recorded in the backlog
            now: Timestamp for every record of the run

        Returns:
            RunResult

        Raises:
            ConfigurationError: Invalid configuration, raised before any
                reviewer call or artifact write
            StorageError: A primary record could not be written
        """
        self.config.validate()
        now = now or datetime.now(timezone.utc)
        summary = summary.strip() or DEFAULT_SUMMARY

        classification = apply_forced_surfaces(classify_surfaces(changed_files), forced_surfaces)
        surfaces = classification.sorted_surfaces()
        decision = check_evidence(classification, evidence_id, force=force)

        if decision.outcome == GateOutcome.NO_OP:
            logger.info("[SENTINEL] No gateable surfaces; nothing to review")
            return RunResult(
                outcome=RunOutcome.NO_OP,
                surfaces=surfaces,
                gateable=False,
                reason=decision.reason,
            )

        if decision.outcome == GateOutcome.FAIL_CLOSED:
            emitted = self.emitter.emit_fail_closed(summary, surfaces, now=now)
            return RunResult(
                outcome=RunOutcome.ESCALATED,
                surfaces=surfaces,
                gateable=True,
                reason=decision.reason,
                emit=emitted,
            )

        self.config.validate(require_api_key=self._oracle is None)

        mode = ReviewMode.WARMUP if force else ReviewMode.GATEABLE
        request = ReviewRequest(
            summary=summary,
            surfaces=tuple(surfaces),
            evidence_refs=decision.evidence_refs,
            mode=mode,
        )
        logger.info(
            f"[SENTINEL] Reviewing {surfaces} with {len(self.config.reviewers)} reviewer(s) "
            f"(mode={mode.value}, required={self.config.required_count})"
        )

        results = self._build_panel().collect(request, self.config.reviewers)
        receipt_ids = self.emitter.write_receipts(results, now=now)

        verdicts = [self.parser.parse_result(r) for r in results]
        evaluator = ConvergenceEvaluator(
            required_count=self.config.required_count,
            concern_prefix_length=self.config.concern_prefix_length,
        )
        outcome = evaluator.evaluate(mode, results, verdicts)

        proposal = self.synthesizer.synthesize(
            outcome,
            request.evidence_refs,
            receipt_ids=receipt_ids,
            now=now,
        )
        emitted = self.emitter.emit_run(
            request,
            results,
            verdicts,
            outcome,
            proposal,
            receipt_ids,
            job_id=job_id,
            commit_range=commit_range,
            forced=force or classification.forced,
            now=now,
        )

        run_outcome = RunOutcome.CONVERGED if outcome.converged else RunOutcome.ESCALATED
        logger.info(f"[SENTINEL] Run finished: {run_outcome.value} (case {emitted.case_id})")
        return RunResult(
            outcome=run_outcome,
            surfaces=surfaces,
            gateable=True,
            mode=mode,
            emit=emitted,
            outcome_detail=outcome,
        )


def run_sentinel(
    config: SentinelConfig,
    summary: str,
    changed_files: Sequence[str],
    evidence_id: str = "",
    force: bool = False,
    forced_surfaces: Sequence[str] = (),
    job_id: str = "",
    commit_range: Optional[str] = None,
    oracle: Optional[ReviewerOracle] = None,
    store: Optional[ArtifactStore] = None,
) -> RunResult:
    """Convenience wrapper around SentinelRunner.run()."""
    runner = SentinelRunner(config, oracle=oracle, store=store)
    return runner.run(
        summary,
        changed_files,
        evidence_id=evidence_id,
        force=force,
        forced_surfaces=forced_surfaces,
        job_id=job_id,
        commit_range=commit_range,
    )
