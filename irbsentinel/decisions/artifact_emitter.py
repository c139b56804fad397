"""
Artifact Emitter for IRB Sentinel.

Assembles the records of one run and persists them through an ArtifactStore.

Persistence order:
1. Receipts (one per reviewer call, written before evaluation)
2. Case, CrosscheckReport, Finding
3. Backlog JSON and its markdown rendering
4. Best-effort commit of everything written

A fail-closed run writes only the escalated Case.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..consensus.convergence import ConvergenceOutcome
from ..evaluation.verdict import Verdict
from ..governance.evidence_gate import annotate_missing_evidence
from ..schemas.review import ReviewerResult, ReviewRequest
from ..core.errors import StorageError
from .artifact_store import IRB_PROJECT, ArtifactStore
from .records import (
    Backlog,
    BacklogLinks,
    BacklogRun,
    BacklogSignals,
    Case,
    CaseSeverity,
    CaseStatus,
    CrosscheckReport,
    Finding,
    FindingRecommendation,
    ImprovementProposal,
    Opinion,
    Receipt,
    new_id,
    now_iso,
)

logger = logging.getLogger(__name__)

RECEIPT_PURPOSE = "ai-irb-panel"
REVIEW_SLA_HOURS = 72
ROUTING_FORUMS = (
    {"name": "Advantage Forum", "reason": "learning loop consistency"},
    {"name": "Ethics Forum", "reason": "severity/escalation semantics"},
)


def _record_path(kind: str, record_id: str) -> str:
    return f"{IRB_PROJECT}/{kind}/{record_id}.json"


def _backlog_dir(now: datetime) -> str:
    now = now.astimezone(timezone.utc)
    return f"{IRB_PROJECT}/backlog/{now.strftime('%Y/%m/%d/%H')}"


def median_latency(results: Sequence[ReviewerResult]) -> Optional[int]:
    """Upper median of call latencies, None for an empty panel."""
    latencies = sorted(r.latency_ms for r in results)
    if not latencies:
        return None
    return latencies[len(latencies) // 2]


@dataclass
class EmitResult:
    """
    Structured result of an emitted run.

    Attributes:
        case_id: Id of the Case written
        severity: Terminal case severity
        converged: Whether the panel converged
        report_id: CrosscheckReport id (None for fail-closed runs)
        finding_id: Finding id (None for fail-closed runs)
        receipt_ids: Receipts written for the run
        backlog_path: Relative path of the backlog JSON, if written
        committed: Whether the artifacts were committed
    """

    case_id: str
    severity: CaseSeverity
    converged: bool = False
    report_id: Optional[str] = None
    finding_id: Optional[str] = None
    receipt_ids: List[str] = field(default_factory=list)
    backlog_path: Optional[str] = None
    committed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caseId": self.case_id,
            "reportId": self.report_id,
            "findingId": self.finding_id,
            "converged": self.converged,
            "severity": self.severity.value,
            "receipts": list(self.receipt_ids),
            "backlog": self.backlog_path,
            "committed": self.committed,
        }


def render_backlog_markdown(backlog: Backlog, converged: bool) -> str:
    """Human-readable rendering of a backlog record."""
    reliability = backlog.signals.provider_reliability
    adverse = backlog.signals.adverse_events
    p50 = reliability.get("median_latency_ms")
    lines = [
        f"# IRB Improvement Backlog - {backlog.run.timestamp_utc}",
        "",
        "Run:",
        f"- Job: {backlog.run.job_id or '(unset)'}",
        f"- Mode: {backlog.run.mode}",
        f"- Forced: {'yes' if backlog.run.forced else 'no'}",
        f"- Surfaces: {', '.join(backlog.run.irb_surfaces) or '(none)'}",
        f"- Evidence: {backlog.links.evidence_bundle or '(none)'}",
        f"- Converged: {'yes' if converged else 'no'}",
        f"- Adverse events: {adverse.get('count', 0)}",
        "",
        "Key Signals:",
        (
            f"- Provider reliability: success {reliability.get('success_rate_1h', 0) * 100:.0f}% "
            f"| p50 latency {p50 if p50 is not None else '(n/a)'}ms"
        ),
        f"- Convergence pass rate: {'100%' if converged else '0%'}",
    ]

    disagreements = backlog.signals.convergence.get("common_disagreements") or []
    if disagreements:
        lines.append("- Common disagreements:")
        lines.extend(f"  - {item}" for item in disagreements)

    lines.extend(["", "Proposals:"])
    if not backlog.proposals:
        lines.append("(none)")
    for index, proposal in enumerate(backlog.proposals, start=1):
        lines.extend([
            f"{index}) {proposal.id} - {proposal.title}",
            f"   - Holon: {proposal.holon}",
            f"   - Surface: {proposal.surface}",
            f"   - Risk: {proposal.risk.value}",
            f"   - Next: {proposal.next_action.value}",
        ])
        lines.extend(f"   - {line}" for line in proposal.body)

    lines.extend(["", "Routing:"])
    for forum in backlog.routing.get("forums", []):
        lines.append(f"- {forum['name']} ({forum['reason']})")
    lines.append(f"- Review SLA: {backlog.routing.get('review_sla_hours')}h")
    lines.append("")
    return "\n".join(lines)


class ArtifactEmitter:
    """
    Writes the audit trail of a sentinel run.

    Usage:
        emitter = ArtifactEmitter(FileArtifactStore(Path("meshcore")))
        receipt_ids = emitter.write_receipts(results)
        result = emitter.emit_run(request, results, verdicts, outcome, proposal, receipt_ids)
    """

    def __init__(self, store: ArtifactStore):
        self.store = store

    def write_receipts(
        self,
        results: Sequence[ReviewerResult],
        now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Persist one receipt per reviewer call.

        Returns:
            Receipt ids in roster order

        Raises:
            StorageError: If a receipt cannot be written
        """
        receipt_ids: List[str] = []
        for result in results:
            receipt = Receipt(
                id=new_id("RCPT"),
                created_at=now_iso(now),
                provider=result.provider,
                model=result.reviewer_id,
                latency_ms=result.latency_ms,
                tokens_in=result.tokens_in,
                tokens_out=result.tokens_out,
                status=result.status.value,
                error=result.error_detail or "",
                metadata={
                    "purpose": RECEIPT_PURPOSE,
                    "retried": result.retried,
                    **result.metadata,
                },
            )
            self.store.write_json(_record_path("receipts", receipt.id), receipt.to_json_dict())
            receipt_ids.append(receipt.id)

        logger.info(f"[EMITTER] Wrote {len(receipt_ids)} receipt(s)")
        return receipt_ids

    def emit_fail_closed(
        self,
        summary: str,
        surfaces: Sequence[str],
        now: Optional[datetime] = None,
    ) -> EmitResult:
        """
        Persist the escalated Case of a run that lacked evidence.

        No reviewer was consulted, so no receipts, report, finding or backlog.
        """
        case = Case(
            id=new_id("IRB"),
            created_at=now_iso(now),
            severity=CaseSeverity.HIGH,
            summary=annotate_missing_evidence(summary),
            status=CaseStatus.ESCALATED,
            affected_surfaces=list(surfaces),
            evidence_ids=[],
        )
        path = self.store.write_json(_record_path("cases", case.id), case.to_json_dict())
        committed = self.store.commit(f"chore(ai-irb): open {case.id} (missing evidence)", [path])

        logger.warning(f"[EMITTER] Fail-closed case {case.id}: missing evidence id")
        return EmitResult(
            case_id=case.id,
            severity=case.severity,
            converged=False,
            committed=committed,
        )

    def build_opinions(
        self,
        results: Sequence[ReviewerResult],
        verdicts: Sequence[Verdict],
        required_ids: Sequence[str],
    ) -> List[Opinion]:
        """One opinion per reviewer, advisory reviewers included."""
        opinions = []
        for result, verdict in zip(results, verdicts):
            opinions.append(Opinion(
                agent_id=f"did:meshcore:{result.reviewer_id}",
                agent_label=result.reviewer_id,
                model=result.reviewer_id,
                stance=verdict.recommendation.stance if result.ok else "error",
                risk=verdict.risk.value,
                required=result.reviewer_id in required_ids,
                status=result.status.value,
                summary=result.raw_text,
                concerns=list(verdict.concerns),
                required_gates=list(verdict.required_gates),
                error=result.error_detail or "",
            ))
        return opinions

    def build_signals(
        self,
        results: Sequence[ReviewerResult],
        outcome: ConvergenceOutcome,
        provider: str = "openrouter",
    ) -> BacklogSignals:
        total = len(results)
        errored = [r for r in results if not r.ok]
        ok_count = total - len(errored)
        return BacklogSignals(
            provider_reliability={
                "provider": provider,
                "success_rate_1h": ok_count / total if total else 0,
                "error_rate_1h": len(errored) / total if total else 0,
                "median_latency_ms": median_latency(results),
                "retries": sum(1 for r in results if r.retried),
            },
            convergence={
                "attempts": 1,
                "pass_rate": 1 if outcome.converged else 0,
                "mode": outcome.mode.value,
                "plurality": outcome.plurality_recommendation.value if outcome.plurality_recommendation else None,
                "common_disagreements": list(outcome.common_disagreements),
            },
            adverse_events={
                "count": len(errored),
                "events": [{"model": r.reviewer_id, "error": r.error_detail or ""} for r in errored],
            },
        )

    def emit_run(
        self,
        request: ReviewRequest,
        results: Sequence[ReviewerResult],
        verdicts: Sequence[Verdict],
        outcome: ConvergenceOutcome,
        proposal: Optional[ImprovementProposal],
        receipt_ids: Sequence[str],
        job_id: str = "",
        commit_range: Optional[str] = None,
        forced: bool = False,
        now: Optional[datetime] = None,
    ) -> EmitResult:
        """
        Persist the Case, CrosscheckReport, Finding and Backlog of a run.

        Args:
            request: The review request sent to the panel
            results: Reviewer results in roster order
            verdicts: Parsed verdicts, parallel to results
            outcome: Convergence outcome
            proposal: Synthesized proposal, if any
            receipt_ids: Receipts already written for the run
            job_id: CI job identifier
            commit_range: Diff range the change was discovered from
            forced: Whether surfaces were forced by the caller
            now: Timestamp used for all records of the run

        Returns:
            EmitResult

        Raises:
            StorageError: If a case, report or finding cannot be written
        """
        now = now or datetime.now(timezone.utc)
        created_at = now_iso(now)
        converged = outcome.converged
        dissent = outcome.dissent_explanation()

        case = Case(
            id=new_id("IRB"),
            created_at=created_at,
            severity=CaseSeverity.MEDIUM if converged else CaseSeverity.HIGH,
            summary=request.summary,
            status=CaseStatus.IN_REVIEW if converged else CaseStatus.ESCALATED,
            affected_surfaces=list(request.surfaces),
            evidence_ids=list(request.evidence_refs),
        )

        report = CrosscheckReport(
            id=new_id("CR"),
            method=request.mode.method,
            inputs=list(request.evidence_refs),
            opinions=self.build_opinions(results, verdicts, outcome.required_reviewer_ids),
            synthesis="Converged." if converged else "Not converged.",
            dissent=dissent,
            dissenters=list(outcome.dissenting_reviewer_ids),
            common_disagreements=list(outcome.common_disagreements),
            aggregate_gates=list(outcome.aggregate_gates),
            metadata={
                "receipts": list(receipt_ids),
                "required_reviewers": list(outcome.required_reviewer_ids),
                "threshold": outcome.threshold,
            },
        )

        if converged:
            plurality = outcome.plurality_recommendation.value if outcome.plurality_recommendation else ""
            finding_summary = f"Converged on {plurality}"
        else:
            finding_summary = "Not converged"

        finding = Finding(
            id=new_id("FIND"),
            case_id=case.id,
            created_at=created_at,
            crosscheck_report_id=report.id,
            converged=converged,
            summary=finding_summary,
            dissent=dissent,
            recommendation=(
                FindingRecommendation.PROCEED if converged else FindingRecommendation.ESCALATE_TO_CHAIR
            ),
        )

        written = [
            self.store.write_json(_record_path("cases", case.id), case.to_json_dict()),
            self.store.write_json(_record_path("crosschecks", report.id), report.to_json_dict()),
            self.store.write_json(_record_path("findings", finding.id), finding.to_json_dict()),
        ]
        written.extend(_record_path("receipts", rid) for rid in receipt_ids)

        provider = results[0].provider if results else "openrouter"
        backlog = Backlog(
            run=BacklogRun(
                job_id=job_id,
                timestamp_utc=created_at,
                commit_range=commit_range,
                forced=forced,
                irb_surfaces=list(request.surfaces),
                mode=request.mode.value,
            ),
            links=BacklogLinks(
                evidence_bundle=request.evidence_refs[0] if request.evidence_refs else "",
                case=case.id,
                findings=finding.id,
                crosscheck=report.id,
                receipts=list(receipt_ids),
            ),
            signals=self.build_signals(results, outcome, provider),
            proposals=[proposal] if proposal is not None else [],
            routing={
                "forums": [dict(forum) for forum in ROUTING_FORUMS],
                "review_sla_hours": REVIEW_SLA_HOURS,
            },
        )

        backlog_name = proposal.id if proposal is not None else f"IRB-RUN-{case.id}"
        backlog_base = f"{_backlog_dir(now)}/{backlog_name}"
        # The backlog is secondary; the case, report and finding are already on disk
        backlog_path: Optional[str] = None
        try:
            backlog_path = self.store.write_json(f"{backlog_base}.json", backlog.to_json_dict())
            written.append(backlog_path)
            markdown = render_backlog_markdown(backlog, converged)
            written.append(self.store.write_text(f"{backlog_base}.md", markdown))
        except StorageError as e:
            logger.warning(f"[EMITTER] Backlog not written for case {case.id}: {e}")

        committed = self.store.commit(f"chore(ai-irb): open {case.id}", written)

        logger.info(
            f"[EMITTER] Case {case.id} severity={case.severity.value} "
            f"converged={converged} report={report.id} finding={finding.id}"
        )
        return EmitResult(
            case_id=case.id,
            severity=case.severity,
            converged=converged,
            report_id=report.id,
            finding_id=finding.id,
            receipt_ids=list(receipt_ids),
            backlog_path=backlog_path,
            committed=committed,
        )
