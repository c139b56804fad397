"""
Artifact Records for IRB Sentinel.

Pydantic schemas for every record a run persists:
- Case: the change under review and its terminal severity/status
- CrosscheckReport: panel opinions and synthesis
- Finding: the decision, referencing the case by id
- Receipt: one audit record per reviewer call
- Backlog / ImprovementProposal: follow-up proposals and run signals

Records are frozen. Every run writes new records with fresh ids; nothing
is updated in place. JSON keys keep the camelCase names of the MeshCORE
artifact layout.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def new_id(prefix: str) -> str:
    """Opaque random id, e.g. IRB-3fa85f64."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def now_iso(now: Optional[datetime] = None) -> str:
    """UTC timestamp without fractional seconds, e.g. 2026-10-18T09:00:00Z."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class CaseSeverity(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class CaseStatus(str, Enum):
    IN_REVIEW = "IN_REVIEW"
    ESCALATED = "ESCALATED"


class FindingRecommendation(str, Enum):
    PROCEED = "PROCEED"
    ESCALATE_TO_CHAIR = "ESCALATE_TO_CHAIR"


class ProposalRisk(str, Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"


class NextAction(str, Enum):
    NO_ACTION_REQUIRED = "NO_ACTION_REQUIRED"
    QUEUE_FOR_REVIEW = "QUEUE_FOR_REVIEW"


class ArtifactRecord(BaseModel):
    """Base for persisted records."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Case(ArtifactRecord):
    id: str
    created_at: str = Field(alias="createdAt")
    severity: CaseSeverity
    summary: str
    status: CaseStatus
    affected_surfaces: List[str] = Field(default_factory=list, alias="affectedSurfaces")
    evidence_ids: List[str] = Field(default_factory=list, alias="evidenceIds")
    links: List[str] = Field(default_factory=list)


class Opinion(ArtifactRecord):
    """One reviewer's position inside a crosscheck report."""

    agent_id: str
    agent_kind: str = "ai"
    agent_label: str
    model: str
    policy_id: str = "ai-irb-v0"
    stance: str
    risk: str
    required: bool
    status: str
    summary: str
    concerns: List[str] = Field(default_factory=list)
    required_gates: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    error: str = ""


class CrosscheckReport(ArtifactRecord):
    schema_version: str = "0.2"
    id: str
    created_by: str = "did:meshcore:irb-sentinel"
    question: str = "Safety and defensibility review"
    method: str
    inputs: List[str] = Field(default_factory=list)
    opinions: List[Opinion] = Field(default_factory=list)
    synthesis: str
    dissent: str = ""
    dissenters: List[str] = Field(default_factory=list)
    common_disagreements: List[str] = Field(default_factory=list)
    aggregate_gates: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Finding(ArtifactRecord):
    id: str
    case_id: str = Field(alias="caseId")
    created_at: str = Field(alias="createdAt")
    crosscheck_report_id: str = Field(alias="crosscheckReportId")
    converged: bool
    summary: str
    dissent: str = ""
    recommendation: FindingRecommendation


class Receipt(ArtifactRecord):
    id: str
    created_at: str = Field(alias="createdAt")
    kind: str = "llm-call"
    provider: str
    model: str
    latency_ms: int = Field(alias="latencyMs")
    tokens_in: int = Field(default=0, alias="tokensIn")
    tokens_out: int = Field(default=0, alias="tokensOut")
    status: str
    error: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ImprovementProposal(ArtifactRecord):
    id: str
    title: str
    body: List[str] = Field(default_factory=list)
    holon: str = "Moats: Data & Learning Loops"
    surface: str = "irb-sentinel"
    risk: ProposalRisk
    why_now: str = ""
    expected_impact: Dict[str, Any] = Field(default_factory=dict)
    evidence: List[Dict[str, str]] = Field(default_factory=list)
    guardrails: List[str] = Field(default_factory=list)
    next_action: NextAction


class BacklogRun(ArtifactRecord):
    job_id: str = ""
    timestamp_utc: str
    commit_range: Optional[str] = None
    forced: bool = False
    irb_surfaces: List[str] = Field(default_factory=list)
    mode: str


class BacklogLinks(ArtifactRecord):
    evidence_bundle: str = ""
    case: str
    findings: str
    crosscheck: str
    receipts: List[str] = Field(default_factory=list)


class BacklogSignals(ArtifactRecord):
    provider_reliability: Dict[str, Any] = Field(default_factory=dict)
    convergence: Dict[str, Any] = Field(default_factory=dict)
    adverse_events: Dict[str, Any] = Field(default_factory=dict)


class Backlog(ArtifactRecord):
    schema_id: str = Field(default="meshcore.irb.improvement.v1", alias="schema")
    run: BacklogRun
    links: BacklogLinks
    signals: BacklogSignals
    proposals: List[ImprovementProposal] = Field(default_factory=list)
    routing: Dict[str, Any] = Field(default_factory=dict)
