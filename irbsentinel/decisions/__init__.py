"""
Decision records for IRB Sentinel.

Key components:
- records: Case, CrosscheckReport, Finding, Receipt, Backlog schemas
- FileArtifactStore: One JSON file per record, optional git commit
- ArtifactEmitter: Assembles and persists the records of a run
"""

from .artifact_emitter import ArtifactEmitter, EmitResult, median_latency, render_backlog_markdown
from .artifact_store import IRB_PROJECT, ArtifactStore, FileArtifactStore
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
    NextAction,
    Opinion,
    ProposalRisk,
    Receipt,
    new_id,
    now_iso,
)

__all__ = [
    "ArtifactEmitter",
    "EmitResult",
    "median_latency",
    "render_backlog_markdown",
    "IRB_PROJECT",
    "ArtifactStore",
    "FileArtifactStore",
    "Backlog",
    "BacklogLinks",
    "BacklogRun",
    "BacklogSignals",
    "Case",
    "CaseSeverity",
    "CaseStatus",
    "CrosscheckReport",
    "Finding",
    "FindingRecommendation",
    "ImprovementProposal",
    "NextAction",
    "Opinion",
    "ProposalRisk",
    "Receipt",
    "new_id",
    "now_iso",
]
