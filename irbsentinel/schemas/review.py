"""
Review request and result types for the IRB reviewer panel.

ReviewRequest is built once per run and shared, unchanged, by every
reviewer. Each reviewer gets its own ReviewerCall and produces exactly
one ReviewerResult, successful or not.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ReviewMode(str, Enum):
    """Quorum policy selected by the caller for a run."""

    WARMUP = "warmup"
    """Two-thirds supermajority among required reviewers."""

    GATEABLE = "gateable"
    """Strict unanimity among required reviewers."""

    @property
    def method(self) -> str:
        """Crosscheck method label recorded in the report."""
        return "warmup" if self == ReviewMode.WARMUP else "adversarial"


class CallStatus(str, Enum):
    OK = "OK"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ReviewRequest:
    """
    The change under review, as presented to every reviewer.

    Attributes:
        summary: Human-written summary of the change
        surfaces: Sorted surface tags touched by the change
        evidence_refs: Evidence bundle ids backing the change
        mode: Quorum policy for this run
    """

    summary: str
    surfaces: Tuple[str, ...]
    evidence_refs: Tuple[str, ...]
    mode: ReviewMode = ReviewMode.GATEABLE


@dataclass(frozen=True)
class ReviewerCall:
    reviewer_id: str
    prompt: str
    timeout: float
    max_tokens: int


@dataclass
class ReviewerResult:
    """
    Outcome of one reviewer call.

    Attributes:
        reviewer_id: Reviewer (model) identifier
        status: OK when usable text came back, ERROR otherwise
        raw_text: Response text (empty on error)
        latency_ms: Wall-clock latency of the call, retries included
        tokens_in: Prompt tokens reported by the provider
        tokens_out: Completion tokens reported by the provider
        error_detail: Failure description for ERROR results
        retried: True when the call was retried with a clamped budget
        provider: Oracle provider name
        metadata: Extra call metadata (e.g. effective max_tokens)
    """

    reviewer_id: str
    status: CallStatus
    raw_text: str = ""
    latency_ms: int = 0
    tokens_in: int = 0
    tokens_out: int = 0
    error_detail: Optional[str] = None
    retried: bool = False
    provider: str = "openrouter"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == CallStatus.OK

    @classmethod
    def error(
        cls,
        reviewer_id: str,
        detail: str,
        latency_ms: int = 0,
        provider: str = "openrouter",
    ) -> "ReviewerResult":
        return cls(
            reviewer_id=reviewer_id,
            status=CallStatus.ERROR,
            latency_ms=latency_ms,
            error_detail=detail,
            provider=provider,
        )
