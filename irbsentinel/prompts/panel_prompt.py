"""
Panel prompt for IRB reviewers.

Every reviewer receives the identical prompt for a run. The requested
answer format is what the verdict parser looks for, but reviewers are
not trusted to follow it.
"""

from ..schemas.review import ReviewMode, ReviewRequest

PANEL_PREAMBLE = (
    "You are an AI-IRB panelist. Your job is to assess safety and "
    "defensibility, not speed."
)

ANSWER_FORMAT = [
    "1) RISK: LOW|MEDIUM|HIGH|CRITICAL",
    "2) CONCERNS: bullet list",
    "3) REQUIRED_GATES: bullet list of gates/tests/evidence needed before approval",
    "4) RECOMMENDATION: APPROVE | REQUEST_CHANGES | REJECT",
]


def build_panel_prompt(request: ReviewRequest) -> str:
    """Render the panel prompt for a review request."""
    lines = [
        PANEL_PREAMBLE,
        "",
        "Given this proposed change, answer with:",
        *ANSWER_FORMAT,
        "",
        f"SUMMARY: {request.summary}",
        f"AFFECTED_SURFACES: {', '.join(request.surfaces) or '(none)'}",
        f"EVIDENCE_IDS: {', '.join(request.evidence_refs) or '(none)'}",
    ]
    if request.mode == ReviewMode.WARMUP:
        lines.append("REVIEW_MODE: warm-up (panel calibration run)")
    return "\n".join(lines)
